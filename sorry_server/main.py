from fastapi import FastAPI
import logging

from sorry_server.api.routes import router
from sorry_server.infra.config import get_log_level, load_env_file

load_env_file()

app = FastAPI(title="sorry-server", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=get_log_level())
logger = logging.getLogger(__name__)


@app.on_event("startup")
async def _startup() -> None:
    logger.info("sorry-server starting (log level %s)", get_log_level())


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "sorry-server", "version": "0.1.0"}
