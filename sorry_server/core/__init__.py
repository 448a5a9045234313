"""Core gameplay primitives (outbound events), free of FastAPI imports."""
