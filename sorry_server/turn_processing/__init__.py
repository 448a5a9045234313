"""Turn/action processing helpers.

Validation, per-card selection and turn advancement live here so every inbound
game action, whether from a socket or a developer scenario, takes the same path.
"""
