from .routes import cash_flow_bp  # noqa: F401
