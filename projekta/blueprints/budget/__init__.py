from .routes import budget_bp  # noqa: F401
