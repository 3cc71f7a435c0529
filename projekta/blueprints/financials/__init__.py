from .routes import financials_bp  # noqa: F401
