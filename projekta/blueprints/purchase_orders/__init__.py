from .routes import purchase_orders_bp  # noqa: F401
