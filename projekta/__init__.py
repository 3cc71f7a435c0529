"""
projekta/__init__.py

Flask application factory for the Projekta construction project service.

Architecture:
- JSON API organised in blueprints (auth, users, projects, categories,
  cash flow, budget v1, financials v2, purchase orders).
- PostgreSQL-ready (SQLAlchemy + migrations) but SQLite is used for dev.
- The client is never trusted; access control is enforced server-side.
"""

from __future__ import annotations

import logging

import click
from flask import Flask, jsonify
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from .errors import ProjektaError
from .extensions import csrf, db, login_manager, migrate
from .models import User
from .security import viewer_readonly_guard


def create_app(config_object: str = "config.Config") -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id: str) -> User | None:
        """Load user for Flask-Login."""
        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "Authentication required."}), 401

    # ----------------------------------------------------------------------
    # GLOBAL SECURITY NET: project viewers are read-only (server-side).
    # ----------------------------------------------------------------------
    @app.before_request
    def _viewer_guard_hook():
        return viewer_readonly_guard()

    # ----------------------------------------------------------------------
    # Error handling: JSON everywhere, session rolled back on failures
    # ----------------------------------------------------------------------
    @app.errorhandler(ProjektaError)
    def handle_domain_error(exc: ProjektaError):
        db.session.rollback()
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(exc: SQLAlchemyError):
        db.session.rollback()
        app.logger.error("Database error: %s", exc, exc_info=True)
        return jsonify({"error": "The operation could not be saved. Please try again."}), 500

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"error": exc.description}), exc.code

    # ----------------------------------------------------------------------
    # Blueprints
    # ----------------------------------------------------------------------
    from .blueprints.auth import auth_bp
    from .blueprints.users import users_bp
    from .blueprints.projects import projects_bp
    from .blueprints.categories import categories_bp
    from .blueprints.cash_flow import cash_flow_bp
    from .blueprints.budget import budget_bp
    from .blueprints.financials import financials_bp
    from .blueprints.purchase_orders import purchase_orders_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(projects_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(cash_flow_bp)
    app.register_blueprint(budget_bp)
    app.register_blueprint(financials_bp)
    app.register_blueprint(purchase_orders_bp)

    # ----------------------------------------------------------------------
    # CLI
    # ----------------------------------------------------------------------
    @app.cli.command("seed-categories")
    def seed_categories_command():
        """Seed default spending categories."""
        from .seed import seed_default_categories

        added = seed_default_categories()
        click.echo(f"Default categories seeded ({added} added).")

    # ----------------------------------------------------------------------
    # Home
    # ----------------------------------------------------------------------
    @app.route("/")
    def index():
        return jsonify(
            {
                "app": app.config.get("APP_NAME"),
                "authenticated": bool(current_user.is_authenticated),
            }
        )

    return app
