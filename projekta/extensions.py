"""
Flask extension instances, bound to the app in create_app().

- db: named constraints so Alembic can drop/alter them (SQLite batch mode).
- migrate: render_as_batch for SQLite ALTER TABLE support.
- login_manager: JSON API, so no login_view redirect; see unauthorized_handler.
- csrf: token is read from the X-CSRFToken header for JSON clients.
"""

from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_wtf import CSRFProtect
from sqlalchemy import MetaData

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

db = SQLAlchemy(metadata=MetaData(naming_convention=NAMING_CONVENTION))
migrate = Migrate(render_as_batch=True)

login_manager = LoginManager()
login_manager.session_protection = "strong"

csrf = CSRFProtect()
