from flask import current_app
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
jwt = JWTManager()
migrate = Migrate()

STORAGE_KEY = "health_portal.storage"


def get_storage():
    """The storage backend bound to the running app."""
    return current_app.extensions[STORAGE_KEY]
