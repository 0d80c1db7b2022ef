import logging
import ssl

import click
from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from health_portal.config import Config
from health_portal.errors import PortalError, Unauthorized
from health_portal.extensions import STORAGE_KEY, db, get_storage, jwt, migrate
from health_portal.routes.access import access_bp
from health_portal.routes.auth import auth_bp
from health_portal.routes.doctors import doctors_bp
from health_portal.routes.notifications import notifications_bp
from health_portal.routes.records import records_bp
from health_portal.storage import MemoryStorage, SqlStorage


def _unauthorized(*args):
    return jsonify(Unauthorized().to_dict()), 401


@jwt.user_lookup_loader
def load_user(_jwt_header, jwt_data):
    return get_storage().get_user(int(jwt_data["sub"]))


@jwt.token_in_blocklist_loader
def token_revoked(_jwt_header, jwt_payload):
    return get_storage().is_token_revoked(jwt_payload["jti"])


jwt.unauthorized_loader(_unauthorized)
jwt.invalid_token_loader(_unauthorized)
jwt.expired_token_loader(_unauthorized)
jwt.revoked_token_loader(_unauthorized)
jwt.user_lookup_error_loader(_unauthorized)


def create_app(config_object=Config, storage=None):
    app = Flask(__name__)
    app.config.from_object(config_object)
    if not app.config.get("JWT_SECRET_KEY"):
        raise RuntimeError("JWT_SECRET_KEY is not set")

    CORS(app, resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}})

    logging.basicConfig(level=app.config["LOG_LEVEL"])
    app.logger.setLevel(app.config["LOG_LEVEL"])

    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    if storage is None:
        storage = MemoryStorage() if app.config["STORAGE_BACKEND"] == "memory" else SqlStorage(db)
    app.extensions[STORAGE_KEY] = storage

    app.register_blueprint(auth_bp)
    app.register_blueprint(doctors_bp)
    app.register_blueprint(access_bp)
    app.register_blueprint(records_bp)
    app.register_blueprint(notifications_bp)

    @app.errorhandler(PortalError)
    def handle_portal_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({"message": e.description}), e.code

    @app.cli.command("init-db")
    def init_db():
        """Create every table for the SQL storage backend."""
        db.create_all()
        click.echo("Database tables created.")

    return app

if __name__ == "__main__":
    app = create_app()

    cert_path = app.config["SSL_CERT_PATH"]
    key_path = app.config["SSL_KEY_PATH"]
    if cert_path and key_path:
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        context.minimum_version = ssl.TLSVersion.TLSv1_3
        context.maximum_version = ssl.TLSVersion.TLSv1_3
        try:
            context.load_cert_chain(cert_path, key_path)
            app.logger.info("Starting health portal with HTTPS (TLS 1.3)")
            app.run(host='0.0.0.0', port=5000, ssl_context=context, debug=app.config["DEBUG"])
        except FileNotFoundError as e:
            app.logger.warning(f"SSL certificate not found: {e}; falling back to HTTP")
            app.run(host='0.0.0.0', port=5000, debug=app.config["DEBUG"])
    else:
        app.run(host='0.0.0.0', port=5000, debug=app.config["DEBUG"])
