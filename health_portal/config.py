import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()

class Config:
    SQLALCHEMY_DATABASE_URI     = os.getenv("DATABASE_URL", "sqlite:///health_portal.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # "sql" keeps records in SQLALCHEMY_DATABASE_URI, "memory" in process
    STORAGE_BACKEND             = os.getenv("STORAGE_BACKEND", "sql")

    JWT_SECRET_KEY              = os.getenv("JWT_SECRET_KEY")
    JWT_ACCESS_TOKEN_EXPIRES    = timedelta(seconds=int(os.getenv("JWT_ACCESS_TOKEN_EXPIRES", "3600")))

    SECRET_KEY                  = os.getenv("FLASK_SECRET_KEY")
    DEBUG                       = os.getenv("FLASK_DEBUG") == "True"

    BCRYPT_ROUNDS               = int(os.getenv("BCRYPT_ROUNDS", "12"))
    LOG_LEVEL                   = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS                = os.getenv("CORS_ORIGINS", "*")

    SSL_CERT_PATH               = os.getenv("SSL_CERT_PATH")
    SSL_KEY_PATH                = os.getenv("SSL_KEY_PATH")


class TestingConfig(Config):
    TESTING                     = True
    SQLALCHEMY_DATABASE_URI     = "sqlite://"
    STORAGE_BACKEND             = "memory"
    JWT_SECRET_KEY              = "testing-health-portal-jwt-secret-key"
    SECRET_KEY                  = "testing-health-portal-secret"
    BCRYPT_ROUNDS               = 4
