"""
Environment-aware configuration.
Values come from the environment (and .env via python-dotenv); the token
lifetimes and cookie names are fixed here rather than negotiated at runtime.
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Signs the login flow cookie; set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///blog-auth.db")
    # Upper bound for any single store call (lock wait, statement, pool checkout)
    STORE_TIMEOUT_SECONDS = float(os.getenv("STORE_TIMEOUT_SECONDS", "5"))
    SQL_ECHO = _env_bool("SQL_ECHO")

    # JWT: HS256 only; JWT_SECRET_KEY is standard base64 of at least 32 bytes
    JWT_ISSUER = os.getenv("JWT_ISSUER", "blog-auth-api")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "ZGV2LW9ubHktc2lnbmluZy1rZXktY2hhbmdlLW1lLXBsZWFzZS0wMTIzNDU2Nzg5")
    ACCESS_TOKEN_EXPIRES = timedelta(days=1)
    REFRESH_TOKEN_EXPIRES = timedelta(days=14)

    REFRESH_TOKEN_COOKIE_NAME = "refresh_token"
    OAUTH2_AUTH_REQUEST_COOKIE_NAME = "oauth2_auth_request"
    OAUTH2_AUTH_REQUEST_COOKIE_MAX_AGE = 18000  # 5 hours
    COOKIE_SECURE = _env_bool("COOKIE_SECURE")

    LOGIN_SUCCESS_PATH = os.getenv("LOGIN_SUCCESS_PATH", "/articles")
    LOGIN_PATH = os.getenv("LOGIN_PATH", "/login")

    # Route policy: everything under these prefixes needs a principal, except PUBLIC_PATHS
    PROTECTED_PREFIXES = ("/api/",)
    PUBLIC_PATHS = ("/api/token", "/api/v1/health")

    OAUTH2_HTTP_TIMEOUT = float(os.getenv("OAUTH2_HTTP_TIMEOUT", "10"))
    OAUTH2_CLIENTS = {
        "google": {
            "client_id": os.getenv("GOOGLE_CLIENT_ID", ""),
            "client_secret": os.getenv("GOOGLE_CLIENT_SECRET", ""),
            "authorization_uri": "https://accounts.google.com/o/oauth2/v2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
            "user_info_uri": "https://openidconnect.googleapis.com/v1/userinfo",
            "scopes": ["email", "profile"],
        },
    }


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    # In dev, propagate exceptions so our error handler has full context
    PROPAGATE_EXCEPTIONS = True


class TestingConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = "sqlite://"
    SECRET_KEY = "test-secret-key"
    JWT_ISSUER = "blog-auth-test"
    JWT_SECRET_KEY = "dGVzdC1zaWduaW5nLWtleS1mb3ItdGhlLXN1aXRlLW9ubHktMDEyMzQ1Njc4OWFi"


class ProductionConfig(BaseConfig):
    DEBUG = False
    COOKIE_SECURE = _env_bool("COOKIE_SECURE", "true")


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    if name:
        name = name.lower()
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
