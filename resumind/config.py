# config.py
import os
from datetime import timedelta

def _csv_env(name: str, default: str = "") -> list[str]:
    val = os.getenv(name, default)
    # split only if non-empty; strip whitespace
    return [x.strip() for x in val.split(",")] if val else []

def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, "") or default)
    except ValueError:
        return default

class BaseConfig:
    DEBUG = False
    TESTING = False
    JSON_SORT_KEYS = False
    PREFERRED_URL_SCHEME = "https"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Secrets (must be set in env for prod)
    SECRET_KEY = os.getenv("APP_SECRET_KEY") or "dev-only-secret-change-me"
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY") or "dev-only-jwt-secret-change-me"

    # JWT: API clients send a Bearer header, browsers carry the cookie
    JWT_TOKEN_LOCATION = ["headers", "cookies"]
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=_int_env("JWT_EXPIRES_MINUTES", 12 * 60))
    JWT_COOKIE_SECURE = True
    JWT_COOKIE_SAMESITE = "Lax"
    JWT_COOKIE_CSRF_PROTECT = True
    JWT_CSRF_CHECK_FORM = True

    # CORS
    CORS_ORIGINS = _csv_env("CORS_ORIGINS", "http://localhost:8000,http://localhost:3000")

    # Uploads: one PDF up to 20 MB; the request may carry the form fields on top.
    # MAX_CONTENT_LENGTH is derived from these in create_app.
    MAX_FILE_SIZE = _int_env("MAX_FILE_SIZE", 20 * 1024 * 1024)
    FORM_FIELDS_ALLOWANCE = 1024 * 1024
    UPLOAD_DIR = os.getenv("UPLOAD_DIR", "./uploads")
    FERNET_KEY = os.getenv("FERNET_KEY") or None

    # Key-value store
    KV_BACKEND = os.getenv("KV_BACKEND", "mongo")
    MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    MONGO_DB = os.getenv("MONGO_DB", "resumind")

    # AI (OpenAI-compatible endpoint, OpenRouter by default)
    AI_BASE_URL = os.getenv("AI_BASE_URL", "https://openrouter.ai/api/v1")
    AI_MODEL = os.getenv("AI_MODEL", "meta-llama/llama-3.3-70b-instruct:free")

    # Rate limits
    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")

    # Blob URLs older than this are revoked even if no page released them
    BLOB_MAX_AGE_SECONDS = _int_env("BLOB_MAX_AGE_SECONDS", 15 * 60)

class DevConfig(BaseConfig):
    DEBUG = True
    KV_BACKEND = os.getenv("KV_BACKEND", "memory")
    JWT_COOKIE_SECURE = False

class ProdConfig(BaseConfig):
    pass

class TestConfig(BaseConfig):
    TESTING = True
    KV_BACKEND = "memory"
    FERNET_KEY = None
    JWT_COOKIE_SECURE = False
    JWT_COOKIE_CSRF_PROTECT = False
    RATELIMIT_ENABLED = False
    LOG_LEVEL = "DEBUG"

def config_for_env():
    return ProdConfig if os.getenv("ENV") == "prod" else DevConfig

def validate_required_secrets():
    if os.getenv("ENV") == "prod":
        if not os.getenv("APP_SECRET_KEY") or not os.getenv("JWT_SECRET_KEY"):
            raise RuntimeError("APP_SECRET_KEY and JWT_SECRET_KEY must be set in production")
