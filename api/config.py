"""
Environment-aware configuration.
Values come from the process environment, with .env read if present.
"""
import os
from dotenv import load_dotenv

load_dotenv()  # Read .env if present


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///library-catalog.db")
    DATABASE_ECHO = _env_bool("DATABASE_ECHO", "false")
    # Upper bound on waiting for a connection or a locked SQLite database
    STORE_TIMEOUT_SECONDS = float(os.getenv("STORE_TIMEOUT_SECONDS", "5"))

    # Token lifecycle
    ACCESS_TOKEN_LIFETIME = int(os.getenv("ACCESS_TOKEN_LIFETIME", str(24 * 60 * 60)))
    ISSUE_REFRESH_TOKEN = _env_bool("ISSUE_REFRESH_TOKEN", "true")
    REFRESH_TOKEN_LIFETIME = int(os.getenv("REFRESH_TOKEN_LIFETIME", str(365 * 24 * 60 * 60)))
    SUPERUSER_SCOPE = os.getenv("SUPERUSER_SCOPE", "superuser")

    # Argon2 cost; None keeps argon2-cffi's defaults
    ARGON2_TIME_COST = None
    ARGON2_MEMORY_COST = None
    ARGON2_PARALLELISM = None


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    # In dev, propagate exceptions so our error handler has full context
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    DEBUG = False


class TestingConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = "sqlite://"
    DATABASE_ECHO = False
    STORE_TIMEOUT_SECONDS = 5.0
    ACCESS_TOKEN_LIFETIME = 24 * 60 * 60
    ISSUE_REFRESH_TOKEN = True
    REFRESH_TOKEN_LIFETIME = 365 * 24 * 60 * 60
    SUPERUSER_SCOPE = "superuser"
    # cheap hashes keep the suite fast
    ARGON2_TIME_COST = 1
    ARGON2_MEMORY_COST = 8
    ARGON2_PARALLELISM = 1


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/prod/test).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
