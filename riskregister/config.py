# riskregister/config.py
from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = Path(BASE_DIR) / ".env"
DATA_DIR = BASE_DIR / "data"
DATA_DIR.mkdir(parents=True, exist_ok=True)

# Load .env
load_dotenv(ENV_PATH)


class RegisterSettings(BaseSettings):
    """Parameter domain risk register (scoring, timeline, chart, import)."""

    model_config = SettingsConfigDict(
        env_prefix="RISK_",
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ====================================
    # Scoring
    # ====================================
    high_threshold: int = 15
    moderate_threshold: int = 5
    max_score: int = 25

    # ====================================
    # Timeline: batas rentang (hari) untuk step week / month
    # ====================================
    weekly_max_days: int = 120
    monthly_max_days: int = 730

    # ====================================
    # SVG chart
    # ====================================
    chart_height: int = 300
    chart_min_width: int = 600
    chart_tick_width: int = 80

    # ====================================
    # Import spreadsheet
    # ====================================
    max_import_rows: int = 5000


@lru_cache(maxsize=1)
def default_settings() -> RegisterSettings:
    """RegisterSettings dari ENV, dibaca sekali untuk pemanggil tanpa settings eksplisit."""
    return RegisterSettings()


class BaseConfig:
    """Base configuration class for Quart."""

    # ====================
    # Storage Config
    # ====================
    STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "sqlite")  # sqlite | json
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        f"sqlite+aiosqlite:///{(DATA_DIR / 'risk_register.sqlite').as_posix()}",
    )
    SQLALCHEMY_ECHO = os.getenv("SQLALCHEMY_ECHO", "false").lower() == "true"
    JSON_STORE_PATH = os.getenv(
        "JSON_STORE_PATH", (DATA_DIR / "projects.json").as_posix()
    )

    # ====================
    # App Config
    # ====================
    ENV = os.getenv("APP_ENV", "development")
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me-secret-key")
    DEBUG = False
    TESTING = False
    # upload spreadsheet maksimal 5 MB
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH", 5 * 1024 * 1024))

    # ====================
    # Logger Config
    # ====================
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.getenv(
        "LOG_FORMAT", "[%(asctime)s] %(levelname)s in %(module)s: %(message)s"
    )
    LOG_RETENTION = int(os.getenv("LOG_RETENTION", 90))
    LOG_MODE = os.getenv("LOG_MODE", "file")  # file | stdout | socket
    LOG_CONSOLE = os.getenv("LOG_CONSOLE", "true").lower() == "true"

    JSON_SORT_KEYS = False


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    ENV = "development"


class TestingConfig(BaseConfig):
    TESTING = True
    DEBUG = True
    ENV = "testing"
    LOG_MODE = "stdout"


class ProductionConfig(BaseConfig):
    DEBUG = False
    ENV = "production"


config_map = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}


def get_config(env: str | None = None) -> type[BaseConfig]:
    """Return the configuration class corresponding to the given environment."""
    if not env:
        env = os.getenv("APP_ENV", "default")
    return config_map.get(env, config_map["default"])
