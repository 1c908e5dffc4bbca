# riskregister/extensions.py
from __future__ import annotations

from quart import Quart, current_app

from .config import RegisterSettings
from .models.store import create_store
from .services.register import RegisterService
from .utils.logger import get_logger


async def init_extensions(app: Quart) -> None:
    """Initialise all asynchronous extensions and attach them to the app.

    This should be called once when the application starts.  The
    resulting objects are stored on ``app.extensions`` for later use.
    """

    logger = get_logger(__name__)

    # Load domain settings from environment (via pydantic)
    settings = RegisterSettings()
    app.extensions["register_settings"] = settings
    logger.info(
        "RegisterSettings loaded: high>=%d moderate>=%d",
        settings.high_threshold,
        settings.moderate_threshold,
    )

    # Initialise storage backend (sqlite | json)
    store = create_store(app.config)
    await store.init_models()
    app.extensions["store"] = store
    logger.info("Store ready: backend=%s", app.config.get("STORAGE_BACKEND", "sqlite"))

    app.extensions["register"] = RegisterService(store, settings)


async def shutdown_extensions(app: Quart) -> None:
    """Clean up all asynchronous extensions on application shutdown."""
    store = app.extensions.get("store")
    if store is not None:
        await store.close()
        get_logger(__name__).info("Store closed")


def get_register() -> RegisterService:
    return current_app.extensions["register"]


def get_settings() -> RegisterSettings:
    return current_app.extensions["register_settings"]
