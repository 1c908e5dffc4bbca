# riskregister/__init__.py
from __future__ import annotations

import os
from quart import Quart
from quart_schema import QuartSchema, RequestSchemaValidationError
from werkzeug.exceptions import MethodNotAllowed, NotFound, RequestEntityTooLarge

from .config import get_config
from .utils.logger import get_logger
from .utils.helper import response_error
from .extensions import init_extensions, shutdown_extensions
from .services.errors import RegisterError, RegisterValidationError
from .routes.main import main_bp
from .routes.projects import projects_bp
from .routes.risks import risks_bp


async def create_app(config_object: object | None = None) -> Quart:
    """Application factory for the Risk Register Quart app.

    Args:
        config_object: Optional explicit configuration class.  If not
            provided, the value of the ``APP_ENV`` environment variable
            is used to determine which configuration class to load via
            :func:`get_config`.  See :mod:`riskregister.config` for details.

    Returns:
        A fully configured :class:`quart.Quart` application instance.
    """

    app = Quart(__name__, instance_relative_config=True)

    QuartSchema(app)

    env = os.environ.get("APP_ENV", "default")
    if config_object:
        app.config.from_object(config_object)
    else:
        app.config.from_object(get_config(env))

    # Inisialisasi logger global
    logger = get_logger("quart.app")
    logger.info(f"Starting Risk Register app in {app.config['ENV']} mode")

    # Inisialisasi storage & service register
    await init_extensions(app)
    logger.info("Extensions initialized successfully")

    @app.after_serving
    async def _cleanup():
        await shutdown_extensions(app)
        logger.info("Extensions shutdown successfully")

    register_error_handlers(app)

    # Register blueprints
    app.register_blueprint(main_bp)
    app.register_blueprint(projects_bp, url_prefix="/projects")
    app.register_blueprint(risks_bp, url_prefix="/projects")
    logger.info("Blueprints registered")

    return app


def register_error_handlers(app: Quart) -> None:
    """Map domain and validation errors to JSON error bodies."""

    @app.errorhandler(RegisterValidationError)
    async def _validation_failed(error: RegisterValidationError):
        return response_error("Validation failed", 400, errors=error.errors)

    @app.errorhandler(RegisterError)
    async def _register_error(error: RegisterError):
        return response_error(str(error), error.http_status)

    @app.errorhandler(RequestSchemaValidationError)
    async def _schema_failed(error: RequestSchemaValidationError):
        detail = error.validation_error
        errors = detail.errors() if hasattr(detail, "errors") else str(detail)
        return response_error(
            "Invalid request body", 400, errors=_jsonable_errors(errors)
        )

    @app.errorhandler(RequestEntityTooLarge)
    async def _too_large(_error: RequestEntityTooLarge):
        return response_error("Upload too large", 413)

    @app.errorhandler(NotFound)
    async def _not_found(_error: NotFound):
        return response_error("Not found", 404)

    @app.errorhandler(MethodNotAllowed)
    async def _not_allowed(_error: MethodNotAllowed):
        return response_error("Method not allowed", 405)


def _jsonable_errors(errors):
    """Pydantic error list → ``{"field.path": "message"}``."""
    if isinstance(errors, str):
        return {"body": errors}
    result = {}
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ())) or "body"
        result[loc] = err.get("msg", "invalid")
    return result
