# riskregister/routes/main.py
from __future__ import annotations

from quart import Blueprint, current_app, jsonify

from riskregister.utils.helper import utc_now_iso
from riskregister.utils.logger import get_logger


logger = get_logger(__name__)
main_bp = Blueprint("main", __name__)


@main_bp.route("/")
async def index() -> any:  # type: ignore
    """Short service description with the main entry points."""
    return jsonify(
        {
            "name": "risk-register",
            "env": current_app.config.get("ENV"),
            "endpoints": {
                "projects": "/projects",
                "health": "/health",
                "docs": "/docs",
            },
        }
    )


@main_bp.get("/health")
async def health():
    store = current_app.extensions.get("store")
    return (
        jsonify(
            {
                "status": "ok" if store is not None else "degraded",
                "backend": current_app.config.get("STORAGE_BACKEND", "sqlite"),
                "time": utc_now_iso(),
            }
        ),
        200,
    )
