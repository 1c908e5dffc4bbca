# riskregister/routes/projects.py
from __future__ import annotations

from typing import Optional, Tuple

from quart import Blueprint, Response, jsonify, request
from quart_schema import validate_request

from riskregister.extensions import get_register, get_settings
from riskregister.models.schemas import CategoryIn, ProjectIn, SettingsIn
from riskregister.services.analysis import build_timeline, dashboard as build_dashboard
from riskregister.services.charts.timeline_svg import render_timeline_svg
from riskregister.services.errors import RegisterValidationError
from riskregister.services.exchange.spreadsheet import (
    CSV_MIMETYPE,
    XLSX_MIMETYPE,
    export_csv,
    export_xlsx,
)
from riskregister.utils.helper import response_error
from riskregister.utils.logger import get_logger


projects_bp = Blueprint("projects", __name__)
logger = get_logger(__name__)


# * --------------------------------------------------
# * project & settings
# * --------------------------------------------------
@projects_bp.get("")
async def list_projects():
    projects = await get_register().list_projects()
    return jsonify(
        [
            {
                "id": p.id,
                "meta": p.meta.to_wire(),
                "riskCount": len(p.risks),
            }
            for p in projects
        ]
    )


@projects_bp.post("")
@validate_request(ProjectIn)
async def create_project(data: ProjectIn):
    project = await get_register().create_project(data.meta, data.categories)
    return jsonify(project.to_wire()), 201


@projects_bp.get("/<pid>")
async def get_project(pid: str):
    project = await get_register().get_project(pid)
    return jsonify(project.to_wire())


@projects_bp.delete("/<pid>")
async def delete_project(pid: str):
    await get_register().delete_project(pid)
    return "", 204


@projects_bp.put("/<pid>/settings")
@validate_request(SettingsIn)
async def update_settings(pid: str, data: SettingsIn):
    project = await get_register().update_settings(pid, data.meta, data.categories)
    return jsonify(project.to_wire())


@projects_bp.post("/<pid>/categories")
@validate_request(CategoryIn)
async def add_category(pid: str, data: CategoryIn):
    if not data.name.strip():
        raise RegisterValidationError({"name": "Category name is required"})
    categories = await get_register().add_category(pid, data.name)
    return jsonify({"categories": categories}), 201


@projects_bp.delete("/<pid>/categories/<name>")
async def remove_category(pid: str, name: str):
    categories = await get_register().remove_category(pid, name)
    return jsonify({"categories": categories})


# * --------------------------------------------------
# * dashboard & timeline
# * --------------------------------------------------
def _cell_from_query() -> Optional[Tuple[int, int]]:
    """``?probability=&impact=`` → sel filter matrix, atau None."""
    # string kosong (form filter dikosongkan) sama dengan tidak ada filter
    raw_p = request.args.get("probability") or None
    raw_i = request.args.get("impact") or None
    if raw_p is None and raw_i is None:
        return None

    errs = {}
    values = {}
    for key, raw in (("probability", raw_p), ("impact", raw_i)):
        try:
            value = int(raw) if raw is not None else None
        except ValueError:
            value = None
        if value is None or not 1 <= value <= 5:
            errs[key] = f"{key} must be an integer 1-5"
        values[key] = value
    if errs:
        raise RegisterValidationError(errs)
    return values["probability"], values["impact"]


@projects_bp.get("/<pid>/dashboard")
async def dashboard(pid: str):
    cell = _cell_from_query()
    project = await get_register().get_project(pid)
    return jsonify(build_dashboard(project, cell, get_settings()))


@projects_bp.get("/<pid>/timeline")
async def timeline(pid: str):
    project = await get_register().get_project(pid)
    return jsonify(build_timeline(project.risks, project.meta, get_settings()).to_wire())


@projects_bp.get("/<pid>/timeline.svg")
async def timeline_svg(pid: str):
    project = await get_register().get_project(pid)
    settings = get_settings()
    svg = render_timeline_svg(build_timeline(project.risks, project.meta, settings), settings)
    return Response(svg, mimetype="image/svg+xml")


# * --------------------------------------------------
# * export & import
# * --------------------------------------------------
@projects_bp.get("/<pid>/export")
async def export(pid: str):
    fmt = (request.args.get("format") or "csv").lower()
    if fmt not in ("csv", "xlsx"):
        return response_error("format must be csv or xlsx", 400)

    project = await get_register().get_project(pid)
    if fmt == "xlsx":
        body, mimetype = export_xlsx(project), XLSX_MIMETYPE
    else:
        body, mimetype = export_csv(project), CSV_MIMETYPE

    logger.info("Export project=%s format=%s risks=%d", pid, fmt, len(project.risks))
    return Response(
        body,
        mimetype=mimetype,
        headers={"Content-Disposition": f"attachment; filename=risks.{fmt}"},
    )


@projects_bp.post("/<pid>/import")
async def import_file(pid: str):
    files = await request.files
    upload = files.get("file")
    if upload is None or not upload.filename:
        return response_error("Form field 'file' is required", 400)

    payload = upload.read()
    result = await get_register().import_register(pid, upload.filename, payload)
    return jsonify(result), 200
