# riskregister/routes/risks.py
from __future__ import annotations

from quart import Blueprint, jsonify
from quart_schema import validate_request

from riskregister.extensions import get_register
from riskregister.models.schemas import RiskInput, RiskUpdate
from riskregister.utils.logger import get_logger


risks_bp = Blueprint("risks", __name__)
logger = get_logger(__name__)


@risks_bp.get("/<pid>/risks")
async def list_risks(pid: str):
    risks = await get_register().list_risks(pid)
    return jsonify([r.to_wire() for r in risks])


@risks_bp.post("/<pid>/risks")
@validate_request(RiskInput)
async def create_risk(pid: str, data: RiskInput):
    """Buat risk baru; entri status history pertama ikut dibuat."""
    risk = await get_register().create_risk(pid, data)
    return jsonify(risk.to_wire()), 201


@risks_bp.get("/<pid>/risks/<rid>")
async def get_risk(pid: str, rid: str):
    risk = await get_register().get_risk(pid, rid)
    return jsonify(risk.to_wire())


@risks_bp.put("/<pid>/risks/<rid>")
@validate_request(RiskUpdate)
async def update_risk(pid: str, rid: str, data: RiskUpdate):
    """Update parsial. Status berubah atau note terisi → entri history baru."""
    risk = await get_register().update_risk(pid, rid, data)
    return jsonify(risk.to_wire())


@risks_bp.delete("/<pid>/risks/<rid>")
async def delete_risk(pid: str, rid: str):
    await get_register().delete_risk(pid, rid)
    return "", 204
