"""
Spreadsheet import/export for the risk register.

Export writes the risks as one row per risk (CSV), or a workbook holding a
``Meta`` sheet with the project details followed by a ``Risks`` sheet
(XLSX).  Import reads either format back; missing or malformed cells fall
back to safe defaults instead of rejecting the whole file.
"""

from __future__ import annotations

import io
import json
import zipfile
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import PurePath
from typing import Any, Dict, List, Optional, Type, TypeVar

import pandas as pd
from dateutil import parser as dtparser
from openpyxl.utils.exceptions import InvalidFileException

from riskregister.config import RegisterSettings, default_settings
from riskregister.models.schemas import (
    Project,
    ProjectMeta,
    Risk,
    RiskPriority,
    RiskResponse,
    RiskStatus,
    StatusChange,
)
from riskregister.services.analysis.risk_matrix import clamp_level
from riskregister.services.errors import ImportFormatError
from riskregister.utils.helper import new_id, parse_timestamp, utc_now
from riskregister.utils.logger import get_logger


logger = get_logger(__name__)

E = TypeVar("E", bound=Enum)

RISK_COLUMNS = [
    "id",
    "title",
    "description",
    "category",
    "probability",
    "impact",
    "owner",
    "mitigation",
    "priority",
    "response",
    "status",
    "dateIdentified",
    "dateResolved",
    "lastReviewed",
    "statusHistory",
]
META_COLUMNS = [
    "projectName",
    "projectManager",
    "sponsor",
    "startDate",
    "endDate",
    "riskPlan",
]

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_MIMETYPE = "text/csv"


@dataclass
class ImportResult:
    risks: List[Risk] = field(default_factory=list)
    meta: Optional[ProjectMeta] = None


# =====================================
# export
# =====================================
def _iso(value: Optional[datetime]) -> str:
    return value.isoformat() if value else ""


def risk_to_row(risk: Risk) -> Dict[str, Any]:
    return {
        "id": risk.id,
        "title": risk.title,
        "description": risk.description,
        "category": risk.category,
        "probability": risk.probability,
        "impact": risk.impact,
        "owner": risk.owner,
        "mitigation": risk.mitigation,
        "priority": risk.priority.value,
        "response": risk.response.value,
        "status": risk.status.value,
        "dateIdentified": _iso(risk.date_identified),
        "dateResolved": _iso(risk.date_resolved),
        "lastReviewed": _iso(risk.last_reviewed),
        "statusHistory": json.dumps([h.to_wire() for h in risk.status_history]),
    }


def risks_frame(risks: List[Risk]) -> pd.DataFrame:
    return pd.DataFrame([risk_to_row(r) for r in risks], columns=RISK_COLUMNS)


def meta_frame(meta: ProjectMeta) -> pd.DataFrame:
    wire = meta.to_wire()
    return pd.DataFrame(
        [{col: wire.get(col) or "" for col in META_COLUMNS}], columns=META_COLUMNS
    )


def export_csv(project: Project) -> bytes:
    return risks_frame(project.risks).to_csv(index=False).encode("utf-8")


def export_xlsx(project: Project) -> bytes:
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        meta_frame(project.meta).to_excel(writer, sheet_name="Meta", index=False)
        risks_frame(project.risks).to_excel(writer, sheet_name="Risks", index=False)
    return output.getvalue()


# =====================================
# import
# =====================================
def _records(frame: pd.DataFrame) -> List[Dict[str, Any]]:
    # sel kosong (NaN/NaT) → None
    frame = frame.astype(object).where(frame.notna(), None)
    return frame.to_dict(orient="records")


def read_sheets(filename: str, payload: bytes) -> Dict[str, List[Dict[str, Any]]]:
    """Parse an uploaded ``.csv``/``.xlsx`` file into ``{sheet: rows}``."""
    ext = PurePath(filename or "").suffix.lower()
    try:
        if ext == ".csv":
            frame = pd.read_csv(io.BytesIO(payload), dtype=str, keep_default_na=False)
            return {"Risks": _records(frame)}
        if ext in (".xlsx", ".xlsm"):
            sheets = pd.read_excel(io.BytesIO(payload), sheet_name=None, engine="openpyxl")
            return {name: _records(frame) for name, frame in sheets.items()}
    except pd.errors.EmptyDataError:
        return {"Risks": []}
    except (
        ValueError,
        pd.errors.ParserError,
        zipfile.BadZipFile,
        InvalidFileException,
    ) as e:
        logger.warning("Gagal membaca file import %s: %s", filename, e)
        raise ImportFormatError(f"Cannot read {filename!r}: {e}") from e
    raise ImportFormatError(f"Unsupported file type {ext or '(none)'}; use .csv or .xlsx")


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _when(value: Any) -> Optional[datetime]:
    """Tanggal sel: ISO dulu, lalu format bebas ("01/15/2024", "Jan 15, 2024")."""
    try:
        return parse_timestamp(value)
    except (TypeError, ValueError):
        pass
    try:
        return parse_timestamp(dtparser.parse(_text(value)))
    except (OverflowError, ValueError) as e:
        logger.warning("Tanggal tidak dikenali, diabaikan: %r (%s)", value, e)
        return None


def _enum(enum_cls: Type[E], value: Any, default: E) -> E:
    try:
        return enum_cls(_text(value))
    except ValueError:
        return default


def _level(value: Any) -> int:
    # angka 0/kosong/invalid → 1
    if value is None or _text(value) == "":
        return 1
    try:
        if float(value) == 0:
            return 1
    except (TypeError, ValueError):
        return 1
    return clamp_level(value)


def _history(value: Any) -> List[StatusChange]:
    text = _text(value)
    if not text:
        return []
    try:
        entries = json.loads(text)
        return [StatusChange.model_validate(e) for e in entries]
    except (ValueError, TypeError) as e:
        logger.debug("statusHistory diabaikan (%s): %s", e, text[:80])
        return []


def risk_from_row(row: Dict[str, Any], now: Optional[datetime] = None) -> Risk:
    now = now or utc_now()
    return Risk(
        id=_text(row.get("id")) or new_id(),
        title=_text(row.get("title")),
        description=_text(row.get("description")),
        category=_text(row.get("category")),
        probability=_level(row.get("probability")),
        impact=_level(row.get("impact")),
        owner=_text(row.get("owner")),
        mitigation=_text(row.get("mitigation")),
        priority=_enum(RiskPriority, row.get("priority"), RiskPriority.MEDIUM),
        response=_enum(RiskResponse, row.get("response"), RiskResponse.MITIGATE),
        status=_enum(RiskStatus, row.get("status"), RiskStatus.OPEN),
        status_history=_history(row.get("statusHistory")),
        date_identified=_when(row.get("dateIdentified"))
        or _when(row.get("startDate"))
        or now,
        date_resolved=_when(row.get("dateResolved")),
        last_reviewed=_when(row.get("lastReviewed")) or now,
    )


def meta_from_row(row: Dict[str, Any]) -> ProjectMeta:
    start = _when(row.get("startDate"))
    end = _when(row.get("endDate"))
    return ProjectMeta(
        project_name=_text(row.get("projectName")),
        project_manager=_text(row.get("projectManager")),
        sponsor=_text(row.get("sponsor")),
        start_date=start.date() if start else None,
        end_date=end.date() if end else None,
        risk_plan=_text(row.get("riskPlan")),
    )


def parse_import(
    filename: str,
    payload: bytes,
    settings: Optional[RegisterSettings] = None,
) -> ImportResult:
    settings = settings or default_settings()
    sheets = read_sheets(filename, payload)

    if "Risks" in sheets:
        risk_rows = sheets["Risks"]
    else:
        first = next((name for name in sheets if name != "Meta"), None)
        risk_rows = sheets[first] if first else []

    if len(risk_rows) > settings.max_import_rows:
        raise ImportFormatError(
            f"Too many rows ({len(risk_rows)}); limit is {settings.max_import_rows}"
        )

    now = utc_now()
    result = ImportResult(risks=[risk_from_row(row, now) for row in risk_rows])

    meta_rows = sheets.get("Meta") or []
    if meta_rows:
        result.meta = meta_from_row(meta_rows[0])

    logger.info(
        "Import %s: %d risk, meta=%s", filename, len(result.risks), result.meta is not None
    )
    return result
