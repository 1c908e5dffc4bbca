# riskregister/models/schemas.py
from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from riskregister.config import RegisterSettings, default_settings
from riskregister.utils.helper import parse_timestamp


class CamelModel(BaseModel):
    """Base model: JSON pakai camelCase, input snake_case tetap diterima."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ===============================================
# Enumerations
# ===============================================
class RiskStatus(str, Enum):
    OPEN = "Open"
    IN_PROGRESS = "In-Progress"
    MITIGATED = "Mitigated"
    ACCEPTED = "Accepted"


class RiskResponse(str, Enum):
    AVOID = "Avoid"
    MITIGATE = "Mitigate"
    TRANSFER = "Transfer"
    ACCEPT = "Accept"


class RiskPriority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


# urutan series timeline & legend chart
STATUS_ORDER: List[RiskStatus] = list(RiskStatus)


def severity_band(score: float, settings: Optional[RegisterSettings] = None) -> str:
    """Classify a score as ``high``, ``moderate`` or ``low``."""
    settings = settings or default_settings()
    if score >= settings.high_threshold:
        return "high"
    if score >= settings.moderate_threshold:
        return "moderate"
    return "low"


def _timestamp(value: Any) -> Optional[dt.datetime]:
    return parse_timestamp(value)


def _day(value: Any) -> Optional[dt.date]:
    if isinstance(value, dt.date) and not isinstance(value, dt.datetime):
        return value
    parsed = parse_timestamp(value)
    return parsed.date() if parsed else None


# ===============================================
# Risk
# ===============================================
class StatusChange(CamelModel):
    date: dt.datetime
    status: RiskStatus
    note: str = ""

    normalize_date = field_validator("date", mode="before")(_timestamp)


class RiskFields(CamelModel):
    title: str = ""
    description: str = ""
    category: str = ""
    probability: int = 1
    impact: int = 1
    owner: str = ""
    mitigation: str = ""
    priority: RiskPriority = RiskPriority.MEDIUM
    response: RiskResponse = RiskResponse.MITIGATE
    status: RiskStatus = RiskStatus.OPEN
    date_identified: Optional[dt.datetime] = None
    date_resolved: Optional[dt.datetime] = None

    normalize_dates = field_validator(
        "date_identified", "date_resolved", mode="before"
    )(_timestamp)


class RiskInput(RiskFields):
    """Payload pembuatan risk. ``status_note`` jadi catatan entri history pertama."""

    status_note: str = ""


class RiskUpdate(CamelModel):
    """Payload update parsial; field ``None`` berarti tidak diubah."""

    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    probability: Optional[int] = None
    impact: Optional[int] = None
    owner: Optional[str] = None
    mitigation: Optional[str] = None
    priority: Optional[RiskPriority] = None
    response: Optional[RiskResponse] = None
    status: Optional[RiskStatus] = None
    date_identified: Optional[dt.datetime] = None
    date_resolved: Optional[dt.datetime] = None
    status_note: str = ""

    normalize_dates = field_validator(
        "date_identified", "date_resolved", mode="before"
    )(_timestamp)

    def changes(self) -> Dict[str, Any]:
        """Field yang benar-benar dikirim client (tanpa status_note)."""
        data: Dict[str, Any] = {}
        for name in self.model_fields_set - {"status_note"}:
            value = getattr(self, name)
            # dateResolved kosong/null berarti hapus tanggal resolved
            if value is None and name != "date_resolved":
                continue
            data[name] = value
        return data


class Risk(RiskFields):
    id: str
    status_history: List[StatusChange] = Field(default_factory=list)
    last_reviewed: dt.datetime

    normalize_reviewed = field_validator("last_reviewed", mode="before")(_timestamp)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def score(self) -> int:
        return self.probability * self.impact

    @computed_field  # type: ignore[prop-decorator]
    @property
    def severity(self) -> str:
        return severity_band(self.score)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def last_note(self) -> str:
        if not self.status_history:
            return ""
        return self.status_history[-1].note


# ===============================================
# Project
# ===============================================
class ProjectMeta(CamelModel):
    project_name: str = ""
    project_manager: str = ""
    sponsor: str = ""
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    risk_plan: str = ""

    normalize_dates = field_validator("start_date", "end_date", mode="before")(_day)


class Project(CamelModel):
    id: str
    meta: ProjectMeta = Field(default_factory=ProjectMeta)
    risks: List[Risk] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)

    def find_risk(self, rid: str) -> Optional[Risk]:
        return next((r for r in self.risks if r.id == rid), None)


# ===============================================
# Request payloads
# ===============================================
class ProjectIn(CamelModel):
    meta: Optional[ProjectMeta] = None
    categories: List[str] = Field(default_factory=list)


class SettingsIn(CamelModel):
    meta: ProjectMeta
    categories: Optional[List[str]] = None


class CategoryIn(CamelModel):
    name: str
