# riskregister/services/register.py
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from riskregister.config import RegisterSettings, default_settings
from riskregister.models.schemas import (
    Project,
    ProjectMeta,
    Risk,
    RiskFields,
    RiskInput,
    RiskUpdate,
    StatusChange,
)
from riskregister.models.store import RegisterStore
from riskregister.services.errors import NotFoundError, RegisterValidationError
from riskregister.services.exchange.spreadsheet import parse_import
from riskregister.utils.helper import new_id, utc_now
from riskregister.utils.logger import get_logger


logger = get_logger(__name__)

REQUIRED_RISK_TEXT = (
    ("title", "Title"),
    ("description", "Description"),
    ("category", "Category"),
    ("owner", "Owner"),
    ("mitigation", "Mitigation"),
)


# * --------------------------------------------------
# * validasi domain
# * --------------------------------------------------
def validate_risk_fields(fields: RiskFields) -> Dict[str, str]:
    """Return a camelCase field → message map; empty when the risk is valid."""
    errs: Dict[str, str] = {}
    for attr, label in REQUIRED_RISK_TEXT:
        if not (getattr(fields, attr) or "").strip():
            errs[attr] = f"{label} is required"
    if not 1 <= fields.probability <= 5:
        errs["probability"] = "Probability must be 1-5"
    if not 1 <= fields.impact <= 5:
        errs["impact"] = "Impact must be 1-5"
    if fields.date_identified is None:
        errs["dateIdentified"] = "Date Identified is required"
    elif fields.date_resolved and fields.date_identified > fields.date_resolved:
        errs["dateResolved"] = "Date Resolved must be after Date Identified"
    return errs


def validate_meta(meta: ProjectMeta) -> Dict[str, str]:
    errs: Dict[str, str] = {}
    if not meta.project_name.strip():
        errs["projectName"] = "Project name is required"
    if meta.start_date is None:
        errs["startDate"] = "Start date is required"
    if meta.end_date is None:
        errs["endDate"] = "End date is required"
    if meta.start_date and meta.end_date and meta.start_date > meta.end_date:
        errs["endDate"] = "End date must be after start date"
    return errs


def normalize_categories(categories: Optional[Iterable[str]]) -> List[str]:
    """Trim, drop blanks and duplicates, keep first-seen order."""
    result: List[str] = []
    for cat in categories or []:
        name = (cat or "").strip()
        if name and name not in result:
            result.append(name)
    return result


class RegisterService:
    """Operasi risk register di atas satu :class:`RegisterStore`."""

    def __init__(self, store: RegisterStore, settings: Optional[RegisterSettings] = None):
        self.store = store
        self.settings = settings or default_settings()

    # * --------------------------------------------------
    # * project
    # * --------------------------------------------------
    async def list_projects(self) -> List[Project]:
        return await self.store.list_projects()

    async def get_project(self, pid: str) -> Project:
        project = await self.store.get_project(pid)
        if project is None:
            raise NotFoundError(f"Project {pid} not found")
        return project

    async def create_project(
        self,
        meta: Optional[ProjectMeta] = None,
        categories: Optional[Iterable[str]] = None,
    ) -> Project:
        project = Project(
            id=new_id(),
            meta=meta or ProjectMeta(),
            categories=normalize_categories(categories),
        )
        await self.store.upsert_project(project)
        logger.info("Project dibuat | id=%s name=%r", project.id, project.meta.project_name)
        return project

    async def update_settings(
        self,
        pid: str,
        meta: ProjectMeta,
        categories: Optional[Iterable[str]] = None,
    ) -> Project:
        """Validate and save meta (+ categories). Unknown ``pid`` creates the project."""
        errs = validate_meta(meta)
        if errs:
            raise RegisterValidationError(errs)

        project = await self.store.get_project(pid) or Project(id=pid)
        project.meta = meta
        if categories is not None:
            project.categories = normalize_categories(categories)
        await self.store.upsert_project(project)
        logger.info("Settings project disimpan | id=%s", pid)
        return await self.get_project(pid)

    async def delete_project(self, pid: str) -> None:
        if not await self.store.delete_project(pid):
            raise NotFoundError(f"Project {pid} not found")
        logger.info("Project dihapus | id=%s", pid)

    async def add_category(self, pid: str, name: str) -> List[str]:
        project = await self.get_project(pid)
        project.categories = normalize_categories([*project.categories, name])
        await self.store.upsert_project(project)
        return project.categories

    async def remove_category(self, pid: str, name: str) -> List[str]:
        project = await self.get_project(pid)
        if name not in project.categories:
            raise NotFoundError(f"Category {name!r} not found")
        project.categories = [c for c in project.categories if c != name]
        await self.store.upsert_project(project)
        return project.categories

    # * --------------------------------------------------
    # * risk
    # * --------------------------------------------------
    async def list_risks(self, pid: str) -> List[Risk]:
        return (await self.get_project(pid)).risks

    async def get_risk(self, pid: str, rid: str) -> Risk:
        risk = (await self.get_project(pid)).find_risk(rid)
        if risk is None:
            raise NotFoundError(f"Risk {rid} not found in project {pid}")
        return risk

    async def create_risk(self, pid: str, data: RiskInput) -> Risk:
        await self.get_project(pid)
        errs = validate_risk_fields(data)
        if errs:
            raise RegisterValidationError(errs)

        now = utc_now()
        risk = Risk(
            **data.model_dump(exclude={"status_note"}),
            id=new_id(),
            last_reviewed=now,
            status_history=[
                StatusChange(date=now, status=data.status, note=data.status_note)
            ],
        )
        await self.store.add_risk(pid, risk)
        logger.info("Risk dibuat | project=%s id=%s score=%d", pid, risk.id, risk.score)
        return risk

    async def update_risk(self, pid: str, rid: str, data: RiskUpdate) -> Risk:
        existing = await self.get_risk(pid, rid)
        updated = existing.model_copy(update=data.changes())

        errs = validate_risk_fields(updated)
        if errs:
            raise RegisterValidationError(errs)

        now = utc_now()
        history = list(existing.status_history)
        note = data.status_note.strip()
        # history hanya bertambah, tidak pernah ditulis ulang
        if updated.status != existing.status or note:
            history.append(StatusChange(date=now, status=updated.status, note=note))
        updated = updated.model_copy(
            update={"last_reviewed": now, "status_history": history}
        )

        await self.store.update_risk(pid, updated)
        logger.info(
            "Risk diupdate | project=%s id=%s status=%s history=%d",
            pid,
            rid,
            updated.status.value,
            len(history),
        )
        return updated

    async def delete_risk(self, pid: str, rid: str) -> None:
        await self.get_project(pid)
        if not await self.store.delete_risk(pid, rid):
            raise NotFoundError(f"Risk {rid} not found in project {pid}")
        logger.info("Risk dihapus | project=%s id=%s", pid, rid)

    # * --------------------------------------------------
    # * import
    # * --------------------------------------------------
    async def import_register(self, pid: str, filename: str, payload: bytes) -> Dict[str, Any]:
        """Append the file's risks to the project; a Meta sheet replaces the meta."""
        project = await self.get_project(pid)
        result = parse_import(filename, payload, self.settings)

        taken = {r.id for r in project.risks}
        risks: List[Risk] = []
        for risk in result.risks:
            if risk.id in taken:
                risk = risk.model_copy(update={"id": new_id()})
            taken.add(risk.id)
            risks.append(risk)

        # risks dulu; meta baru diganti setelah risks tersimpan
        if risks:
            await self.store.add_risks(pid, risks)
        if result.meta is not None:
            project.meta = result.meta
            await self.store.upsert_project(project)

        return {
            "imported": len(risks),
            "metaUpdated": result.meta is not None,
            "riskIds": [r.id for r in risks],
        }
