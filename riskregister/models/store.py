# riskregister/models/store.py
from __future__ import annotations

from typing import List, Mapping, Optional, Protocol, Any

from riskregister.models.schemas import Project, Risk


class RegisterStore(Protocol):
    """Kontrak penyimpanan yang dipakai RegisterService."""

    async def init_models(self) -> None: ...

    async def close(self) -> None: ...

    async def list_projects(self) -> List[Project]: ...

    async def get_project(self, pid: str) -> Optional[Project]: ...

    async def upsert_project(self, project: Project) -> None: ...

    async def delete_project(self, pid: str) -> bool: ...

    async def add_risk(self, pid: str, risk: Risk) -> None: ...

    async def add_risks(self, pid: str, risks: List[Risk]) -> None: ...

    async def update_risk(self, pid: str, risk: Risk) -> bool: ...

    async def delete_risk(self, pid: str, rid: str) -> bool: ...


def create_store(config: Mapping[str, Any]) -> RegisterStore:
    """Pilih backend dari ``STORAGE_BACKEND`` (sqlite | json)."""
    backend = str(config.get("STORAGE_BACKEND", "sqlite")).lower().strip()

    if backend == "json":
        from riskregister.models.json_store import JsonRegisterStore

        return JsonRegisterStore(config["JSON_STORE_PATH"])
    if backend == "sqlite":
        from riskregister.models.models import SqlRegisterStore

        return SqlRegisterStore(
            config["SQLALCHEMY_DATABASE_URI"],
            echo=bool(config.get("SQLALCHEMY_ECHO", False)),
        )
    raise ValueError(f"STORAGE_BACKEND tidak dikenal: {backend}")
