# riskregister/models/json_store.py
from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from riskregister.models.schemas import Project, Risk
from riskregister.utils.logger import get_logger


logger = get_logger(__name__)


class JsonRegisterStore:
    """
    Penyimpanan flat JSON file: ``{"projects": [<project>, ...]}``.

    Setiap operasi membaca file, mengubah dokumen, lalu menulis ulang
    secara atomik (tmp file + ``os.replace``) di bawah satu asyncio.Lock.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = asyncio.Lock()
        logger.info("JsonRegisterStore initialized with file: %s", self.path)

    async def init_models(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            await asyncio.to_thread(self._write_sync, {"projects": []})

    async def close(self) -> None:
        return None

    # * --------------------------------------------------
    # * file IO
    # * --------------------------------------------------
    def _read_sync(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {"projects": []}
        raw = self.path.read_text(encoding="utf-8")
        doc = json.loads(raw) if raw.strip() else {}
        doc.setdefault("projects", [])
        return doc

    def _write_sync(self, doc: Dict[str, Any]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(doc, indent=2, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, self.path)

    async def _load(self) -> List[Project]:
        doc = await asyncio.to_thread(self._read_sync)
        return [Project.model_validate(p) for p in doc["projects"]]

    async def _save(self, projects: List[Project]) -> None:
        doc = {"projects": [p.to_wire() for p in projects]}
        await asyncio.to_thread(self._write_sync, doc)

    @staticmethod
    def _index(projects: List[Project], pid: str) -> int:
        return next((i for i, p in enumerate(projects) if p.id == pid), -1)

    # * --------------------------------------------------
    # * project
    # * --------------------------------------------------
    async def list_projects(self) -> List[Project]:
        async with self._lock:
            return await self._load()

    async def get_project(self, pid: str) -> Optional[Project]:
        async with self._lock:
            projects = await self._load()
        idx = self._index(projects, pid)
        return projects[idx] if idx >= 0 else None

    async def upsert_project(self, project: Project) -> None:
        """Simpan meta + categories; risks yang sudah tersimpan dipertahankan."""
        async with self._lock:
            projects = await self._load()
            idx = self._index(projects, project.id)
            if idx >= 0:
                projects[idx] = projects[idx].model_copy(
                    update={"meta": project.meta, "categories": list(project.categories)}
                )
            else:
                projects.append(project.model_copy(update={"risks": []}))
            await self._save(projects)

    async def delete_project(self, pid: str) -> bool:
        async with self._lock:
            projects = await self._load()
            idx = self._index(projects, pid)
            if idx < 0:
                return False
            del projects[idx]
            await self._save(projects)
            return True

    # * --------------------------------------------------
    # * risk
    # * --------------------------------------------------
    async def add_risks(self, pid: str, risks: List[Risk]) -> None:
        async with self._lock:
            projects = await self._load()
            idx = self._index(projects, pid)
            if idx < 0:
                raise KeyError(pid)
            projects[idx].risks.extend(risks)
            await self._save(projects)

    async def add_risk(self, pid: str, risk: Risk) -> None:
        await self.add_risks(pid, [risk])

    async def update_risk(self, pid: str, risk: Risk) -> bool:
        async with self._lock:
            projects = await self._load()
            idx = self._index(projects, pid)
            if idx < 0:
                return False
            risks = projects[idx].risks
            pos = next((i for i, r in enumerate(risks) if r.id == risk.id), -1)
            if pos < 0:
                return False
            risks[pos] = risk
            await self._save(projects)
            return True

    async def delete_risk(self, pid: str, rid: str) -> bool:
        async with self._lock:
            projects = await self._load()
            idx = self._index(projects, pid)
            if idx < 0:
                return False
            before = len(projects[idx].risks)
            projects[idx].risks = [r for r in projects[idx].risks if r.id != rid]
            if len(projects[idx].risks) == before:
                return False
            await self._save(projects)
            return True
