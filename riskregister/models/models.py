# riskregister/models/models.py
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    select,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

from riskregister.models.schemas import Project, ProjectMeta, Risk, StatusChange
from riskregister.utils.helper import utc_now
from riskregister.utils.logger import get_logger


logger = get_logger(__name__)
Base = declarative_base()


class ProjectRecord(Base):
    __tablename__ = "projects"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    project_name: Mapped[str] = mapped_column(String(255), default="")
    project_manager: Mapped[str] = mapped_column(String(255), default="")
    sponsor: Mapped[str] = mapped_column(String(255), default="")
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    risk_plan: Mapped[str] = mapped_column(Text, default="")
    categories: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    risks: Mapped[List["RiskRecord"]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="RiskRecord.pk",
        lazy="selectin",
    )


class RiskRecord(Base):
    __tablename__ = "risks"
    __table_args__ = (UniqueConstraint("project_id", "risk_id"),)

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    risk_id: Mapped[str] = mapped_column(String(64), index=True)
    project_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("projects.id", ondelete="CASCADE"), index=True
    )
    title: Mapped[str] = mapped_column(String(255), default="")
    description: Mapped[str] = mapped_column(Text, default="")
    category: Mapped[str] = mapped_column(String(128), default="")
    probability: Mapped[int] = mapped_column(Integer, default=1)
    impact: Mapped[int] = mapped_column(Integer, default=1)
    owner: Mapped[str] = mapped_column(String(255), default="")
    mitigation: Mapped[str] = mapped_column(Text, default="")
    priority: Mapped[str] = mapped_column(String(16), default="Medium")
    response: Mapped[str] = mapped_column(String(16), default="Mitigate")
    status: Mapped[str] = mapped_column(String(16), default="Open")
    date_identified: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    date_resolved: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_reviewed: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    project: Mapped[ProjectRecord] = relationship(back_populates="risks")
    history: Mapped[List["StatusChangeRecord"]] = relationship(
        cascade="all, delete-orphan",
        order_by="StatusChangeRecord.position",
        lazy="selectin",
    )


class StatusChangeRecord(Base):
    __tablename__ = "status_changes"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    risk_pk: Mapped[int] = mapped_column(
        ForeignKey("risks.pk", ondelete="CASCADE"), index=True
    )
    position: Mapped[int] = mapped_column(Integer)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    status: Mapped[str] = mapped_column(String(16))
    note: Mapped[str] = mapped_column(Text, default="")


# * --------------------------------------------------
# * konversi record <-> schema
# * --------------------------------------------------
def _risk_from_record(rec: RiskRecord) -> Risk:
    return Risk(
        id=rec.risk_id,
        title=rec.title,
        description=rec.description,
        category=rec.category,
        probability=rec.probability,
        impact=rec.impact,
        owner=rec.owner,
        mitigation=rec.mitigation,
        priority=rec.priority,
        response=rec.response,
        status=rec.status,
        date_identified=rec.date_identified,
        date_resolved=rec.date_resolved,
        last_reviewed=rec.last_reviewed,
        status_history=[
            StatusChange(date=h.date, status=h.status, note=h.note) for h in rec.history
        ],
    )


def _project_from_record(rec: ProjectRecord) -> Project:
    return Project(
        id=rec.id,
        meta=ProjectMeta(
            project_name=rec.project_name,
            project_manager=rec.project_manager,
            sponsor=rec.sponsor,
            start_date=rec.start_date,
            end_date=rec.end_date,
            risk_plan=rec.risk_plan,
        ),
        categories=list(rec.categories or []),
        risks=[_risk_from_record(r) for r in rec.risks],
    )


def _fill_risk_record(rec: RiskRecord, risk: Risk) -> None:
    rec.title = risk.title
    rec.description = risk.description
    rec.category = risk.category
    rec.probability = risk.probability
    rec.impact = risk.impact
    rec.owner = risk.owner
    rec.mitigation = risk.mitigation
    rec.priority = risk.priority.value
    rec.response = risk.response.value
    rec.status = risk.status.value
    rec.date_identified = risk.date_identified
    rec.date_resolved = risk.date_resolved
    rec.last_reviewed = risk.last_reviewed
    rec.history = [
        StatusChangeRecord(
            position=idx, date=h.date, status=h.status.value, note=h.note
        )
        for idx, h in enumerate(risk.status_history)
    ]


class SqlRegisterStore:
    """SQLAlchemy Async Engine untuk non-blocking DB access"""

    def __init__(self, db_url: str, echo: bool = False):
        self.db_url = db_url
        self._initialized = False

        try:
            self._engine = create_async_engine(self.db_url, echo=echo, future=True)
            self.Session = async_sessionmaker(
                bind=self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
            logger.info("SqlRegisterStore initialized with DB: %s", self.db_url)
        except SQLAlchemyError as e:
            logger.error("Gagal inisialisasi database: %s", e)
            raise

    async def init_models(self) -> None:
        """Init DB sekali dan buat tabel jika belum ada."""
        if self._initialized:
            return
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self._initialized = True

    async def close(self) -> None:
        await self._engine.dispose()

    # * --------------------------------------------------
    # * project
    # * --------------------------------------------------
    async def list_projects(self) -> List[Project]:
        async with self.Session() as s:
            result = await s.execute(
                select(ProjectRecord).order_by(ProjectRecord.created_at, ProjectRecord.id)
            )
            return [_project_from_record(p) for p in result.scalars().all()]

    async def get_project(self, pid: str) -> Optional[Project]:
        async with self.Session() as s:
            rec = await s.get(ProjectRecord, pid)
            return _project_from_record(rec) if rec else None

    async def upsert_project(self, project: Project) -> None:
        """Simpan meta + categories. Risks dikelola lewat operasi risk."""
        async with self.Session() as s:
            try:
                rec = await s.get(ProjectRecord, project.id)
                if rec is None:
                    rec = ProjectRecord(id=project.id)
                    s.add(rec)
                meta = project.meta
                rec.project_name = meta.project_name
                rec.project_manager = meta.project_manager
                rec.sponsor = meta.sponsor
                rec.start_date = meta.start_date
                rec.end_date = meta.end_date
                rec.risk_plan = meta.risk_plan
                rec.categories = list(project.categories)
                await s.commit()
            except SQLAlchemyError as ex:
                await s.rollback()
                logger.error("Gagal simpan project %s: %s", project.id, ex)
                raise

    async def delete_project(self, pid: str) -> bool:
        async with self.Session() as s:
            rec = await s.get(ProjectRecord, pid)
            if rec is None:
                return False
            await s.delete(rec)
            await s.commit()
            return True

    # * --------------------------------------------------
    # * risk
    # * --------------------------------------------------
    async def _get_risk_record(
        self, s: AsyncSession, pid: str, rid: str
    ) -> Optional[RiskRecord]:
        result = await s.execute(
            select(RiskRecord).filter_by(project_id=pid, risk_id=rid)
        )
        return result.scalars().first()

    async def add_risks(self, pid: str, risks: List[Risk]) -> None:
        async with self.Session() as s:
            try:
                for risk in risks:
                    rec = RiskRecord(risk_id=risk.id, project_id=pid)
                    _fill_risk_record(rec, risk)
                    s.add(rec)
                await s.commit()
            except SQLAlchemyError as ex:
                await s.rollback()
                logger.error("Gagal simpan %d risk ke project %s: %s", len(risks), pid, ex)
                raise

    async def add_risk(self, pid: str, risk: Risk) -> None:
        await self.add_risks(pid, [risk])

    async def update_risk(self, pid: str, risk: Risk) -> bool:
        async with self.Session() as s:
            try:
                rec = await self._get_risk_record(s, pid, risk.id)
                if rec is None:
                    return False
                _fill_risk_record(rec, risk)
                await s.commit()
                return True
            except SQLAlchemyError as ex:
                await s.rollback()
                logger.error("Gagal update risk %s/%s: %s", pid, risk.id, ex)
                raise

    async def delete_risk(self, pid: str, rid: str) -> bool:
        async with self.Session() as s:
            rec = await self._get_risk_record(s, pid, rid)
            if rec is None:
                return False
            await s.delete(rec)
            await s.commit()
            return True
