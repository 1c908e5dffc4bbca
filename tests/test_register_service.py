import pytest

from riskregister.models.json_store import JsonRegisterStore
from riskregister.models.schemas import (
    Project,
    ProjectMeta,
    RiskInput,
    RiskStatus,
    RiskUpdate,
)
from riskregister.services.errors import NotFoundError, RegisterValidationError
from riskregister.services.exchange.spreadsheet import export_xlsx
from riskregister.services.register import (
    RegisterService,
    normalize_categories,
    validate_meta,
)


def risk_input(**overrides) -> RiskInput:
    data = {
        "title": "Vendor delay",
        "description": "Hardware arrives late",
        "category": "Schedule",
        "probability": 3,
        "impact": 4,
        "owner": "Budi",
        "mitigation": "Order early",
        "date_identified": "2024-01-05",
        "status_note": "Raised in kickoff",
    }
    data.update(overrides)
    return RiskInput(**data)


def test_normalize_categories() -> None:
    assert normalize_categories([" Cost ", "", "Scope", "Cost", None]) == ["Cost", "Scope"]
    assert normalize_categories(None) == []


def test_validate_meta() -> None:
    errs = validate_meta(ProjectMeta(start_date="2024-05-01", end_date="2024-01-01"))
    assert errs == {
        "projectName": "Project name is required",
        "endDate": "End date must be after start date",
    }
    ok = ProjectMeta(project_name="Alpha", start_date="2024-01-01", end_date="2024-01-01")
    assert validate_meta(ok) == {}


async def test_create_risk_seeds_history(service) -> None:
    project = await service.create_project()
    risk = await service.create_risk(project.id, risk_input())

    assert risk.score == 12
    assert len(risk.status_history) == 1
    assert risk.status_history[0].status == RiskStatus.OPEN
    assert risk.status_history[0].note == "Raised in kickoff"
    assert risk.last_note == "Raised in kickoff"

    stored = await service.get_risk(project.id, risk.id)
    assert stored.status_history == risk.status_history


async def test_create_risk_validation(service) -> None:
    project = await service.create_project()
    with pytest.raises(RegisterValidationError) as exc:
        await service.create_risk(
            project.id,
            risk_input(
                title="  ",
                probability=7,
                date_identified="2024-03-01",
                date_resolved="2024-02-01",
            ),
        )
    assert set(exc.value.errors) == {"title", "probability", "dateResolved"}
    assert await service.list_risks(project.id) == []


async def test_update_appends_history_only_on_change(service) -> None:
    project = await service.create_project()
    risk = await service.create_risk(project.id, risk_input())

    same = await service.update_risk(project.id, risk.id, RiskUpdate(owner="Sari"))
    assert same.owner == "Sari"
    assert len(same.status_history) == 1
    assert same.last_reviewed >= risk.last_reviewed

    moved = await service.update_risk(
        project.id, risk.id, RiskUpdate(status=RiskStatus.MITIGATED)
    )
    assert [h.status for h in moved.status_history] == [
        RiskStatus.OPEN,
        RiskStatus.MITIGATED,
    ]

    noted = await service.update_risk(
        project.id, risk.id, RiskUpdate(status_note="Vendor confirmed ship date")
    )
    assert len(noted.status_history) == 3
    assert noted.status_history[-1].status == RiskStatus.MITIGATED
    assert noted.last_note == "Vendor confirmed ship date"

    blank = await service.update_risk(project.id, risk.id, RiskUpdate(status_note="   "))
    assert len(blank.status_history) == 3

    # entri lama tidak pernah berubah
    assert noted.status_history[:2] == moved.status_history


async def test_update_can_clear_resolved_date(service) -> None:
    project = await service.create_project()
    risk = await service.create_risk(project.id, risk_input(date_resolved="2024-02-01"))
    assert risk.date_resolved is not None

    cleared = await service.update_risk(project.id, risk.id, RiskUpdate(date_resolved=None))
    assert cleared.date_resolved is None
    assert cleared.title == risk.title


async def test_update_rejects_invalid_result(service) -> None:
    project = await service.create_project()
    risk = await service.create_risk(project.id, risk_input())
    with pytest.raises(RegisterValidationError) as exc:
        await service.update_risk(project.id, risk.id, RiskUpdate(impact=0))
    assert "impact" in exc.value.errors
    assert (await service.get_risk(project.id, risk.id)).impact == 4


async def test_not_found(service) -> None:
    with pytest.raises(NotFoundError):
        await service.get_project("nope")
    with pytest.raises(NotFoundError):
        await service.delete_project("nope")

    project = await service.create_project()
    with pytest.raises(NotFoundError):
        await service.get_risk(project.id, "nope")
    with pytest.raises(NotFoundError):
        await service.delete_risk(project.id, "nope")
    with pytest.raises(NotFoundError):
        await service.remove_category(project.id, "Nope")


async def test_update_settings_creates_project(service) -> None:
    meta = ProjectMeta(project_name="Alpha", start_date="2024-01-01", end_date="2024-06-30")
    project = await service.update_settings("alpha", meta, ["Cost", "Cost", "Scope"])
    assert project.id == "alpha"
    assert project.categories == ["Cost", "Scope"]

    again = await service.update_settings("alpha", meta.model_copy(update={"sponsor": "CFO"}))
    assert again.meta.sponsor == "CFO"
    assert again.categories == ["Cost", "Scope"]

    with pytest.raises(RegisterValidationError):
        await service.update_settings("alpha", ProjectMeta())


async def test_categories(service) -> None:
    project = await service.create_project(categories=["Cost"])
    assert await service.add_category(project.id, " Scope ") == ["Cost", "Scope"]
    assert await service.add_category(project.id, "Cost") == ["Cost", "Scope"]
    assert await service.remove_category(project.id, "Cost") == ["Scope"]


async def test_import_appends_and_reids(service) -> None:
    project = await service.create_project()
    existing = await service.create_risk(project.id, risk_input())

    payload = (
        "id,title,probability,impact\n"
        f"{existing.id},Clashing id,2,2\n"
        "fresh1,New one,5,5\n"
    ).encode("utf-8")
    result = await service.import_register(project.id, "risks.csv", payload)

    assert result["imported"] == 2
    assert result["metaUpdated"] is False
    assert existing.id not in result["riskIds"]
    assert "fresh1" in result["riskIds"]

    risks = await service.list_risks(project.id)
    assert len(risks) == 3
    assert len({r.id for r in risks}) == 3


def workbook(make_risk, project_name: str = "Beta") -> bytes:
    meta = ProjectMeta(
        project_name=project_name,
        sponsor="CFO",
        start_date="2024-02-01",
        end_date="2024-08-31",
    )
    return export_xlsx(Project(id="source", meta=meta, risks=[make_risk(id="imp1")]))


async def test_import_meta_sheet_replaces_meta(service, make_risk) -> None:
    project = await service.create_project(meta=ProjectMeta(project_name="Alpha"))
    existing = await service.create_risk(project.id, risk_input())

    result = await service.import_register(project.id, "risks.xlsx", workbook(make_risk))
    assert result["metaUpdated"] is True
    assert result["riskIds"] == ["imp1"]

    stored = await service.get_project(project.id)
    assert stored.meta.project_name == "Beta"
    assert stored.meta.sponsor == "CFO"
    assert stored.meta.start_date.isoformat() == "2024-02-01"
    assert [r.id for r in stored.risks] == [existing.id, "imp1"]


class BrokenRiskStore(JsonRegisterStore):
    async def add_risks(self, pid, risks):
        raise RuntimeError("disk full")


async def test_failed_import_keeps_meta(tmp_path, make_risk) -> None:
    store = BrokenRiskStore(tmp_path / "projects.json")
    await store.init_models()
    service = RegisterService(store)
    project = await service.create_project(meta=ProjectMeta(project_name="Alpha"))

    with pytest.raises(RuntimeError):
        await service.import_register(project.id, "risks.xlsx", workbook(make_risk))

    stored = await service.get_project(project.id)
    assert stored.meta.project_name == "Alpha"
    assert stored.risks == []
