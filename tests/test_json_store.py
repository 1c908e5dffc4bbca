import json

import pytest

from riskregister.models.json_store import JsonRegisterStore
from riskregister.models.schemas import Project, ProjectMeta


async def test_persists_across_instances(tmp_path, make_risk) -> None:
    path = tmp_path / "nested" / "projects.json"
    store = JsonRegisterStore(path)
    await store.init_models()

    await store.upsert_project(Project(id="p1", meta=ProjectMeta(project_name="Alpha")))
    await store.add_risk("p1", make_risk())

    doc = json.loads(path.read_text(encoding="utf-8"))
    assert doc["projects"][0]["meta"]["projectName"] == "Alpha"
    assert doc["projects"][0]["risks"][0]["dateIdentified"].startswith("2024-01-01")

    reopened = JsonRegisterStore(path)
    project = await reopened.get_project("p1")
    assert project.meta.project_name == "Alpha"
    assert [r.id for r in project.risks] == ["r1"]


async def test_upsert_keeps_existing_risks(tmp_path, make_risk) -> None:
    store = JsonRegisterStore(tmp_path / "projects.json")
    await store.init_models()
    await store.upsert_project(Project(id="p1"))
    await store.add_risk("p1", make_risk())

    await store.upsert_project(
        Project(id="p1", meta=ProjectMeta(project_name="Renamed"), categories=["Cost"])
    )
    project = await store.get_project("p1")
    assert project.meta.project_name == "Renamed"
    assert project.categories == ["Cost"]
    assert len(project.risks) == 1


async def test_add_risks_to_unknown_project(tmp_path, make_risk) -> None:
    store = JsonRegisterStore(tmp_path / "projects.json")
    await store.init_models()
    with pytest.raises(KeyError):
        await store.add_risks("missing", [make_risk()])


async def test_store_contract(store, make_risk) -> None:
    await store.upsert_project(Project(id="p1"))
    await store.add_risks("p1", [make_risk(id="a"), make_risk(id="b")])

    updated = make_risk(id="a", title="Changed")
    assert await store.update_risk("p1", updated) is True
    assert await store.update_risk("p1", make_risk(id="zz")) is False

    assert await store.delete_risk("p1", "b") is True
    assert await store.delete_risk("p1", "b") is False

    project = await store.get_project("p1")
    assert [(r.id, r.title) for r in project.risks] == [("a", "Changed")]
    assert project.risks[0].date_identified.tzinfo is not None

    assert await store.delete_project("p1") is True
    assert await store.get_project("p1") is None
    assert await store.list_projects() == []
