import os

# logger modul dibuat saat import; paksa console sebelum riskregister di-import
os.environ.setdefault("LOG_MODE", "stdout")

import pytest
import pytest_asyncio

from riskregister import create_app
from riskregister.config import RegisterSettings, TestingConfig
from riskregister.extensions import shutdown_extensions
from riskregister.models.json_store import JsonRegisterStore
from riskregister.models.models import SqlRegisterStore
from riskregister.models.schemas import Risk
from riskregister.services.register import RegisterService


def _config_for(backend: str, tmp_path):
    class Config(TestingConfig):
        STORAGE_BACKEND = backend
        SQLALCHEMY_DATABASE_URI = (
            f"sqlite+aiosqlite:///{(tmp_path / 'register.sqlite').as_posix()}"
        )
        JSON_STORE_PATH = (tmp_path / "projects.json").as_posix()

    return Config


@pytest_asyncio.fixture(params=["sqlite", "json"])
async def app(request, tmp_path):
    app = await create_app(_config_for(request.param, tmp_path))
    yield app
    await shutdown_extensions(app)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest_asyncio.fixture(params=["sqlite", "json"])
async def store(request, tmp_path):
    if request.param == "json":
        store = JsonRegisterStore(tmp_path / "projects.json")
    else:
        store = SqlRegisterStore(
            f"sqlite+aiosqlite:///{(tmp_path / 'register.sqlite').as_posix()}"
        )
    await store.init_models()
    yield store
    await store.close()


@pytest.fixture
def service(store):
    return RegisterService(store, RegisterSettings())


@pytest.fixture
def make_risk():
    def factory(**overrides) -> Risk:
        data = {
            "id": "r1",
            "title": "Vendor delay",
            "description": "Hardware arrives late",
            "category": "Schedule",
            "probability": 3,
            "impact": 3,
            "owner": "Budi",
            "mitigation": "Order early",
            "date_identified": "2024-01-01",
            "last_reviewed": "2024-01-01",
        }
        data.update(overrides)
        return Risk(**data)

    return factory


@pytest.fixture
def risk_payload():
    return {
        "title": "Vendor delay",
        "description": "Hardware arrives late",
        "category": "Schedule",
        "probability": 4,
        "impact": 5,
        "owner": "Budi",
        "mitigation": "Order early",
        "priority": "High",
        "response": "Mitigate",
        "status": "Open",
        "dateIdentified": "2024-01-05",
        "statusNote": "Raised in kickoff",
    }
