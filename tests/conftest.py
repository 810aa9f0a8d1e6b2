import os
import tempfile

import pytest

# Point the app at a throwaway database before config is imported
_DB_DIR = tempfile.mkdtemp(prefix="datasets-test-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ.pop("GROQ_API_KEY", None)

from fastapi.testclient import TestClient  # noqa: E402

from database import Base, SessionLocal, engine  # noqa: E402
from main import app  # noqa: E402
from models.dataset_models import Dataset  # noqa: E402
from services.file_reader_service import dataset_from_rows  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_tables():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    app.state.share_store.clear()
    yield


@pytest.fixture()
def client():
    return TestClient(app)


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def _make_dataset(dataset_id: str, name: str, rows, columns=None) -> Dataset:
    return dataset_from_rows(name, rows, columns=columns, dataset_id=dataset_id)


@pytest.fixture()
def make_dataset():
    return _make_dataset


@pytest.fixture()
def users_and_orders():
    users = _make_dataset(
        "users",
        "users",
        [
            {"user_id": 1, "name": "Ana"},
            {"user_id": 2, "name": "Ben"},
            {"user_id": 3, "name": "Cy"},
        ],
    )
    orders = _make_dataset(
        "orders",
        "orders",
        [
            {"userid": 1, "amount": 10.0},
            {"userid": 1, "amount": 5.0},
            {"userid": 2, "amount": 7.5},
        ],
    )
    return users, orders
