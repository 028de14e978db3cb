from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlmodel import SQLModel

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from auth import ResearcherSessionManager  # noqa: E402
from config import Settings, get_settings  # noqa: E402
from main import create_app  # noqa: E402
import models  # noqa: E402,F401
from services.store import InMemoryResultStore, get_result_store  # noqa: E402

RESEARCHER_EMAIL = "researcher@example.com"
SHARED_SECRET = "test-shared-secret-with-enough-bytes"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        auth={
            "session_secret": "test-session-secret-that-is-long-enough",
            "cookie_secure": False,
            "researcher_allowlist": [RESEARCHER_EMAIL],
            "shared_secret": SHARED_SECRET,
            "issuer": None,
            "audience": None,
        },
    )


@pytest.fixture
def store() -> InMemoryResultStore:
    return InMemoryResultStore()


@pytest.fixture
def client(settings: Settings, store: InMemoryResultStore):
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_result_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def researcher_client(client: TestClient, settings: Settings) -> TestClient:
    manager = ResearcherSessionManager(settings)
    client.cookies.set(manager.cookie_name, manager.encode(RESEARCHER_EMAIL))
    return client


@pytest.fixture(scope="session")
def sync_engine():
    engine = create_engine(Settings(_env_file=None).sync_database_url, pool_pre_ping=True)
    try:
        with engine.connect():
            pass
    except OperationalError:
        engine.dispose()
        pytest.skip("PostgreSQL from DATABASE__URL is not reachable")
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def reset_database(sync_engine):
    with sync_engine.begin() as conn:
        conn.execute(
            text(
                "TRUNCATE TABLE click_results, tree_test_results, card_sort_results, "
                "participants, tasks, tree_nodes, categories, cards, studies CASCADE"
            )
        )
