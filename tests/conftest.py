"""
Shared pytest fixtures.

Uses a throwaway SQLite database so no Postgres is required for tests.
The schema is rebuilt for every test.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_timelogger.db")

import json
from datetime import date

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.clients.timelog import TimelogClient, get_timelog_client
from app.db.base import Base, get_db
from app.main import app
from app.models.entry import EntryStatus, ImportedEntry
from app.models.import_source import ImportSource, SourceType
from app.models.project import TimelogProject
from app.models.rule import MappingRule, MatchOperator
from app.models.task import TimelogTask

SQLITE_URL = "sqlite:///./test_timelogger.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


# ---------------------------------------------------------------------------
# Fake Timelog API
# ---------------------------------------------------------------------------

class FakeTimelog:
    """Records booking requests and answers with a configurable status."""

    def __init__(self):
        self.bookings: list[dict] = []
        self.booking_status = 201
        self.booking_body: dict = {"ID": "reg-1"}
        self.raise_on_booking: Exception | None = None
        self.projects: list[dict] = []
        self.tasks: dict[int, list[dict]] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/v1/time-registration"):
            if self.raise_on_booking is not None:
                raise self.raise_on_booking
            self.bookings.append(json.loads(request.content))
            return httpx.Response(self.booking_status, json=self.booking_body)
        if path.endswith("/v1/project/get-all"):
            return httpx.Response(200, json={
                "Entities": [{"Properties": p} for p in self.projects],
            })
        if path.endswith("/v1/task/filter"):
            project_id = int(request.url.params["projectId"])
            return httpx.Response(200, json={
                "Entities": [{"Properties": t} for t in self.tasks.get(project_id, [])],
            })
        return httpx.Response(404, json={"message": "not found"})

    def client(self) -> TimelogClient:
        http = httpx.Client(transport=httpx.MockTransport(self.handler))
        return TimelogClient("https://timelog.test/api", "secret", http=http)


@pytest.fixture()
def fake_timelog():
    return FakeTimelog()


@pytest.fixture()
def client(fake_timelog):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_timelog_client] = fake_timelog.client
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------

@pytest.fixture()
def make_source(db):
    def _make(name="Tempo", source_type=SourceType.tempo, api_token="token", **kwargs):
        source = ImportSource(name=name, source_type=source_type, api_token=api_token, **kwargs)
        db.add(source)
        db.commit()
        db.refresh(source)
        return source
    return _make


@pytest.fixture()
def make_target(db):
    """Create a project with one task; returns (project, task)."""
    counter = {"n": 0}

    def _make(project_active=True, task_active=True, task_external_id=None):
        counter["n"] += 1
        n = counter["n"]
        project = TimelogProject(external_id=str(100 + n), name=f"Project {n}", is_active=project_active)
        db.add(project)
        db.flush()
        task = TimelogTask(
            timelog_project_id=project.id,
            external_id=task_external_id or str(500 + n),
            name=f"Task {n}",
            is_active=task_active,
        )
        db.add(task)
        db.commit()
        db.refresh(project)
        db.refresh(task)
        return project, task
    return _make


@pytest.fixture()
def make_entry(db):
    counter = {"n": 0}

    def _make(source, status=EntryStatus.pending, **kwargs):
        counter["n"] += 1
        values = dict(
            external_id=f"ext-{counter['n']}",
            user_identifier="dev@example.com",
            work_date=date(2024, 3, 15),
            duration_seconds=3600,
            description="Work",
        )
        values.update(kwargs)
        entry = ImportedEntry(import_source_id=source.id, status=status, **values)
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry
    return _make


@pytest.fixture()
def make_rule(db):
    def _make(project, task=None, match_field="project_key",
              match_operator=MatchOperator.equals, match_value="ACME",
              priority=0, is_enabled=True, source_type=None, name="rule"):
        rule = MappingRule(
            name=name,
            match_field=match_field,
            match_operator=match_operator,
            match_value=match_value,
            timelog_project_id=project.id,
            timelog_task_id=task.id if task is not None else None,
            priority=priority,
            is_enabled=is_enabled,
            source_type=source_type,
        )
        db.add(rule)
        db.commit()
        db.refresh(rule)
        return rule
    return _make


@pytest.fixture()
def session_factory():
    return TestingSessionLocal
