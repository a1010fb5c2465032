import os

# Must be set before labinventory reads its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RUN_MIGRATIONS"] = "false"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from labinventory.application.catalog import CatalogService
from labinventory.auth_local import ADMIN, Principal, create_access_token
from labinventory.domain.models import Base
from labinventory.infrastructure.db import SessionLocal, engine
from labinventory.main import app

@pytest.fixture
def db():
    Base.metadata.create_all(engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)

@pytest.fixture
def client(db):
    return TestClient(app)

@pytest.fixture
def admin():
    return Principal(user_id="admin-1", role=ADMIN)

@pytest.fixture
def student():
    return Principal(user_id="stu-1", role="student")

@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {create_access_token('admin-1', role=ADMIN)}"}

@pytest.fixture
def student_headers():
    return {"Authorization": f"Bearer {create_access_token('stu-1', role='student')}"}

@pytest.fixture
def due_date():
    return date.today() + timedelta(days=7)

@pytest.fixture
def make_component(db):
    def _make(name="Arduino Uno", category="Microcontrollers", total=10, threshold=5, **extra):
        data = {"name": name, "category": category, "total_quantity": total, "threshold": threshold}
        data.update(extra)
        return CatalogService(db).create(data)
    return _make
