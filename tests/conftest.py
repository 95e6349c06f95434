from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import pulse.db as pulse_db

os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("BOOTSTRAP_TOKEN", "test-bootstrap-token")
os.environ.setdefault("FILE_URL_SECRET", "test-file-secret")

from pulse.main import app  # noqa: E402
from pulse.models import User  # noqa: E402
from pulse.security import hash_password  # noqa: E402

DEFAULT_PASSWORD = "pulse-password-123"


@pytest.fixture(autouse=True)
def reset_database(tmp_path, monkeypatch):
    db_file = tmp_path / "test_pulse.db"
    db_url = f"sqlite:///{db_file}"
    monkeypatch.setenv("DATABASE_URL", db_url)
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.delenv("INJURY_EMAIL_WEBHOOK_URL", raising=False)

    # Rebuild DB bindings per test so every test gets its own writable SQLite file.
    pulse_db.engine.dispose()
    pulse_db.DATABASE_URL = pulse_db.get_database_url()
    pulse_db.engine = create_engine(
        pulse_db.DATABASE_URL,
        connect_args={"check_same_thread": False},
        pool_pre_ping=True,
    )
    pulse_db.SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=pulse_db.engine,
        expire_on_commit=False,
    )

    pulse_db.Base.metadata.drop_all(bind=pulse_db.engine)
    pulse_db.Base.metadata.create_all(bind=pulse_db.engine)
    yield
    app.dependency_overrides.clear()
    pulse_db.Base.metadata.drop_all(bind=pulse_db.engine)
    pulse_db.engine.dispose()


def create_user(
    email: str,
    access_role: str,
    building: str | None = None,
    shift: str | None = None,
    name: str | None = None,
    password: str = DEFAULT_PASSWORD,
) -> int:
    db = pulse_db.SessionLocal()
    user = User(
        email=email,
        name=name,
        password_hash=hash_password(password),
        access_role=access_role,
        building=building,
        shift=shift,
        is_active=True,
        must_change_password=False,
    )
    db.add(user)
    db.commit()
    user_id = user.id
    db.close()
    return user_id


@pytest.fixture
def login_as():
    """Create a user and return a TestClient holding their session cookie."""

    def _login_as(
        email: str,
        access_role: str,
        building: str | None = None,
        shift: str | None = None,
        name: str | None = None,
    ) -> TestClient:
        create_user(email, access_role, building=building, shift=shift, name=name)
        client = TestClient(app)
        response = client.post("/auth/login", json={"email": email, "password": DEFAULT_PASSWORD})
        assert response.status_code == 200, response.text
        return client

    return _login_as
