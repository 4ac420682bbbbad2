from __future__ import annotations

import os
import tempfile
from datetime import datetime, timedelta, timezone

# Configure before any app module reads settings
_TMP = tempfile.mkdtemp(prefix="trial-fp-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_TMP, 'default.db')}")
os.environ.setdefault("LOG_FILE", os.path.join(_TMP, "logs.txt"))
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-enough-length-0123456789")
os.environ.setdefault("TRIAL_IP_THRESHOLD", "1")

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.orm import sessionmaker

from app.core.config import settings
from app.core.dependencies import get_db
from app.db.init_db import init_db
from app.db.session import build_engine
from app.services.fingerprint_store import SQLAlchemyFingerprintStore


@pytest.fixture()
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'trials.db'}", timeout_seconds=10)
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def store(db):
    return SQLAlchemyFingerprintStore(db)


@pytest.fixture()
def client(session_factory):
    from app.main import app

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def signals():
    return {"userAgent": "UA-A", "screenResolution": "1920x1080", "timezone": "UTC"}


@pytest.fixture()
def auth_header():
    def _make(user_id: str = "u1", role: str = "user") -> dict:
        token = create_access_token({"sub": user_id, "role": role})
        return {"Authorization": f"Bearer {token}"}
    return _make


def create_access_token(data: dict, expires_delta: timedelta = timedelta(hours=1)) -> str:
    """Sign a session token the way the upstream account service does"""
    to_encode = dict(data, exp=datetime.now(timezone.utc) + expires_delta)
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
