from __future__ import annotations

import os
import tempfile

# Must run before anything imports app.config / app.db
_TMP = tempfile.mkdtemp(prefix="mediarelay-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP}/test.db"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP, "uploads")
os.environ["MEDIA_DIR"] = os.path.join(_TMP, "media")
os.environ["MEDIA_URL_BASE"] = "/media"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["REMOTE_FOLDER"] = "posts"
os.environ["MAX_UPLOAD_BYTES"] = "10000000"
os.environ["UPLOAD_ASYNC_THRESHOLD_BYTES"] = "5000000"
os.environ["KEEP_CACHED_UPLOADS"] = "false"

import pytest

from app.config import get_settings
from app.db import SessionLocal, init_db
from app.models import HandoffJob, Post


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 256


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def db():
    init_db()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.query(HandoffJob).delete()
        session.query(Post).delete()
        session.commit()
        session.close()


@pytest.fixture
def client(db):
    from fastapi.testclient import TestClient

    from app.main import app

    with TestClient(app) as c:
        yield c
