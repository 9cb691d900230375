import os
import tempfile

# Must be set before any digital_humans module builds its settings
_TMP_DIR = tempfile.mkdtemp(prefix="digital_humans_tests_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["GENERATOR_BACKEND"] = "template"
os.environ["JWT_SECRET"] = "test-secret"

import pytest

from digital_humans.core.database import Base, SessionLocal, engine, init_db
from digital_humans.realtime.manager import connection_manager
from digital_humans.repositories.user_repository import user_repository
from digital_humans.services.chat_service import chat_service
from digital_humans.services.digital_human_service import digital_human_service
from digital_humans.utils.ids import new_id


@pytest.fixture(autouse=True)
def fresh_state():
    """Every test starts from empty tables and empty in-memory caches."""
    init_db()
    Base.metadata.drop_all(bind=engine)
    init_db()
    digital_human_service.cache.clear()
    chat_service.history_cache.clear()
    chat_service.session_index.clear()
    connection_manager.connections.clear()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def make_user(db, username):
    return user_repository.create(db, {
        "id": new_id("user"),
        "username": username,
        "email": f"{username}@x.com",
        "password_hash": None,
        "is_guest": False,
    })


@pytest.fixture
def alice(db):
    return make_user(db, "alice")


@pytest.fixture
def bob(db):
    return make_user(db, "bob")
