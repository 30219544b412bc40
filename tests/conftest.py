import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("SECRET_KEY", "test-secret")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from studybank.core.auth import create_token
from studybank.core.database import get_db, init_db
from studybank.core.errors import PersistenceError
from studybank.core.store import RecordStore
from studybank.main import app
from studybank.models.orm import Answer, Option, Question


@pytest.fixture()
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, future=True)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def store(db):
    return RecordStore(db)


@pytest.fixture()
def client(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_header(user_id: str = "student-1", roles=("student",)) -> dict:
    return {"Authorization": f"Bearer {create_token(user_id, list(roles))}"}


class FlakyStore(RecordStore):
    """RecordStore whose inserts fail for chosen entities, for a chosen number of calls or by predicate."""

    def __init__(self, db, fail_on=None):
        super().__init__(db)
        self.fail_on = fail_on or (lambda entity, fields, call: False)
        self.calls = 0

    def insert(self, entity, fields):
        self.calls += 1
        if self.fail_on(entity, fields, self.calls):
            raise PersistenceError(f"injected failure on {entity.__tablename__}")
        return super().insert(entity, fields)

    def insert_many(self, entity, rows):
        rows = list(rows)
        self.calls += 1
        if self.fail_on(entity, rows, self.calls):
            raise PersistenceError(f"injected failure on {entity.__tablename__}")
        return super().insert_many(entity, rows)


T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


def add_answer(store, user_id, question_id, is_correct, minutes, selected_option_id=None, error_type=None, session_id=None):
    return store.insert(Answer, {
        "user_id": user_id, "question_id": question_id, "is_correct": is_correct,
        "selected_option_id": selected_option_id, "error_type": error_type,
        "session_id": session_id, "created_at": at(minutes),
    })


def options_of(store, question_id):
    return store.select_many(Option, {"question_id": question_id}, order_by=(Option.position,))


def questions_in(store, subject_id):
    return store.select_many(Question, {"subject_id": subject_id})
