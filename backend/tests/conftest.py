import os
import sys
import tempfile
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Must be set before classmate.config is imported anywhere
os.environ["DATABASE_URL"] = f"sqlite:///{Path(tempfile.gettempdir()) / 'classmate-test-default.db'}"

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from classmate import crud  # noqa: E402
from classmate.db import get_db, make_engine, run_migrations  # noqa: E402


@pytest.fixture
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    run_migrations(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    from classmate.main import app

    def _get_test_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_problem(db):
    def _make(subject="math", rating=1200, difficulty="medium", correct_answer="42", **kw):
        return crud.create_problem(
            db,
            title=kw.pop("title", f"{subject} problem {rating}"),
            statement=kw.pop("statement", "What is the answer?"),
            subject=subject,
            difficulty=difficulty,
            rating=rating,
            correct_answer=correct_answer,
            **kw,
        )

    return _make


@pytest.fixture
def user_id(db):
    return crud.create_profile(db, "learner")["id"]
