from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import text

from classmate import crud
from classmate.exceptions import ConcurrencyConflictError, InvalidInputError, NotFoundError
from classmate.models import UserRatingState
from classmate.services.submission import submit_attempt

DAY1 = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


def _attempt_count(db, user_id):
    return db.execute(
        text("SELECT COUNT(*) FROM problem_attempts WHERE user_id = :u"), {"u": user_id}
    ).scalar()


def test_first_submission_creates_default_state(db, user_id, make_problem):
    problem = make_problem(subject="math", rating=1200, correct_answer="7")

    result = submit_attempt(db, user_id, problem["id"], " 7 ", now=DAY1)

    assert result["is_correct"] is True
    assert result["rating_before"] == 1200
    assert result["rating_after"] == 1220
    assert result["delta"] == 20
    assert result["total_rating"] == 1207
    assert result["streak_days"] == 1
    assert result["solved_count"] == 1

    state, version = crud.get_user_rating(db, user_id)
    assert version == 1
    assert state.math_rating == 1220
    assert state.last_solved_at == DAY1

    row = db.execute(
        text("SELECT total_rating FROM user_ratings WHERE user_id = :u"), {"u": user_id}
    ).scalar()
    assert row == 1207


def test_attempt_log_records_outcome(db, user_id, make_problem):
    problem = make_problem(subject="programming", rating=1600, correct_answer="O(n)")

    result = submit_attempt(db, user_id, problem["id"], "O(n^2)", now=DAY1)

    assert result["is_correct"] is False
    assert result["delta"] == -4
    attempts = crud.get_recent_attempts(db, user_id)
    assert len(attempts) == 1
    a = attempts[0]
    assert a["id"] == result["attempt_id"]
    assert a["subject"] == "programming"
    assert a["is_correct"] is False
    assert a["user_answer"] == "O(n^2)"
    assert a["problem_rating"] == 1600
    assert (a["rating_before"], a["rating_after"], a["delta"]) == (1200, 1196, -4)


def test_submissions_chain_across_days(db, user_id, make_problem):
    math = make_problem(subject="math", rating=1300)
    physics = make_problem(subject="physics", rating=1100)

    submit_attempt(db, user_id, math["id"], "42", now=DAY1)
    submit_attempt(db, user_id, physics["id"], "41", now=DAY1 + timedelta(hours=3))
    r = submit_attempt(db, user_id, math["id"], "42", now=DAY1 + timedelta(days=1))
    assert r["streak_days"] == 2
    assert r["solved_count"] == 3

    r = submit_attempt(db, user_id, physics["id"], "42", now=DAY1 + timedelta(days=5))
    assert r["streak_days"] == 1
    assert r["solved_count"] == 4
    assert _attempt_count(db, user_id) == 4

    history = crud.get_rating_history(db, user_id)
    assert [h["subject"] for h in history] == ["math", "physics", "math", "physics"]


def test_explicit_verdict_skips_grading(db, user_id, make_problem):
    problem = make_problem(correct_answer=None)
    result = submit_attempt(db, user_id, problem["id"], "anything", is_correct=True, now=DAY1)
    assert result["delta"] == 20


def test_problem_without_answer_cannot_be_graded(db, user_id, make_problem):
    problem = make_problem(correct_answer=None)
    with pytest.raises(InvalidInputError):
        submit_attempt(db, user_id, problem["id"], "anything", now=DAY1)
    assert crud.get_user_rating(db, user_id) is None


def test_unknown_problem_is_not_found(db, user_id):
    with pytest.raises(NotFoundError):
        submit_attempt(db, user_id, "no-such-problem", "42", now=DAY1)
    assert crud.get_user_rating(db, user_id) is None


def test_unregistered_user_is_not_found(db, make_problem):
    problem = make_problem()
    with pytest.raises(NotFoundError):
        submit_attempt(db, "no-such-user", problem["id"], "42", now=DAY1)

    assert crud.get_user_rating(db, "no-such-user") is None
    assert _attempt_count(db, "no-such-user") == 0


def test_longest_streak_is_persisted(db, user_id, make_problem):
    problem = make_problem()
    for day in range(4):
        submit_attempt(db, user_id, problem["id"], "42", now=DAY1 + timedelta(days=day))
    submit_attempt(db, user_id, problem["id"], "42", now=DAY1 + timedelta(days=10))

    state, _ = crud.get_user_rating(db, user_id)
    assert state.streak_days == 1
    assert state.max_streak_days == 4


@pytest.mark.parametrize(
    "user_id, problem_id, answer",
    [("", "p", "42"), ("u1", "", "42"), ("u1", "p", ""), ("u1", "p", "   ")],
)
def test_missing_fields_are_rejected(db, user_id, problem_id, answer):
    with pytest.raises(InvalidInputError):
        submit_attempt(db, user_id, problem_id, answer, now=DAY1)


def test_backdated_submission_leaves_state_untouched(db, user_id, make_problem):
    problem = make_problem()
    submit_attempt(db, user_id, problem["id"], "42", now=DAY1)
    before = crud.get_user_rating(db, user_id)

    with pytest.raises(InvalidInputError):
        submit_attempt(db, user_id, problem["id"], "42", now=DAY1 - timedelta(hours=1))

    assert crud.get_user_rating(db, user_id) == before
    assert _attempt_count(db, user_id) == 1


def test_failed_log_write_rolls_back_rating_update(db, user_id, make_problem, monkeypatch):
    problem = make_problem()

    def boom(*args, **kwargs):
        raise RuntimeError("attempt log unavailable")

    monkeypatch.setattr(crud, "record_attempt", boom)
    with pytest.raises(RuntimeError):
        submit_attempt(db, user_id, problem["id"], "42", now=DAY1)

    # neither the default row nor the rating change survived
    assert crud.get_user_rating(db, user_id) is None
    assert _attempt_count(db, user_id) == 0


# ── Concurrency ────────────────────────────────────────────────────────────────

def test_stale_version_is_a_conflict(db):
    state, version = crud.get_or_create_user_rating(db, "u1")
    crud.put_user_rating(db, "u1", state.model_copy(update={"math_rating": 1250}), version)
    db.commit()

    with pytest.raises(ConcurrencyConflictError):
        crud.put_user_rating(db, "u1", state.model_copy(update={"math_rating": 1300}), version)
    db.rollback()

    current, current_version = crud.get_user_rating(db, "u1")
    assert current.math_rating == 1250
    assert current_version == version + 1


def test_get_or_create_does_not_overwrite_existing_row(db):
    state, version = crud.get_or_create_user_rating(db, "u1")
    crud.put_user_rating(db, "u1", state.model_copy(update={"physics_rating": 1500}), version)
    db.commit()

    again, again_version = crud.get_or_create_user_rating(db, "u1")
    assert again.physics_rating == 1500
    assert again_version == version + 1


def test_conflict_is_retried_against_fresh_state(db, user_id, make_problem, monkeypatch):
    problem = make_problem(subject="math", rating=1200)
    crud.get_or_create_user_rating(db, user_id)
    db.commit()

    real_put = crud.put_user_rating
    calls = {"n": 0}

    def racing_put(session, user_id, state, expected_version):
        calls["n"] += 1
        if calls["n"] == 1:
            # another request lands first and moves math to 1500
            rival = UserRatingState(math_rating=1500, solved_count=1, streak_days=1,
                                    last_solved_at=DAY1 - timedelta(minutes=5))
            real_put(session, user_id, rival, expected_version)
            session.commit()
            raise ConcurrencyConflictError(user_id, expected_version)
        return real_put(session, user_id, state, expected_version)

    monkeypatch.setattr(crud, "put_user_rating", racing_put)
    result = submit_attempt(db, user_id, problem["id"], "42", now=DAY1)

    assert calls["n"] == 2
    assert result["rating_before"] == 1500
    assert result["solved_count"] == 2
    assert _attempt_count(db, user_id) == 1
    state, version = crud.get_user_rating(db, user_id)
    assert state.math_rating == result["rating_after"]
    assert version == 2


def test_conflict_surfaces_after_retries_exhausted(db, user_id, make_problem, monkeypatch):
    problem = make_problem()

    def always_conflict(session, user_id, state, expected_version):
        raise ConcurrencyConflictError(user_id, expected_version)

    monkeypatch.setattr(crud, "put_user_rating", always_conflict)
    with pytest.raises(ConcurrencyConflictError):
        submit_attempt(db, user_id, problem["id"], "42", now=DAY1, max_retries=3)

    assert crud.get_user_rating(db, user_id) is None
    assert _attempt_count(db, user_id) == 0
