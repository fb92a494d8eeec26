"""
All database operations for ClassMate.
Uses raw SQL via SQLAlchemy text() — portable across Postgres and SQLite.

Functions that take part in an attempt submission (user ratings, attempts)
do NOT commit; the submission service commits them as one unit.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import text
from sqlalchemy.orm import Session

from classmate.exceptions import ConcurrencyConflictError
from classmate.models import AttemptDelta, Subject, UserRatingState


def _new_id() -> str:
    return str(uuid.uuid4())


def _ts(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _parse_ts(value) -> datetime | None:
    """Timestamps come back as text on SQLite and as datetimes on Postgres."""
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Profiles ───────────────────────────────────────────────────────────────────

def create_profile(db: Session, username: str) -> dict:
    profile = {"id": _new_id(), "username": username, "created_at": _ts(_utcnow())}
    db.execute(
        text("INSERT INTO profiles (id, username, created_at) VALUES (:id, :username, :created_at)"),
        profile,
    )
    db.commit()
    return profile


def get_profile_by_username(db: Session, username: str) -> dict | None:
    row = db.execute(
        text("SELECT id, username, created_at FROM profiles WHERE username = :n"),
        {"n": username},
    ).fetchone()
    return dict(row._mapping) if row else None


def get_profile_by_id(db: Session, user_id: str) -> dict | None:
    row = db.execute(
        text("SELECT id, username, created_at FROM profiles WHERE id = :uid"),
        {"uid": user_id},
    ).fetchone()
    return dict(row._mapping) if row else None


# ── Problems ───────────────────────────────────────────────────────────────────

_PROBLEM_COLUMNS = "id, title, statement, subject, difficulty, rating, correct_answer, created_at"


def create_problem(
    db: Session,
    title: str,
    statement: str,
    subject: str,
    difficulty: str,
    rating: int,
    correct_answer: str | None = None,
    created_at: datetime | None = None,
) -> dict:
    problem = {
        "id": _new_id(),
        "title": title,
        "statement": statement,
        "subject": subject,
        "difficulty": difficulty,
        "rating": rating,
        "correct_answer": correct_answer,
        "created_at": _ts(created_at or _utcnow()),
    }
    db.execute(
        text(f"""
            INSERT INTO problems ({_PROBLEM_COLUMNS})
            VALUES (:id, :title, :statement, :subject, :difficulty, :rating,
                    :correct_answer, :created_at)
        """),
        problem,
    )
    db.commit()
    return problem


def get_problem_by_id(db: Session, problem_id: str) -> dict | None:
    row = db.execute(
        text(f"SELECT {_PROBLEM_COLUMNS} FROM problems WHERE id = :pid"),
        {"pid": problem_id},
    ).fetchone()
    return dict(row._mapping) if row else None


def list_problems(
    db: Session,
    subject: str | None = None,
    difficulty: str | None = None,
    min_rating: int = 800,
    max_rating: int = 2400,
    limit: int = 20,
) -> list[dict]:
    """Practice library: newest first, filtered by rating band and optional subject/difficulty."""
    clauses = ["rating BETWEEN :rmin AND :rmax"]
    params: dict = {"rmin": min_rating, "rmax": max_rating, "lim": limit}
    if subject:
        clauses.append("subject = :subject")
        params["subject"] = subject
    if difficulty:
        clauses.append("difficulty = :difficulty")
        params["difficulty"] = difficulty

    rows = db.execute(
        text(f"""
            SELECT {_PROBLEM_COLUMNS}
            FROM problems
            WHERE {" AND ".join(clauses)}
            ORDER BY created_at DESC
            LIMIT :lim
        """),
        params,
    ).fetchall()
    return [dict(r._mapping) for r in rows]


# ── User ratings ───────────────────────────────────────────────────────────────

def _row_to_state(row) -> tuple[UserRatingState, int]:
    m = row._mapping
    state = UserRatingState(
        math_rating=m["math_rating"],
        physics_rating=m["physics_rating"],
        programming_rating=m["programming_rating"],
        streak_days=m["streak_days"],
        max_streak_days=m["max_streak_days"],
        solved_count=m["solved_count"],
        last_solved_at=_parse_ts(m["last_solved_at"]),
    )
    return state, int(m["version"])


def get_user_rating(db: Session, user_id: str) -> tuple[UserRatingState, int] | None:
    """Return (state, version) or None when the user has no rating row yet."""
    row = db.execute(
        text("""
            SELECT math_rating, physics_rating, programming_rating,
                   streak_days, max_streak_days, solved_count, last_solved_at, version
            FROM user_ratings WHERE user_id = :u
        """),
        {"u": user_id},
    ).fetchone()
    return _row_to_state(row) if row else None


def get_or_create_user_rating(db: Session, user_id: str) -> tuple[UserRatingState, int]:
    """
    Fetch the user's rating row, inserting the default record first if absent.
    ON CONFLICT DO NOTHING keeps two first submissions from racing on the insert.
    """
    found = get_user_rating(db, user_id)
    if found:
        return found

    default = UserRatingState()
    db.execute(
        text("""
            INSERT INTO user_ratings
              (user_id, math_rating, physics_rating, programming_rating,
               total_rating, streak_days, max_streak_days, solved_count, last_solved_at, version)
            VALUES (:u, :m, :p, :pr, :t, 0, 0, 0, NULL, 0)
            ON CONFLICT (user_id) DO NOTHING
        """),
        {
            "u": user_id,
            "m": default.math_rating,
            "p": default.physics_rating,
            "pr": default.programming_rating,
            "t": default.total_rating,
        },
    )
    return get_user_rating(db, user_id)


def put_user_rating(
    db: Session, user_id: str, state: UserRatingState, expected_version: int
) -> int:
    """
    Conditional write: succeeds only if the row is still at expected_version.
    Returns the new version; raises ConcurrencyConflictError otherwise.
    """
    result = db.execute(
        text("""
            UPDATE user_ratings
            SET math_rating = :m,
                physics_rating = :p,
                programming_rating = :pr,
                total_rating = :t,
                streak_days = :streak,
                max_streak_days = :max_streak,
                solved_count = :solved,
                last_solved_at = :last,
                version = version + 1
            WHERE user_id = :u AND version = :v
        """),
        {
            "u": user_id,
            "v": expected_version,
            "m": state.math_rating,
            "p": state.physics_rating,
            "pr": state.programming_rating,
            "t": state.total_rating,
            "streak": state.streak_days,
            "max_streak": state.max_streak_days,
            "solved": state.solved_count,
            "last": _ts(state.last_solved_at) if state.last_solved_at else None,
        },
    )
    if result.rowcount != 1:
        raise ConcurrencyConflictError(user_id, expected_version)
    return expected_version + 1


# ── Attempts ───────────────────────────────────────────────────────────────────

def record_attempt(
    db: Session,
    user_id: str,
    problem_id: str,
    user_answer: str,
    outcome: AttemptDelta,
) -> dict:
    attempt = {
        "id": _new_id(),
        "user_id": user_id,
        "problem_id": problem_id,
        "subject": outcome.subject.value,
        "is_correct": outcome.is_correct,
        "user_answer": user_answer,
        "problem_rating": outcome.problem_rating,
        "rating_before": outcome.rating_before,
        "rating_after": outcome.rating_after,
        "delta": outcome.delta,
        "created_at": _ts(outcome.timestamp),
    }
    db.execute(
        text("""
            INSERT INTO problem_attempts
              (id, user_id, problem_id, subject, is_correct, user_answer,
               problem_rating, rating_before, rating_after, delta, created_at)
            VALUES (:id, :user_id, :problem_id, :subject, :is_correct, :user_answer,
                    :problem_rating, :rating_before, :rating_after, :delta, :created_at)
        """),
        attempt,
    )
    return attempt


def _attempt_row(r) -> dict:
    row = dict(r._mapping)
    row["is_correct"] = bool(row["is_correct"])
    created = _parse_ts(row.get("created_at"))
    row["created_at"] = created.isoformat() if created else None
    return row


def get_recent_attempts(db: Session, user_id: str, n: int = 10) -> list[dict]:
    rows = db.execute(
        text("""
            SELECT a.id, a.problem_id, p.title, p.difficulty, a.subject,
                   a.is_correct, a.user_answer, a.problem_rating,
                   a.rating_before, a.rating_after, a.delta, a.created_at
            FROM problem_attempts a
            JOIN problems p ON p.id = a.problem_id
            WHERE a.user_id = :u
            ORDER BY a.created_at DESC
            LIMIT :n
        """),
        {"u": user_id, "n": n},
    ).fetchall()
    return [_attempt_row(r) for r in rows]


def get_rating_history(db: Session, user_id: str, subject: Subject | None = None) -> list[dict]:
    """Chronological (created_at, subject, rating_after) points for the rating chart."""
    subject_clause = "AND subject = :s" if subject else ""
    params: dict = {"u": user_id}
    if subject:
        params["s"] = Subject(subject).value
    rows = db.execute(
        text(f"""
            SELECT created_at, subject, rating_after
            FROM problem_attempts
            WHERE user_id = :u {subject_clause}
            ORDER BY created_at ASC
        """),
        params,
    ).fetchall()
    return [
        {"created_at": _parse_ts(r[0]).isoformat(), "subject": r[1], "rating": int(r[2])}
        for r in rows
    ]


def get_attempt_stats(db: Session, user_id: str) -> dict:
    """Counts for the profile stat cards."""
    row = db.execute(
        text("""
            SELECT COUNT(*) AS attempts,
                   SUM(CASE WHEN a.is_correct THEN 1 ELSE 0 END) AS correct,
                   MAX(CASE WHEN a.is_correct THEN a.problem_rating END) AS hardest_rating,
                   SUM(CASE WHEN a.is_correct AND p.difficulty = 'hard' THEN 1 ELSE 0 END) AS hard_solved
            FROM problem_attempts a
            JOIN problems p ON p.id = a.problem_id
            WHERE a.user_id = :u
        """),
        {"u": user_id},
    ).fetchone()
    attempts = int(row[0] or 0)
    correct = int(row[1] or 0)
    return {
        "attempts": attempts,
        "correct": correct,
        "accuracy": round(correct / attempts, 4) if attempts else 0.0,
        "hardest_solved_rating": int(row[2]) if row[2] is not None else None,
        "has_hard_solved": int(row[3] or 0) > 0,
    }


# ── Leaderboard ────────────────────────────────────────────────────────────────

_LEADERBOARD_ORDER = {
    None: "r.total_rating",
    Subject.MATH: "r.math_rating",
    Subject.PHYSICS: "r.physics_rating",
    Subject.PROGRAMMING: "r.programming_rating",
}


def get_leaderboard(db: Session, subject: Subject | None = None, limit: int = 50) -> list[dict]:
    order_col = _LEADERBOARD_ORDER[Subject(subject) if subject else None]
    rows = db.execute(
        text(f"""
            SELECT p.id AS user_id, p.username,
                   r.total_rating, r.math_rating, r.physics_rating, r.programming_rating,
                   r.streak_days, r.solved_count
            FROM user_ratings r
            JOIN profiles p ON p.id = r.user_id
            ORDER BY {order_col} DESC, r.solved_count DESC, p.username ASC
            LIMIT :lim
        """),
        {"lim": limit},
    ).fetchall()
    return [{"rank": i + 1, **dict(r._mapping)} for i, r in enumerate(rows)]
