"""
Attempt submission — the read-modify-write around the rating engine.

Flow:
  1. Validate + load problem and profile       (NotFoundError if either is missing)
  2. Grade the answer unless a verdict is given
  3. get-or-create the user's rating row       (state, version)
  4. evaluate_attempt()                        (pure)
  5. conditional UPDATE on version + INSERT attempt, one commit
  6. version moved underneath us → rollback, re-read, re-evaluate
     (up to settings.submit_max_retries times, then ConcurrencyConflictError)

Any failure rolls back the whole transaction, so the rating row and the
attempt log are either both updated or both untouched.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from classmate import crud
from classmate.config import settings
from classmate.exceptions import (
    ConcurrencyConflictError,
    InvalidInputError,
    NotFoundError,
)
from classmate.services.answers import check_answer
from classmate.services.rating import evaluate_attempt

logger = logging.getLogger(__name__)


def _grade(problem: dict, user_answer: str) -> bool:
    correct_answer = problem.get("correct_answer")
    if not correct_answer:
        raise InvalidInputError(f"Problem {problem['id']} has no correct answer set")
    return check_answer(user_answer, correct_answer)


def submit_attempt(
    db: Session,
    user_id: str,
    problem_id: str,
    user_answer: str,
    is_correct: bool | None = None,
    now: datetime | None = None,
    max_retries: int | None = None,
) -> dict:
    """
    Evaluate and persist one attempt.

    Returns the rating change plus the learner's updated totals.
    """
    if not user_id or not problem_id or not user_answer or not user_answer.strip():
        raise InvalidInputError("Missing required fields: user_id, problem_id, user_answer")

    problem = crud.get_problem_by_id(db, problem_id)
    if not problem:
        raise NotFoundError(f"Problem {problem_id} not found")

    # rating rows are only created for registered users
    if not crud.get_profile_by_id(db, user_id):
        raise NotFoundError(f"User {user_id} not found")

    if is_correct is None:
        is_correct = _grade(problem, user_answer)

    now = now or datetime.now(timezone.utc)
    retries = max_retries or settings.submit_max_retries

    logger.info(
        "[Submit] user=%s problem=%s subject=%s rating=%s correct=%s",
        user_id, problem_id, problem["subject"], problem["rating"], is_correct,
    )

    for attempt_no in range(1, retries + 1):
        try:
            state, version = crud.get_or_create_user_rating(db, user_id)
            new_state, outcome = evaluate_attempt(
                state, problem["subject"], problem["rating"], is_correct, now
            )
            crud.put_user_rating(db, user_id, new_state, version)
            attempt = crud.record_attempt(db, user_id, problem_id, user_answer, outcome)
            db.commit()
        except ConcurrencyConflictError:
            db.rollback()
            logger.warning(
                "[Submit] Concurrent update for user %s (try %d/%d), retrying",
                user_id, attempt_no, retries,
            )
            continue
        except Exception:
            db.rollback()
            raise

        logger.info(
            "[Submit] ELO: E=%.3f K=%d %s %d → %d (delta %+d), total=%d streak=%d solved=%d",
            outcome.expected_score, outcome.k_factor, outcome.subject.value,
            outcome.rating_before, outcome.rating_after, outcome.delta,
            new_state.total_rating, new_state.streak_days, new_state.solved_count,
        )
        return {
            "attempt_id":     attempt["id"],
            "subject":        outcome.subject.value,
            "is_correct":     outcome.is_correct,
            "rating_before":  outcome.rating_before,
            "rating_after":   outcome.rating_after,
            "delta":          outcome.delta,
            "subject_rating": outcome.rating_after,
            "total_rating":   new_state.total_rating,
            "streak_days":    new_state.streak_days,
            "solved_count":   new_state.solved_count,
        }

    logger.error("[Submit] Giving up on user %s after %d conflicting updates", user_id, retries)
    raise ConcurrencyConflictError(user_id, version)
