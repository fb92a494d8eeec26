"""
ELO-based rating update for one attempt.

Expected score (logistic):
  expected = 1 / (1 + 10 ** ((problem_rating - user_rating) / 400))
  The gap is clamped to ±6000 so 10 ** x cannot overflow and expected
  stays strictly inside (0, 1).

K-factor, tiered by the learner's current subject rating:
  rating >= 2000          → 10
  1400 <= rating < 2000   → 20
  rating < 1400           → 40

Rating update (rounded half up, like JavaScript Math.round):
  new_rating = round(user_rating + K * (actual - expected))

total_rating = round(mean(math, physics, programming)), always derived.

Streak, on UTC calendar days since last_solved_at:
  no prior attempt → 1
  same day         → unchanged
  previous day     → +1
  2+ days          → reset to 1
max_streak_days keeps the longest streak reached.

Everything here is pure: no I/O, no clock reads.
"""

import math
from datetime import date, datetime, timezone
from numbers import Integral

from classmate.exceptions import InvalidInputError
from classmate.models import (
    DEFAULT_RATING,
    AttemptDelta,
    Subject,
    UserRatingState,
    compute_total_rating,
    round_half_up,
)

__all__ = [
    "compute_total_rating",
    "days_between",
    "default_state",
    "evaluate_attempt",
    "expected_score",
    "k_factor",
    "next_streak",
    "round_half_up",
]


def default_state() -> UserRatingState:
    """The record a learner starts with before their first attempt."""
    return UserRatingState(
        math_rating=DEFAULT_RATING,
        physics_rating=DEFAULT_RATING,
        programming_rating=DEFAULT_RATING,
        streak_days=0,
        max_streak_days=0,
        solved_count=0,
        last_solved_at=None,
    )


# past ±6000 the float 1 / (1 + 10 ** (gap / 400)) collapses to exactly 0 or 1
MAX_RATING_GAP = 6000


def expected_score(user_rating: float, problem_rating: float) -> float:
    gap = max(-MAX_RATING_GAP, min(MAX_RATING_GAP, problem_rating - user_rating))
    return 1.0 / (1.0 + 10 ** (gap / 400.0))


def k_factor(user_rating: int) -> int:
    if user_rating >= 2000:
        return 10
    if user_rating >= 1400:
        return 20
    return 40


def _as_utc(ts: datetime) -> datetime:
    # naive timestamps are taken to be UTC already
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _utc_date(ts: datetime) -> date:
    return _as_utc(ts).date()


def days_between(now: datetime, last_solved_at: datetime) -> int:
    """
    Whole UTC calendar days from last_solved_at to now.

    Raises InvalidInputError when now is earlier than last_solved_at
    (clock skew or a backdated submission).
    """
    if _as_utc(now) < _as_utc(last_solved_at):
        raise InvalidInputError(
            f"Attempt time {now.isoformat()} is earlier than the last attempt "
            f"at {last_solved_at.isoformat()}"
        )
    return (_utc_date(now) - _utc_date(last_solved_at)).days


def next_streak(streak_days: int, last_solved_at: datetime | None, now: datetime) -> int:
    if last_solved_at is None:
        return 1
    gap = days_between(now, last_solved_at)
    if gap == 0:
        return streak_days
    if gap == 1:
        return streak_days + 1
    return 1


def _check_inputs(subject, problem_rating, is_correct, now) -> Subject:
    try:
        subject = Subject(subject)
    except ValueError:
        raise InvalidInputError(f"Unknown subject {subject!r}") from None

    if not isinstance(is_correct, bool):
        raise InvalidInputError(f"is_correct must be a bool, got {type(is_correct).__name__}")

    if isinstance(problem_rating, bool) or not isinstance(problem_rating, (Integral, float)):
        raise InvalidInputError(f"problem_rating must be an integer, got {problem_rating!r}")
    if isinstance(problem_rating, float) and (
        not math.isfinite(problem_rating) or not problem_rating.is_integer()
    ):
        raise InvalidInputError(f"problem_rating must be a finite integer, got {problem_rating!r}")

    if not isinstance(now, datetime):
        raise InvalidInputError("now must be a datetime")
    return subject


def evaluate_attempt(
    state: UserRatingState,
    subject: Subject | str,
    problem_rating: int,
    is_correct: bool,
    now: datetime,
) -> tuple[UserRatingState, AttemptDelta]:
    """
    Apply one attempt to a learner's rating state.

    Args:
        state          : current ratings/streak (defaults applied upstream)
        subject        : subject of the attempted problem
        problem_rating : Elo difficulty of the problem (roughly 800–2400)
        is_correct     : verdict for the submitted answer
        now            : wall-clock instant of the evaluation

    Returns:
        (new_state, attempt_delta). The input state is not modified.
    """
    subject = _check_inputs(subject, problem_rating, is_correct, now)
    problem_rating = int(problem_rating)

    r_user = state.rating_for(subject)
    expected = expected_score(r_user, problem_rating)
    actual = 1 if is_correct else 0
    k = k_factor(r_user)

    r_new = round_half_up(r_user + k * (actual - expected))
    delta = r_new - r_user

    # streak first: it rejects a backwards clock before anything is built
    streak_days = next_streak(state.streak_days, state.last_solved_at, now)

    new_state = state.model_copy(
        update={
            subject.rating_field: r_new,
            "streak_days": streak_days,
            "max_streak_days": max(state.max_streak_days, streak_days),
            "solved_count": state.solved_count + 1,
            "last_solved_at": _as_utc(now),
        }
    )

    record = AttemptDelta(
        subject=subject,
        is_correct=is_correct,
        problem_rating=problem_rating,
        expected_score=expected,
        k_factor=k,
        rating_before=r_user,
        rating_after=r_new,
        delta=delta,
        timestamp=_as_utc(now),
    )
    return new_state, record
