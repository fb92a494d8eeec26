"""
Domain types shared by the rating engine, the data layer and the routers.
"""

import math
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field

DEFAULT_RATING = 1200


class Subject(str, Enum):
    MATH = "math"
    PHYSICS = "physics"
    PROGRAMMING = "programming"

    @property
    def rating_field(self) -> str:
        return f"{self.value}_rating"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


def round_half_up(x: float) -> int:
    """Round to the nearest integer, ties toward +inf (JavaScript Math.round)."""
    return int(math.floor(x + 0.5))


def compute_total_rating(math_rating: int, physics_rating: int, programming_rating: int) -> int:
    return round_half_up((math_rating + physics_rating + programming_rating) / 3)


class UserRatingState(BaseModel):
    """
    One learner's ratings and activity counters.

    total_rating is derived from the three subject ratings on every access,
    so it can never drift from them.
    """

    model_config = ConfigDict(frozen=True)

    math_rating: int = DEFAULT_RATING
    physics_rating: int = DEFAULT_RATING
    programming_rating: int = DEFAULT_RATING
    streak_days: int = Field(default=0, ge=0)
    max_streak_days: int = Field(default=0, ge=0)
    solved_count: int = Field(default=0, ge=0)
    last_solved_at: datetime | None = None

    @computed_field
    @property
    def total_rating(self) -> int:
        return compute_total_rating(self.math_rating, self.physics_rating, self.programming_rating)

    def rating_for(self, subject: Subject) -> int:
        return getattr(self, subject.rating_field)


class AttemptDelta(BaseModel):
    """Outcome of evaluating one attempt, for the relevant subject only."""

    model_config = ConfigDict(frozen=True)

    subject: Subject
    is_correct: bool
    problem_rating: int
    expected_score: float
    k_factor: int
    rating_before: int
    rating_after: int
    delta: int
    timestamp: datetime
