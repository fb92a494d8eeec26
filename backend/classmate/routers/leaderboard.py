"""
Leaderboard router.
  GET /leaderboard?subject=math  → learners ranked by total (or subject) rating
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from classmate import crud
from classmate.config import settings
from classmate.db import get_db
from classmate.models import Subject

router = APIRouter()


@router.get("")
def get_leaderboard(
    subject: Subject | None = None,
    limit: int | None = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """Ties on rating go to the learner with more attempts, then alphabetically."""
    entries = crud.get_leaderboard(db, subject=subject, limit=limit or settings.leaderboard_limit)
    return {
        "subject": subject.value if subject else "total",
        "entries": entries,
    }
