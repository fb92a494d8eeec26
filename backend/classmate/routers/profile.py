"""
Profile router — learner overview.
  POST /profile             → create a profile (username)
  GET  /profile/{user_id}   → ratings, level, XP, achievements, trophies, stats, recent attempts, history
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from classmate import crud
from classmate.config import settings
from classmate.db import get_db
from classmate.services.progress import achievements, experience, level_info, trophies
from classmate.services.rating import default_state

router = APIRouter()


class ProfileCreateRequest(BaseModel):
    username: str = Field(min_length=2, max_length=40)


@router.post("", status_code=201)
def create_profile(body: ProfileCreateRequest, db: Session = Depends(get_db)):
    username = body.username.strip()
    if crud.get_profile_by_username(db, username):
        raise HTTPException(status_code=409, detail="Username already taken")

    try:
        profile = crud.create_profile(db, username)
    except IntegrityError:
        # a concurrent request registered the same name between check and insert
        db.rollback()
        raise HTTPException(status_code=409, detail="Username already taken")
    return {"user_id": profile["id"], "username": profile["username"]}


@router.get("/{user_id}")
def get_profile(user_id: str, db: Session = Depends(get_db)):
    """
    Returns:
    - per-subject and total rating (defaults if the learner never submitted)
    - current and longest streak
    - level tier + progress to the next tier, XP
    - achievements and trophies
    - attempt stats (accuracy, hardest solved rating)
    - recent attempts and the rating history for the chart
    """
    profile = crud.get_profile_by_id(db, user_id)
    if not profile:
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")

    # Read-only view: a learner without a rating row is shown the defaults
    found = crud.get_user_rating(db, user_id)
    state = found[0] if found else default_state()
    stats = crud.get_attempt_stats(db, user_id)

    return {
        "user_id": user_id,
        "username": profile["username"],
        "ratings": {
            "math": state.math_rating,
            "physics": state.physics_rating,
            "programming": state.programming_rating,
            "total": state.total_rating,
        },
        "streak_days": state.streak_days,
        "max_streak_days": state.max_streak_days,
        "solved_count": state.solved_count,
        "last_solved_at": state.last_solved_at.isoformat() if state.last_solved_at else None,
        "level": level_info(state.total_rating),
        "xp": experience(state.solved_count),
        "achievements": achievements(
            state.solved_count, state.streak_days, state.total_rating, stats["has_hard_solved"]
        ),
        "trophies": trophies(state.solved_count, state.streak_days, state.total_rating),
        "stats": stats,
        "recent_attempts": crud.get_recent_attempts(db, user_id, n=settings.recent_attempts_limit),
        "rating_history": crud.get_rating_history(db, user_id),
    }
