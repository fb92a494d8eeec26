"""
Practice router — problem library and attempt submission.
  GET  /practice/problems               → filtered library, newest first
  GET  /practice/problems/{problem_id}  → one problem (answer withheld)
  POST /practice/problems               → add a problem
  POST /practice/submit                 → grade, update ratings + streak, log attempt
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from classmate import crud
from classmate.db import get_db
from classmate.exceptions import ConcurrencyConflictError, InvalidInputError, NotFoundError
from classmate.models import Difficulty, Subject
from classmate.services.submission import submit_attempt

router = APIRouter()


# ── Schemas ────────────────────────────────────────────────────────────────────

class ProblemCreateRequest(BaseModel):
    title: str = Field(min_length=1)
    statement: str = Field(min_length=1)
    subject: Subject
    difficulty: Difficulty
    rating: int = Field(ge=0, le=4000)
    correct_answer: str | None = None


class SubmitRequest(BaseModel):
    user_id: str
    problem_id: str
    user_answer: str
    is_correct: bool | None = None   # verdict from an external grader; graded here if absent


def _public(problem: dict) -> dict:
    """Strip the stored answer before sending a problem to the client."""
    out = {k: v for k, v in problem.items() if k != "correct_answer"}
    out["has_answer"] = bool(problem.get("correct_answer"))
    return out


# ── Routes ─────────────────────────────────────────────────────────────────────

@router.get("/problems")
def list_problems(
    subject: Subject | None = None,
    difficulty: Difficulty | None = None,
    min_rating: int = Query(800, ge=0),
    max_rating: int = Query(2400, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    if min_rating > max_rating:
        raise HTTPException(status_code=400, detail="min_rating must be <= max_rating")

    problems = crud.list_problems(
        db,
        subject=subject.value if subject else None,
        difficulty=difficulty.value if difficulty else None,
        min_rating=min_rating,
        max_rating=max_rating,
        limit=limit,
    )
    return {"problems": [_public(p) for p in problems], "count": len(problems)}


@router.get("/problems/{problem_id}")
def get_problem(problem_id: str, db: Session = Depends(get_db)):
    problem = crud.get_problem_by_id(db, problem_id)
    if not problem:
        raise HTTPException(status_code=404, detail=f"Problem {problem_id} not found")
    return _public(problem)


@router.post("/problems", status_code=201)
def create_problem(body: ProblemCreateRequest, db: Session = Depends(get_db)):
    problem = crud.create_problem(
        db,
        title=body.title,
        statement=body.statement,
        subject=body.subject.value,
        difficulty=body.difficulty.value,
        rating=body.rating,
        correct_answer=body.correct_answer,
    )
    return _public(problem)


@router.post("/submit")
def submit(body: SubmitRequest, db: Session = Depends(get_db)):
    """
    Returns the rating change for the problem's subject, plus the updated
    total rating, streak and attempt counter.
    """
    try:
        result = submit_attempt(
            db,
            user_id=body.user_id,
            problem_id=body.problem_id,
            user_answer=body.user_answer,
            is_correct=body.is_correct,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConcurrencyConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))

    delta = result["delta"]
    result["message"] = (
        f"Correct! {delta:+d} rating" if result["is_correct"]
        else f"Not quite. {delta:+d} rating"
    )
    return result
