"""
Seed script — populates the database with a baseline set of practice problems.

Run once:  python seed_problems.py

Problems whose title already exists are skipped, so re-running is safe.
"""

import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from sqlalchemy import text

from classmate import crud
from classmate.db import SessionLocal, run_migrations

logger = logging.getLogger("seed")

SEED_PROBLEMS = [
    # Math
    {
        "title": "Linear equation",
        "statement": "Solve for x: 3x + 7 = 22.",
        "subject": "math",
        "difficulty": "easy",
        "rating": 900,
        "correct_answer": "5",
    },
    {
        "title": "Quadratic roots sum",
        "statement": "What is the sum of the roots of x² - 7x + 10 = 0?",
        "subject": "math",
        "difficulty": "medium",
        "rating": 1300,
        "correct_answer": "7",
    },
    {
        "title": "Definite integral",
        "statement": "Evaluate ∫₀¹ 3x² dx.",
        "subject": "math",
        "difficulty": "medium",
        "rating": 1500,
        "correct_answer": "1",
    },
    {
        "title": "Limit at infinity",
        "statement": "Evaluate lim(n→∞) (1 + 1/n)^n to two decimal places.",
        "subject": "math",
        "difficulty": "hard",
        "rating": 1900,
        "correct_answer": "2,72",
    },
    # Physics
    {
        "title": "Average speed",
        "statement": "A car travels 150 km in 2.5 hours. What is its average speed in km/h?",
        "subject": "physics",
        "difficulty": "easy",
        "rating": 850,
        "correct_answer": "60",
    },
    {
        "title": "Free fall",
        "statement": "An object falls from rest for 3 s (g = 9.8 m/s²). How far does it fall, in metres?",
        "subject": "physics",
        "difficulty": "medium",
        "rating": 1250,
        "correct_answer": "44.1",
    },
    {
        "title": "Kinetic energy",
        "statement": "What is the kinetic energy in joules of a 2 kg mass moving at 3 m/s?",
        "subject": "physics",
        "difficulty": "easy",
        "rating": 1000,
        "correct_answer": "9",
    },
    {
        "title": "Projectile range",
        "statement": (
            "A projectile is launched at 20 m/s at 45° on level ground (g = 10 m/s²). "
            "What is its range in metres?"
        ),
        "subject": "physics",
        "difficulty": "hard",
        "rating": 1700,
        "correct_answer": "40",
    },
    # Programming
    {
        "title": "Loop count",
        "statement": "How many times does `for i in range(2, 11, 3)` execute its body?",
        "subject": "programming",
        "difficulty": "easy",
        "rating": 950,
        "correct_answer": "3",
    },
    {
        "title": "Binary search steps",
        "statement": "At most how many comparisons does binary search need on a sorted array of 1024 elements?",
        "subject": "programming",
        "difficulty": "medium",
        "rating": 1400,
        "correct_answer": "11",
    },
    {
        "title": "Big-O of merge sort",
        "statement": "What is the worst-case time complexity of merge sort?",
        "subject": "programming",
        "difficulty": "medium",
        "rating": 1350,
        "correct_answer": "O(n log n)",
    },
    {
        "title": "Catalan trees",
        "statement": "How many structurally distinct binary search trees can be built from 5 distinct keys?",
        "subject": "programming",
        "difficulty": "hard",
        "rating": 2000,
        "correct_answer": "42",
    },
]


def seed() -> None:
    run_migrations()
    db = SessionLocal()
    inserted = 0
    skipped = 0
    try:
        for p in SEED_PROBLEMS:
            existing = db.execute(
                text("SELECT id FROM problems WHERE title = :t"),
                {"t": p["title"]},
            ).fetchone()
            if existing:
                skipped += 1
                continue
            crud.create_problem(db, **p)
            inserted += 1
    finally:
        db.close()
    logger.info("Seed complete: %d inserted, %d already existed.", inserted, skipped)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    seed()
