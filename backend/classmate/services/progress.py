"""
Profile progress: level tiers, XP, achievements and trophies.

Tiers on total rating:
  Bronze    < 1200
  Silver    1200 – 1399
  Gold      1400 – 1599
  Platinum  1600 – 1899
  Diamond   1900+   (progress bar tops out at 2400)

XP = 20 per evaluated attempt.

Trophies are milestone thresholds on attempts, current streak and total rating.
"""

XP_PER_ATTEMPT = 20

# (level, start, next) — a rating belongs to the first tier whose next bound exceeds it
_LEVELS: list[tuple[str, int, int]] = [
    ("Bronze",   0,    1200),
    ("Silver",   1200, 1400),
    ("Gold",     1400, 1600),
    ("Platinum", 1600, 1900),
    ("Diamond",  1900, 2400),
]

_ACHIEVEMENTS = [
    ("first_solve", "First Solve", "Solved your first problem"),
    ("streak_5", "5-Day Streak", "Maintained a 5-day solving streak"),
    ("rated_1300", "Rated 1300+", "Achieved a rating of 1300 or higher"),
    ("hard_solver", "Hard Problem Solver", "Successfully solved a hard problem"),
]


def level_info(total_rating: int) -> dict:
    """Return the tier, its bounds, and the percentage progress through it."""
    for name, start, nxt in _LEVELS[:-1]:
        if total_rating < nxt:
            break
    else:
        name, start, nxt = _LEVELS[-1]

    progress = (total_rating - start) / (nxt - start) * 100
    return {
        "level": name,
        "level_start": start,
        "next_level_rating": nxt,
        "rating_to_next": max(0, nxt - total_rating),
        "progress_pct": round(min(100.0, max(0.0, progress)), 1),
    }


def experience(solved_count: int) -> int:
    return solved_count * XP_PER_ATTEMPT


def achievements(
    solved_count: int, streak_days: int, total_rating: int, has_hard_solved: bool
) -> list[dict]:
    unlocked = {
        "first_solve": solved_count >= 1,
        "streak_5": streak_days >= 5,
        "rated_1300": total_rating >= 1300,
        "hard_solver": has_hard_solved,
    }
    return [
        {"id": aid, "name": name, "description": desc, "unlocked": unlocked[aid]}
        for aid, name, desc in _ACHIEVEMENTS
    ]


# (id, name, description, stat, threshold)
_TROPHIES: list[tuple[str, str, str, str, int]] = [
    ("beginner",  "Beginner",   "Solve 10 problems",  "solved_count", 10),
    ("learner",   "Learner",    "Solve 50 problems",  "solved_count", 50),
    ("master",    "Master",     "Solve 100 problems", "solved_count", 100),
    ("fire",      "On Fire",    "7-day streak",       "streak_days",  7),
    ("dragon",    "Dragon",     "30-day streak",      "streak_days",  30),
    ("rated",     "Rated Star", "Reach 1500 rating",  "total_rating", 1500),
    ("lightning", "Lightning",  "Reach 1800 rating",  "total_rating", 1800),
]


def trophies(solved_count: int, streak_days: int, total_rating: int) -> list[dict]:
    stats = {
        "solved_count": solved_count,
        "streak_days": streak_days,
        "total_rating": total_rating,
    }
    return [
        {
            "id": tid,
            "name": name,
            "description": desc,
            "unlocked": stats[stat] >= threshold,
            "progress": min(stats[stat], threshold),
            "goal": threshold,
        }
        for tid, name, desc, stat, threshold in _TROPHIES
    ]
