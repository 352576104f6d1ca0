"""Level thresholds and computation.

One table drives both the Python ``compute_level`` and the SQL CASE used by
the atomic XP update, so stored levels always agree with computed ones.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import case

LEVEL_THRESHOLDS: list[dict] = [
    {"level": 1, "title": "Novice", "cumulative": 0},
    {"level": 2, "title": "Snapshot Taker", "cumulative": 100},
    {"level": 3, "title": "Shutterbug", "cumulative": 300},
    {"level": 4, "title": "Frame Hunter", "cumulative": 600},
    {"level": 5, "title": "Light Chaser", "cumulative": 1000},
    {"level": 6, "title": "Composer", "cumulative": 1500},
    {"level": 7, "title": "Street Eye", "cumulative": 2200},
    {"level": 8, "title": "Storyteller", "cumulative": 3000},
    {"level": 9, "title": "Visionary", "cumulative": 4000},
    {"level": 10, "title": "Master of Light", "cumulative": 5500},
    {"level": 15, "title": "Lens Virtuoso", "cumulative": 10000},
    {"level": 20, "title": "Photo Legend", "cumulative": 20000},
]


def compute_level(total_xp: int) -> dict:
    """Compute level info from total XP."""
    current = LEVEL_THRESHOLDS[0]
    next_level = LEVEL_THRESHOLDS[1]

    for i in range(len(LEVEL_THRESHOLDS) - 1):
        if total_xp >= LEVEL_THRESHOLDS[i]["cumulative"]:
            current = LEVEL_THRESHOLDS[i]
            next_level = LEVEL_THRESHOLDS[i + 1]

    # XP beyond max level
    if total_xp >= LEVEL_THRESHOLDS[-1]["cumulative"]:
        current = LEVEL_THRESHOLDS[-1]
        next_level = LEVEL_THRESHOLDS[-1]

    xp_into_level = total_xp - current["cumulative"]
    xp_for_level = next_level["cumulative"] - current["cumulative"]

    # At max level, avoid division by zero
    if xp_for_level == 0:
        xp_for_level = 1

    return {
        "level": current["level"],
        "title": current["title"],
        "xp_into_level": xp_into_level,
        "xp_for_level": xp_for_level,
        "next_level": next_level["level"],
        "next_title": next_level["title"],
    }


def level_case(xp_expr: Any) -> Any:  # noqa: ANN401
    """SQL expression computing the level for ``xp_expr`` from the same table."""
    whens = [
        (xp_expr >= row["cumulative"], row["level"])
        for row in reversed(LEVEL_THRESHOLDS[1:])
    ]
    return case(*whens, else_=LEVEL_THRESHOLDS[0]["level"])
