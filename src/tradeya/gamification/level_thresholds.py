"""Level thresholds and computation.

Levels are derived from experience on every read and never stored, so the
same experience value always yields the same level.

A value exactly equal to a threshold belongs to the higher level:
99 XP is level 1, 100 XP is level 2.
"""

from __future__ import annotations

LEVEL_THRESHOLDS: list[dict] = [
    {"level": 1, "title": "Newcomer", "xp_required": 0, "cumulative": 0},
    {"level": 2, "title": "Explorer", "xp_required": 100, "cumulative": 100},
    {"level": 3, "title": "Contributor", "xp_required": 150, "cumulative": 250},
    {"level": 4, "title": "Specialist", "xp_required": 250, "cumulative": 500},
    {"level": 5, "title": "Expert", "xp_required": 500, "cumulative": 1000},
    {"level": 6, "title": "Master", "xp_required": 1000, "cumulative": 2000},
    {"level": 7, "title": "Legend", "xp_required": 3000, "cumulative": 5000},
    {"level": 8, "title": "Champion", "xp_required": 5000, "cumulative": 10000},
    {"level": 9, "title": "Virtuoso", "xp_required": 10000, "cumulative": 20000},
    {"level": 10, "title": "Elite", "xp_required": 15000, "cumulative": 35000},
    {"level": 11, "title": "Mythic", "xp_required": 15000, "cumulative": 50000},
    {"level": 12, "title": "Immortal", "xp_required": 25000, "cumulative": 75000},
]


def _as_experience(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if value != value:  # NaN
        return 0
    return int(value)


def _threshold_index(total_xp: int) -> int:
    index = 0
    for i, threshold in enumerate(LEVEL_THRESHOLDS):
        if total_xp >= threshold["cumulative"]:
            index = i
        else:
            break
    return index


def level_for(experience: object) -> int:
    """Return the level for an experience total.

    Missing, non-numeric and non-positive values map to level 1.
    """
    total_xp = _as_experience(experience)
    if total_xp <= 0:
        return LEVEL_THRESHOLDS[0]["level"]
    return LEVEL_THRESHOLDS[_threshold_index(total_xp)]["level"]


def compute_level(total_xp: object) -> dict:
    """Compute level info from total XP."""
    xp = max(_as_experience(total_xp), 0)
    index = _threshold_index(xp)
    current = LEVEL_THRESHOLDS[index]
    # At max level the next level is the current one
    next_level = LEVEL_THRESHOLDS[min(index + 1, len(LEVEL_THRESHOLDS) - 1)]

    xp_into_level = xp - current["cumulative"]
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
