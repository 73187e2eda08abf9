"""Level thresholds and computation.

The level is a pure function of total XP and is never stored.
Master Ninja is the last level; its ``next_level_xp`` only feeds the
progress bar.
"""

from __future__ import annotations

from enum import Enum


class NinjaLevel(str, Enum):
    NOVICE = "novice"
    APPRENTICE = "apprentice"
    MASTER = "master"


LEVEL_THRESHOLDS: list[dict] = [
    {"key": NinjaLevel.NOVICE, "level": 1, "title": "Novice Ninja", "xp_required": 0, "next_level_xp": 200},
    {"key": NinjaLevel.APPRENTICE, "level": 2, "title": "Apprentice Ninja", "xp_required": 200, "next_level_xp": 400},
    {"key": NinjaLevel.MASTER, "level": 3, "title": "Master Ninja", "xp_required": 400, "next_level_xp": 600},
]

_BY_KEY: dict[NinjaLevel, dict] = {entry["key"]: entry for entry in LEVEL_THRESHOLDS}


def level_entry(level: NinjaLevel | str) -> dict:
    """Threshold entry for a level key."""
    return _BY_KEY[NinjaLevel(level)]


def derive_level(total_xp: int) -> NinjaLevel:
    """Highest level whose threshold is <= total_xp."""
    current = LEVEL_THRESHOLDS[0]
    for entry in LEVEL_THRESHOLDS:
        if total_xp >= entry["xp_required"]:
            current = entry
    return current["key"]


def progress_to_next_level(total_xp: int) -> float:
    """Fraction of the way from the current threshold to the next, in [0, 1]."""
    entry = level_entry(derive_level(total_xp))
    span = entry["next_level_xp"] - entry["xp_required"]
    if span <= 0:
        return 1.0
    return min(1.0, max(0.0, (total_xp - entry["xp_required"]) / span))


def compute_level(total_xp: int) -> dict:
    """Compute level info from total XP."""
    entry = level_entry(derive_level(total_xp))
    is_max = entry is LEVEL_THRESHOLDS[-1]
    following = entry if is_max else LEVEL_THRESHOLDS[LEVEL_THRESHOLDS.index(entry) + 1]

    return {
        "key": entry["key"].value,
        "level": entry["level"],
        "title": entry["title"],
        "xp_required": entry["xp_required"],
        "next_level_xp": entry["next_level_xp"],
        "xp_into_level": total_xp - entry["xp_required"],
        "xp_for_level": entry["next_level_xp"] - entry["xp_required"],
        "next_title": following["title"],
        "is_max_level": is_max,
        "progress": progress_to_next_level(total_xp),
    }
