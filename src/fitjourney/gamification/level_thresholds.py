"""Level thresholds and computation.

Level n requires 100 * (n - 1)^2 cumulative XP, which is the inverse of
level = floor(sqrt(xp / 100)) + 1. The table is precomputed so lookups and
the /levels endpoint share one monotonic source of truth.
"""

from __future__ import annotations

MAX_LEVEL = 100

# (first level of the band, title)
_TITLE_BANDS: list[tuple[int, str]] = [
    (1, "Newcomer"),
    (5, "Go-Getter"),
    (10, "Committed"),
    (15, "Consistent"),
    (20, "Pathfinder"),
    (30, "Transformer"),
    (40, "Role Model"),
    (50, "Mentor"),
    (75, "Champion"),
    (100, "Legend"),
]


def cumulative_xp_for_level(level: int) -> int:
    """Total XP needed to reach ``level``."""
    return 100 * (level - 1) ** 2


def title_for_level(level: int) -> str:
    title = _TITLE_BANDS[0][1]
    for first_level, band_title in _TITLE_BANDS:
        if level >= first_level:
            title = band_title
    return title


def _build_thresholds() -> list[dict]:
    thresholds = []
    previous = 0
    for level in range(1, MAX_LEVEL + 1):
        cumulative = cumulative_xp_for_level(level)
        thresholds.append({
            "level": level,
            "title": title_for_level(level),
            "xp_required": cumulative - previous,
            "cumulative": cumulative,
        })
        previous = cumulative
    return thresholds


LEVEL_THRESHOLDS: list[dict] = _build_thresholds()


def compute_level(total_xp: int) -> dict:
    """Compute level info from total XP.

    XP beyond the last threshold stays at MAX_LEVEL.
    """
    current = LEVEL_THRESHOLDS[0]
    next_level = LEVEL_THRESHOLDS[1]

    for i in range(len(LEVEL_THRESHOLDS) - 1):
        if total_xp >= LEVEL_THRESHOLDS[i]["cumulative"]:
            current = LEVEL_THRESHOLDS[i]
            next_level = LEVEL_THRESHOLDS[i + 1]
        else:
            break

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
