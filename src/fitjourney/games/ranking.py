"""Deterministic leaderboard ranking.

Entries are ranked by score DESC, then by earliest achievement ASC,
then by user_id ASC as the final tiebreaker.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

_far_future = datetime(2099, 12, 31, 23, 59, 59, tzinfo=timezone.utc)


def calculate_percentile(rank: int, total: int) -> float:
    """Calculate percentile from rank and total participants.

    Rank 1 out of 100 → 99.0 (top 1%)
    Rank 100 out of 100 → 0.0 (bottom)
    """
    if total <= 0 or rank <= 0:
        return 0.0
    return round(100 - (rank / total * 100), 2)


def rank_entries(entries: list[dict[str, Any]], total: int | None = None) -> list[dict[str, Any]]:
    """Sort entries and attach a 1-indexed ``rank`` and ``percentile``.

    Input dicts need ``user_id`` and ``score``; ``achieved_at`` breaks ties.
    ``total`` is the size of the whole field when ``entries`` is one page of it.
    """
    if not entries:
        return []

    def sort_key(e: dict[str, Any]) -> tuple[int, datetime, int]:
        return (-e["score"], e.get("achieved_at") or _far_future, e["user_id"])

    ranked = sorted(entries, key=sort_key)
    total = max(total or 0, len(ranked))
    for i, entry in enumerate(ranked, start=1):
        entry["rank"] = i
        entry["percentile"] = calculate_percentile(i, total)
    return ranked
