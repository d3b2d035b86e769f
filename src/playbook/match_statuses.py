"""Shared match-status definitions and helpers.

This module is the single source of truth for status groups that are reused
across the result processor, the stores and the API filters.
"""

from __future__ import annotations

from typing import Iterable

PENDING = "pending"
LIVE = "live"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"

# Individual statuses currently used in the system.
ALL_MATCH_STATUSES: tuple[str, ...] = (PENDING, LIVE, IN_PROGRESS, COMPLETED)

# Canonical status groups.
MATCH_STATUS_GROUPS: dict[str, tuple[str, ...]] = {
    # Matches still awaiting a result (live ones are surfaced, not driven here).
    "open": (PENDING, LIVE, IN_PROGRESS),
    "all": ALL_MATCH_STATUSES,
}


def get_status_group(group_name: str) -> tuple[str, ...]:
    """Return a named status group, raising KeyError for unknown names."""
    return MATCH_STATUS_GROUPS[group_name]


def normalize_status_filter(
    raw_statuses: Iterable[str] | None,
    *,
    default_group: str = "all",
) -> list[str]:
    """Normalize requested statuses against known values.

    - If no statuses are provided, returns the statuses from ``default_group``.
    - Group names (e.g. "open") expand to their statuses.
    - Unknown statuses are ignored.
    - Order is preserved and duplicates are removed.
    """
    if raw_statuses is None:
        return list(get_status_group(default_group))

    seen: set[str] = set()
    normalized: list[str] = []

    for raw in raw_statuses:
        name = raw.strip().lower()
        for status in MATCH_STATUS_GROUPS.get(name, (name,)):
            if not status or status in seen or status not in ALL_MATCH_STATUSES:
                continue
            seen.add(status)
            normalized.append(status)

    if normalized:
        return normalized

    return list(get_status_group(default_group))
