# plate_palette/services/variety_tracker.py
"""
Weekly variety tracking over food-log rows.

Rows are the plain dicts returned by the store (``fdc_id``, ``logged_date``
and friends). Variety is counted per week by distinct food identifier: the
same food logged on Monday and again on Wednesday counts once.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from plate_palette.services.week_window import WeekWindow, parse_date


@dataclass(frozen=True)
class VarietySummary:
    unique_count: int
    weekly_goal: int
    per_day_presence: Tuple[bool, ...]
    goal_met: bool
    food_ids: frozenset = field(default_factory=frozenset)

    @property
    def progress_percent(self) -> float:
        if self.weekly_goal <= 0:
            return 100.0
        return round(min(self.unique_count / self.weekly_goal * 100, 100.0), 1)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "unique_count": self.unique_count,
            "weekly_goal": self.weekly_goal,
            "goal_met": self.goal_met,
            "progress_percent": self.progress_percent,
            "per_day_presence": list(self.per_day_presence),
        }


def food_id_of(entry: Dict[str, Any]) -> Optional[int]:
    raw = entry.get("fdc_id")
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def entries_in_window(
    entries: Iterable[Dict[str, Any]], window: WeekWindow
) -> List[Dict[str, Any]]:
    out = []
    for entry in entries:
        logged = entry.get("logged_date")
        if not logged:
            continue
        try:
            if window.contains(logged):
                out.append(entry)
        except ValueError:
            continue
    return out


def unique_food_ids(entries: Iterable[Dict[str, Any]], window: WeekWindow) -> Set[int]:
    ids = set()
    for entry in entries_in_window(entries, window):
        fid = food_id_of(entry)
        if fid is not None:
            ids.add(fid)
    return ids


def track_variety(
    entries: Iterable[Dict[str, Any]], window: WeekWindow, weekly_goal: int
) -> VarietySummary:
    in_week = entries_in_window(entries, window)
    ids = {fid for fid in (food_id_of(e) for e in in_week) if fid is not None}

    presence = [False] * 7
    for entry in in_week:
        presence[window.day_index(entry["logged_date"])] = True

    return VarietySummary(
        unique_count=len(ids),
        weekly_goal=weekly_goal,
        per_day_presence=tuple(presence),
        goal_met=len(ids) >= weekly_goal,
        food_ids=frozenset(ids),
    )


def group_by_day(
    entries: Iterable[Dict[str, Any]], window: WeekWindow
) -> Dict[str, List[Dict[str, Any]]]:
    """Map every date of the window (ISO string, Monday first) to its entries."""
    grouped: Dict[str, List[Dict[str, Any]]] = {d.isoformat(): [] for d in window.days()}
    for entry in entries_in_window(entries, window):
        grouped[parse_date(entry["logged_date"]).isoformat()].append(entry)
    return grouped


def partition_new_foods(
    candidates: Iterable[Dict[str, Any]],
    existing: Iterable[Dict[str, Any]],
    window: WeekWindow,
) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """
    Split candidate foods into (novel, already_logged).

    A candidate is already logged when its food id is among the stored
    entries of the window, or when an earlier candidate in the same batch
    carries the same id.
    """
    seen = unique_food_ids(existing, window)
    novel: List[Dict[str, Any]] = []
    duplicates: List[Dict[str, Any]] = []
    for candidate in candidates:
        fid = food_id_of(candidate)
        if fid in seen:
            duplicates.append(candidate)
            continue
        seen.add(fid)
        novel.append(candidate)
    return novel, duplicates
