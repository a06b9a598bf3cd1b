"""Week plan projector.

Derives "recipe -> day" assignments from the family-scoped per-recipe records
and filters them to the week the user is viewing. Everything here is a pure
function over the current snapshot; nothing is cached between calls.
"""
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Union

from mealkit.domain.Plan import (
    PlannedRecipe, WeekPlanData, day_index, day_name, format_date, parse_date, week_start_of,
)
from mealkit.utilities.constants import DAYS_OF_WEEK


def _week_key(value: Union[str, date, None]) -> Optional[str]:
    d = parse_date(value)
    return format_date(week_start_of(d)) if d else None


def project(records: Iterable[Dict[str, Any]]) -> List[PlannedRecipe]:
    """Project family recipe records onto planned recipes.

    A record contributes one entry when ``weekPlan.isPlanned`` is true and
    ``weekPlan.assignedDate`` is a readable date. ``day`` and ``weekStart``
    are always recomputed from that date.
    """
    planned: List[PlannedRecipe] = []
    for record in records:
        if not isinstance(record, dict):
            continue
        plan = WeekPlanData.from_dict(record.get("weekPlan"))
        if not plan.is_planned or not plan.assigned_date:
            continue
        d = parse_date(plan.assigned_date)
        recipe_id = record.get("id")
        if d is None or not recipe_id:
            continue
        planned.append(PlannedRecipe(
            recipe_id=str(recipe_id),
            day=day_name(d),
            date=format_date(d),
            week_start=format_date(week_start_of(d)),
            meal_type=plan.meal_type,
            meal_time=plan.meal_time,
            added_by=plan.added_by,
            added_by_name=plan.added_by_name,
        ))
    return planned


def in_week(entry: PlannedRecipe, week_start: str) -> bool:
    '''Stored weekStart first; when that does not match, the Monday recomputed from the date.'''
    if entry.week_start and entry.week_start == week_start:
        return True
    return _week_key(entry.date) == week_start


def filter_active(entries: Iterable[PlannedRecipe], active_week_start: Union[str, date]) -> List[PlannedRecipe]:
    '''Entries that fall in the active week, tolerant of stale or missing weekStart.'''
    if isinstance(active_week_start, date):
        active_week_start = format_date(active_week_start)
    return [e for e in entries if in_week(e, active_week_start)]


def heal(entry: PlannedRecipe) -> PlannedRecipe:
    '''Copy of entry with day and weekStart recomputed from its date.'''
    d = entry.calendar_date()
    if d is None:
        return entry
    return PlannedRecipe(
        recipe_id=entry.recipe_id,
        day=day_name(d),
        date=format_date(d),
        week_start=format_date(week_start_of(d)),
        meal_type=entry.meal_type,
        meal_time=entry.meal_time,
        added_by=entry.added_by,
        added_by_name=entry.added_by_name,
    )


def distinct_weeks(entries: Iterable[PlannedRecipe], today: Optional[date] = None) -> List[str]:
    '''Sorted week starts with planned meals, always including this and next week.'''
    today = today or date.today()
    this_week = week_start_of(today)
    weeks = {format_date(this_week), format_date(this_week + timedelta(weeks=1))}
    for e in entries:
        key = _week_key(e.date) or e.week_start
        if key:
            weeks.add(key)
    return sorted(weeks)


def date_label(d: date, today: date) -> str:
    """Compact label relative to today's week (not the viewed week).

    Same week -> "Mon"; next week -> "Next Mon"; otherwise "10/27 Mon".
    """
    abbrev = DAYS_OF_WEEK[day_index(d)][:3]
    this_week = week_start_of(today)
    entry_week = week_start_of(d)
    if entry_week == this_week:
        return abbrev
    if entry_week == this_week + timedelta(weeks=1):
        return f"Next {abbrev}"
    return f"{d.month}/{d.day} {abbrev}"


def planned_dates_for_recipe(entries: Iterable[PlannedRecipe], recipe_id: str,
                             today: Optional[date] = None) -> List[Dict[str, str]]:
    '''Every planned date of one recipe, in date order, with its compact label.'''
    today = today or date.today()
    out = []
    for e in entries:
        if e.recipe_id != recipe_id:
            continue
        d = e.calendar_date()
        if d is None:
            continue
        out.append({"dateStr": format_date(d), "day": day_name(d), "label": date_label(d, today)})
    out.sort(key=lambda item: item["dateStr"])
    return out


__all__ = [
    'project', 'filter_active', 'in_week', 'heal', 'distinct_weeks', 'date_label',
    'planned_dates_for_recipe',
]
