"""Next-meal context: which planned meal comes up next and how close it is."""
from datetime import datetime, time as _time
from typing import Dict, Iterable, Optional

from mealkit.domain.Plan import PlannedRecipe
from mealkit.utilities.constants import DEFAULT_COOKING_THRESHOLD, DEFAULT_MEAL_TIMES

MODE_PLANNING = "planning"
MODE_PRE_COOKING = "pre-cooking"
MODE_COOKING = "cooking"


def meal_datetime(entry: PlannedRecipe) -> Optional[datetime]:
    '''Date of the entry at its meal time (default by meal type, dinner otherwise).'''
    d = entry.calendar_date()
    if d is None:
        return None
    default = DEFAULT_MEAL_TIMES.get((entry.meal_type or "").lower(), DEFAULT_MEAL_TIMES["dinner"])
    raw = entry.meal_time or default
    try:
        hours, minutes = (int(p) for p in raw.split(":")[:2])
    except ValueError:
        hours, minutes = (int(p) for p in DEFAULT_MEAL_TIMES["dinner"].split(":"))
    return datetime.combine(d, _time(hours, minutes))


def next_upcoming_meal(planned: Iterable[PlannedRecipe], recipe_ids: Iterable[str], now: Optional[datetime] = None,
                       cooking_threshold: int = DEFAULT_COOKING_THRESHOLD) -> Optional[Dict]:
    """Earliest future meal among planned entries whose recipe is known.

    Mode is "cooking" within 60 minutes of the meal, "pre-cooking" up to
    cooking_threshold minutes before, "planning" otherwise.
    """
    now = now or datetime.now()
    known = set(recipe_ids)
    upcoming = []
    for entry in planned:
        if entry.recipe_id not in known:
            continue
        when = meal_datetime(entry)
        if when is None:
            continue
        minutes_until = int((when - now).total_seconds() // 60)
        if minutes_until > 0:
            upcoming.append((when, minutes_until, entry))
    if not upcoming:
        return None
    when, minutes_until, entry = min(upcoming, key=lambda item: item[0])

    mode = MODE_PLANNING
    if minutes_until <= 60:
        mode = MODE_COOKING
    elif minutes_until <= max(cooking_threshold, 60):
        mode = MODE_PRE_COOKING
    return {
        "plannedRecipe": entry,
        "dateTime": when,
        "minutesUntil": minutes_until,
        "isToday": when.date() == now.date(),
        "isTomorrow": (when.date() - now.date()).days == 1,
        "mode": mode,
    }


def format_time_until_meal(minutes: int) -> str:
    if minutes < 0:
        return "now"
    hours, mins = divmod(minutes, 60)
    if hours and mins:
        return f"in {hours}h {mins}m"
    if hours:
        return f"in {hours}h"
    return f"in {mins}m"


__all__ = ['meal_datetime', 'next_upcoming_meal', 'format_time_until_meal',
           'MODE_PLANNING', 'MODE_PRE_COOKING', 'MODE_COOKING']
