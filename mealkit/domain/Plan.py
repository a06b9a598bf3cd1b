"""Plan domain entities: family week-plan flags, derived planned recipes and the active week cursor."""
from datetime import date, datetime, timedelta
from typing import Optional

from mealkit.utilities.constants import DATE_FORMAT, DAYS_OF_WEEK


def parse_date(value) -> Optional[date]:
    '''Read a YYYY-MM-DD string (or date/datetime); None when unreadable.'''
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return datetime.strptime(value.strip()[:10], DATE_FORMAT).date()
    except ValueError:
        return None


def format_date(d: date) -> str:
    return d.strftime(DATE_FORMAT)


def week_start_of(d: date) -> date:
    '''Monday of the week containing d.'''
    return d - timedelta(days=day_index(d))


def day_index(d: date) -> int:
    '''Monday=0 .. Sunday=6.'''
    # Sunday=0 weekday shifted so Monday=0
    return (d.isoweekday() % 7 + 6) % 7


def day_name(d: date) -> str:
    return DAYS_OF_WEEK[day_index(d)]


class WeekPlanData:
    '''Family-shared planning flag stored on each recipe's family record.'''

    def __init__(self, is_planned: bool = False, assigned_date: Optional[str] = None,
                 added_by: Optional[str] = None, added_by_name: Optional[str] = None,
                 added_at: Optional[str] = None, meal_type: Optional[str] = None,
                 meal_time: Optional[str] = None):
        self.is_planned = is_planned
        self.assigned_date = assigned_date
        self.added_by = added_by
        self.added_by_name = added_by_name
        self.added_at = added_at
        self.meal_type = meal_type
        self.meal_time = meal_time

    @staticmethod
    def from_dict(data):
        d = data if isinstance(data, dict) else {}
        return WeekPlanData(
            is_planned=d.get("isPlanned") is True,
            assigned_date=d.get("assignedDate") or None,
            added_by=d.get("addedBy"),
            added_by_name=d.get("addedByName"),
            added_at=d.get("addedAt"),
            meal_type=d.get("mealType"),
            meal_time=d.get("mealTime"),
        )

    def to_dict(self):
        out = {"isPlanned": self.is_planned}
        for key, val in (("assignedDate", self.assigned_date), ("addedBy", self.added_by),
                         ("addedByName", self.added_by_name), ("addedAt", self.added_at),
                         ("mealType", self.meal_type), ("mealTime", self.meal_time)):
            if val is not None:
                out[key] = val
        return out


class PlannedRecipe:
    '''Derived "recipe X is assigned to day Y" entry. Holds no state of its own.'''

    def __init__(self, recipe_id: str, day: str, date: str, week_start: Optional[str] = None,
                 meal_type: Optional[str] = None, meal_time: Optional[str] = None,
                 added_by: Optional[str] = None, added_by_name: Optional[str] = None):
        self.recipe_id = recipe_id
        self.day = day
        self.date = date
        self.week_start = week_start
        self.meal_type = meal_type
        self.meal_time = meal_time
        self.added_by = added_by
        self.added_by_name = added_by_name

    @property
    def key(self) -> str:
        '''Cache key: one entry per recipe per calendar day.'''
        return f"{self.recipe_id}_{self.date}"

    def calendar_date(self) -> Optional[date]:
        return parse_date(self.date)

    def __eq__(self, other) -> bool:
        if not isinstance(other, PlannedRecipe):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"PlannedRecipe({self.recipe_id} on {self.day} {self.date}, week {self.week_start})"

    @staticmethod
    def from_dict(data):
        d = data if isinstance(data, dict) else {}
        return PlannedRecipe(
            recipe_id=str(d.get("recipeId") or ""),
            day=str(d.get("day") or ""),
            date=str(d.get("date") or ""),
            week_start=d.get("weekStart") or None,
            meal_type=d.get("mealType"),
            meal_time=d.get("mealTime"),
            added_by=d.get("addedBy"),
            added_by_name=d.get("addedByName"),
        )

    def to_dict(self):
        out = {"recipeId": self.recipe_id, "day": self.day, "date": self.date}
        if self.week_start:
            out["weekStart"] = self.week_start
        for key, val in (("mealType", self.meal_type), ("mealTime", self.meal_time),
                         ("addedBy", self.added_by), ("addedByName", self.added_by_name)):
            if val is not None:
                out[key] = val
        return out


class WeekState:
    '''The Monday the user is currently viewing.'''

    def __init__(self, active_week_start: Optional[str] = None):
        self.active_week_start = active_week_start or format_date(week_start_of(date.today()))

    def to_dict(self):
        return {"activeWeekStart": self.active_week_start}

    @staticmethod
    def from_dict(data):
        d = data if isinstance(data, dict) else {}
        return WeekState(d.get("activeWeekStart"))
