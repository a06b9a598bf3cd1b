"""Local plan cache: the active week cursor and the flat planned-entry map.

Persisted to PLAN_FILE as::

    {"weekState": {"activeWeekStart": "2025-01-06"},
     "plannedRecipes": {"<recipeId>_<date>": {PlannedRecipe dict}, ...}}
"""
import json
import logging
import os
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Iterable, List, Optional, Union

from mealkit.domain.Plan import PlannedRecipe, WeekState, format_date, parse_date, week_start_of
from mealkit.infra.paths import PLAN_FILE
from mealkit.logic.planning.week_projector import filter_active, project
from mealkit.utilities.constants import DAYS_OF_WEEK

logger = logging.getLogger(__name__)


class PlanRepository:
    def __init__(self, plan_file: Union[str, Path, None] = None):
        self.plan_file = Path(plan_file) if plan_file is not None else PLAN_FILE

    # --- persistence ---

    def _load(self) -> dict:
        try:
            with open(self.plan_file, "r", encoding="utf-8") as f:
                store = json.load(f) or {}
        except FileNotFoundError:
            store = {}
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON in plan file %s: %s", self.plan_file, e)
            store = {}
        store.setdefault("weekState", {})
        store.setdefault("plannedRecipes", {})
        return store

    def _save(self, store: dict) -> None:
        os.makedirs(self.plan_file.parent, exist_ok=True)
        with open(self.plan_file, "w", encoding="utf-8") as f:
            json.dump(store, f, indent=2, ensure_ascii=False)

    # --- week cursor ---

    def get_week_state(self) -> WeekState:
        return WeekState.from_dict(self._load()["weekState"])

    def active_week_start(self) -> str:
        return self.get_week_state().active_week_start

    def switch_week_context(self, target: Union[date, datetime, str, None] = None) -> str:
        '''Point the cursor at the Monday of target (default: this week).'''
        d = parse_date(target) if target is not None else date.today()
        if d is None:
            raise ValueError(f"Unreadable date: {target!r}")
        monday = format_date(week_start_of(d))
        store = self._load()
        store["weekState"]["activeWeekStart"] = monday
        self._save(store)
        return monday

    # --- planned entries ---

    def all_planned(self) -> List[PlannedRecipe]:
        entries = self._load()["plannedRecipes"]
        return [PlannedRecipe.from_dict(v) for v in entries.values() if isinstance(v, dict)]

    def current_week_recipes(self) -> List[PlannedRecipe]:
        store = self._load()
        state = WeekState.from_dict(store["weekState"])
        entries = [PlannedRecipe.from_dict(v) for v in store["plannedRecipes"].values() if isinstance(v, dict)]
        return filter_active(entries, state.active_week_start)

    def add_recipe_to_day(self, recipe_id: str, day: str, meal_type: Optional[str] = None) -> PlannedRecipe:
        '''Plan recipe_id on a weekday of the active week (once per recipe per day).'''
        if day not in DAYS_OF_WEEK:
            raise ValueError(f"Unknown day: {day}")
        store = self._load()
        active = WeekState.from_dict(store["weekState"]).active_week_start
        target = parse_date(active) + timedelta(days=DAYS_OF_WEEK.index(day))
        entry = PlannedRecipe(recipe_id, day, format_date(target), week_start=active, meal_type=meal_type)
        store["plannedRecipes"][entry.key] = entry.to_dict()
        self._save(store)
        return entry

    def remove_recipe_from_day(self, recipe_id: str, date_str: str) -> bool:
        store = self._load()
        removed = store["plannedRecipes"].pop(f"{recipe_id}_{date_str}", None) is not None
        if removed:
            self._save(store)
        return removed

    def remove_entries(self, keys: Iterable[str]) -> int:
        store = self._load()
        count = 0
        for key in keys:
            if store["plannedRecipes"].pop(key, None) is not None:
                count += 1
        if count:
            self._save(store)
        return count

    def unplan_recipe(self, recipe_id: str) -> int:
        '''Remove every planned instance of a recipe.'''
        prefix = f"{recipe_id}_"
        keys = [k for k in self._load()["plannedRecipes"] if k.startswith(prefix)]
        return self.remove_entries(keys)

    def get_planned_days(self, recipe_id: str) -> List[str]:
        return [p.day for p in self.current_week_recipes() if p.recipe_id == recipe_id]

    def is_planned_for_active_week(self, recipe_id: str, days: Optional[List[str]] = None) -> bool:
        planned = self.get_planned_days(recipe_id)
        if days is not None:
            return any(d in days for d in planned)
        return bool(planned)

    def reconcile(self, records: Iterable[dict]) -> List[PlannedRecipe]:
        '''Replace the cache by a fresh projection of the family records.'''
        projected = project(records)
        store = self._load()
        store["plannedRecipes"] = {p.key: p.to_dict() for p in projected}
        self._save(store)
        return projected


__all__ = ['PlanRepository']
