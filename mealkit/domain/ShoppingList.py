"""Grocery list aggregates: presentation buckets and the persisted AI-generated list document."""
from datetime import datetime, timezone
from typing import List, Optional

from mealkit.domain.Ingredient import ShoppableIngredient

GROCERY_LIST_COLLECTION = "grocery_lists"
LIST_STATUSES = ("processing", "complete", "error")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def grocery_list_id(user_id: str, week_start: str) -> str:
    '''Document id of a user's list for one week.'''
    return f"{user_id}_{week_start}"


class GroceryCategory:
    def __init__(self, name: str, items: Optional[List[ShoppableIngredient]] = None):
        self.name = name
        self.items = items if items is not None else []

    def __repr__(self) -> str:
        return f"{self.name} ({len(self.items)} items)"

    def to_dict(self):
        return {"name": self.name, "items": [i.to_dict() for i in self.items]}


class GroceryList:
    def __init__(self, user_id: str, week_start_date: str, ingredients: Optional[List[ShoppableIngredient]] = None,
                 status: str = "processing", created_at: Optional[str] = None, updated_at: Optional[str] = None,
                 error: Optional[str] = None):
        if status not in LIST_STATUSES:
            raise ValueError(f"Unknown grocery list status: {status}")
        self.user_id = user_id
        self.week_start_date = week_start_date
        self.ingredients = ingredients[:] if ingredients else []
        self.status = status
        self.created_at = created_at or _now_iso()
        self.updated_at = updated_at or self.created_at
        self.error = error

    @property
    def id(self) -> str:
        return grocery_list_id(self.user_id, self.week_start_date)

    def touch(self):
        self.updated_at = _now_iso()

    def __str__(self) -> str:
        return f"GroceryList {self.id} [{self.status}] - {len(self.ingredients)} items"

    __repr__ = __str__

    @staticmethod
    def from_dict(data):
        d = data if isinstance(data, dict) else {}
        status = d.get("status") if d.get("status") in LIST_STATUSES else "error"
        return GroceryList(
            user_id=str(d.get("userId") or ""),
            week_start_date=str(d.get("weekStartDate") or ""),
            ingredients=[ShoppableIngredient.from_dict(i) for i in d.get("ingredients") or []],
            status=status,
            created_at=d.get("createdAt"),
            updated_at=d.get("updatedAt"),
            error=d.get("error"),
        )

    def to_dict(self):
        out = {
            "id": self.id,
            "userId": self.user_id,
            "weekStartDate": self.week_start_date,
            "ingredients": [i.to_dict() for i in self.ingredients],
            "status": self.status,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.error:
            out["error"] = self.error
        return out
