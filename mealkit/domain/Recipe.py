"""Recipe domain entity: the subset of a stored recipe the grocery engine reads."""
from typing import Any, Dict, List, Optional

from mealkit.domain.Ingredient import IngredientDemand, StructuredIngredient


class BasicIngredient:
    '''Free-text ingredient line as authored ("2 cups", "flour").'''

    def __init__(self, name: str = "", amount: str = "", prep: str = ""):
        self.name = name
        self.amount = amount
        self.prep = prep

    @staticmethod
    def from_dict(data):
        d = data if isinstance(data, dict) else {}
        return BasicIngredient(str(d.get("name") or ""), str(d.get("amount") or ""), str(d.get("prep") or ""))

    def to_dict(self):
        out = {"name": self.name, "amount": self.amount}
        if self.prep:
            out["prep"] = self.prep
        return out


class Recipe:
    def __init__(self, id: str = "", title: str = "", ingredients: Optional[List[BasicIngredient]] = None,
                 structured_ingredients: Optional[List[StructuredIngredient]] = None,
                 estimated_cost: Optional[float] = None, this_week: bool = False,
                 extra: Optional[Dict[str, Any]] = None):
        self.id = id
        self.title = title
        self.ingredients = ingredients[:] if ingredients else []
        self.structured_ingredients = structured_ingredients[:] if structured_ingredients else []
        self.estimated_cost = estimated_cost
        self.this_week = this_week
        # Fields the engine does not interpret (steps, images, ...) round-trip untouched
        self.extra = dict(extra) if extra else {}

    def __str__(self) -> str:
        return f"{self.title} ({self.id}) - {len(self.structured_ingredients) or len(self.ingredients)} ingredients"

    __repr__ = __str__

    def demands(self) -> List[IngredientDemand]:
        '''Structured ingredients of this recipe as per-recipe demands.'''
        return [
            IngredientDemand(
                name=ing.name,
                amount=ing.amount,
                unit=ing.unit,
                category=ing.category,
                recipe_id=self.id,
                recipe_title=self.title,
            )
            for ing in self.structured_ingredients
        ]

    _KNOWN = {"id", "title", "ingredients", "structuredIngredients", "estimatedCost", "thisWeek"}

    @staticmethod
    def from_dict(data):
        d = dict(data) if isinstance(data, dict) else {}
        cost = d.get("estimatedCost")
        return Recipe(
            id=str(d.get("id") or ""),
            title=str(d.get("title") or ""),
            ingredients=[BasicIngredient.from_dict(i) for i in d.get("ingredients") or []],
            structured_ingredients=[StructuredIngredient.from_dict(i) for i in d.get("structuredIngredients") or []],
            estimated_cost=cost if isinstance(cost, (int, float)) and not isinstance(cost, bool) else None,
            this_week=bool(d.get("thisWeek", False)),
            extra={k: v for k, v in d.items() if k not in Recipe._KNOWN},
        )

    def to_dict(self):
        out = dict(self.extra)
        out.update({
            "id": self.id,
            "title": self.title,
            "ingredients": [i.to_dict() for i in self.ingredients],
        })
        if self.structured_ingredients:
            out["structuredIngredients"] = [i.to_dict() for i in self.structured_ingredients]
        if self.estimated_cost is not None:
            out["estimatedCost"] = self.estimated_cost
        if self.this_week:
            out["thisWeek"] = True
        return out
