"""Ingredient domain entities: per-recipe demands and merged, shoppable grocery lines."""
from typing import List, Optional, Union

from mealkit.utilities.constants import DEFAULT_CATEGORY

Amount = Union[int, float, str]


def to_number(value) -> float:
    '''Best-effort numeric reading of an amount; free-text quantities count as 0.'''
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return 0


class RecipeContribution:
    '''A single recipe's share of a grocery line, with the amount as written in the recipe.'''

    def __init__(self, recipe_id: str = "", recipe_title: str = "", original_amount: str = ""):
        self.recipe_id = recipe_id
        self.recipe_title = recipe_title
        self.original_amount = original_amount

    def copy(self) -> "RecipeContribution":
        return RecipeContribution(self.recipe_id, self.recipe_title, self.original_amount)

    def __eq__(self, other) -> bool:
        if not isinstance(other, RecipeContribution):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"{self.recipe_title} ({self.recipe_id}): {self.original_amount}"

    @staticmethod
    def from_dict(data) -> "RecipeContribution":
        d = data if isinstance(data, dict) else {}
        return RecipeContribution(
            recipe_id=str(d.get("recipeId") or ""),
            recipe_title=str(d.get("recipeTitle") or ""),
            original_amount=str(d.get("originalAmount") or ""),
        )

    def to_dict(self):
        return {
            "recipeId": self.recipe_id,
            "recipeTitle": self.recipe_title,
            "originalAmount": self.original_amount,
        }


class IngredientDemand:
    '''One ingredient as authored in one recipe.'''

    def __init__(self, name: str = "", amount: Amount = 0, unit: str = "",
                 category: Optional[str] = None, recipe_id: str = "", recipe_title: str = ""):
        self.name = name
        self.amount = amount
        self.unit = unit
        self.category = category or DEFAULT_CATEGORY
        self.recipe_id = recipe_id
        self.recipe_title = recipe_title

    def original_amount(self) -> str:
        return f"{self.amount} {self.unit}".strip()

    def to_shoppable(self) -> "ShoppableIngredient":
        '''Seed a one-source grocery line from this demand.'''
        return ShoppableIngredient(
            name=self.name,
            purchase_amount=to_number(self.amount),
            purchase_unit=self.unit,
            category=self.category,
            sources=[RecipeContribution(self.recipe_id, self.recipe_title, self.original_amount())],
        )

    def __repr__(self) -> str:
        return f"{self.name} - {self.amount} {self.unit} ({self.recipe_title})"


class StructuredIngredient:
    '''Legacy flat grocery shape: a parsed ingredient with a list of contributing recipe ids.'''

    def __init__(self, name: str = "", amount: Amount = 0, unit: str = "", category: Optional[str] = None,
                 original: str = "", source_recipe_ids: Optional[List[str]] = None):
        self.name = name
        self.amount = amount
        self.unit = unit
        self.category = category or DEFAULT_CATEGORY
        self.original = original
        self.source_recipe_ids = source_recipe_ids[:] if source_recipe_ids else []

    @staticmethod
    def from_dict(data) -> "StructuredIngredient":
        d = data if isinstance(data, dict) else {}
        return StructuredIngredient(
            name=str(d.get("name") or ""),
            amount=d.get("amount", 0),
            unit=str(d.get("unit") or ""),
            category=d.get("category"),
            original=str(d.get("original") or ""),
            source_recipe_ids=list(d.get("sourceRecipeIds") or []),
        )

    def to_dict(self):
        return {
            "original": self.original,
            "name": self.name,
            "amount": self.amount,
            "unit": self.unit,
            "category": self.category,
            "sourceRecipeIds": list(self.source_recipe_ids),
        }


class ShoppableIngredient:
    '''A merged, purchase-ready grocery line with per-recipe source attribution.'''

    def __init__(self, name: str = "", purchase_amount: float = 0, purchase_unit: str = "",
                 category: Optional[str] = None, sources: Optional[List[RecipeContribution]] = None):
        self.name = name
        self.purchase_amount = purchase_amount
        self.purchase_unit = purchase_unit
        self.category = category or DEFAULT_CATEGORY
        self.sources = sources[:] if sources else []

    def copy(self) -> "ShoppableIngredient":
        '''Clone including the sources list so merges never alias the input.'''
        return ShoppableIngredient(
            name=self.name,
            purchase_amount=self.purchase_amount,
            purchase_unit=self.purchase_unit,
            category=self.category,
            sources=[s.copy() for s in self.sources],
        )

    def has_source(self, recipe_id: str) -> bool:
        return any(s.recipe_id == recipe_id for s in self.sources)

    def __str__(self) -> str:
        titles = ", ".join(s.recipe_title for s in self.sources)
        return f"{self.name} - {self.purchase_amount} {self.purchase_unit} [{self.category}] ({titles})"

    __repr__ = __str__

    @staticmethod
    def from_dict(data) -> "ShoppableIngredient":
        '''Creates a ShoppableIngredient from a document/AI dict. Ignores unknown keys.'''
        d = data if isinstance(data, dict) else {}
        raw_sources = d.get("sources")
        sources = [RecipeContribution.from_dict(s) for s in raw_sources] if isinstance(raw_sources, list) else []
        return ShoppableIngredient(
            name=str(d.get("name") or ""),
            purchase_amount=to_number(d.get("purchaseAmount", 0)),
            purchase_unit=str(d.get("purchaseUnit") or ""),
            category=d.get("category") or None,
            sources=sources,
        )

    def to_dict(self):
        return {
            "name": self.name,
            "purchaseAmount": self.purchase_amount,
            "purchaseUnit": self.purchase_unit,
            "category": self.category,
            "sources": [s.to_dict() for s in self.sources],
        }
