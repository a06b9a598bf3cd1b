"""Grocery list builder.

Aggregates ingredient demand across recipes into shoppable lines and groups
them into store-aisle categories:

- merge_shoppable_ingredients(items): dedupe by normalized name+unit, summing
  amounts and keeping one source per recipe.
- build_grocery_items(recipes): per-recipe demands -> merged lines.
- categorize_shoppable_ingredients(items): ordered category buckets.
"""
import logging
import re
from collections import OrderedDict
from typing import Any, Dict, Iterable, List

from mealkit.domain.Ingredient import (
    IngredientDemand, RecipeContribution, ShoppableIngredient, StructuredIngredient, to_number,
)
from mealkit.domain.Recipe import Recipe
from mealkit.domain.ShoppingList import GroceryCategory
from mealkit.utilities.constants import (
    BASIC_UNIT, CATEGORY_ORDER, DEFAULT_CATEGORY, SOURCE_MATCH_STOP_WORDS,
)

logger = logging.getLogger(__name__)


def _normalize(name: str) -> str:
    return (name or '').strip().lower()


def merge_key(name: str, unit: str) -> str:
    '''Two lines are the same purchase iff normalized name and unit are both equal.'''
    return f"{_normalize(name)}|{_normalize(unit)}"


def merge_shoppable_ingredients(ingredients: Iterable[ShoppableIngredient]) -> List[ShoppableIngredient]:
    """Merge shoppable lines that share a name+unit key.

    Amounts are summed; sources are unioned by recipe id (first occurrence
    wins). Distinct units always stay distinct lines, no unit conversion is
    attempted. Input objects are never mutated.
    """
    merged: Dict[str, ShoppableIngredient] = OrderedDict()
    for ing in ingredients:
        key = merge_key(ing.name, ing.purchase_unit)
        existing = merged.get(key)
        if existing is None:
            first = ing.copy()
            first.purchase_amount = to_number(ing.purchase_amount)
            merged[key] = first
            continue
        existing.purchase_amount += to_number(ing.purchase_amount)
        for src in ing.sources:
            if not existing.has_source(src.recipe_id):
                existing.sources.append(src.copy())
    return list(merged.values())


def merge_demands(demands: Iterable[IngredientDemand]) -> List[ShoppableIngredient]:
    '''Per-recipe demands -> merged shoppable lines.'''
    return merge_shoppable_ingredients(d.to_shoppable() for d in demands)


def merge_structured_ingredients(items: Iterable[StructuredIngredient]) -> List[StructuredIngredient]:
    '''Legacy flat shape: same key rule, recipe ids unioned in first-seen order.'''
    merged: Dict[str, StructuredIngredient] = OrderedDict()
    for ing in items:
        key = merge_key(ing.name, ing.unit)
        existing = merged.get(key)
        if existing is None:
            merged[key] = StructuredIngredient(
                name=ing.name, amount=to_number(ing.amount), unit=ing.unit,
                category=ing.category, original=ing.original, source_recipe_ids=ing.source_recipe_ids,
            )
            continue
        existing.amount += to_number(ing.amount)
        for rid in ing.source_recipe_ids:
            if rid not in existing.source_recipe_ids:
                existing.source_recipe_ids.append(rid)
    return list(merged.values())


def _basic_demands(recipe: Recipe) -> List[ShoppableIngredient]:
    lines = []
    for ing in recipe.ingredients:
        name = _normalize(ing.name) or 'unknown'
        original = f"{ing.amount} {ing.name}" if ing.amount else ing.name
        lines.append(ShoppableIngredient(
            name=name,
            # free-text quantities count once per recipe
            purchase_amount=1,
            purchase_unit=BASIC_UNIT,
            category=DEFAULT_CATEGORY,
            sources=[RecipeContribution(recipe.id, recipe.title, original)],
        ))
    return lines


def build_grocery_items(recipes: Iterable[Recipe]) -> List[ShoppableIngredient]:
    """Aggregate ingredients of several recipes into one shoppable list.

    Recipes with structured ingredients contribute typed demands; recipes
    with only free-text ingredients contribute one pseudo-unit line per
    ingredient. Amounts of a free-text line are added only when another
    recipe contributes it (the same recipe listing it twice counts once).
    """
    lines: List[ShoppableIngredient] = []
    for recipe in recipes:
        if recipe.structured_ingredients:
            lines.extend(d.to_shoppable() for d in recipe.demands())
        elif recipe.ingredients:
            seen = set()
            for line in _basic_demands(recipe):
                if line.name in seen:
                    continue
                seen.add(line.name)
                lines.append(line)
    return merge_shoppable_ingredients(lines)


def categorize_shoppable_ingredients(ingredients: Iterable[ShoppableIngredient]) -> List[GroceryCategory]:
    """Group lines into store-aisle buckets.

    Known categories come first in CATEGORY_ORDER, then any other category
    name in first-seen order. Empty buckets are omitted; items keep their
    input order inside a bucket.
    """
    buckets: Dict[str, List[ShoppableIngredient]] = OrderedDict((c, []) for c in CATEGORY_ORDER)
    for ing in ingredients:
        buckets.setdefault(ing.category or DEFAULT_CATEGORY, []).append(ing)
    return [GroceryCategory(name, items) for name, items in buckets.items() if items]


# --- Source attribution for AI-converted lines ---

def build_source_map(recipes: Iterable[Recipe]) -> Dict[str, List[RecipeContribution]]:
    '''Normalized ingredient name -> contributions of every recipe listing it.'''
    source_map: Dict[str, List[RecipeContribution]] = OrderedDict()

    def _add(name: str, contribution: RecipeContribution):
        sources = source_map.setdefault(name, [])
        if not any(s.recipe_id == contribution.recipe_id for s in sources):
            sources.append(contribution)

    for recipe in recipes:
        for ing in recipe.structured_ingredients:
            name = _normalize(ing.name)
            if name:
                original = f"{ing.amount or ''} {ing.unit or ''} {ing.name}".strip()
                _add(name, RecipeContribution(recipe.id, recipe.title, re.sub(r'\s+', ' ', original)))
        for ing in recipe.ingredients:
            name = _normalize(ing.name)
            if name:
                original = f"{ing.amount} {ing.name}" if ing.amount else ing.name
                _add(name, RecipeContribution(recipe.id, recipe.title, original))
    return source_map


def _base_words(name: str) -> set:
    words = [w for w in re.split(r'[\s,]+', _normalize(name)) if w]
    return {w for w in words if w not in SOURCE_MATCH_STOP_WORDS and len(w) > 2}


def _names_match(first: str, second: str) -> bool:
    other = _base_words(second)
    for word in _base_words(first):
        if word in other:
            return True
        if any(word in o or o in word for o in other):
            return True
    return False


def find_matching_sources(name: str, source_map: Dict[str, List[RecipeContribution]]) -> List[RecipeContribution]:
    '''Exact name lookup, then word-based fuzzy matching ("garlic cloves" ~ "garlic").'''
    normalized = _normalize(name)
    if normalized in source_map:
        return [s.copy() for s in source_map[normalized]]
    matches: List[RecipeContribution] = []
    for key, sources in source_map.items():
        if not _names_match(normalized, key):
            continue
        for src in sources:
            if not any(m.recipe_id == src.recipe_id for m in matches):
                matches.append(src.copy())
    return matches


def assign_missing_sources(ingredients: Iterable[ShoppableIngredient],
                           source_map: Dict[str, List[RecipeContribution]]) -> List[ShoppableIngredient]:
    '''Fill empty source lists from recipe data; lines with sources are kept as returned.'''
    result = []
    for ing in ingredients:
        line = ing.copy()
        if not line.sources:
            line.sources = find_matching_sources(line.name, source_map)
            if not line.sources:
                logger.warning("No matching recipes found for %r", line.name)
        result.append(line)
    return result


# --- Companion views ---

def calculate_cost_estimate(recipes: Iterable[Recipe]) -> Dict[str, Any]:
    '''Sum persisted per-recipe cost estimates and report coverage.'''
    total = 0.0
    has_estimate = 0
    missing = 0
    count = 0
    for recipe in recipes:
        count += 1
        if recipe.estimated_cost is not None and recipe.estimated_cost > 0:
            total += recipe.estimated_cost
            has_estimate += 1
        else:
            missing += 1
    return {
        "total": total,
        "hasEstimate": has_estimate,
        "missingEstimate": missing,
        "isComplete": missing == 0 and count > 0,
        "hasAnyData": has_estimate > 0,
    }


def format_recipes_for_prompt(recipes: Iterable[Recipe]) -> str:
    '''One block per recipe, each line tagged with its recipe id and title.'''
    blocks = []
    for r in recipes:
        tag = f"[RECIPE_ID:{r.id}] [RECIPE_TITLE:{r.title}]"
        if r.structured_ingredients:
            lines = [f"- {tag} {i.amount} {i.unit} {i.name}".replace("  ", " ") for i in r.structured_ingredients]
        else:
            lines = [f"- {tag} {i.amount} {i.name}".replace("  ", " ") for i in r.ingredients]
        blocks.append(f"{r.title}\nIngredients:\n" + "\n".join(lines))
    return "\n\n".join(blocks)


def offline_grocery_markdown(recipes: List[Recipe]) -> str:
    '''Plain per-recipe checklist shown when AI generation is unavailable.'''
    if not recipes:
        return "# Grocery List\n\nNo recipes selected."
    sections = []
    for r in recipes:
        checklist = "\n".join(f"- [ ] {i.amount} {i.name}".replace("[ ]  ", "[ ] ") for i in r.ingredients)
        sections.append(f"## {r.title}\n{checklist}")
    return ("# Offline Mode\n\nUnable to connect to AI service. Please try again later.\n\n"
            + "\n\n".join(sections))


__all__ = [
    'merge_key', 'merge_shoppable_ingredients', 'merge_demands', 'merge_structured_ingredients',
    'build_grocery_items', 'categorize_shoppable_ingredients', 'build_source_map',
    'find_matching_sources', 'assign_missing_sources', 'calculate_cost_estimate',
    'format_recipes_for_prompt', 'offline_grocery_markdown',
]
