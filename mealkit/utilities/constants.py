from typing import Final

DATE_FORMAT: Final[str] = "%Y-%m-%d"

DAYS_OF_WEEK: Final[list[str]] = [
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
]

# Store-aisle presentation order for grocery categories
CATEGORY_ORDER: Final[list[str]] = [
    "Produce", "Meat", "Dairy", "Bakery", "Frozen", "Pantry", "Spices", "Other",
]
DEFAULT_CATEGORY: Final[str] = "Other"

# Pseudo-unit for ingredients authored as free text
BASIC_UNIT: Final[str] = "unit"

DEFAULT_MEAL_TIMES: Final[dict[str, str]] = {
    "breakfast": "08:00",
    "lunch": "12:00",
    "dinner": "18:00",
}
DEFAULT_COOKING_THRESHOLD: Final[int] = 120  # minutes

# Words ignored when fuzzy-matching AI ingredient names back to recipes
SOURCE_MATCH_STOP_WORDS: Final[frozenset[str]] = frozenset({
    "fresh", "dried", "minced", "chopped", "diced", "sliced", "whole", "ground",
    "crushed", "large", "small", "medium", "cloves", "clove", "cups", "cup",
    "tbsp", "tsp", "oz", "lb", "pound", "tablespoon", "teaspoon",
    "of", "the", "a", "an", "for", "to",
})

# Progress waypoints for the streamed grocery generation.
# (stage name, regex searched in the accumulated text, progress, message)
GROCERY_PROGRESS_STAGES: Final[list[tuple[str, str, int, str]]] = [
    ("started", r'"ingredients"', 10, "Reading your recipes..."),
    ("produce", r'"Produce"', 30, "Sorting produce..."),
    ("meat", r'"Meat"', 50, "Adding meat & seafood..."),
    ("dairy", r'"Dairy"', 70, "Checking dairy..."),
    ("pantry", r'"(?:Bakery|Frozen|Pantry|Spices)"', 85, "Finishing pantry items..."),
]

GROCERY_PROMPT_TEMPLATE: Final[str] = (
    """
You are an expert grocery shopping assistant helping someone prepare a shopping list.

Convert ALL recipe ingredients into STORE-PURCHASABLE units (what you actually buy):
- garlic cloves -> heads, lemon/lime juice -> whole fruits, herbs -> bunches
- butter tbsp -> sticks, broth cups -> cartons or cans, tomato paste -> cans
- keep meat and seafood in pounds or ounces
Omit salt, pepper, cooking oils, water and ice.
First combine all amounts of the same ingredient, THEN convert to store units.

Each ingredient line carries [RECIPE_ID:xxx] [RECIPE_TITLE:xxx] tags; list every
recipe that contributed with its ORIGINAL amount.

Category must be one of: Produce, Meat, Dairy, Bakery, Frozen, Pantry, Spices, Other.
Answer with ONE JSON object and nothing else, in this format:
    """
)
GROCERY_JSON_FORMAT: Final[str] = (
    """
{
  "ingredients": [
    {
      "name": str,
      "purchaseAmount": float,
      "purchaseUnit": str,
      "category": str,
      "sources": [
        {"recipeId": str, "recipeTitle": str, "originalAmount": str}
      ]
    }
  ]
}
    """
)

ENHANCE_PROMPT_TEMPLATE: Final[str] = (
    """
Enrich the following recipe. Group its ingredients by cooking phase, give every
step a short title (2-4 words) and an optional tip, and classify the dish.
Answer with ONE JSON object and nothing else, in this format:
    """
)
ENHANCE_JSON_FORMAT: Final[str] = (
    """
{
  "ingredientGroups": [{"header": str, "startIndex": int, "endIndex": int}],
  "structuredSteps": [{"title": str, "text": str, "tip": str}],
  "cuisine": str,
  "mealType": str,
  "dishType": str,
  "difficulty": "Easy" | "Medium" | "Hard",
  "dietary": [str],
  "structuredIngredients": [
    {"original": str, "name": str, "amount": float, "unit": str, "category": str}
  ]
}
    """
)
