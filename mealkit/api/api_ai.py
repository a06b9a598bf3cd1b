import os
import re
import json
import logging
from json import JSONDecodeError
from typing import Iterator, List, Optional

from openai import OpenAI
from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from mealkit.api import state
from mealkit.domain.Recipe import Recipe
from mealkit.logic.jobs.enhancement_job import RECIPE_COLLECTION
from mealkit.logic.shopping.list_builder import format_recipes_for_prompt
from mealkit.utilities.config import OPENAI_MODEL
from mealkit.utilities.constants import (
    ENHANCE_JSON_FORMAT, ENHANCE_PROMPT_TEMPLATE, GROCERY_JSON_FORMAT, GROCERY_PROMPT_TEMPLATE,
)

logger = logging.getLogger(__name__)

ENHANCEMENT_FIELDS = (
    "ingredientGroups", "structuredSteps", "cuisine", "mealType", "dishType",
    "difficulty", "dietary", "structuredIngredients",
)


# === Helper: Get OpenAI Client ===
def _get_openai_client():
    """Return an OpenAI client if OPENAI_API_KEY is set, otherwise None."""
    api_key = os.environ.get("OPENAI_API_KEY")
    if not api_key:
        return None
    return OpenAI(api_key=api_key)


def _missing_key_response():
    logger.warning("OPENAI_API_KEY not set; AI endpoints are unavailable")
    return JSONResponse(status_code=500, content={"error": "Missing API Key"})


# === Grocery Generation ===
def build_grocery_prompt(recipes: List[Recipe]) -> str:
    return GROCERY_PROMPT_TEMPLATE + GROCERY_JSON_FORMAT + "\nRecipes:\n\n" + format_recipes_for_prompt(recipes)


def stream_output_text(events) -> Iterator[str]:
    """Yield the text deltas of a streamed Responses API call.

    A failure mid-stream ends the body early; the caller then sees an
    incomplete JSON document.
    """
    try:
        for event in events:
            if getattr(event, "type", None) == "response.output_text.delta" and event.delta:
                yield event.delta
    except Exception:
        logger.exception("AI stream interrupted")


# === Recipe Enhancement ===
def parse_ai_json(text: str, client: Optional[OpenAI] = None) -> Optional[dict]:
    """Decode a JSON object from model output, repairing common formatting slips."""
    text = (text or "").strip()
    if not text:
        return None
    try:
        parsed = json.loads(text)
        return parsed if isinstance(parsed, dict) else None
    except JSONDecodeError:
        pass

    cleaned = _remove_trailing_commas(_strip_code_fences(text))
    candidate = _extract_json_by_balancing(cleaned)
    if candidate:
        try:
            parsed = json.loads(_remove_trailing_commas(candidate))
            if isinstance(parsed, dict):
                return parsed
        except JSONDecodeError:
            logger.warning("Extracted JSON from AI output still invalid")

    if client is None:
        return None
    # Last resort: ask the model to reformat its own answer
    fixed = _request_json_fix(client, text)
    if fixed:
        try:
            parsed = json.loads(_remove_trailing_commas(_strip_code_fences(fixed)))
            return parsed if isinstance(parsed, dict) else None
        except JSONDecodeError:
            logger.exception("Fixed AI output still could not be decoded")
    return None


def build_enhance_prompt(recipe: dict) -> str:
    recipe_view = {k: recipe.get(k) for k in ("title", "ingredients", "steps") if recipe.get(k) is not None}
    return ENHANCE_PROMPT_TEMPLATE + ENHANCE_JSON_FORMAT + "\nRecipe:\n" + json.dumps(recipe_view, ensure_ascii=False)


def pick_enhancement(parsed: dict) -> dict:
    return {k: parsed[k] for k in ENHANCEMENT_FIELDS if k in parsed and parsed[k] is not None}


# === Text Cleaning Helpers ===
def _strip_code_fences(text: str) -> str:
    """Remove common markdown code fences and leading/trailing whitespace."""
    text = re.sub(r"```(?:json)?\n(.*?)```", r"\1", text, flags=re.S)
    text = re.sub(r"^```(?:json)?|```$", "", text.strip())
    return text.strip()


def _remove_trailing_commas(text: str) -> str:
    """Remove trailing commas before a closing brace/bracket."""
    return re.sub(r",\s*(\}|\])", r"\1", text)


def _extract_json_by_balancing(text: str) -> Optional[str]:
    """Extract the first JSON object/array by balancing braces/brackets."""
    start = None
    stack = []
    in_string = False
    escape = False

    for i, ch in enumerate(text):
        if escape:
            escape = False
            continue
        if in_string:
            if ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            if start is None:
                start = i
            stack.append(ch)
        elif ch in "}]":
            if not stack:
                continue
            opening = stack.pop()
            if (opening == "{" and ch != "}") or (opening == "[" and ch != "]"):
                return None
            if not stack and start is not None:
                return text[start:i + 1]
    return None


def _request_json_fix(client: OpenAI, previous_output: str) -> Optional[str]:
    """Ask the model to reformat previous_output as a strict JSON object."""
    try:
        prompt = (
            "The previous response was not valid JSON. "
            "Reformat it as ONE valid JSON object (no surrounding text) using the same keys. "
            "Here is the original output:\n\n" + previous_output
        )
        resp = client.responses.create(model=OPENAI_MODEL, input=prompt)
        return (resp.output_text or "").strip()
    except Exception:
        logger.exception("Error while requesting AI to fix JSON formatting")
        return None


# === FastAPI Endpoints ===
router = APIRouter()


class GroceryGenerateRequest(BaseModel):
    weekStartDate: Optional[str] = None
    userId: Optional[str] = None
    recipes: Optional[List[dict]] = None


@router.post("/api/grocery/generate")
def generate_grocery_list(payload: GroceryGenerateRequest):
    """Stream the model's grocery JSON back as plain text, one call for the whole week."""
    if not payload.weekStartDate or not payload.userId or payload.recipes is None:
        return JSONResponse(status_code=400, content={"error": "Missing required fields"})
    if not payload.recipes:
        return JSONResponse(status_code=400, content={"error": "No recipes provided"})

    client = _get_openai_client()
    if client is None:
        return _missing_key_response()

    recipes = [Recipe.from_dict(r) for r in payload.recipes]
    try:
        events = client.responses.create(model=OPENAI_MODEL, input=build_grocery_prompt(recipes), stream=True)
    except Exception as e:
        logger.exception("Grocery generation request failed for %s", payload.userId)
        return JSONResponse(status_code=500, content={"error": "Failed to generate grocery list", "details": str(e)})

    logger.info("Streaming grocery list for %s week %s (%d recipes)",
                payload.userId, payload.weekStartDate, len(recipes))
    return StreamingResponse(stream_output_text(events), media_type="text/plain; charset=utf-8")


@router.post("/api/recipes/{recipe_id}/enhance")
def enhance_recipe(recipe_id: str):
    """Ask the model for structural enrichment of a stored recipe; the caller persists it."""
    recipe = state.store.get_document(RECIPE_COLLECTION, recipe_id)
    if recipe is None:
        raise HTTPException(status_code=404, detail="Recipe not found")

    client = _get_openai_client()
    if client is None:
        return _missing_key_response()

    try:
        response = client.responses.create(model=OPENAI_MODEL, input=build_enhance_prompt(recipe))
    except Exception as e:
        logger.exception("Enhancement request failed for recipe %s", recipe_id)
        return JSONResponse(status_code=500, content={"success": False, "error": "Enhancement failed", "details": str(e)})

    parsed = parse_ai_json(response.output_text, client)
    if parsed is None:
        return JSONResponse(status_code=502, content={"success": False, "error": "AI did not return valid JSON"})
    return {"success": True, "data": pick_enhancement(parsed)}
