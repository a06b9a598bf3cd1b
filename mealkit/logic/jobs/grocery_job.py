"""AI grocery list generation job.

trigger_grocery_generation() posts the week's recipes to the generation
endpoint, reads the streamed body while reporting staged progress to the
operation tracker, parses the full text as one JSON document and persists the
resulting GroceryList. Failures never escape: they end as an "error"
operation and an "error" list document.
"""
import asyncio
import json
import logging
from json import JSONDecodeError
from typing import Callable, List, Optional

import httpx

from mealkit.domain.Ingredient import ShoppableIngredient
from mealkit.domain.Operation import FEATURE_GROCERY_LIST, STATUS_COMPLETE, STATUS_ERROR, grocery_operation_id
from mealkit.domain.Recipe import Recipe
from mealkit.domain.ShoppingList import GROCERY_LIST_COLLECTION, GroceryList, grocery_list_id
from mealkit.infra.Document_Store import DocumentStore
from mealkit.logic.jobs.operation_tracker import OperationTracker
from mealkit.logic.jobs.progress import StageProgress
from mealkit.logic.shopping.list_builder import (
    assign_missing_sources, build_source_map, merge_shoppable_ingredients,
)
from mealkit.utilities.config import HTTP_TIMEOUT_SECONDS, base_url as _default_base_url

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """Upstream rejected the request or answered with something unusable."""


def error_message(response: httpx.Response, body: bytes) -> str:
    '''Human-readable message from a non-2xx {error, details?} payload.'''
    try:
        data = json.loads(body or b"{}")
    except (JSONDecodeError, UnicodeDecodeError):
        data = {}
    if isinstance(data, dict) and data.get("error"):
        details = data.get("details")
        return f"{data['error']}: {details}" if details else str(data["error"])
    if isinstance(data, dict) and isinstance(data.get("detail"), str):
        return data["detail"]
    return f"Generation failed: {response.status_code} {response.reason_phrase}".strip()


async def read_streamed_generation(client: httpx.AsyncClient, url: str, payload: dict,
                                   on_text: Optional[Callable[[str], None]] = None) -> str:
    '''POST payload and return the concatenated decoded body, feeding each decoded chunk to on_text.'''
    parts: List[str] = []
    async with client.stream("POST", url, json=payload) as response:
        if not response.is_success:
            body = await response.aread()
            raise GenerationError(error_message(response, body))
        async for text in response.aiter_text():
            if not text:
                continue
            parts.append(text)
            if on_text is not None:
                on_text(text)
    return "".join(parts)


def parse_grocery_response(text: str) -> List[ShoppableIngredient]:
    '''The whole streamed text must be one JSON document with an "ingredients" list.'''
    try:
        parsed = json.loads(text)
    except JSONDecodeError as e:
        raise GenerationError("Incomplete AI response") from e
    if not isinstance(parsed, dict) or not isinstance(parsed.get("ingredients"), list):
        raise GenerationError("AI response has no ingredient list")
    return [ShoppableIngredient.from_dict(i) for i in parsed["ingredients"] if isinstance(i, dict) and i.get("name")]


async def trigger_grocery_generation(week_start_date: str, recipes: List[Recipe], user_id: str, *,
                                     tracker: OperationTracker, store: DocumentStore,
                                     client: Optional[httpx.AsyncClient] = None,
                                     base_url: Optional[str] = None) -> Optional[GroceryList]:
    """Generate and persist the AI grocery list for user_id's week.

    Returns the completed list, or None when the job failed or an operation
    with the same id is still running.
    """
    list_id = grocery_list_id(user_id, week_start_date)
    op_id = grocery_operation_id(user_id, week_start_date)

    # Prevent duplicate operations if already running; a failed one may be retried
    if tracker.is_busy(op_id):
        logger.info("Grocery generation %s already running; not submitting again", op_id)
        return None

    tracker.start(op_id, FEATURE_GROCERY_LIST, cancelable=False)
    grocery_list = GroceryList(user_id, week_start_date, status="processing")
    url = f"{base_url or _default_base_url()}api/grocery/generate"
    payload = {
        "weekStartDate": week_start_date,
        "userId": user_id,
        "recipes": [r.to_dict() for r in recipes],
    }
    stages = StageProgress()

    def _on_text(text: str):
        for progress, message in stages.feed(text):
            tracker.update(op_id, progress=progress, message=message)

    own_client = client is None
    if own_client:
        client = httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS)
    try:
        await asyncio.to_thread(store.set_document, GROCERY_LIST_COLLECTION, list_id, grocery_list.to_dict())
        text = await read_streamed_generation(client, url, payload, _on_text)
        ingredients = parse_grocery_response(text)
        ingredients = assign_missing_sources(merge_shoppable_ingredients(ingredients), build_source_map(recipes))

        grocery_list.ingredients = ingredients
        grocery_list.status = STATUS_COMPLETE
        grocery_list.touch()
        await asyncio.to_thread(store.set_document, GROCERY_LIST_COLLECTION, list_id, grocery_list.to_dict())
        tracker.update(op_id, status=STATUS_COMPLETE, progress=100, message="Done")
        logger.info("Grocery list %s saved with %d items", list_id, len(ingredients))
        return grocery_list
    except Exception as e:
        logger.exception("Grocery generation %s failed", op_id)
        message = str(e) or e.__class__.__name__
        if isinstance(e, httpx.HTTPError):
            message = f"Network error: {message}"
        tracker.update(op_id, status=STATUS_ERROR, error=message)
        await _mark_list_failed(store, list_id, grocery_list, message)
        return None
    finally:
        if own_client:
            await client.aclose()


async def _mark_list_failed(store: DocumentStore, list_id: str, grocery_list: GroceryList, message: str):
    grocery_list.status = STATUS_ERROR
    grocery_list.error = message
    grocery_list.touch()
    try:
        await asyncio.to_thread(store.update_document, GROCERY_LIST_COLLECTION, list_id, {
            "status": grocery_list.status,
            "error": message,
            "updatedAt": grocery_list.updated_at,
        })
    except OSError:
        logger.exception("Could not record failure on grocery list %s", list_id)


__all__ = ['GenerationError', 'trigger_grocery_generation', 'read_streamed_generation',
           'parse_grocery_response', 'error_message']
