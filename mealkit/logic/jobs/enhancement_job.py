"""Background recipe enhancement job (AI enrichment of a newly imported recipe)."""
import asyncio
import logging
from datetime import datetime, timezone
from json import JSONDecodeError
from typing import Optional

import httpx

from mealkit.domain.Operation import (
    FEATURE_RECIPE_ENHANCEMENT, STATUS_COMPLETE, STATUS_ERROR, enhancement_operation_id,
)
from mealkit.infra.Document_Store import DocumentStore
from mealkit.logic.jobs.grocery_job import GenerationError, error_message
from mealkit.logic.jobs.operation_tracker import OperationTracker
from mealkit.utilities.config import HTTP_TIMEOUT_SECONDS, base_url as _default_base_url

logger = logging.getLogger(__name__)

RECIPE_COLLECTION = "recipes"


async def trigger_background_enhancement(recipe_id: str, *, tracker: OperationTracker, store: DocumentStore,
                                         client: Optional[httpx.AsyncClient] = None,
                                         base_url: Optional[str] = None) -> Optional[dict]:
    """Ask the enhance endpoint to enrich recipe_id and merge the result into the recipe document.

    The endpoint re-reads the recipe itself, so the request body is empty.
    Returns the enrichment fields, or None on failure or while the same job is still running.
    """
    op_id = enhancement_operation_id(recipe_id)
    if tracker.is_busy(op_id):
        logger.info("Enhancement of %s already running", recipe_id)
        return None

    # Background jobs shouldn't be cancelled by the UI
    tracker.start(op_id, FEATURE_RECIPE_ENHANCEMENT, cancelable=False)
    url = f"{base_url or _default_base_url()}api/recipes/{recipe_id}/enhance"

    own_client = client is None
    if own_client:
        client = httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS)
    try:
        response = await client.post(url, json={})
        if not response.is_success:
            raise GenerationError(error_message(response, response.content))
        try:
            data = response.json()
        except JSONDecodeError as e:
            raise GenerationError("Incomplete AI response") from e
        if not isinstance(data, dict) or data.get("success") is not True:
            detail = data.get("error") if isinstance(data, dict) else None
            raise GenerationError(detail or "Enhancement was not applied")
        enrichment = data.get("data")
        if not isinstance(enrichment, dict):
            raise GenerationError("Enhancement response has no data")

        updates = dict(enrichment)
        updates["updatedAt"] = datetime.now(timezone.utc).isoformat()
        await asyncio.to_thread(store.update_document, RECIPE_COLLECTION, recipe_id, updates)
        tracker.update(op_id, status=STATUS_COMPLETE, progress=100, message="Done")
        logger.info("Recipe %s enhanced (%s)", recipe_id, ", ".join(sorted(enrichment)))
        return enrichment
    except Exception as e:
        logger.exception("Background enhancement of %s failed", recipe_id)
        message = str(e) or e.__class__.__name__
        if isinstance(e, httpx.HTTPError):
            message = f"Network error: {message}"
        tracker.update(op_id, status=STATUS_ERROR, error=message)
        return None
    finally:
        if own_client:
            await client.aclose()


__all__ = ['trigger_background_enhancement', 'RECIPE_COLLECTION']
