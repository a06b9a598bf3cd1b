from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse

from pydantic import BaseModel
from datetime import date as _date
from typing import Any, Dict, List, Optional, Set
import asyncio
import logging

from mealkit.api import state
from mealkit.api.api_ai import router as ai_router
from mealkit.domain.Operation import enhancement_operation_id, grocery_operation_id
from mealkit.domain.Recipe import Recipe
from mealkit.events.Event_Bus import GLOBAL_EVENT_BUS
from mealkit.events.web_observers import start as start_event_observers, get_events as get_web_events
from mealkit.logic.jobs.enhancement_job import trigger_background_enhancement
from mealkit.logic.jobs.grocery_job import trigger_grocery_generation
from mealkit.logic.jobs.operation_tracker import display_status
from mealkit.logic.planning.rollover import check_and_run_rollover
from mealkit.logic.planning.week_projector import distinct_weeks, filter_active
from mealkit.utilities.config import ROLLOVER_ON_STARTUP, ROLLOVER_STARTUP_DELAY

# Logging
logger = logging.getLogger("mealkit_app")

WEEK_HISTORY_COLLECTION = "weekHistory"

# Strong references to scheduled jobs; the loop itself only keeps weak ones
_background_tasks: Set[asyncio.Task] = set()

# Initialize FastAPI app
app = FastAPI(title="Mealkit Grocery & Week Plan API")

# Include routers
app.include_router(ai_router)


def _spawn(coro) -> asyncio.Task:
    task = asyncio.get_running_loop().create_task(coro)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


@app.on_event("startup")
def _startup_web_observers():
    """Register event bus subscribers for operation events when the app starts."""
    start_event_observers(GLOBAL_EVENT_BUS)
    logger.info("Web observers for operation events started")


@app.on_event("startup")
async def _startup_rollover():
    """Archive past weeks once per process, after the server accepts requests."""
    if not ROLLOVER_ON_STARTUP:
        return

    async def _run():
        await asyncio.sleep(ROLLOVER_STARTUP_DELAY)
        archived = await check_and_run_rollover(state.plan_repo, bus=GLOBAL_EVENT_BUS)
        if archived:
            logger.info("Rollover archived weeks: %s", ", ".join(archived))

    _spawn(_run())


def family_records(family_id: str) -> List[Dict[str, Any]]:
    return state.store.get_collection(f"families/{family_id}/recipeData")


# -------------------- Week --------------------
class ArchiveRequest(BaseModel):
    weekStart: Optional[str] = None
    weekEnd: Optional[str] = None
    archivedAt: Optional[str] = None
    mealCount: Optional[int] = None
    recipes: Optional[List[Dict[str, Any]]] = None


@app.post("/api/week/archive")
def archive_week(payload: ArchiveRequest):
    """Store a week snapshot under its Monday; re-submitting overwrites it."""
    if not payload.weekStart or payload.recipes is None:
        return JSONResponse(status_code=400, content={"error": "Missing required fields"})
    state.store.set_document(WEEK_HISTORY_COLLECTION, payload.weekStart, {
        "weekStart": payload.weekStart,
        "weekEnd": payload.weekEnd,
        "archivedAt": payload.archivedAt,
        "mealCount": payload.mealCount,
        "recipes": payload.recipes,
    })
    logger.info("Week %s archived (%s meals)", payload.weekStart, payload.mealCount)
    return {"success": True}


@app.get("/api/week/planned")
def api_week_planned(familyId: Optional[str] = Query(default=None)):
    if not familyId:
        return {"success": True, "planned": [], "message": "No family assigned"}
    planned = [r for r in family_records(familyId) if (r.get("weekPlan") or {}).get("isPlanned") is True]
    return {"success": True, "planned": planned}


@app.post("/api/week/sync")
def api_week_sync(familyId: str = Query(...), week: Optional[str] = Query(default=None)):
    """Rebuild the local plan cache from the family records and return the viewed week."""
    repo = state.plan_repo
    projected = repo.reconcile(family_records(familyId))
    active = repo.switch_week_context(week) if week else repo.active_week_start()
    return {
        "activeWeek": active,
        "planned": [p.to_dict() for p in filter_active(projected, active)],
        "weeks": distinct_weeks(projected, _date.today()),
    }


# -------------------- Background jobs --------------------
class GroceryJobRequest(BaseModel):
    weekStartDate: Optional[str] = None
    userId: Optional[str] = None
    recipes: Optional[List[Dict[str, Any]]] = None


@app.post("/api/jobs/grocery")
async def api_start_grocery_job(payload: GroceryJobRequest):
    """Schedule grocery generation for a week; progress shows up under /api/operations."""
    if not payload.weekStartDate or not payload.userId or not payload.recipes:
        return JSONResponse(status_code=400, content={"error": "Missing required fields"})
    op_id = grocery_operation_id(payload.userId, payload.weekStartDate)
    if state.tracker.is_busy(op_id):
        return {"operationId": op_id, "started": False}
    recipes = [Recipe.from_dict(r) for r in payload.recipes]
    _spawn(trigger_grocery_generation(payload.weekStartDate, recipes, payload.userId,
                                      tracker=state.tracker, store=state.store))
    logger.info("Grocery job %s scheduled", op_id)
    return JSONResponse(status_code=202, content={"operationId": op_id, "started": True})


@app.post("/api/jobs/recipes/{recipe_id}/enhance")
async def api_start_enhancement_job(recipe_id: str):
    op_id = enhancement_operation_id(recipe_id)
    if state.tracker.is_busy(op_id):
        return {"operationId": op_id, "started": False}
    _spawn(trigger_background_enhancement(recipe_id, tracker=state.tracker, store=state.store))
    logger.info("Enhancement job %s scheduled", op_id)
    return JSONResponse(status_code=202, content={"operationId": op_id, "started": True})


# -------------------- Operations --------------------
@app.get("/api/operations")
def api_operations():
    snapshot = state.tracker.snapshot()
    for op, data in zip(state.tracker.operations, snapshot["operations"]):
        data["displayStatus"] = display_status(op)
    snapshot["activeCount"] = state.tracker.active_count()
    return snapshot


@app.get("/api/operations/events")
def api_operation_events(since: Optional[int] = Query(default=None)):
    return get_web_events(since)
