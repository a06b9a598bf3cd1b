"""Weekly rollover: archive fully-past weeks and prune them from the local plan cache.

Meant to run once per session/cold start (check_and_run_rollover), not on a
timer. A week whose archive request fails stays in the cache and is retried
on the next run; re-submitting an already archived week is harmless because
the archive is keyed by the week's Monday.
"""
import logging
from collections import OrderedDict
from datetime import date, datetime, time as _time, timedelta
from typing import Dict, List, Optional, Union

import httpx

from mealkit.domain.Plan import PlannedRecipe, format_date, parse_date
from mealkit.events.Event_Bus import EventBus, WEEK_ARCHIVED
from mealkit.infra.Plan_Repository import PlanRepository
from mealkit.logic.planning.week_projector import heal
from mealkit.utilities.config import HTTP_TIMEOUT_SECONDS, base_url as _default_base_url

logger = logging.getLogger(__name__)

_has_run = False


def group_by_week(entries: List[PlannedRecipe]) -> Dict[str, List[PlannedRecipe]]:
    '''Recomputed week start -> cached entries, weeks in first-seen order. Entries without a readable date are skipped.'''
    weeks: Dict[str, List[PlannedRecipe]] = OrderedDict()
    for entry in entries:
        healed = heal(entry)
        if not healed.week_start or healed.calendar_date() is None:
            continue
        weeks.setdefault(healed.week_start, []).append(entry)
    return weeks


def is_week_expired(week_start: Union[str, date], now: datetime) -> bool:
    '''True once the Monday that begins the following week is strictly before now.'''
    monday = parse_date(week_start)
    if monday is None:
        return False
    return datetime.combine(monday, _time()) + timedelta(days=7) < now


def archive_payload(week_start: str, entries: List[PlannedRecipe], now: datetime) -> dict:
    monday = parse_date(week_start)
    return {
        "weekStart": week_start,
        "weekEnd": format_date(monday + timedelta(days=6)),
        "archivedAt": now.isoformat(),
        "mealCount": len(entries),
        "recipes": [heal(e).to_dict() for e in entries],
    }


async def run_rollover(now: Optional[datetime] = None, *, repo: PlanRepository,
                       client: Optional[httpx.AsyncClient] = None, base_url: Optional[str] = None,
                       bus: Optional[EventBus] = None) -> List[str]:
    """Archive every expired week in the local cache; return the archived week starts.

    now is a naive local datetime. Each week is handled on its own: a failed
    submission is logged and leaves that week's entries untouched.
    """
    now = now or datetime.now()
    if now.tzinfo is not None:
        now = now.astimezone().replace(tzinfo=None)
    expired = [(week, entries) for week, entries in group_by_week(repo.all_planned()).items()
               if is_week_expired(week, now)]
    if not expired:
        return []

    url = f"{base_url or _default_base_url()}api/week/archive"
    archived: List[str] = []
    own_client = client is None
    if own_client:
        client = httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS)
    try:
        for week, entries in expired:
            try:
                if not await _archive_week(client, url, week, entries, now, repo):
                    continue
            except httpx.HTTPError as e:
                logger.warning("Archiving week %s failed: %s", week, e)
                continue
            except Exception:
                logger.exception("Archiving week %s failed", week)
                continue
            archived.append(week)
            if bus is not None:
                bus.publish(WEEK_ARCHIVED, {"weekStart": week, "mealCount": len(entries)})
    finally:
        if own_client:
            await client.aclose()
    return archived


async def _archive_week(client: httpx.AsyncClient, url: str, week: str, entries: List[PlannedRecipe],
                        now: datetime, repo: PlanRepository) -> bool:
    '''Submit one week and prune its cache entries once the archive accepted it.'''
    response = await client.post(url, json=archive_payload(week, entries, now))
    if not response.is_success:
        logger.warning("Archive endpoint rejected week %s: %s", week, response.status_code)
        return False
    removed = repo.remove_entries(e.key for e in entries)
    logger.info("Archived week %s (%d meals, %d cache entries pruned)", week, len(entries), removed)
    return True


async def check_and_run_rollover(repo: PlanRepository, **kwargs) -> List[str]:
    '''Run the rollover at most once per process. Never raises.'''
    global _has_run
    if _has_run:
        return []
    _has_run = True
    try:
        return await run_rollover(repo=repo, **kwargs)
    except Exception:
        logger.exception("Week rollover failed")
        return []


def _reset_for_tests():
    global _has_run
    _has_run = False


__all__ = ['run_rollover', 'check_and_run_rollover', 'group_by_week', 'is_week_expired', 'archive_payload']
