import json
from datetime import datetime, timezone

import httpx
import pytest

from mealkit.events.Event_Bus import EventBus, WEEK_ARCHIVED
from mealkit.infra.Plan_Repository import PlanRepository
from mealkit.logic.planning import rollover
from mealkit.logic.planning.rollover import archive_payload, group_by_week, is_week_expired, run_rollover

BASE_URL = "http://test/"


@pytest.fixture
def repo(tmp_path):
    repo = PlanRepository(tmp_path / "plan.json")
    repo.switch_week_context("2025-01-06")
    repo.add_recipe_to_day("soup", "Monday")
    repo.add_recipe_to_day("stew", "Sunday")
    repo.switch_week_context("2025-01-13")
    repo.add_recipe_to_day("pie", "Tuesday")
    return repo


def recording_client(status=200, sent=None):
    def handler(request: httpx.Request):
        if sent is not None:
            sent.append(json.loads(request.content))
        return httpx.Response(status, json={"success": status == 200})
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_week_expires_strictly_after_following_monday():
    assert not is_week_expired("2025-01-06", datetime(2025, 1, 13, 0, 0))
    assert is_week_expired("2025-01-06", datetime(2025, 1, 13, 0, 0, 1))
    assert not is_week_expired("garbage", datetime(2030, 1, 1))


def test_group_by_week_uses_dates(repo):
    weeks = group_by_week(repo.all_planned())
    assert list(weeks) == ["2025-01-06", "2025-01-13"]
    assert sorted(e.recipe_id for e in weeks["2025-01-06"]) == ["soup", "stew"]


def test_archive_payload(repo):
    entries = group_by_week(repo.all_planned())["2025-01-06"]
    payload = archive_payload("2025-01-06", entries, datetime(2025, 1, 14, 9, 0))
    assert payload["weekEnd"] == "2025-01-12"
    assert payload["mealCount"] == 2
    assert payload["archivedAt"] == "2025-01-14T09:00:00"
    assert {r["recipeId"] for r in payload["recipes"]} == {"soup", "stew"}


@pytest.mark.asyncio
async def test_nothing_archived_at_exact_boundary(repo):
    sent = []
    async with recording_client(sent=sent) as client:
        archived = await run_rollover(datetime(2025, 1, 13), repo=repo, client=client, base_url=BASE_URL)
    assert archived == []
    assert sent == []
    assert len(repo.all_planned()) == 3


@pytest.mark.asyncio
async def test_past_week_archived_and_pruned(repo):
    sent = []
    bus = EventBus()
    events = []
    bus.subscribe(WEEK_ARCHIVED, lambda name, payload: events.append(payload))
    async with recording_client(sent=sent) as client:
        archived = await run_rollover(datetime(2025, 1, 13, 8, 0), repo=repo, client=client,
                                      base_url=BASE_URL, bus=bus)
    assert archived == ["2025-01-06"]
    assert [s["weekStart"] for s in sent] == ["2025-01-06"]
    assert [p.recipe_id for p in repo.all_planned()] == ["pie"]
    assert events == [{"weekStart": "2025-01-06", "mealCount": 2}]


@pytest.mark.asyncio
async def test_failed_submission_keeps_cache(repo):
    async with recording_client(status=500) as client:
        archived = await run_rollover(datetime(2025, 2, 1), repo=repo, client=client, base_url=BASE_URL)
    assert archived == []
    assert len(repo.all_planned()) == 3


@pytest.mark.asyncio
async def test_network_error_is_not_fatal(repo):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        archived = await run_rollover(datetime(2025, 2, 1), repo=repo, client=client, base_url=BASE_URL)
    assert archived == []
    assert len(repo.all_planned()) == 3


@pytest.mark.asyncio
async def test_check_and_run_rollover_runs_once(repo):
    rollover._reset_for_tests()
    async with recording_client() as client:
        first = await rollover.check_and_run_rollover(repo, now=datetime(2025, 2, 1), client=client, base_url=BASE_URL)
        second = await rollover.check_and_run_rollover(repo, now=datetime(2025, 2, 1), client=client, base_url=BASE_URL)
    rollover._reset_for_tests()
    assert first == ["2025-01-06", "2025-01-13"]
    assert second == []
    assert repo.all_planned() == []


@pytest.mark.asyncio
async def test_failure_in_one_week_does_not_stop_the_next(repo, monkeypatch):
    original = repo.remove_entries
    calls = []

    def flaky_remove(keys):
        calls.append(1)
        if len(calls) == 1:
            raise OSError("disk full")
        return original(keys)

    monkeypatch.setattr(repo, "remove_entries", flaky_remove)
    sent = []
    async with recording_client(sent=sent) as client:
        archived = await run_rollover(datetime(2025, 2, 1), repo=repo, client=client, base_url=BASE_URL)
    assert [s["weekStart"] for s in sent] == ["2025-01-06", "2025-01-13"]
    assert archived == ["2025-01-13"]
    assert sorted(p.recipe_id for p in repo.all_planned()) == ["soup", "stew"]


@pytest.mark.asyncio
async def test_timezone_aware_now_is_accepted(repo):
    async with recording_client() as client:
        archived = await run_rollover(datetime(2025, 2, 1, tzinfo=timezone.utc), repo=repo,
                                      client=client, base_url=BASE_URL)
    assert archived == ["2025-01-06", "2025-01-13"]
