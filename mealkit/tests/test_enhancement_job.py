import httpx
import pytest

from mealkit.domain.Operation import FEATURE_RECIPE_ENHANCEMENT
from mealkit.infra.Document_Store import DocumentStore
from mealkit.logic.jobs.enhancement_job import trigger_background_enhancement
from mealkit.logic.jobs.operation_tracker import OperationTracker

BASE_URL = "http://test/"


@pytest.fixture
def store(tmp_path):
    store = DocumentStore(tmp_path)
    store.set_document("recipes", "r1", {"title": "Ragu", "steps": ["Brown the meat", "Simmer"]})
    return store


@pytest.fixture
def tracker():
    return OperationTracker(complete_removal_delay=0.01)


def make_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_enrichment_merged_into_recipe(store, tracker):
    seen = []

    def handler(request):
        seen.append(str(request.url))
        return httpx.Response(200, json={"success": True, "data": {"cuisine": "Italian", "difficulty": "Easy"}})

    async with make_client(handler) as client:
        result = await trigger_background_enhancement("r1", tracker=tracker, store=store,
                                                      client=client, base_url=BASE_URL)
    assert result == {"cuisine": "Italian", "difficulty": "Easy"}
    assert seen == ["http://test/api/recipes/r1/enhance"]
    doc = store.get_document("recipes", "r1")
    assert doc["title"] == "Ragu"
    assert doc["cuisine"] == "Italian"
    assert "updatedAt" in doc
    op = tracker.get("enhance-r1")
    assert (op.status, op.progress, op.cancelable) == ("complete", 100, False)


@pytest.mark.asyncio
async def test_unsuccessful_response_is_error(store, tracker):
    def handler(request):
        return httpx.Response(200, json={"success": False, "error": "Recipe not found"})

    async with make_client(handler) as client:
        result = await trigger_background_enhancement("r1", tracker=tracker, store=store,
                                                      client=client, base_url=BASE_URL)
    assert result is None
    assert tracker.get("enhance-r1").error == "Recipe not found"
    assert "cuisine" not in store.get_document("recipes", "r1")


@pytest.mark.asyncio
async def test_http_failure_is_error(store, tracker):
    def handler(request):
        return httpx.Response(404, json={"detail": "Recipe not found"})

    async with make_client(handler) as client:
        await trigger_background_enhancement("r1", tracker=tracker, store=store,
                                             client=client, base_url=BASE_URL)
    op = tracker.get("enhance-r1")
    assert op.status == "error"
    assert op.error == "Recipe not found"


@pytest.mark.asyncio
async def test_already_running_is_skipped(store, tracker):
    def handler(request):
        raise AssertionError("should not be called")

    tracker.start("enhance-r1", FEATURE_RECIPE_ENHANCEMENT)
    async with make_client(handler) as client:
        assert await trigger_background_enhancement("r1", tracker=tracker, store=store,
                                                    client=client, base_url=BASE_URL) is None
    assert tracker.get("enhance-r1").status == "processing"


@pytest.mark.asyncio
async def test_failed_enhancement_can_be_retried(store, tracker):
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(500, json={"success": False, "error": "Enhancement failed"})
        return httpx.Response(200, json={"success": True, "data": {"cuisine": "Italian"}})

    async with make_client(handler) as client:
        assert await trigger_background_enhancement("r1", tracker=tracker, store=store,
                                                    client=client, base_url=BASE_URL) is None
        assert tracker.get("enhance-r1").status == "error"
        result = await trigger_background_enhancement("r1", tracker=tracker, store=store,
                                                      client=client, base_url=BASE_URL)

    assert len(calls) == 2
    assert result == {"cuisine": "Italian"}
    assert tracker.get("enhance-r1").status == "complete"
    assert store.get_document("recipes", "r1")["cuisine"] == "Italian"
