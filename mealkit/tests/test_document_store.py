import asyncio

import pytest

from mealkit.infra.Document_Store import DocumentStore, split_path


@pytest.fixture
def store(tmp_path):
    return DocumentStore(tmp_path)


def test_set_get_roundtrip_by_path(store):
    store.set("grocery_lists/u1_2025-01-06", {"status": "processing"})
    assert store.get("grocery_lists/u1_2025-01-06") == {"status": "processing"}
    assert store.get_document("grocery_lists", "other") is None


def test_update_merges_and_creates(store):
    store.set_document("recipes", "r1", {"title": "Soup", "cuisine": None})
    merged = store.update_document("recipes", "r1", {"cuisine": "French"})
    assert merged == {"title": "Soup", "cuisine": "French"}
    assert store.update_document("recipes", "r2", {"title": "Stew"}) == {"title": "Stew"}


def test_nested_collection_and_listing(store, tmp_path):
    store.set_document("families/f1/recipeData", "r1", {"weekPlan": {"isPlanned": True}})
    store.set_document("families/f1/recipeData", "r2", {"id": "custom"})
    docs = store.get_collection("families/f1/recipeData")
    assert [d["id"] for d in docs] == ["r1", "custom"]
    assert (tmp_path / "families__f1__recipeData.json").exists()
    assert store.get_collection("families/f2/recipeData") == []


def test_delete(store):
    store.set_document("weekHistory", "2025-01-06", {"mealCount": 3})
    assert store.delete_document("weekHistory", "2025-01-06")
    assert not store.delete_document("weekHistory", "2025-01-06")


def test_returned_documents_are_copies(store):
    store.set_document("recipes", "r1", {"title": "Soup"})
    doc = store.get_document("recipes", "r1")
    doc["title"] = "Changed"
    assert store.get_document("recipes", "r1")["title"] == "Soup"


def test_corrupt_collection_reads_empty(store, tmp_path):
    (tmp_path / "recipes.json").write_text("[1, 2", encoding="utf-8")
    assert store.get_collection("recipes") == []


def test_split_path():
    assert split_path("/families/f1/recipeData/r1") == ("families/f1/recipeData", "r1")
    with pytest.raises(ValueError):
        split_path("recipes")


@pytest.mark.asyncio
async def test_writes_from_worker_threads_are_not_lost(store):
    await asyncio.gather(*(
        asyncio.to_thread(store.update_document, "recipes", "r1", {f"field{i}": i}) for i in range(20)
    ))
    doc = store.get_document("recipes", "r1")
    assert sorted(doc) == sorted(f"field{i}" for i in range(20))
