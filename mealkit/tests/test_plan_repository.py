import pytest

from mealkit.infra.Plan_Repository import PlanRepository


@pytest.fixture
def repo(tmp_path):
    repo = PlanRepository(tmp_path / "plan.json")
    repo.switch_week_context("2025-01-08")
    return repo


def test_switch_week_context_snaps_to_monday(repo):
    assert repo.active_week_start() == "2025-01-06"
    assert repo.switch_week_context("2025-01-19") == "2025-01-13"
    assert repo.get_week_state().active_week_start == "2025-01-13"


def test_switch_week_context_rejects_garbage(repo):
    with pytest.raises(ValueError):
        repo.switch_week_context("soon")


def test_add_recipe_to_day_uses_active_week(repo):
    entry = repo.add_recipe_to_day("soup", "Wednesday", meal_type="dinner")
    assert entry.date == "2025-01-08"
    assert entry.week_start == "2025-01-06"
    # same recipe and day again keeps a single entry
    repo.add_recipe_to_day("soup", "Wednesday")
    assert len(repo.all_planned()) == 1
    assert repo.get_planned_days("soup") == ["Wednesday"]
    assert repo.is_planned_for_active_week("soup")
    assert repo.is_planned_for_active_week("soup", days=["Wednesday", "Friday"])
    assert not repo.is_planned_for_active_week("soup", days=["Friday"])


def test_add_recipe_to_unknown_day(repo):
    with pytest.raises(ValueError):
        repo.add_recipe_to_day("soup", "Funday")


def test_current_week_only_shows_active_week(repo):
    repo.add_recipe_to_day("soup", "Monday")
    repo.switch_week_context("2025-01-13")
    repo.add_recipe_to_day("stew", "Friday")
    assert [p.recipe_id for p in repo.current_week_recipes()] == ["stew"]
    repo.switch_week_context("2025-01-06")
    assert [p.recipe_id for p in repo.current_week_recipes()] == ["soup"]


def test_remove_and_unplan(repo):
    repo.add_recipe_to_day("soup", "Monday")
    repo.add_recipe_to_day("soup", "Thursday")
    repo.add_recipe_to_day("stew", "Friday")
    assert repo.remove_recipe_from_day("soup", "2025-01-06")
    assert not repo.remove_recipe_from_day("soup", "2025-01-06")
    assert repo.unplan_recipe("soup") == 1
    assert [p.recipe_id for p in repo.all_planned()] == ["stew"]


def test_reconcile_replaces_cache_with_projection(repo):
    repo.add_recipe_to_day("old", "Monday")
    projected = repo.reconcile([
        {"id": "soup", "weekPlan": {"isPlanned": True, "assignedDate": "2025-01-07"}},
        {"id": "stew", "weekPlan": {"isPlanned": False, "assignedDate": "2025-01-08"}},
    ])
    assert [p.key for p in projected] == ["soup_2025-01-07"]
    assert [p.recipe_id for p in repo.all_planned()] == ["soup"]
    assert repo.active_week_start() == "2025-01-06"


def test_corrupt_file_reads_as_empty(tmp_path):
    plan_file = tmp_path / "plan.json"
    plan_file.write_text("{not json", encoding="utf-8")
    assert PlanRepository(plan_file).all_planned() == []
