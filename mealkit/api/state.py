"""Process-wide instances shared by the API modules.

Endpoints look these up at call time (``state.store``), so tests can swap
them with ``monkeypatch.setattr(state, "store", DocumentStore(tmp_path))``.
"""
from mealkit.events.Event_Bus import GLOBAL_EVENT_BUS
from mealkit.infra.Document_Store import DocumentStore
from mealkit.infra.Plan_Repository import PlanRepository
from mealkit.logic.jobs.operation_tracker import OperationTracker

store = DocumentStore()
plan_repo = PlanRepository()
tracker = OperationTracker(bus=GLOBAL_EVENT_BUS)
