"""AiOperation entity: one tracked background AI job (grocery generation, recipe enhancement, ...)."""
import time
from typing import Optional

STATUS_IDLE = "idle"
STATUS_PROCESSING = "processing"
STATUS_COMPLETE = "complete"
STATUS_ERROR = "error"
STATUS_FALLBACK = "fallback"
OPERATION_STATUSES = (STATUS_IDLE, STATUS_PROCESSING, STATUS_COMPLETE, STATUS_ERROR, STATUS_FALLBACK)

FEATURE_PARSE_RECIPE = "parse-recipe"
FEATURE_GROCERY_LIST = "grocery-list"
FEATURE_RECIPE_ENHANCEMENT = "recipe-enhancement"
FEATURE_COST_ESTIMATE = "cost-estimate"
OPERATION_FEATURES = (FEATURE_PARSE_RECIPE, FEATURE_GROCERY_LIST, FEATURE_RECIPE_ENHANCEMENT, FEATURE_COST_ESTIMATE)

_FIELDS = ("status", "progress", "cancelable", "error", "message")


def grocery_operation_id(user_id: str, week_start: str) -> str:
    return f"grocery-{user_id}_{week_start}"


def enhancement_operation_id(recipe_id: str) -> str:
    return f"enhance-{recipe_id}"


class AiOperation:
    def __init__(self, id: str, feature: str, status: str = STATUS_PROCESSING, progress: int = 0,
                 cancelable: bool = False, error: Optional[str] = None, message: Optional[str] = None,
                 started_at: Optional[float] = None, updated_at: Optional[float] = None):
        if feature not in OPERATION_FEATURES:
            raise ValueError(f"Unknown AI feature: {feature}")
        if status not in OPERATION_STATUSES:
            raise ValueError(f"Unknown operation status: {status}")
        self.id = id
        self.feature = feature
        self.status = status
        self.progress = progress
        self.cancelable = cancelable
        self.error = error
        self.message = message
        self.started_at = started_at if started_at is not None else time.time()
        self.updated_at = updated_at if updated_at is not None else self.started_at

    def merged(self, updates: dict) -> "AiOperation":
        '''Return a copy with the known fields of updates applied.'''
        values = self.to_dict()
        for key in _FIELDS:
            if key in updates:
                values[key] = updates[key]
        values["updated_at"] = time.time()
        return AiOperation(**values)

    def __repr__(self) -> str:
        return f"AiOperation({self.id} {self.feature} {self.status} {self.progress}%)"

    def to_dict(self):
        return {
            "id": self.id,
            "feature": self.feature,
            "status": self.status,
            "progress": self.progress,
            "cancelable": self.cancelable,
            "error": self.error,
            "message": self.message,
            "started_at": self.started_at,
            "updated_at": self.updated_at,
        }
