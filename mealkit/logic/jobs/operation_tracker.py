"""In-memory registry of background AI operations.

The tracker is a passive, per-process record consulted by the presentation
layer; it never schedules or blocks work. Every mutation replaces the whole
operations tuple, so readers always see a consistent snapshot. All mutation
is expected to happen on one asyncio event loop.

Lifecycle rules:
  - start() replaces any entry with the same id by a fresh processing/0 one.
  - update() is a no-op for unknown ids.
  - an entry that reaches "complete" is removed after complete_removal_delay.
  - "error" entries stay until removed explicitly (or restarted).
"""
import asyncio
import logging
import time
from typing import Any, Dict, Optional, Tuple

from mealkit.domain.Operation import AiOperation, STATUS_COMPLETE, STATUS_ERROR, STATUS_PROCESSING
from mealkit.events.Event_Bus import EventBus, OPERATION_REMOVED, OPERATION_STARTED, OPERATION_UPDATED
from mealkit.utilities.config import COMPLETE_REMOVAL_DELAY, STALE_OPERATION_SECONDS

logger = logging.getLogger(__name__)


class OperationTracker:
    def __init__(self, bus: Optional[EventBus] = None, complete_removal_delay: float = COMPLETE_REMOVAL_DELAY):
        self.bus = bus or EventBus()
        self.complete_removal_delay = complete_removal_delay
        self._operations: Tuple[AiOperation, ...] = ()
        # id -> the entry start() created; pending removals are tied to it
        self._started: Dict[str, AiOperation] = {}

    @property
    def operations(self) -> Tuple[AiOperation, ...]:
        return self._operations

    def get(self, op_id: str) -> Optional[AiOperation]:
        return next((op for op in self._operations if op.id == op_id), None)

    def __contains__(self, op_id: str) -> bool:
        return self.get(op_id) is not None

    def is_busy(self, op_id: str) -> bool:
        '''True while an entry is processing or waiting for its delayed removal; failed entries may be retried.'''
        op = self.get(op_id)
        return op is not None and op.status != STATUS_ERROR

    def start(self, op_id: str, feature: str, cancelable: bool = False, message: Optional[str] = None) -> AiOperation:
        '''Insert a processing entry at 0%, replacing any entry with the same id.'''
        op = AiOperation(op_id, feature, status=STATUS_PROCESSING, progress=0, cancelable=cancelable, message=message)
        self._operations = tuple(o for o in self._operations if o.id != op_id) + (op,)
        self._started[op_id] = op
        logger.info("Operation %s started (%s)", op_id, feature)
        self.bus.publish(OPERATION_STARTED, {"operation": op.to_dict()})
        return op

    def update(self, op_id: str, **changes: Any) -> Optional[AiOperation]:
        current = self.get(op_id)
        if current is None:
            return None
        updated = current.merged(changes)
        self._operations = tuple(updated if o.id == op_id else o for o in self._operations)
        self.bus.publish(OPERATION_UPDATED, {"operation": updated.to_dict(), "changes": dict(changes)})
        if updated.status == STATUS_COMPLETE and current.status != STATUS_COMPLETE:
            self._schedule_removal(updated)
        elif updated.status == STATUS_ERROR:
            logger.warning("Operation %s failed: %s", op_id, updated.error)
        return updated

    def remove(self, op_id: str) -> bool:
        before = len(self._operations)
        self._operations = tuple(o for o in self._operations if o.id != op_id)
        removed = len(self._operations) != before
        self._started.pop(op_id, None)
        if removed:
            self.bus.publish(OPERATION_REMOVED, {"id": op_id})
        return removed

    def cancel_all(self) -> int:
        '''Drop every cancelable entry; the underlying requests are not aborted.'''
        dropped = [o.id for o in self._operations if o.cancelable]
        self._operations = tuple(o for o in self._operations if not o.cancelable)
        for op_id in dropped:
            self._started.pop(op_id, None)
            self.bus.publish(OPERATION_REMOVED, {"id": op_id})
        return len(dropped)

    def active_count(self) -> int:
        return sum(1 for o in self._operations if o.status == STATUS_PROCESSING)

    def snapshot(self):
        return {"operations": [o.to_dict() for o in self._operations]}

    def _schedule_removal(self, op: AiOperation):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; %s stays until removed explicitly", op.id)
            return
        loop.call_later(self.complete_removal_delay, self._remove_if_unchanged, op.id, self._started.get(op.id))

    def _remove_if_unchanged(self, op_id: str, started: Optional[AiOperation]):
        current = self.get(op_id)
        # a restart under the same id in the meantime keeps the new entry
        if current is not None and self._started.get(op_id) is started and current.status == STATUS_COMPLETE:
            self.remove(op_id)


def is_stale(op: AiOperation, now: Optional[float] = None, document_updated_at: Optional[float] = None,
             ceiling: float = STALE_OPERATION_SECONDS) -> bool:
    """True when op has been processing longer than ceiling without a document update.

    Elapsed time is measured from the start of the operation, or from
    document_updated_at (epoch seconds) when the document changed since.
    Progress updates on the tracker itself do not count.
    """
    if op.status != STATUS_PROCESSING:
        return False
    now = time.time() if now is None else now
    last = op.started_at
    if document_updated_at is not None:
        last = max(last, document_updated_at)
    return now - last > ceiling


def display_status(op: AiOperation, now: Optional[float] = None, document_updated_at: Optional[float] = None,
                   ceiling: float = STALE_OPERATION_SECONDS) -> str:
    '''Status to present: a stuck processing entry is shown as failed; the tracker is not changed.'''
    if is_stale(op, now=now, document_updated_at=document_updated_at, ceiling=ceiling):
        return STATUS_ERROR
    return op.status


__all__ = ['OperationTracker', 'is_stale', 'display_status']
