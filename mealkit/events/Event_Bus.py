"""In-process event bus for background operation and planning events.

Event names:
  operation.started -> payload {"operation": dict}
  operation.updated -> payload {"operation": dict, "changes": dict}
  operation.removed -> payload {"id": str}
  week.archived -> payload {"weekStart": str, "mealCount": int}

Handlers are callables taking (event_name, payload). A handler that raises is
logged and the remaining handlers still run.
"""
from __future__ import annotations
import logging
from typing import Callable, Any, Dict, Iterable, Tuple

logger = logging.getLogger(__name__)

OPERATION_STARTED = "operation.started"
OPERATION_UPDATED = "operation.updated"
OPERATION_REMOVED = "operation.removed"
WEEK_ARCHIVED = "week.archived"

OPERATION_EVENTS = (OPERATION_STARTED, OPERATION_UPDATED, OPERATION_REMOVED)

Handler = Callable[[str, Any], None]


class EventBus:
	def __init__(self):
		# event name -> handlers in subscription order; replaced, never mutated in place
		self._handlers: Dict[str, Tuple[Handler, ...]] = {}

	def subscribe(self, event_names, handler: Handler) -> None:
		'''Register handler for one event name or an iterable of names; repeats are ignored.'''
		names: Iterable[str] = (event_names,) if isinstance(event_names, str) else event_names
		for name in names:
			current = self._handlers.get(name, ())
			if handler not in current:
				self._handlers[name] = current + (handler,)

	def unsubscribe(self, event_name: str, handler: Handler) -> bool:
		current = self._handlers.get(event_name, ())
		if handler not in current:
			return False
		self._handlers[event_name] = tuple(h for h in current if h != handler)
		return True

	def handlers(self, event_name: str) -> Tuple[Handler, ...]:
		return self._handlers.get(event_name, ())

	def publish(self, event_name: str, payload: Any) -> int:
		'''Deliver payload to every handler of event_name; returns how many handled it without raising.'''
		delivered = 0
		for handler in self.handlers(event_name):
			try:
				handler(event_name, payload)
			except Exception:
				logger.exception("Handler %r failed on %s", handler, event_name)
				continue
			delivered += 1
		return delivered


# Process-wide instance used by the API layer
GLOBAL_EVENT_BUS = EventBus()


__all__ = [
	'EventBus', 'GLOBAL_EVENT_BUS', 'Handler', 'OPERATION_EVENTS',
	'OPERATION_STARTED', 'OPERATION_UPDATED', 'OPERATION_REMOVED', 'WEEK_ARCHIVED',
]
