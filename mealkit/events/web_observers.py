"""Polling feed of operation and archive events for the web layer.

Subscribes to an EventBus and keeps the most recent MAX_EVENTS events as flat
dicts. Every event gets an increasing integer cursor; clients poll with
``since=<last cursor seen>`` and receive only newer events plus the cursor to use
next time. A Lock guards the buffer because uvicorn runs sync endpoints in a
thread pool.
"""
from __future__ import annotations
import logging
from collections import deque
from itertools import count
from typing import Deque, List, Dict, Any, Optional
from threading import Lock
from datetime import datetime, timezone

from .Event_Bus import EventBus, GLOBAL_EVENT_BUS, OPERATION_EVENTS, WEEK_ARCHIVED

logger = logging.getLogger(__name__)

MAX_EVENTS = 300
OPERATION_FIELDS = ('id', 'feature', 'status', 'progress', 'message', 'error')
ARCHIVE_FIELDS = ('id', 'weekStart', 'mealCount')

_lock = Lock()
_events: Deque[Dict[str, Any]] = deque(maxlen=MAX_EVENTS)
_ids = count(1)
_last_id = 0
_subscribed: List[EventBus] = []


def flatten(event_name: str, payload: Any) -> Dict[str, Any]:
    '''Pick the fields a status poller shows out of an operation or archive payload.'''
    flat: Dict[str, Any] = {'type': event_name, 'ts': datetime.now(timezone.utc).isoformat()}
    if not isinstance(payload, dict):
        return flat
    op = payload.get('operation')
    if isinstance(op, dict):
        flat.update((k, op[k]) for k in OPERATION_FIELDS if op.get(k) is not None)
    for k in ARCHIVE_FIELDS:
        if k in payload:
            flat.setdefault(k, payload[k])
    return flat


def _record(event_name: str, payload: Any):
    global _last_id
    evt = flatten(event_name, payload)
    with _lock:
        _last_id = evt['cursor'] = next(_ids)
        _events.append(evt)


def start(bus: Optional[EventBus] = None):
    """Subscribe the feed to bus (the global one by default); repeated calls are no-ops."""
    bus = bus or GLOBAL_EVENT_BUS
    if any(b is bus for b in _subscribed):
        return
    bus.subscribe(OPERATION_EVENTS + (WEEK_ARCHIVED,), _record)
    _subscribed.append(bus)
    logger.info("Operation event feed subscribed")


def get_events(since: Optional[int] = None) -> Dict[str, Any]:
    '''Buffered events with a cursor greater than since (everything buffered when since is None).'''
    with _lock:
        events = [e for e in _events if since is None or e['cursor'] > since]
        next_cursor = _last_id if _events else (since or 0)
    return {'events': events, 'next_cursor': next_cursor}


__all__ = ['start', 'get_events', 'flatten', 'MAX_EVENTS']
