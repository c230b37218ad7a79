"""
In-process publish/subscribe for calculator lifecycle events.

Topics used by the runner:
- calculator:computed  {calculator, inputs, results}
- calculator:reset     {calculator}

Subscribers (analytics, history, logging) are external to the pipeline.
They get a deep copy of each payload and cannot affect the publisher or
each other; a handler that raises is logged and skipped.
"""

import copy
import logging
from types import MappingProxyType
from typing import Callable

logger = logging.getLogger(__name__)

COMPUTED = "calculator:computed"
RESET = "calculator:reset"


def _freeze(value):
    if isinstance(value, dict):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


class EventBus:

    def __init__(self):
        self._handlers: dict[str, list[Callable]] = {}

    def subscribe(self, topic: str, handler: Callable) -> Callable[[], None]:
        """Add a handler; returns a callable that removes it again."""
        self._handlers.setdefault(topic, []).append(handler)

        def unsubscribe():
            handlers = self._handlers.get(topic, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def publish(self, topic: str, payload: dict = None) -> int:
        """Deliver payload to every handler of topic. Returns how many ran cleanly."""
        delivered = 0
        for handler in list(self._handlers.get(topic, [])):
            try:
                handler(_freeze(copy.deepcopy(payload or {})))
                delivered += 1
            except Exception:
                logger.exception("Handler %r failed for %s", handler, topic)
        return delivered

    def subscriber_count(self, topic: str) -> int:
        return len(self._handlers.get(topic, []))

    def reset(self) -> None:
        """Drop all subscriptions (tests, app shutdown)."""
        self._handlers.clear()
