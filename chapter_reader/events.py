"""Subscribe/unsubscribe registry for engine events."""

import logging
from typing import Callable

logger = logging.getLogger(__name__)


class EventEmitter:
    """Observer registry with a fixed set of event names.

    Listeners run in subscription order. A listener that raises is logged and
    the remaining listeners still run.
    """

    def __init__(self, names):
        self._listeners: dict[str, list[Callable]] = {name: [] for name in names}

    def _slot(self, name: str) -> list[Callable]:
        try:
            return self._listeners[name]
        except KeyError:
            raise ValueError(f"Unknown event: {name!r}") from None

    def on(self, name: str, callback: Callable) -> Callable:
        listeners = self._slot(name)
        if callback not in listeners:
            listeners.append(callback)
        return callback

    def off(self, name: str, callback: Callable) -> None:
        listeners = self._slot(name)
        if callback in listeners:
            listeners.remove(callback)

    def emit(self, name: str, *args) -> None:
        # Copy so listeners may (un)subscribe while being notified
        for callback in list(self._slot(name)):
            try:
                callback(*args)
            except Exception:
                logger.exception("Listener for %r failed", name)

    def listener_count(self, name: str) -> int:
        return len(self._slot(name))
