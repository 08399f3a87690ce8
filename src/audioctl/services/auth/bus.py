from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

__all__ = ["AuthSignal", "AuthSignalBus", "AUTH_ERROR", "PAIRING_SUCCESS", "get_bus"]

AUTH_ERROR = "auth-error"
PAIRING_SUCCESS = "pairing-success"

_log = logging.getLogger("audioctl.bus")


@dataclass(frozen=True, slots=True)
class AuthSignal:
    topic: str
    payload: Dict[str, Any] = field(default_factory=dict)
    ts: float = field(default_factory=time.time)


Handler = Callable[[AuthSignal], None]


class AuthSignalBus:
    """
    Process-wide publish/subscribe channel for authentication state changes:
      * delivery is synchronous, in registration order;
      * a failing handler is logged and does not stop delivery to the rest;
      * nothing is buffered, late subscribers never see earlier publications.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = {}

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        self._handlers.setdefault(topic, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(topic, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def publish(self, topic: str, payload: Dict[str, Any] | None = None) -> AuthSignal:
        signal = AuthSignal(topic=topic, payload=dict(payload or {}))
        # snapshot: handlers may unsubscribe themselves while being called
        for handler in list(self._handlers.get(topic, ())):
            try:
                handler(signal)
            except Exception:
                _log.warning("auth signal handler failed topic=%s handler=%r", topic, handler, exc_info=True)
        _log.debug("auth signal published topic=%s", topic)
        return signal

    def subscriber_count(self, topic: str) -> int:
        return len(self._handlers.get(topic, ()))


_BUS: AuthSignalBus | None = None


def get_bus() -> AuthSignalBus:
    global _BUS
    if _BUS is None:
        _BUS = AuthSignalBus()
    return _BUS
