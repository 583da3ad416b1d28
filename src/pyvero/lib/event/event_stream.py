# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol

EventHandler = Callable[[Any], None]

MESSAGE_CHANNEL = "message"


class EventSource(Protocol):
    """Anything that can register and remove listeners by channel name."""

    def on(self, name: str, handler: EventHandler) -> None: ...

    def off(self, name: str, handler: EventHandler) -> None: ...


class EventStream:
    """
    In-process listener registry keyed by channel name.

    The WebSocket client emits every decoded envelope on the ``message``
    channel; waiters subscribe and unsubscribe independently. Dispatch runs
    over a snapshot of the listener list, so a handler may remove itself
    (or another handler) while an event is being delivered.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[EventHandler]] = {}
        self.logger = logging.getLogger(self.__class__.__name__)

    def on(self, name: str, handler: EventHandler) -> None:
        self._listeners.setdefault(name, []).append(handler)

    def off(self, name: str, handler: EventHandler) -> None:
        """Remove one registration of ``handler``; unknown handlers are ignored."""
        handlers = self._listeners.get(name)
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            return
        if not handlers:
            del self._listeners[name]

    def emit(self, name: str, message: Any) -> int:
        """
        Deliver ``message`` to every listener of ``name``.

        Returns the number of handlers called. A handler that raises is
        logged and does not stop delivery to the others.
        """
        handlers = list(self._listeners.get(name, ()))
        for handler in handlers:
            try:
                handler(message)
            except Exception:
                self.logger.exception("Listener for '%s' failed", name)
        return len(handlers)

    def listener_count(self, name: str | None = None) -> int:
        if name is None:
            return sum(len(handlers) for handlers in self._listeners.values())
        return len(self._listeners.get(name, ()))

    def clear(self) -> None:
        self._listeners.clear()
