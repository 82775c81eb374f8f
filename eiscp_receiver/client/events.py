# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Event dispatch for eISCP receiver clients.

Listeners are registered per event name. Plain callables are called
synchronously; if a listener returns an awaitable (e.g., it is a coroutine
function), the awaitable is scheduled as a task on the running loop.
"""

from __future__ import annotations

import asyncio
import inspect

from ..internal_types import *
from ..pkg_logging import logger

Listener = Callable[..., Any]

class EventSource:
    """The listeners of a single event"""
    _handlers: List[Listener]

    def __init__(self) -> None:
        self._handlers = []

    def add(self, handler: Listener) -> EventSource:
        self._handlers.append(handler)
        return self

    def remove(self, handler: Listener) -> EventSource:
        if handler in self._handlers:
            self._handlers.remove(handler)
        return self

    def handlers(self) -> Tuple[Listener, ...]:
        return tuple(self._handlers)

class EventEmitter:
    """Named events, each with its own listeners"""
    _sources: Dict[str, EventSource]
    _tasks: Set[asyncio.Task[Any]]

    def __init__(self) -> None:
        self._sources = {}
        self._tasks = set()

    def on(self, event: str, handler: Listener) -> Listener:
        """Adds a listener for an event. Returns the handler."""
        self._sources.setdefault(event, EventSource()).add(handler)
        return handler

    def remove_listener(self, event: str, handler: Listener) -> None:
        source = self._sources.get(event)
        if source is not None:
            source.remove(handler)

    def listeners(self, event: str) -> Tuple[Listener, ...]:
        source = self._sources.get(event)
        return () if source is None else source.handlers()

    def emit(self, event: str, *args: Any) -> bool:
        """Calls every listener of the event with args. Returns True if there were any listeners.

        A listener that raises is logged and does not prevent the other listeners from running.
        """
        handlers = self.listeners(event)
        for handler in handlers:
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    self._tasks.add(task)
                    task.add_done_callback(self._on_task_done)
            except Exception:
                logger.exception(f"Exception in listener for event {event!r}")
        return len(handlers) > 0

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Exception in async event listener", exc_info=task.exception())
