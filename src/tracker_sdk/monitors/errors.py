"""Error monitor - turns uncaught exceptions into error events."""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
import traceback
from types import TracebackType
from typing import Any

from ..events import EventRecord, EventType
from .base import EventSourceBase


logger = logging.getLogger(__name__)


class ErrorMonitor(EventSourceBase):
    """
    Captures uncaught exceptions from three places:

    - the main thread (sys.excepthook)
    - other threads (threading.excepthook)
    - an asyncio loop's exception handler, if a loop is given

    Previous hooks are always chained, so installing the monitor never hides
    an error from the host. destroy() puts the previous hooks back.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        super().__init__()
        self.loop = loop
        self._prev_excepthook = None
        self._prev_threading_hook = None
        self._prev_loop_handler = None
        self._installed = False

    def attach(self) -> None:
        """Install the hooks."""
        if self._installed:
            return

        self._prev_excepthook = sys.excepthook
        sys.excepthook = self._handle_exception

        self._prev_threading_hook = threading.excepthook
        threading.excepthook = self._handle_thread_exception

        if self.loop is not None:
            self._prev_loop_handler = self.loop.get_exception_handler()
            self.loop.set_exception_handler(self._handle_loop_exception)

        self._installed = True

    def destroy(self) -> None:
        """Restore the hooks that were active before attach()."""
        if not self._installed:
            return

        if sys.excepthook == self._handle_exception:
            sys.excepthook = self._prev_excepthook
        if threading.excepthook == self._handle_thread_exception:
            threading.excepthook = self._prev_threading_hook
        if self.loop is not None and not self.loop.is_closed():
            self.loop.set_exception_handler(self._prev_loop_handler)

        self._subscribers.clear()
        self._installed = False

    def capture(self, exc: BaseException, kind: str = "handled", **extra: Any) -> EventRecord:
        """Report an exception the host caught itself."""
        event = self._build_event(kind, type(exc), exc, exc.__traceback__, extra)
        self._emit(event)
        return event

    def _handle_exception(
        self,
        exc_type: type[BaseException],
        exc: BaseException,
        tb: TracebackType | None,
    ) -> None:
        if not issubclass(exc_type, KeyboardInterrupt):
            self._emit(self._build_event("uncaught", exc_type, exc, tb))
        self._prev_excepthook(exc_type, exc, tb)

    def _handle_thread_exception(self, args: threading.ExceptHookArgs) -> None:
        if args.exc_type is not SystemExit:
            thread_name = args.thread.name if args.thread is not None else None
            self._emit(self._build_event(
                "thread", args.exc_type, args.exc_value, args.exc_traceback,
                {"thread": thread_name},
            ))
        self._prev_threading_hook(args)

    def _handle_loop_exception(
        self,
        loop: asyncio.AbstractEventLoop,
        context: dict[str, Any],
    ) -> None:
        exc = context.get("exception")
        if exc is not None:
            event = self._build_event("async", type(exc), exc, exc.__traceback__,
                                      {"context": context.get("message")})
        else:
            event = EventRecord.create(EventType.ERROR, {
                "kind": "async",
                "message": context.get("message") or "Unknown asyncio error",
            })
        self._emit(event)

        if self._prev_loop_handler is not None:
            self._prev_loop_handler(loop, context)
        else:
            loop.default_exception_handler(context)

    def _build_event(
        self,
        kind: str,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
        extra: dict[str, Any] | None = None,
    ) -> EventRecord:
        type_name = exc_type.__name__ if exc_type is not None else "Exception"
        data: dict[str, Any] = {
            "kind": kind,
            "error_type": type_name,
            "message": str(exc) or type_name,
            "stack": "".join(traceback.format_exception(exc_type, exc, tb)) if exc is not None else None,
        }

        frames = traceback.extract_tb(tb) if tb is not None else []
        if frames:
            data["filename"] = frames[-1].filename
            data["lineno"] = frames[-1].lineno

        if extra:
            data.update({k: v for k, v in extra.items() if v is not None})

        return EventRecord.create(EventType.ERROR, data)
