from __future__ import annotations

import logging
from typing import Any, Callable

from flask_socketio import SocketIO


logger = logging.getLogger(__name__)


class TimerHandle:
    """Cancellation token for a single scheduled callback."""

    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class SocketIOScheduler:
    """Runs deferred callbacks as Socket.IO background tasks.

    Works with whatever async mode the SocketIO instance was created with
    (eventlet greenlets or plain threads).
    """

    def __init__(self, socketio: SocketIO) -> None:
        self._socketio = socketio

    def call_later(self, delay_ms: int, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        handle = TimerHandle()

        def _runner() -> None:
            self._socketio.sleep(max(0, delay_ms) / 1000)
            if handle.cancelled:
                return
            try:
                callback(*args)
            except Exception:
                logger.exception("timer callback %s failed", getattr(callback, "__name__", callback))

        self._socketio.start_background_task(_runner)
        return handle

    def spawn(self, fn: Callable[..., Any], *args: Any) -> None:
        self._socketio.start_background_task(fn, *args)
