"""
Fire-and-forget delivery of pin levels to controller simulators.

The tick never waits on a simulator: calls are handed to a dispatcher and any
failure is logged at debug level and dropped. Every call carries a key
(controller id, pin); a newer call for a key that is still queued replaces
the older one, so a slow simulator only ever receives the latest level.
"""

from __future__ import annotations
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, Hashable, Tuple
import asyncio
import inspect
import logging
import threading

logger = logging.getLogger(__name__)


def _deliver(fn: Callable[..., Any], *args: Any) -> None:
    try:
        result = fn(*args)
        if inspect.isawaitable(result):
            asyncio.run(_await(result))
    except Exception as exc:
        logger.debug("Pin delivery %r%r failed: %s", getattr(fn, "__name__", fn), args, exc)


async def _await(awaitable) -> Any:
    return await awaitable


class ThreadDispatcher:
    """
    Runs deliveries on a single background worker so per-key ordering is
    preserved while the tick returns immediately.

    At most one delivery per key waits in the queue. Closing cancels whatever
    has not started yet.
    """

    def __init__(self) -> None:
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pin-bridge")
        self._lock = threading.Lock()
        self._pending: Dict[Hashable, Tuple[Callable[..., Any], Tuple[Any, ...]]] = {}
        self._queued: Dict[Hashable, Future] = {}
        self._closed = False

    def submit(self, key: Hashable, fn: Callable[..., Any], *args: Any) -> Future | None:
        """
        Queue `fn(*args)` under `key`.

        Returns:
            The future that will run the latest call for `key`, or None once closed.
        """
        with self._lock:
            if self._closed:
                logger.debug("Dispatcher closed; dropping %r", args)
                return None
            self._pending[key] = (fn, args)
            future = self._queued.get(key)
            if future is None:
                future = self._executor.submit(self._run, key)
                self._queued[key] = future
            return future

    def _run(self, key: Hashable) -> None:
        with self._lock:
            self._queued.pop(key, None)
            call = self._pending.pop(key, None)
        if call is not None:
            fn, args = call
            _deliver(fn, *args)

    def close(self, wait: bool = True) -> None:
        with self._lock:
            self._closed = True
            self._pending.clear()
            self._queued.clear()
        self._executor.shutdown(wait=wait, cancel_futures=True)


class InlineDispatcher:
    """Delivers synchronously on the calling thread (tests, scripts)."""

    def submit(self, key: Hashable, fn: Callable[..., Any], *args: Any) -> None:
        _deliver(fn, *args)

    def close(self, wait: bool = True) -> None:
        return None
