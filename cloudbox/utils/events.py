from typing import Dict, List, Callable
import asyncio
import logging
logger = logging.getLogger(__name__)


class EventEmitter:
    """Simple event emitter for upload and bulk operation events."""

    def __init__(self):
        self._listeners: Dict[str, List[Callable]] = {}
        self._pending: List[asyncio.Task] = []

    def on(self, event_name: str, callback: Callable):
        """Subscribe to an event."""
        if event_name not in self._listeners:
            self._listeners[event_name] = []
        if callback not in self._listeners[event_name]:
            self._listeners[event_name].append(callback)

    def off(self, event_name: str, callback: Callable):
        """Unsubscribe from an event."""
        if event_name in self._listeners:
            if callback in self._listeners[event_name]:
                self._listeners[event_name].remove(callback)

    async def emit(self, event_name: str, *args, **kwargs):
        """Emit an event to all listeners, awaiting coroutine listeners."""
        if event_name not in self._listeners:
            return

        for callback in self._listeners[event_name][:]:  # Copy list to avoid modification during iteration
            try:
                if asyncio.iscoroutinefunction(callback):
                    await callback(*args, **kwargs)
                else:
                    callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in event listener for {event_name}: {e}")

    def emit_nowait(self, event_name: str, *args, **kwargs):
        """
        Emit from synchronous code (e.g. transport progress hooks).

        Plain listeners run immediately; coroutine listeners are scheduled
        on the running loop and collected by drain().
        """
        if event_name not in self._listeners:
            return

        for callback in self._listeners[event_name][:]:
            try:
                if asyncio.iscoroutinefunction(callback):
                    loop = asyncio.get_running_loop()
                    self._pending.append(loop.create_task(callback(*args, **kwargs)))
                else:
                    callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in event listener for {event_name}: {e}")

    async def drain(self):
        """Wait for coroutine listeners scheduled by emit_nowait."""
        while self._pending:
            pending, self._pending = self._pending, []
            results = await asyncio.gather(*pending, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.error(f"Error in async event listener: {result}")


class CancelToken:
    """
    Cooperative cancellation handle.

    Operations check it at wave or iteration boundaries; work already in
    flight is never interrupted.
    """

    def __init__(self):
        self._cancelled = False
        self._callbacks: List[Callable[[], None]] = []

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        for callback in self._callbacks:
            callback()

    def on_cancel(self, callback: Callable[[], None]) -> None:
        if self._cancelled:
            callback()
        else:
            self._callbacks.append(callback)
