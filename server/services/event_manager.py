import logging
from typing import Dict, List, Callable, Any, Optional
import asyncio
import inspect

logger = logging.getLogger(__name__)

# Event names
APPLICATIONS_CHANGED = "APPLICATIONS_CHANGED"
APPLICATION_APPROVED = "APPLICATION_APPROVED"
APPLICATION_REJECTED = "APPLICATION_REJECTED"
APPLICATION_DELETED = "APPLICATION_DELETED"
PAYMENT_MARKED_PAID = "PAYMENT_MARKED_PAID"


class EventManager:
    """
    Internal event bus decoupling the lifecycle manager from its consumers
    (audit logging, realtime dashboard connections).
    """
    def __init__(self):
        self._subscribers: Dict[str, List[Callable]] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop):
        """Remember the server loop so other threads can emit onto it."""
        self._loop = loop

    def subscribe(self, event_type: str, handler: Callable):
        """Register a handler for a specific event type."""
        self._subscribers.setdefault(event_type, []).append(handler)
        logger.debug(f"🔌 {handler.__name__} subscribed to {event_type}")

    def unsubscribe(self, event_type: str, handler: Callable):
        handlers = self._subscribers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    async def emit(self, event_type: str, payload: Any):
        """Dispatch event to all subscribers."""
        handlers = list(self._subscribers.get(event_type, []))
        if not handlers:
            logger.debug(f"Event {event_type} emitted but no subscribers found.")
            return

        logger.info(f"📢 Emitting event: {event_type}")

        tasks = []
        for handler in handlers:
            if inspect.iscoroutinefunction(handler):
                tasks.append(handler(payload))
            else:
                # Run sync function in thread pool to avoid blocking
                loop = asyncio.get_running_loop()
                tasks.append(loop.run_in_executor(None, handler, payload))

        results = await asyncio.gather(*tasks, return_exceptions=True)
        for handler, result in zip(handlers, results):
            if isinstance(result, Exception):
                logger.error(f"❌ Handler {handler.__name__} failed on {event_type}: {result}")

    def emit_threadsafe(self, event_type: str, payload: Any):
        """
        Emit from a thread that does not own the event loop
        (the Firebase listener thread, sync route handlers).
        """
        if self._loop is None or self._loop.is_closed():
            logger.debug(f"No event loop bound, dropping {event_type}")
            return None
        return asyncio.run_coroutine_threadsafe(self.emit(event_type, payload), self._loop)


# Global Instance
event_bus = EventManager()
