"""In-process dispatcher for authorization domain events."""

import inspect
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Type, Union

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], Union[None, Awaitable[None]]]


class EventDispatcher:
    """Routes events to handlers subscribed to the event class or a base class.

    Handlers may be plain callables or coroutine functions. A failing handler
    is logged and skipped; the mutation that produced the event stays committed.
    """

    def __init__(self):
        self._handlers: Dict[Type, List[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: Type, handler: EventHandler) -> None:
        if handler not in self._handlers[event_type]:
            self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: Type, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def handlers_for(self, event: Any) -> List[EventHandler]:
        handlers: List[EventHandler] = []
        for cls in type(event).__mro__:
            handlers.extend(self._handlers.get(cls, []))
        return handlers

    async def dispatch(self, event: Any) -> int:
        """Deliver ``event`` to every matching handler, return how many succeeded."""
        delivered = 0
        for handler in self.handlers_for(event):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.warning(f"Event handler {handler!r} failed for {type(event).__name__}: {e}")
        return delivered
