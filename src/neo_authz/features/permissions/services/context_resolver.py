"""Context normalization and the global-fallback query policy."""

from typing import Any, Optional

from ....config.settings import ContextSettings
from ....core.exceptions import InvalidContextError
from ..entities import GLOBAL_CONTEXT, ContextFilter, ContextRef


class ContextResolver:
    """Turns context arguments into ``ContextRef`` values and grant edge filters.

    Every read path builds its filter through ``build_filter`` and every
    mutation through ``exact``, so the three-way policy lives in one place.
    """

    def __init__(self, settings: Optional[ContextSettings] = None):
        self.settings = settings or ContextSettings()

    @property
    def enabled(self) -> bool:
        return self.settings.enabled

    def resolve(self, context: Any = None) -> ContextRef:
        """Normalize a context argument.

        Accepts ``None``, a ``ContextRef``, a ``(type, id)`` pair, or any object
        exposing ``context_type`` and ``context_id``; such an object is kept as
        the ref's ``source``. With context support disabled every argument
        resolves to the global pair.
        """
        if context is None or not self.settings.enabled:
            return GLOBAL_CONTEXT
        if isinstance(context, ContextRef):
            return context
        if isinstance(context, tuple):
            if len(context) != 2:
                raise InvalidContextError(f"Context tuple must be (type, id), got {context!r}")
            context_type, context_id = context
            return ContextRef(context_type, None if context_id is None else str(context_id))
        if hasattr(context, "context_type") and hasattr(context, "context_id"):
            return ContextRef(context.context_type, str(context.context_id), source=context)
        raise InvalidContextError(f"Cannot resolve context from {type(context).__name__}")

    def build_filter(self, context: Any = None, fallback: Optional[bool] = None) -> ContextFilter:
        """Filter for read paths.

        - no context: global edges only
        - context, fallback off: edges of exactly that context
        - context, fallback on: edges of that context or global edges
        """
        ref = self.resolve(context)
        if ref.is_global:
            return ContextFilter.global_only()
        if self.settings.global_fallback if fallback is None else fallback:
            return ContextFilter((ref, GLOBAL_CONTEXT))
        return ContextFilter.exact(ref)

    def exact(self, context: Any = None) -> ContextRef:
        """Context written by attach, detach and sync."""
        return self.resolve(context)
