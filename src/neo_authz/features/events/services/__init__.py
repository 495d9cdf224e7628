"""Event services."""

from .event_dispatcher import EventDispatcher, EventHandler

__all__ = ["EventDispatcher", "EventHandler"]
