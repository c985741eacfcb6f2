"""Live decision events."""

from trustgate.events.dispatcher import EventDispatcher, Subscription

__all__ = ["EventDispatcher", "Subscription"]
