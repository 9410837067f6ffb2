from .repository import EventSourcedRepository

__all__ = ["EventSourcedRepository"]
