"""Command side: commands, handlers, mediator and event fan-out."""

from .command import Command
from .commands import (
    COMMAND_TYPES,
    CancelSeatReservation,
    CommitSeatReservation,
    ExpireOrder,
    MakeSeatReservation,
    MarkAsBooked,
    PlaceOrder,
    RejectOrder,
)
from .event_dispatcher import EventDispatcher
from .handler import CommandHandler
from .mediator import Mediator
from .registry import HandlerRegistry
from .response import CommandResponse

__all__ = [
    "COMMAND_TYPES",
    "CancelSeatReservation",
    "Command",
    "CommandHandler",
    "CommandResponse",
    "CommitSeatReservation",
    "EventDispatcher",
    "ExpireOrder",
    "HandlerRegistry",
    "MakeSeatReservation",
    "MarkAsBooked",
    "Mediator",
    "PlaceOrder",
    "RejectOrder",
]
