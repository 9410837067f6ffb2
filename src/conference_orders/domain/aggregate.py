"""Event-sourced aggregate base class."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from typing import Any, ClassVar, TypeVar, cast

from pydantic import BaseModel, ConfigDict, PrivateAttr

from .events import DomainEvent

T = TypeVar("T", bound="EventSourcedAggregate")

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def applier_name(event_type: type[DomainEvent]) -> str:
    """``ReservationAccepted`` -> ``apply_reservation_accepted``."""
    return "apply_" + _CAMEL_BOUNDARY.sub("_", event_type.__name__).lower()


class EventSourcedAggregate(BaseModel):
    """Base class for aggregates whose state is a fold over their history.

    Subclasses mutate state only inside ``apply_<event_name>`` methods and
    call :meth:`record_that` from their command methods::

        class Order(EventSourcedAggregate):
            def mark_as_booked(self) -> None:
                self.record_that(MarkedAsBooked(order_id=self.id))

            def apply_marked_as_booked(self, event: MarkedAsBooked) -> None:
                self.state = OrderState.BOOKED

    ``version`` counts every applied event, persisted or not. The number of
    persisted events is ``version - len(uncommitted_events)``.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    aggregate_type: ClassVar[str] = ""

    id: str
    _version: int = PrivateAttr(default=0)
    _recorded_events: list[DomainEvent] = PrivateAttr(
        default_factory=lambda: cast("list[DomainEvent]", [])
    )
    _appliers: ClassVar[dict[type[DomainEvent], str]]

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        cls._appliers = {}
        if not cls.__dict__.get("aggregate_type"):
            cls.aggregate_type = cls.__name__

    @classmethod
    def handles(cls, *event_types: type[DomainEvent]) -> None:
        """Resolve the applier of each event type once, at registration time."""
        for event_type in event_types:
            name = applier_name(event_type)
            if not callable(getattr(cls, name, None)):
                raise TypeError(f"{cls.__name__} has no {name}() for {event_type}")
            cls._appliers[event_type] = name

    @classmethod
    def from_history(
        cls: type[T], aggregate_id: str, events: Iterable[DomainEvent]
    ) -> T:
        """Rebuild an aggregate by replaying its persisted events in order."""
        aggregate = cls(id=aggregate_id)
        for event in events:
            aggregate._apply(event)
        return aggregate

    def record_that(self, event: DomainEvent) -> None:
        """Apply a new event and buffer it until the repository persists it."""
        if event.aggregate_id is None:
            event = event.model_copy(
                update={"aggregate_id": self.id, "aggregate_type": self.aggregate_type}
            )
        self._apply(event)
        self._recorded_events.append(event)

    def pop_recorded_events(self) -> list[DomainEvent]:
        """Return all uncommitted events and clear the buffer."""
        events = list(self._recorded_events)
        self._recorded_events.clear()
        return events

    @property
    def uncommitted_events(self) -> list[DomainEvent]:
        return list(self._recorded_events)

    @property
    def version(self) -> int:
        return self._version

    @property
    def persisted_version(self) -> int:
        """Stream version this aggregate was loaded at."""
        return self._version - len(self._recorded_events)

    def _apply(self, event: DomainEvent) -> None:
        name = self._appliers.get(type(event))
        if name is None:
            raise TypeError(
                f"{type(self).__name__} cannot apply {type(event).__name__}"
            )
        method = cast("Callable[[DomainEvent], None]", getattr(self, name))
        method(event)
        self._version += 1
