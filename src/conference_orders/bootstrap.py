"""Application context: builds and wires every collaborator once."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .adapters.memory import (
    InMemoryCommandScheduler,
    InMemoryEventStore,
    InMemoryLockStrategy,
    InMemoryOrderProcessRepository,
)
from .config import OrderProcessingConfig
from .correlation import get_correlation_id, set_correlation_id
from .cqrs.commands import (
    CancelSeatReservation,
    CommitSeatReservation,
    ExpireOrder,
    MakeSeatReservation,
    MarkAsBooked,
    PlaceOrder,
    RejectOrder,
)
from .cqrs.event_dispatcher import EventDispatcher
from .cqrs.handlers import (
    CancelSeatReservationHandler,
    CommitSeatReservationHandler,
    ConferenceCreatedHandler,
    ExpireOrderHandler,
    MakeSeatReservationHandler,
    MarkAsBookedHandler,
    PlaceOrderHandler,
    RejectOrderHandler,
)
from .cqrs.mediator import Mediator
from .cqrs.registry import HandlerRegistry
from .domain.events import EventTypeRegistry
from .domain.order import ORDER_EVENTS, Order
from .domain.seats_availability import SEATS_EVENTS, SeatsAvailability
from .event_sourcing.repository import EventSourcedRepository
from .integration import (
    ConferenceCreated,
    RawMessage,
    parse_conference_created,
    parse_payment_received,
)
from .middleware import (
    ConcurrencyGuardMiddleware,
    LoggingMiddleware,
    OptimisticRetryMiddleware,
)
from .observers import EventLogObserver, NotificationHooks
from .sagas.manager import OrderProcessManager
from .scheduling.service import CommandSchedulerService
from .scheduling.worker import CommandSchedulerWorker

if TYPE_CHECKING:
    from .cqrs.command import Command
    from .cqrs.response import CommandResponse
    from .integration import PaymentReceived
    from .ports.event_store import IEventStore
    from .ports.locking import ILockStrategy
    from .ports.process_state import IOrderProcessRepository
    from .ports.scheduling import ICommandScheduler
    from .sagas.state import OrderProcessState

logger = logging.getLogger("conference_orders")


@dataclass
class Application:
    """Everything a process needs, constructed once by :func:`bootstrap`.

    Nothing here is global: tests and workers each build their own.
    """

    config: OrderProcessingConfig
    event_store: IEventStore
    orders: EventSourcedRepository[Order]
    seats: EventSourcedRepository[SeatsAvailability]
    process_states: IOrderProcessRepository
    scheduler: ICommandScheduler
    lock_strategy: ILockStrategy
    event_dispatcher: EventDispatcher
    mediator: Mediator
    process_manager: OrderProcessManager
    scheduler_service: CommandSchedulerService
    scheduler_worker: CommandSchedulerWorker
    event_registry: EventTypeRegistry = field(default_factory=EventTypeRegistry)

    # ── Commands ─────────────────────────────────────────────────────

    async def send(self, command: Command) -> CommandResponse:
        return await self.mediator.send(command)

    async def place_order(
        self, order_id: str, conference_id: str, number_of_tickets: int
    ) -> CommandResponse:
        return await self.send(
            PlaceOrder(
                order_id=order_id,
                conference_id=conference_id,
                number_of_tickets=number_of_tickets,
            )
        )

    async def expire_order(self, order_id: str) -> CommandResponse:
        return await self.send(ExpireOrder(order_id=order_id))

    # ── Integration events ───────────────────────────────────────────

    async def consume_conference_created(self, raw: RawMessage) -> ConferenceCreated:
        """Parse and publish a ``ConferenceCreated`` message.

        Raises:
            BadRequestError: If the payload is malformed.
        """
        event = parse_conference_created(raw)
        await self.event_dispatcher.dispatch([event])
        return event

    async def consume_payment_received(self, raw: RawMessage) -> PaymentReceived:
        """Parse and publish a ``PaymentReceived`` message.

        Raises:
            BadRequestError: If the payload is malformed or lacks
                ``correlationId``.
        """
        event = parse_payment_received(raw)
        previous = get_correlation_id()
        set_correlation_id(event.correlation_id)
        try:
            await self.event_dispatcher.dispatch([event])
        finally:
            set_correlation_id(previous)
        return event

    # ── Queries ──────────────────────────────────────────────────────

    async def get_order(self, order_id: str) -> Order | None:
        return await self.orders.get(order_id)

    async def get_seats_availability(
        self, conference_id: str
    ) -> SeatsAvailability | None:
        return await self.seats.get(conference_id)

    async def get_order_process(self, order_id: str) -> OrderProcessState | None:
        return await self.process_states.get(order_id)

    # ── Lifecycle ────────────────────────────────────────────────────

    async def start(self) -> None:
        """Start the worker; its first cycle re-sends anything left pending."""
        await self.scheduler_worker.start()

    async def stop(self) -> None:
        await self.scheduler_worker.stop()


def bootstrap(
    config: OrderProcessingConfig | None = None,
    *,
    event_store: IEventStore | None = None,
    process_states: IOrderProcessRepository | None = None,
    scheduler: ICommandScheduler | None = None,
    lock_strategy: ILockStrategy | None = None,
    log_events: bool = True,
) -> Application:
    """Build an :class:`Application`, defaulting every port to memory."""
    config = config or OrderProcessingConfig()
    event_store = event_store or InMemoryEventStore()
    process_states = process_states or InMemoryOrderProcessRepository()
    scheduler = scheduler or InMemoryCommandScheduler()
    lock_strategy = lock_strategy or InMemoryLockStrategy()

    event_registry = EventTypeRegistry()
    event_registry.register_all(*ORDER_EVENTS, *SEATS_EVENTS)
    orders = EventSourcedRepository(Order, event_store, event_registry)
    seats = EventSourcedRepository(SeatsAvailability, event_store, event_registry)

    registry = HandlerRegistry()
    registry.register_command_handler(PlaceOrder, PlaceOrderHandler(orders))
    registry.register_command_handler(MarkAsBooked, MarkAsBookedHandler(orders))
    registry.register_command_handler(RejectOrder, RejectOrderHandler(orders))
    registry.register_command_handler(ExpireOrder, ExpireOrderHandler(orders))
    registry.register_command_handler(
        MakeSeatReservation, MakeSeatReservationHandler(seats)
    )
    registry.register_command_handler(
        CommitSeatReservation, CommitSeatReservationHandler(seats)
    )
    registry.register_command_handler(
        CancelSeatReservation, CancelSeatReservationHandler(seats)
    )

    event_dispatcher = EventDispatcher()
    mediator = Mediator(
        registry,
        event_dispatcher,
        middlewares=[
            LoggingMiddleware(),
            OptimisticRetryMiddleware(config.concurrency_retry),
            ConcurrencyGuardMiddleware(lock_strategy, timeout=config.lock_timeout),
        ],
    )

    event_dispatcher.register(
        ConferenceCreated,
        ConferenceCreatedHandler(seats, event_dispatcher.dispatch),
    )
    if log_events:
        EventLogObserver().bind_to(event_dispatcher)
        NotificationHooks().bind_to(event_dispatcher)

    process_manager = OrderProcessManager(
        process_states,
        mediator,
        scheduler,
        lock_strategy,
        payment_window=config.payment_window,
        lock_timeout=config.lock_timeout,
    )
    process_manager.bind_to(event_dispatcher)

    scheduler_service = CommandSchedulerService(scheduler, mediator.send)
    scheduler_worker = CommandSchedulerWorker(
        scheduler_service,
        recover=process_manager.recover_pending_commands,
        poll_interval=config.scheduler_poll_interval,
    )

    logger.debug("Application bootstrapped (payment_window=%s)", config.payment_window)
    return Application(
        config=config,
        event_store=event_store,
        orders=orders,
        seats=seats,
        process_states=process_states,
        scheduler=scheduler,
        lock_strategy=lock_strategy,
        event_dispatcher=event_dispatcher,
        mediator=mediator,
        process_manager=process_manager,
        scheduler_service=scheduler_service,
        scheduler_worker=scheduler_worker,
        event_registry=event_registry,
    )
