"""Integration events consumed from other bounded contexts.

Both arrive as JSON documents with camelCase keys.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .domain.events import DomainEvent
from .primitives.exceptions import BadRequestError

M = TypeVar("M", bound=BaseModel)


class ConferenceCreated(DomainEvent):
    conference_id: str
    name: str | None = None
    available_tickets: int


class PaymentReceived(DomainEvent):
    order_id: str
    paid_amount: float | None = None
    merchant_id: str | None = None


class ConferenceCreatedMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    name: str | None = None
    available_tickets: int = Field(alias="availableTickets", ge=0)


class PaymentReceivedMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    paid_amount: float | None = Field(default=None, alias="paidAmount")
    merchant_id: str | None = Field(default=None, alias="merchantId")
    correlation_id: str = Field(alias="correlationId", min_length=1)


RawMessage = str | bytes | Mapping[str, Any]


def _load(raw: RawMessage, message_type: str) -> dict[str, Any]:
    if isinstance(raw, Mapping):
        return dict(raw)
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise BadRequestError(
            f"{message_type} is not valid JSON: {exc}", message_type=message_type
        ) from exc
    if not isinstance(data, dict):
        raise BadRequestError(
            f"{message_type} must be a JSON object", message_type=message_type
        )
    return data


def _validate(model: type[M], data: dict[str, Any], message_type: str) -> M:
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise BadRequestError(
            f"Malformed {message_type}: {exc.error_count()} error(s)",
            message_type=message_type,
            errors=exc.errors(include_url=False),
        ) from exc


def parse_conference_created(raw: RawMessage) -> ConferenceCreated:
    data = _load(raw, "ConferenceCreated")
    message = _validate(ConferenceCreatedMessage, data, "ConferenceCreated")
    return ConferenceCreated(
        conference_id=message.id,
        name=message.name,
        available_tickets=message.available_tickets,
    )


def parse_payment_received(raw: RawMessage) -> PaymentReceived:
    """Parse a payment notification; ``correlationId`` is the order id."""
    data = _load(raw, "PaymentReceived")
    if "correlationId" not in data:
        raise BadRequestError(
            'Expected JSON data to contain a "correlationId" field',
            message_type="PaymentReceived",
        )
    message = _validate(PaymentReceivedMessage, data, "PaymentReceived")
    return PaymentReceived(
        order_id=message.correlation_id,
        paid_amount=message.paid_amount,
        merchant_id=message.merchant_id,
        correlation_id=message.correlation_id,
    )
