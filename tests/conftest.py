from __future__ import annotations

import json
import uuid

import pytest

from conference_orders.bootstrap import Application, bootstrap

CONFERENCE_ID = "e5513420-1087-4aaf-82b3-202a124e3454"


def conference_created(tickets: int, conference_id: str = CONFERENCE_ID) -> str:
    return json.dumps(
        {
            "id": conference_id,
            "name": "Dutch PHP Conference",
            "availableTickets": tickets,
        }
    )


def payment_received(order_id: str) -> str:
    return json.dumps(
        {"paidAmount": 395.50, "merchantId": "foo123", "correlationId": order_id}
    )


def new_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture()
def app() -> Application:
    return bootstrap()
