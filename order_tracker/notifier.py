"""
Fan-out broadcaster for order events.

Subscribers are anything with an async send_json(message), FastAPI WebSocket
connections included. Delivery is best-effort: no backlog, no retry, no ack.
"""

import logging
from typing import Any, Dict, List

from .schemas import OrderRecord

logger = logging.getLogger(__name__)

ORDER_CREATED = "orderCreated"
STATUS_UPDATED = "statusUpdated"
EVENT_TYPES = (ORDER_CREATED, STATUS_UPDATED)


def order_created_payload(order: OrderRecord) -> Dict[str, Any]:
    return order.to_wire()


def status_updated_payload(order: OrderRecord) -> Dict[str, Any]:
    return {
        "orderId": order.id,
        "newStatus": order.status.value,
        "order": order.to_wire(),
    }


class Notifier:

    def __init__(self):
        self._subscribers: List[Any] = []

    def connect(self, subscriber) -> None:
        self._subscribers.append(subscriber)
        logger.info("Subscriber connected (%d total)", len(self._subscribers))

    def disconnect(self, subscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)
            logger.info("Subscriber disconnected (%d total)", len(self._subscribers))

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def emit(self, event_type: str, payload: Dict[str, Any]) -> int:
        """Send one event to every current subscriber. Returns how many received it."""
        if event_type not in EVENT_TYPES:
            raise ValueError(f"unknown event type '{event_type}'")
        message = {"event": event_type, "data": payload}
        delivered = 0
        # Iterate over a copy, failing subscribers are removed as we go
        for subscriber in list(self._subscribers):
            try:
                await subscriber.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning("Dropping subscriber after failed send: %s", e)
                self.disconnect(subscriber)
        return delivered

    async def order_created(self, order: OrderRecord) -> int:
        return await self.emit(ORDER_CREATED, order_created_payload(order))

    async def status_updated(self, order: OrderRecord) -> int:
        return await self.emit(STATUS_UPDATED, status_updated_payload(order))
