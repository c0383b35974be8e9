from datetime import datetime, timedelta, timezone

from order_tracker.errors import StoreUnavailable

ALICE = {"customerName": "Alice", "product": "Widget", "quantity": 2, "price": 9.99}


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds=1.0):
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class RecordingSubscriber:
    """Stands in for a websocket connection."""

    def __init__(self, fail=False):
        self.messages = []
        self.fail = fail

    async def send_json(self, message):
        if self.fail:
            raise ConnectionError("socket closed")
        self.messages.append(message)

    def events(self, event_type=None):
        return [m for m in self.messages if event_type is None or m["event"] == event_type]


class FlakyStore:
    """Delegates to a real store; list_orders fails while `down` is set."""

    def __init__(self, inner):
        self.inner = inner
        self.down = False
        self.updates_down = False

    def list_orders(self):
        if self.down:
            raise StoreUnavailable("connection refused")
        return self.inner.list_orders()

    def get_order(self, order_id):
        return self.inner.get_order(order_id)

    def insert_order(self, draft):
        return self.inner.insert_order(draft)

    def update_status(self, order_id, new_status, expected=None):
        if self.updates_down:
            raise StoreUnavailable("connection refused")
        return self.inner.update_status(order_id, new_status, expected)


def insert_raw_row(session_factory, order_id, status, when, **fields):
    """Write an orders row directly, bypassing the store's validation."""
    from order_tracker.models import Order

    db = session_factory()
    try:
        db.add(Order(
            id=order_id,
            customer_name=fields.get("customer_name", "Mallory"),
            product=fields.get("product", "Widget"),
            quantity=1,
            price=0.0,
            status=status,
            created_at=when,
            updated_at=when,
        ))
        db.commit()
    finally:
        db.close()
