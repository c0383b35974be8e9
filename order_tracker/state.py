"""
Snapshot cache: last-observed record per order id.

Owned by a single Reconciler; nothing else writes to it.
"""

from datetime import datetime, timedelta
from typing import Dict, Optional

from .models import OrderStatus
from .schemas import OrderRecord


class SnapshotCache:

    def __init__(self):
        self._orders: Dict[str, OrderRecord] = {}

    def get(self, order_id: str) -> Optional[OrderRecord]:
        return self._orders.get(order_id)

    def put(self, order: OrderRecord) -> None:
        self._orders[order.id] = order

    def __contains__(self, order_id: str) -> bool:
        return order_id in self._orders

    def __len__(self) -> int:
        return len(self._orders)

    def statuses(self) -> Dict[str, OrderStatus]:
        return {oid: o.status for oid, o in self._orders.items()}

    def copy(self) -> "SnapshotCache":
        # Records are frozen, a shallow copy is enough
        clone = SnapshotCache()
        clone._orders = dict(self._orders)
        return clone

    def evict_terminal(self, now: datetime, grace_s: float) -> int:
        """Drop delivered orders last updated more than grace_s seconds ago."""
        cutoff = now - timedelta(seconds=grace_s)
        stale = [
            oid for oid, o in self._orders.items()
            if o.status.is_terminal and o.updated_at <= cutoff
        ]
        for oid in stale:
            del self._orders[oid]
        return len(stale)

    def __eq__(self, other) -> bool:
        if not isinstance(other, SnapshotCache):
            return NotImplemented
        return self._orders == other._orders
