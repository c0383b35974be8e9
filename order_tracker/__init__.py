"""
order_tracker: live order lifecycle tracking.

Polls the order store, diffs it against a snapshot cache, auto-advances
orders through pending -> processing -> shipped -> delivered and broadcasts
orderCreated / statusUpdated events to connected subscribers.
"""

__version__ = "0.1.0"
