"""
Store adapters over the authoritative order store.

OrderStore ABC: list_orders, get_order, insert_order, update_status.
SqlOrderStore runs on a SQLAlchemy session factory; MongoOrderStore on a
pymongo collection. Driver errors surface as StoreUnavailable.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional

from bson import ObjectId
from pydantic import ValidationError as PydanticValidationError
from pymongo import DESCENDING
from pymongo.errors import PyMongoError
from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError

from .errors import NotFound, StoreUnavailable
from .models import Order, OrderStatus
from .schemas import OrderDraft, OrderRecord, utcnow

logger = logging.getLogger(__name__)


def _readable(raw, convert) -> List[OrderRecord]:
    records = []
    for item in raw:
        try:
            records.append(convert(item))
        except (PydanticValidationError, KeyError) as e:
            # One corrupt record must not hide the rest of the store
            logger.warning("Skipping unreadable order record: %s", e)
    return records


class OrderStore(ABC):

    @abstractmethod
    def list_orders(self) -> List[OrderRecord]:
        """All orders, newest createdAt first."""
        ...

    @abstractmethod
    def get_order(self, order_id: str) -> OrderRecord:
        """Raises NotFound if the id is unknown."""
        ...

    @abstractmethod
    def insert_order(self, draft: Any) -> OrderRecord:
        """
        Persist a new order as pending with createdAt = updatedAt = now.
        Accepts an OrderDraft or a dict; raises ValidationError on a bad draft.
        """
        ...

    @abstractmethod
    def update_status(self, order_id: str, new_status: OrderStatus,
                      expected: Optional[OrderStatus] = None) -> bool:
        """
        Set status and updatedAt = now. When `expected` is given the write only
        applies if the current status equals it. Unknown ids are a no-op.
        Returns True if an order was modified.
        """
        ...


class SqlOrderStore(OrderStore):

    def __init__(self, session_factory, clock: Callable = utcnow):
        self._session_factory = session_factory
        self._clock = clock

    def list_orders(self) -> List[OrderRecord]:
        db = self._session_factory()
        try:
            rows = db.query(Order).order_by(desc(Order.created_at)).all()
            return _readable(rows, OrderRecord.from_row)
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"listing orders failed: {e}") from e
        finally:
            db.close()

    def get_order(self, order_id: str) -> OrderRecord:
        db = self._session_factory()
        try:
            row = db.query(Order).filter(Order.id == order_id).first()
            if row is None:
                raise NotFound(order_id)
            return OrderRecord.from_row(row)
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"reading order {order_id} failed: {e}") from e
        finally:
            db.close()

    def insert_order(self, draft: Any) -> OrderRecord:
        draft = OrderDraft.parse(draft)
        now = self._clock()
        db = self._session_factory()
        try:
            row = Order(
                id=uuid.uuid4().hex,
                customer_name=draft.customer_name,
                product=draft.product,
                quantity=draft.quantity,
                price=draft.price,
                status=OrderStatus.PENDING.value,
                created_at=now,
                updated_at=now,
            )
            db.add(row)
            db.commit()
            return OrderRecord.from_row(row)
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreUnavailable(f"inserting order failed: {e}") from e
        finally:
            db.close()

    def update_status(self, order_id: str, new_status: OrderStatus,
                      expected: Optional[OrderStatus] = None) -> bool:
        db = self._session_factory()
        try:
            query = db.query(Order).filter(Order.id == order_id)
            if expected is not None:
                query = query.filter(Order.status == OrderStatus(expected).value)
            count = query.update(
                {Order.status: OrderStatus(new_status).value, Order.updated_at: self._clock()},
                synchronize_session=False,
            )
            db.commit()
            return count > 0
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreUnavailable(f"updating order {order_id} failed: {e}") from e
        finally:
            db.close()


def _object_id(order_id: str):
    # Ids are handed out as strings; documents written by us use ObjectId keys
    return ObjectId(order_id) if ObjectId.is_valid(order_id) else order_id


class MongoOrderStore(OrderStore):

    def __init__(self, collection, clock: Callable = utcnow):
        self._collection = collection
        self._clock = clock

    def list_orders(self) -> List[OrderRecord]:
        try:
            docs = list(self._collection.find({}).sort("createdAt", DESCENDING))
        except PyMongoError as e:
            raise StoreUnavailable(f"listing orders failed: {e}") from e
        return _readable(docs, OrderRecord.from_document)

    def get_order(self, order_id: str) -> OrderRecord:
        try:
            doc = self._collection.find_one({"_id": _object_id(order_id)})
        except PyMongoError as e:
            raise StoreUnavailable(f"reading order {order_id} failed: {e}") from e
        if doc is None:
            raise NotFound(order_id)
        return OrderRecord.from_document(doc)

    def insert_order(self, draft: Any) -> OrderRecord:
        draft = OrderDraft.parse(draft)
        now = self._clock()
        doc = {
            "customerName": draft.customer_name,
            "product": draft.product,
            "quantity": draft.quantity,
            "price": draft.price,
            "status": OrderStatus.PENDING.value,
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            result = self._collection.insert_one(doc)
        except PyMongoError as e:
            raise StoreUnavailable(f"inserting order failed: {e}") from e
        doc["_id"] = result.inserted_id
        return OrderRecord.from_document(doc)

    def update_status(self, order_id: str, new_status: OrderStatus,
                      expected: Optional[OrderStatus] = None) -> bool:
        query = {"_id": _object_id(order_id)}
        if expected is not None:
            query["status"] = OrderStatus(expected).value
        update = {"$set": {"status": OrderStatus(new_status).value, "updatedAt": self._clock()}}
        try:
            result = self._collection.update_one(query, update)
        except PyMongoError as e:
            raise StoreUnavailable(f"updating order {order_id} failed: {e}") from e
        return result.modified_count > 0
