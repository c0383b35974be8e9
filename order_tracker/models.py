import enum
from typing import Optional

from sqlalchemy import Column, DateTime, Float, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"

    def rank(self) -> int:
        return _LIFECYCLE.index(self)

    def next_status(self) -> Optional["OrderStatus"]:
        idx = self.rank() + 1
        return _LIFECYCLE[idx] if idx < len(_LIFECYCLE) else None

    @property
    def is_terminal(self) -> bool:
        return self.next_status() is None


_LIFECYCLE = [
    OrderStatus.PENDING,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
]


class Order(Base):
    __tablename__ = 'orders'
    id = Column(String, primary_key=True)  # uuid4 hex, assigned on insert
    customer_name = Column(String, nullable=False)
    product = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Float, nullable=False, default=0.0)
    status = Column(String, nullable=False, default=OrderStatus.PENDING.value)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)
