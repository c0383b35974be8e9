from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .models import OrderStatus


def as_utc(value: datetime) -> datetime:
    # SQLite and pymongo (without tz_aware) hand back naive UTC datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderDraft(BaseModel):
    customer_name: str = Field(alias="customerName", min_length=1)
    product: str = Field(min_length=1)
    quantity: Optional[int] = 1
    price: Optional[float] = 0.0

    class Config:
        populate_by_name = True

    @field_validator("quantity")
    @classmethod
    def _quantity_default(cls, value):
        # 0 / null fall back to the default, like `quantity || 1`
        if not value:
            return 1
        if value < 0:
            raise ValueError("quantity must be positive")
        return value

    @field_validator("price")
    @classmethod
    def _price_default(cls, value):
        if not value:
            return 0.0
        if value < 0:
            raise ValueError("price must be non-negative")
        return value

    @classmethod
    def parse(cls, data: Any) -> "OrderDraft":
        """Coerce a dict (or an existing draft) into a draft, raising our ValidationError."""
        if isinstance(data, cls):
            return data
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(str(e)) from e


class OrderRecord(BaseModel):
    """Immutable snapshot of one order as read from the store."""

    id: str = Field(alias="_id")
    customer_name: str = Field(alias="customerName")
    product: str
    quantity: int = 1
    price: float = 0.0
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    class Config:
        populate_by_name = True
        frozen = True

    @field_validator("created_at", "updated_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @classmethod
    def from_row(cls, row) -> "OrderRecord":
        return cls(
            id=row.id,
            customer_name=row.customer_name,
            product=row.product,
            quantity=row.quantity,
            price=row.price,
            status=row.status,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "OrderRecord":
        return cls(
            id=str(doc["_id"]),
            customer_name=doc["customerName"],
            product=doc["product"],
            quantity=doc.get("quantity") or 1,
            price=doc.get("price") or 0.0,
            status=doc["status"],
            created_at=doc["createdAt"],
            updated_at=doc["updatedAt"],
        )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
