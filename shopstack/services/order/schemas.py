"""Order service models."""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class OrderItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(alias="productId")
    quantity: int
    price: float
    product_name: Optional[str] = Field(default=None, alias="productName")


class Order(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: str = Field(alias="userId")
    items: List[OrderItem]
    total: float
    status: OrderStatus
    created_at: datetime = Field(alias="createdAt")


class StatusUpdateRequest(BaseModel):
    status: OrderStatus
