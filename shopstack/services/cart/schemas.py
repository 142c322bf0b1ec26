"""Cart service request/response models (camelCase on the wire)."""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CartItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(alias="productId")
    quantity: int
    price: Optional[float] = None
    product_name: Optional[str] = Field(default=None, alias="productName")


class Cart(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    items: List[CartItem] = Field(default_factory=list)


class AddItemRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(alias="productId", min_length=1)
    quantity: int = Field(default=1, ge=1)


class UpdateQuantityRequest(BaseModel):
    quantity: int = Field(ge=1)


class MessageResponse(BaseModel):
    message: str
