"""Product service response models."""
from typing import Optional

from pydantic import BaseModel


class Product(BaseModel):
    id: str
    name: str
    price: float
    description: str = ""
    category: str


class AvailabilityResponse(BaseModel):
    available: bool


class VerifyProductResponse(BaseModel):
    exists: bool
    product: Optional[Product] = None
