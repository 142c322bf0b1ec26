"""Product catalog persisted as a JSON document."""
from pathlib import Path
from typing import Any, Dict, List, Optional

from ...common.store import JsonFileStore

DEFAULT_PRODUCTS: List[Dict[str, Any]] = [
    {
        "id": "1",
        "name": "Gaming Laptop",
        "price": 1299.99,
        "description": "High-performance gaming laptop",
        "category": "Electronics",
    },
    {
        "id": "2",
        "name": "Smartphone",
        "price": 799.99,
        "description": "Latest model smartphone",
        "category": "Electronics",
    },
    {
        "id": "3",
        "name": "Headphones",
        "price": 199.99,
        "description": "Wireless noise-canceling headphones",
        "category": "Electronics",
    },
]


class ProductCatalog:
    """Read-only view of products.json, seeded with the demo products."""

    def __init__(self, path: Path):
        self._store = JsonFileStore(path, seed={"products": DEFAULT_PRODUCTS})

    async def list(self) -> List[Dict[str, Any]]:
        document = await self._store.read()
        return document["products"]

    async def get(self, product_id: str) -> Optional[Dict[str, Any]]:
        for product in await self.list():
            if product["id"] == product_id:
                return product
        return None

    async def by_category(self, category: str) -> List[Dict[str, Any]]:
        return [p for p in await self.list() if p["category"] == category]
