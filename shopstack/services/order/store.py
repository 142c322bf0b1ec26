"""Orders persisted in orders.json."""
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ...common.errors import NotFoundError
from ...common.store import JsonFileStore

OrderRecord = Dict[str, Any]


def order_total(items: List[Dict[str, Any]]) -> float:
    """Sum of price * quantity, rounded to cents."""
    return round(sum((item.get("price") or 0) * item["quantity"] for item in items), 2)


class OrderRepository:
    def __init__(self, path: Path):
        self._store = JsonFileStore(path, seed={"orders": []})

    async def create(self, user_id: str, items: List[Dict[str, Any]]) -> OrderRecord:
        order = {
            "id": str(uuid.uuid4()),
            "userId": user_id,
            "items": [
                {
                    "productId": item["productId"],
                    "quantity": item["quantity"],
                    "price": item.get("price") or 0,
                    "productName": item.get("productName"),
                }
                for item in items
            ],
            "total": order_total(items),
            "status": "pending",
            "createdAt": datetime.now(timezone.utc).isoformat(),
        }

        def append(document: Dict[str, Any]) -> OrderRecord:
            document["orders"].append(order)
            return order

        return await self._store.update(append)

    async def for_user(self, user_id: str) -> List[OrderRecord]:
        """A user's orders, newest first."""
        document = await self._store.read()
        mine = [o for o in reversed(document["orders"]) if o["userId"] == user_id]
        return sorted(mine, key=lambda o: o["createdAt"], reverse=True)

    async def get(self, user_id: str, order_id: str) -> Optional[OrderRecord]:
        document = await self._store.read()
        for order in document["orders"]:
            if order["id"] == order_id and order["userId"] == user_id:
                return order
        return None

    async def set_status(self, order_id: str, status: str) -> OrderRecord:
        """
        Raises:
            NotFoundError: no order has this id
        """

        def apply(document: Dict[str, Any]) -> OrderRecord:
            for order in document["orders"]:
                if order["id"] == order_id:
                    order["status"] = status
                    return order
            raise NotFoundError("Order not found")

        return await self._store.update(apply)
