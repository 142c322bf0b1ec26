"""
In-memory carts.

Carts live in a dict keyed by user id. Every read and write goes through one
asyncio.Lock and callers only ever get copies, so a handler holding a cart
can't observe or cause a half-applied change.
"""
import asyncio
import copy
from typing import Any, Dict, List, Optional

from ...common.errors import NotFoundError
from ...observability.metrics import cart_active_carts

CartItem = Dict[str, Any]
Cart = Dict[str, Any]


class CartStore:
    def __init__(self) -> None:
        self._carts: Dict[str, List[CartItem]] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def _snapshot(user_id: str, items: List[CartItem]) -> Cart:
        return {"userId": user_id, "items": copy.deepcopy(items)}

    async def get(self, user_id: str) -> Optional[Cart]:
        async with self._lock:
            items = self._carts.get(user_id)
            if items is None:
                return None
            return self._snapshot(user_id, items)

    async def upsert_item(self, user_id: str, item: CartItem) -> Cart:
        """Replace the line for item's product, or append it."""
        async with self._lock:
            items = self._carts.setdefault(user_id, [])
            for existing in items:
                if existing["productId"] == item["productId"]:
                    existing.update(item)
                    break
            else:
                items.append(dict(item))
            cart_active_carts.set(len(self._carts))
            return self._snapshot(user_id, items)

    async def set_quantity(self, user_id: str, product_id: str, quantity: int) -> Cart:
        async with self._lock:
            items = self._carts.get(user_id)
            if items is None:
                raise NotFoundError("Cart not found")
            for existing in items:
                if existing["productId"] == product_id:
                    existing["quantity"] = quantity
                    return self._snapshot(user_id, items)
            raise NotFoundError("Item not found in cart")

    async def remove_item(self, user_id: str, product_id: str) -> Cart:
        """Drop a product's line. Removing an absent product is a no-op."""
        async with self._lock:
            items = self._carts.get(user_id)
            if items is None:
                raise NotFoundError("Cart not found")
            items[:] = [i for i in items if i["productId"] != product_id]
            return self._snapshot(user_id, items)

    async def clear(self, user_id: str) -> bool:
        """Forget a user's cart; returns whether there was one."""
        async with self._lock:
            existed = self._carts.pop(user_id, None) is not None
            cart_active_carts.set(len(self._carts))
            return existed
