"""Concurrent access to the in-memory cart store."""
import asyncio

import pytest
from httpx import AsyncClient

from shopstack.services.cart.store import CartStore


def _item(product_id: str, quantity: int = 1) -> dict:
    return {"productId": product_id, "quantity": quantity, "price": 1.0, "productName": product_id}


@pytest.mark.race
class TestCartStoreConcurrency:
    @pytest.mark.asyncio
    async def test_parallel_adds_of_distinct_products_all_land(self) -> None:
        store = CartStore()

        await asyncio.gather(*(store.upsert_item("u1", _item(str(i))) for i in range(100)))

        cart = await store.get("u1")
        assert sorted(int(i["productId"]) for i in cart["items"]) == list(range(100))

    @pytest.mark.asyncio
    async def test_parallel_adds_of_same_product_keep_one_line(self) -> None:
        store = CartStore()

        await asyncio.gather(*(store.upsert_item("u1", _item("1", quantity=q)) for q in range(1, 51)))

        cart = await store.get("u1")
        assert len(cart["items"]) == 1
        assert 1 <= cart["items"][0]["quantity"] <= 50

    @pytest.mark.asyncio
    async def test_snapshots_are_isolated(self) -> None:
        store = CartStore()
        await store.upsert_item("u1", _item("1"))

        snapshot = await store.get("u1")
        snapshot["items"][0]["quantity"] = 99
        snapshot["items"].append(_item("2"))

        cart = await store.get("u1")
        assert cart["items"] == [_item("1")]

    @pytest.mark.asyncio
    async def test_clear_during_adds_leaves_consistent_state(self) -> None:
        store = CartStore()

        ops = [store.upsert_item("u1", _item(str(i))) for i in range(20)] + [store.clear("u1")]
        await asyncio.gather(*ops)

        cart = await store.get("u1")
        if cart is not None:
            ids = [i["productId"] for i in cart["items"]]
            assert len(ids) == len(set(ids))

    @pytest.mark.asyncio
    async def test_parallel_http_adds_through_product_service(
        self, cart_client: AsyncClient, auth_headers
    ) -> None:
        responses = await asyncio.gather(
            *(
                cart_client.post(
                    "/api/cart/u1/items", json={"productId": pid, "quantity": 1}, headers=auth_headers
                )
                for pid in ("1", "2", "3") * 5
            )
        )

        assert all(r.status_code == 200 for r in responses)
        cart = (await cart_client.get("/api/cart/u1", headers=auth_headers)).json()
        assert sorted(i["productId"] for i in cart["items"]) == ["1", "2", "3"]
