"""Tests for the lock-guarded JSON file store."""
import asyncio
import json
import time

import pytest

from shopstack.common.store import JsonFileStore


class TestJsonFileStore:
    @pytest.mark.asyncio
    async def test_missing_file_is_seeded(self, tmp_path) -> None:
        store = JsonFileStore(tmp_path / "nested" / "orders.json", seed={"orders": []})

        assert await store.read() == {"orders": []}
        assert json.loads((tmp_path / "nested" / "orders.json").read_text()) == {"orders": []}

    @pytest.mark.asyncio
    async def test_update_persists_and_returns_result(self, tmp_path) -> None:
        store = JsonFileStore(tmp_path / "sessions.json", seed={"sessions": []})

        def add(document):
            document["sessions"].append({"id": "s1"})
            return len(document["sessions"])

        assert await store.update(add) == 1
        reopened = JsonFileStore(tmp_path / "sessions.json", seed={"sessions": []})
        assert await reopened.read() == {"sessions": [{"id": "s1"}]}

    @pytest.mark.asyncio
    async def test_failed_mutation_writes_nothing(self, tmp_path) -> None:
        store = JsonFileStore(tmp_path / "orders.json", seed={"orders": [{"id": "o1"}]})
        await store.read()

        def broken(document):
            document["orders"].clear()
            raise KeyError("boom")

        with pytest.raises(KeyError):
            await store.update(broken)

        assert await store.read() == {"orders": [{"id": "o1"}]}

    @pytest.mark.asyncio
    async def test_returned_values_do_not_alias_the_store(self, tmp_path) -> None:
        store = JsonFileStore(tmp_path / "orders.json", seed={"orders": []})

        order = await store.update(lambda d: d["orders"].append({"id": "o1"}) or d["orders"][0])
        order["id"] = "changed"

        assert (await store.read())["orders"][0]["id"] == "o1"

    @pytest.mark.race
    @pytest.mark.asyncio
    async def test_concurrent_updates_are_not_lost(self, tmp_path) -> None:
        store = JsonFileStore(tmp_path / "counter.json", seed={"items": []})

        async def append(i: int) -> None:
            await store.update(lambda d: d["items"].append(i))

        await asyncio.gather(*(append(i) for i in range(50)))

        assert sorted((await store.read())["items"]) == list(range(50))
        assert not [p for p in tmp_path.iterdir() if p.name.startswith(".counter.json.")]

    @pytest.mark.asyncio
    async def test_disk_io_does_not_block_event_loop(self, tmp_path, monkeypatch) -> None:
        store = JsonFileStore(tmp_path / "orders.json", seed={"orders": []})
        await store.read()
        real_write = store._write

        def slow_write(document):
            time.sleep(0.3)
            real_write(document)

        monkeypatch.setattr(store, "_write", slow_write)
        ticks = 0
        done = asyncio.Event()

        async def ticker() -> None:
            nonlocal ticks
            while not done.is_set():
                ticks += 1
                await asyncio.sleep(0.01)

        ticking = asyncio.create_task(ticker())
        await store.update(lambda d: d["orders"].append({"id": "o1"}))
        done.set()
        await ticking

        assert ticks >= 5
        assert (await store.read())["orders"] == [{"id": "o1"}]
