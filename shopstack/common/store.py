"""
Flat JSON file "database".

One document per file, read and rewritten whole. All mutations of a store
go through update(), which holds an asyncio.Lock across read-modify-write,
so concurrent handlers in the same process never lose each other's writes.
Writes land in a temp file first and are swapped in with os.replace. File
reads and writes run in the default executor so the event loop keeps serving
other requests while a store waits on disk.
"""
import asyncio
import copy
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Document = Dict[str, Any]


class JsonFileStore:
    """
    Lock-guarded JSON document on disk.

    Args:
        path: File location; parent directories are created on demand
        seed: Document written when the file does not exist yet
    """

    def __init__(self, path: Path | str, seed: Document):
        self.path = Path(path)
        self._seed = copy.deepcopy(seed)
        self._lock = asyncio.Lock()

    def _load(self) -> Document:
        if not self.path.exists():
            self._write(self._seed)
            logger.info("json_store_seeded", store=str(self.path))
            return copy.deepcopy(self._seed)

        with self.path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self, document: Document) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            os.unlink(tmp_path)
            raise

    async def read(self) -> Document:
        """Snapshot of the whole document; mutating it changes nothing on disk."""
        async with self._lock:
            return await asyncio.get_running_loop().run_in_executor(None, self._load)

    async def update(self, mutate: Callable[[Document], T]) -> T:
        """
        Apply `mutate` to the document under the lock and persist it.

        `mutate` edits the document in place and may return a value, which is
        passed back to the caller (deep-copied, so it can't alias the store).
        """
        async with self._lock:
            loop = asyncio.get_running_loop()
            document = await loop.run_in_executor(None, self._load)
            result = mutate(document)
            await loop.run_in_executor(None, self._write, document)
            return copy.deepcopy(result)
