"""Login sessions persisted in sessions.json."""
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from ...common.store import JsonFileStore


class SessionStore:
    """Sessions keyed by id; created at login, removed at logout."""

    def __init__(self, path: Path):
        self._store = JsonFileStore(path, seed={"sessions": []})

    async def create(self, username: str) -> Dict[str, Any]:
        session = {
            "id": str(uuid.uuid4()),
            "username": username,
            "createdAt": datetime.now(timezone.utc).isoformat(),
        }

        def append(document: Dict[str, Any]) -> Dict[str, Any]:
            document["sessions"].append(session)
            return session

        return await self._store.update(append)

    async def get(self, session_id: str) -> Optional[Dict[str, Any]]:
        document = await self._store.read()
        return next((s for s in document["sessions"] if s["id"] == session_id), None)

    async def delete(self, session_id: str) -> bool:
        """Remove a session; False when it did not exist."""

        def remove(document: Dict[str, Any]) -> bool:
            before = len(document["sessions"])
            document["sessions"] = [s for s in document["sessions"] if s["id"] != session_id]
            return len(document["sessions"]) < before

        return await self._store.update(remove)
