"""On-disk response cache shared by clients of one invocation."""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class ResponseCache:
    """JSON file cache keyed by request identity.

    The cache starts disabled; lookups miss and writes are dropped until
    ``enable()`` is called. Entries never expire, so only responses for
    finished builds should be stored.
    """

    def __init__(self, directory: Path, *, enabled: bool = False) -> None:
        self.directory = directory
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    def enable(self) -> None:
        self._enabled = True

    def get(self, key: str) -> Any | None:
        if not self._enabled:
            return None
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable cache entry %s: %s", path, exc)
            return None
        if payload.get("key") != key:
            return None
        logger.debug("Cache hit for %s", key)
        return payload.get("value")

    def put(self, key: str, value: Any) -> None:
        if not self._enabled:
            return
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path_for(key)
        path.write_text(json.dumps({"key": key, "value": value}), encoding="utf-8")
        logger.debug("Cached %s at %s", key, path)

    def _path_for(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.directory / f"{digest}.json"
