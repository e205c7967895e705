from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from maintdesk.errors import ForbiddenError

logger = logging.getLogger(__name__)


class MasterDataStore:
    """Per-location reference data (buildings, areas, keywords) kept in one JSON file.

    Location keys are matched case-insensitively. A missing, empty or unreadable file reads
    as an empty document.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    async def get_for_location(self, location: str) -> dict[str, Any]:
        document = await asyncio.to_thread(self._read)
        key = self._match_key(document, location)
        return dict(document[key]) if key is not None else {}

    async def update_for_location(self, caller_location: str, location: str, data: dict[str, Any]) -> None:
        if location.strip().lower() != caller_location.strip().lower():
            raise ForbiddenError("Cannot update data for other locations")
        async with self._lock:
            document = await asyncio.to_thread(self._read)
            key = self._match_key(document, caller_location) or caller_location
            document[key] = data
            await asyncio.to_thread(self._write, document)
        logger.info("Master data updated for %s", key)

    @staticmethod
    def _match_key(document: dict[str, Any], location: str) -> str | None:
        wanted = location.strip().lower()
        return next((key for key in document if key.lower() == wanted), None)

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            logger.warning("Master data file does not exist: %s", self._path)
            return {}
        text = self._path.read_text(encoding="utf-8")
        if not text.strip():
            return {}
        try:
            document = json.loads(text)
        except json.JSONDecodeError:
            logger.error("Master data file %s is not valid JSON", self._path)
            return {}
        return document if isinstance(document, dict) else {}

    def _write(self, document: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        tmp_path.replace(self._path)
