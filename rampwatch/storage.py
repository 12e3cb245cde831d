"""Durable key-value storage backed by a small JSON file."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional

# Keys shared with the swap-initiation flow
AUTH_TOKEN_KEY = "authToken"
WALLET_ADDRESS_KEY = "walletAddress"
CURRENT_ORDER_ID_KEY = "currentOrderId"
ORDER_STATUS_KEY = "orderStatus"

logger = logging.getLogger(__name__)


class LocalStorage:
    """String key-value store persisted to ``path``.

    With ``path=None`` the store lives in memory only, which is what the
    tests use.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else None
        self._data: Dict[str, str] = self._load()

    def _load(self) -> Dict[str, str]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable storage file %s: %s", self.path, exc)
            return {}
        if not isinstance(raw, dict):
            logger.warning("Ignoring storage file %s with non-object content", self.path)
            return {}
        return {str(k): str(v) for k, v in raw.items() if v is not None}

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(self._data, indent=2, sort_keys=True), encoding="utf-8")
        os.replace(tmp, self.path)

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._flush()

    def update(self, values: Dict[str, str]) -> None:
        """Write several keys with a single flush."""
        self._data.update(values)
        self._flush()

    def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._flush()

    def clear(self) -> None:
        self._data.clear()
        self._flush()

    def __contains__(self, key: str) -> bool:
        return key in self._data
