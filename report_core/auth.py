from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional, Protocol

from report_core.config import TOKEN_KEY

logger = logging.getLogger(__name__)

DEFAULT_ROUTE = "/"


class TokenStore(Protocol):
    def get(self) -> Optional[str]: ...

    def set(self, token: str) -> None: ...

    def clear(self) -> None: ...


class MemoryTokenStore:
    def __init__(self, token: Optional[str] = None) -> None:
        self._token = token or None

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: str) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None


class FileTokenStore:
    """Keeps the bearer token in a small JSON file under a fixed key."""

    def __init__(self, path: Path, key: str = TOKEN_KEY) -> None:
        self.path = Path(path)
        self.key = key

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Token file %s is unreadable; ignoring it", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self) -> Optional[str]:
        token = self._read().get(self.key)
        return str(token) if token else None

    def set(self, token: str) -> None:
        data = self._read()
        data[self.key] = token
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def clear(self) -> None:
        data = self._read()
        if self.key not in data:
            return
        data.pop(self.key)
        self.path.write_text(json.dumps(data), encoding="utf-8")


def is_authenticated(store: TokenStore) -> bool:
    return bool(store.get())


def auth_headers(store: Optional[TokenStore]) -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    token = store.get() if store is not None else None
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def capture_token(store: TokenStore, token: Optional[str]) -> str:
    """Persist a token handed over by the bootstrap route and return where to go next."""
    if token:
        store.set(token)
        logger.info("Stored auth token from bootstrap route")
    return DEFAULT_ROUTE
