from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
REFRESH_TOKEN_KEY = "refreshToken"


class TokenStore(Protocol):
    """Persisted key/value storage for credentials.

    The request layer treats storage as an opaque collaborator: it only ever
    gets, sets and removes string values by key.
    """

    async def get(self, key: str) -> str | None:
        """Return the stored value, or None when absent."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store a value under key."""
        ...

    async def remove(self, key: str) -> None:
        """Remove key; no-op when absent."""
        ...


class AuthTokenProvider(Protocol):
    """Protocol for resolving the current bearer token.

    Implementations must not raise, must not perform network calls and must
    not hold the token in memory between calls, so a logout or rotation is
    visible to the very next request.
    """

    async def get_token(self) -> str | None:
        """Get the current token, or None if there is none."""
        ...


class InMemoryTokenStore:
    """Dict-backed TokenStore for tests and short-lived scripts."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._values.get(key)

    async def set(self, key: str, value: str) -> None:
        self._values[key] = value

    async def remove(self, key: str) -> None:
        self._values.pop(key, None)


class FileTokenStore:
    """TokenStore persisted as a small JSON object on disk.

    File I/O runs in a worker thread so the event loop is not blocked.

    Args:
        path: JSON file holding the key/value pairs (created on first write)
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        text = self.path.read_text(encoding="utf-8")
        if not text.strip():
            return {}
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError(f"Token store {self.path} does not contain a JSON object")
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(self.path)

    async def get(self, key: str) -> str | None:
        data = await asyncio.to_thread(self._read)
        return data.get(key)

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            data[key] = value
            await asyncio.to_thread(self._write, data)

    async def remove(self, key: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            if key in data:
                del data[key]
                await asyncio.to_thread(self._write, data)


class StoredTokenProvider:
    """AuthTokenProvider that reads the token from a TokenStore on every call.

    Args:
        store: Backing token store
        key: Storage key holding the bearer token (default: "token")

    Example:
        >>> provider = StoredTokenProvider(InMemoryTokenStore({"token": "abc"}))
        >>> await provider.get_token()
        'abc'
    """

    def __init__(self, store: TokenStore, key: str = TOKEN_KEY) -> None:
        self._store = store
        self._key = key

    async def get_token(self) -> str | None:
        try:
            token = await self._store.get(self._key)
        except Exception as e:
            logger.warning(f"Token store read failed ({type(e).__name__}); treating as logged out")
            return None
        return token or None


async def save_tokens(
    store: TokenStore, access_token: str, refresh_token: str | None = None
) -> None:
    """Persist the access token and, when given, the refresh token."""
    await store.set(TOKEN_KEY, access_token)
    if refresh_token:
        await store.set(REFRESH_TOKEN_KEY, refresh_token)


async def clear_tokens(store: TokenStore) -> None:
    """Remove both tokens (logout)."""
    await store.remove(TOKEN_KEY)
    await store.remove(REFRESH_TOKEN_KEY)


def bearer_header(token: str) -> dict[str, str]:
    """Authorization header for a bearer token."""
    return {"Authorization": f"Bearer {token}"}
