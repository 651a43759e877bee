"""Tests for token stores and the stored-token provider."""

from __future__ import annotations

import json

from rentvest.core.api.http.auth import (
    REFRESH_TOKEN_KEY,
    TOKEN_KEY,
    FileTokenStore,
    InMemoryTokenStore,
    StoredTokenProvider,
    bearer_header,
    clear_tokens,
    save_tokens,
)


class BrokenStore:
    async def get(self, key: str) -> str | None:
        raise OSError("disk gone")

    async def set(self, key: str, value: str) -> None:
        raise OSError("disk gone")

    async def remove(self, key: str) -> None:
        raise OSError("disk gone")


class TestStoredTokenProvider:
    async def test_reads_current_value(self):
        store = InMemoryTokenStore()
        provider = StoredTokenProvider(store)
        assert await provider.get_token() is None

        await store.set(TOKEN_KEY, "abc")
        assert await provider.get_token() == "abc"

    async def test_empty_string_is_no_token(self):
        provider = StoredTokenProvider(InMemoryTokenStore({TOKEN_KEY: ""}))
        assert await provider.get_token() is None

    async def test_store_failure_reads_as_logged_out(self):
        assert await StoredTokenProvider(BrokenStore()).get_token() is None


async def test_save_and_clear_tokens():
    store = InMemoryTokenStore()

    await save_tokens(store, "access", "refresh")
    assert await store.get(TOKEN_KEY) == "access"
    assert await store.get(REFRESH_TOKEN_KEY) == "refresh"

    await clear_tokens(store)
    assert await store.get(TOKEN_KEY) is None
    assert await store.get(REFRESH_TOKEN_KEY) is None


async def test_save_without_refresh_token_keeps_previous():
    store = InMemoryTokenStore({REFRESH_TOKEN_KEY: "old"})
    await save_tokens(store, "access")
    assert await store.get(REFRESH_TOKEN_KEY) == "old"


class TestFileTokenStore:
    async def test_round_trip(self, tmp_path):
        path = tmp_path / "nested" / "tokens.json"
        store = FileTokenStore(path)

        assert await store.get(TOKEN_KEY) is None
        await store.set(TOKEN_KEY, "abc")

        assert json.loads(path.read_text()) == {TOKEN_KEY: "abc"}
        assert await FileTokenStore(path).get(TOKEN_KEY) == "abc"

        await store.remove(TOKEN_KEY)
        assert await store.get(TOKEN_KEY) is None

    async def test_remove_missing_key_is_noop(self, tmp_path):
        store = FileTokenStore(tmp_path / "tokens.json")
        await store.remove(TOKEN_KEY)
        assert not (tmp_path / "tokens.json").exists()


def test_bearer_header():
    assert bearer_header("abc") == {"Authorization": "Bearer abc"}
