"""Tests for the runtime manifest client."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from zephyr_deps.errors import ZeErrors, ZephyrError
from zephyr_deps.manifest import build_manifest
from zephyr_deps.models import ResolvedRemote
from zephyr_deps.runtime import CacheState, ManifestCache, ManifestClient, diff_manifests

MANIFEST_URL = "https://host.example.com/zephyr-manifest.json"


def _manifest(urls, uid="host.shop.acme"):
    remotes = [
        ResolvedRemote(
            name=name,
            application_uid=f"{name}.shop.acme",
            remote_entry_url=url,
            public_path=url.rsplit("/", 1)[0] + "/",
            version="1.0.0",
        )
        for name, url in urls.items()
    ]
    return build_manifest(uid, remotes, timestamp="t")


class SlowFetcher:
    """Fetcher double returning queued manifests after a short delay."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    async def fetch(self, url):
        self.calls += 1
        await asyncio.sleep(0.01)
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, BaseException):
            raise result
        return result


class TestGetCurrentManifest:
    """Tests for single-flight fetching."""

    def test_concurrent_calls_share_one_fetch(self):
        fetcher = SlowFetcher(_manifest({"cart": "https://a/cart.js"}))
        client = ManifestClient(MANIFEST_URL, fetcher=fetcher)

        async def run():
            return await asyncio.gather(*(client.get_current_manifest() for _ in range(10)))

        results = asyncio.run(run())
        assert fetcher.calls == 1
        assert all(r is results[0] for r in results)

    def test_cached_manifest_is_reused(self):
        fetcher = SlowFetcher(_manifest({"cart": "https://a/cart.js"}))
        client = ManifestClient(MANIFEST_URL, fetcher=fetcher)

        async def run():
            first = await client.get_current_manifest()
            second = await client.get_current_manifest()
            return first, second

        first, second = asyncio.run(run())
        assert first is second
        assert fetcher.calls == 1

    def test_failure_returns_none_and_reports(self):
        error = ZephyrError(ZeErrors.ERR_MANIFEST_FETCH, url=MANIFEST_URL, reason="HTTP 500")
        on_error = MagicMock()
        client = ManifestClient(MANIFEST_URL, fetcher=SlowFetcher(error), on_manifest_error=on_error)

        assert asyncio.run(client.get_current_manifest()) is None
        on_error.assert_called_once_with(error)
        assert client.cache.get(MANIFEST_URL).state is CacheState.FAILED

    def test_failing_error_callback_is_swallowed(self):
        client = ManifestClient(
            MANIFEST_URL,
            fetcher=SlowFetcher(RuntimeError("boom")),
            on_manifest_error=MagicMock(side_effect=ValueError("callback")),
        )
        assert asyncio.run(client.get_current_manifest()) is None

    def test_entry_is_shared_under_manifest_uid(self):
        cache = ManifestCache()
        fetcher = SlowFetcher(_manifest({"cart": "https://a/cart.js"}))
        first = ManifestClient(MANIFEST_URL, cache=cache, fetcher=fetcher)
        asyncio.run(first.get_current_manifest())

        other_fetcher = SlowFetcher(_manifest({}))
        second = ManifestClient(
            "https://mirror.example.com/zephyr-manifest.json",
            application_uid="host.shop.acme",
            cache=cache,
            fetcher=other_fetcher,
        )
        manifest = asyncio.run(second.get_current_manifest())
        assert manifest.get("cart") is not None
        assert other_fetcher.calls == 0
        assert first.cache_key == "host.shop.acme"


class TestRefresh:
    """Tests for refresh diffs."""

    def test_changed_remote_fires_callbacks(self):
        old = _manifest({"cart": "https://a/v1/cart.js", "search": "https://a/search.js"})
        new = _manifest({"cart": "https://a/v2/cart.js", "search": "https://a/search.js"})
        on_change = MagicMock()
        on_remote = MagicMock()
        client = ManifestClient(
            MANIFEST_URL,
            fetcher=SlowFetcher(old, new),
            on_manifest_change=on_change,
            on_remote_url_change=on_remote,
        )

        async def run():
            await client.get_current_manifest()
            return await client.refresh()

        assert asyncio.run(run()) is new
        on_change.assert_called_once_with(new, old)
        assert on_remote.call_count == 1
        change = on_remote.call_args.args[0]
        assert change.remote_name == "cart"
        assert change.old_url == "https://a/v1/cart.js"
        assert change.new_url == "https://a/v2/cart.js"
        assert change.manifest is new

    def test_unchanged_refresh_is_silent(self):
        manifest = _manifest({"cart": "https://a/cart.js"})
        again = _manifest({"cart": "https://a/cart.js"})
        on_change = MagicMock()
        client = ManifestClient(
            MANIFEST_URL, fetcher=SlowFetcher(manifest, again), on_manifest_change=on_change
        )

        async def run():
            await client.get_current_manifest()
            await client.refresh()

        asyncio.run(run())
        on_change.assert_not_called()

    def test_refresh_joins_in_flight_fetch(self):
        fetcher = SlowFetcher(_manifest({"cart": "https://a/cart.js"}))
        client = ManifestClient(MANIFEST_URL, fetcher=fetcher)

        async def run():
            await asyncio.gather(client.get_current_manifest(), client.refresh(), client.refresh())

        asyncio.run(run())
        assert fetcher.calls == 1

    def test_concurrent_refreshes_notify_once(self):
        old = _manifest({"cart": "https://a/v1/cart.js"})
        new = _manifest({"cart": "https://a/v2/cart.js"})
        fetcher = SlowFetcher(old, new)
        on_change = MagicMock()
        on_remote = MagicMock()
        client = ManifestClient(
            MANIFEST_URL,
            fetcher=fetcher,
            on_manifest_change=on_change,
            on_remote_url_change=on_remote,
        )

        async def run():
            await client.get_current_manifest()
            return await asyncio.gather(client.refresh(), client.refresh(), client.refresh())

        results = asyncio.run(run())
        assert all(r is new for r in results)
        assert fetcher.calls == 2
        on_change.assert_called_once_with(new, old)
        assert on_remote.call_count == 1

    def test_refresh_after_failure_diffs_against_last_good(self):
        old = _manifest({"cart": "https://a/v1/cart.js"})
        new = _manifest({"cart": "https://a/v2/cart.js"})
        on_change = MagicMock()
        client = ManifestClient(
            MANIFEST_URL,
            fetcher=SlowFetcher(old, RuntimeError("down"), new),
            on_manifest_change=on_change,
        )

        async def run():
            await client.get_current_manifest()
            assert await client.refresh() is None
            return await client.refresh()

        assert asyncio.run(run()) is new
        on_change.assert_called_once_with(new, old)

    def test_async_callbacks_are_awaited(self):
        old = _manifest({"cart": "https://a/v1/cart.js"})
        new = _manifest({"cart": "https://a/v2/cart.js"})
        on_change = AsyncMock()
        client = ManifestClient(MANIFEST_URL, fetcher=SlowFetcher(old, new), on_manifest_change=on_change)

        async def run():
            await client.get_current_manifest()
            await client.refresh()

        asyncio.run(run())
        on_change.assert_awaited_once()


class TestDiffManifests:
    """Tests for the manifest diff."""

    def test_only_shared_keys_are_compared(self):
        old = _manifest({"cart": "https://a/1.js", "gone": "https://a/g.js"})
        new = _manifest({"cart": "https://a/2.js", "added": "https://a/n.js"})
        changes = diff_manifests(old, new)
        assert [c.remote_name for c in changes] == ["cart"]


@pytest.mark.parametrize("state", [CacheState.READY, CacheState.FAILED])
def test_invalidate_resets_settled_entries(state):
    cache = ManifestCache()
    entry = cache.get_or_create("k")
    entry.state = state
    entry.invalidate()
    assert entry.state is CacheState.EMPTY


def test_invalidate_keeps_replaced_manifest():
    manifest = _manifest({"cart": "https://a/cart.js"})
    entry = ManifestCache().get_or_create("k")
    entry.mark_ready(manifest)
    entry.invalidate()
    assert entry.manifest is None
    assert entry.previous is manifest


def test_invalidate_leaves_in_flight_fetch_alone():
    entry = ManifestCache().get_or_create("k")
    entry.state = CacheState.FETCHING
    entry.invalidate(previous=_manifest({}))
    assert entry.state is CacheState.FETCHING
    assert entry.previous is None
