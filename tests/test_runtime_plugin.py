"""Tests for the federation runtime plugin."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from zephyr_deps.manifest import build_manifest
from zephyr_deps.models import ResolvedRemote
from zephyr_deps.runtime import (
    InMemorySessionStore,
    ManifestClient,
    ZephyrRuntimePlugin,
    create_zephyr_runtime_plugin,
    strip_versioned_prefix,
)


def _manifest(cart_url="https://cdn.example.com/cart/v2/remoteEntry.js"):
    return build_manifest(
        "host.shop.acme",
        [
            ResolvedRemote(
                name="cart",
                application_uid="cart.shop.acme",
                remote_entry_url=cart_url,
                public_path="https://cdn.example.com/cart/v2/",
                version="2.0.0",
            )
        ],
        timestamp="t",
    )


def _args(remote_id="cart/Button", remotes=None):
    if remotes is None:
        remotes = [
            {"name": "cart", "entry": "http://localhost:3001/remoteEntry.js"},
            {"name": "search", "alias": "find", "entry": "http://localhost:3002/remoteEntry.js"},
        ]
    return {"id": remote_id, "options": {"remotes": remotes}}


def _plugin(manifest=None, session_store=None):
    client = MagicMock(spec=ManifestClient)
    client.get_current_manifest = AsyncMock(return_value=manifest or _manifest())
    client.refresh = AsyncMock(return_value=manifest)
    return ZephyrRuntimePlugin(client, session_store), client


class TestBeforeRequest:
    """Tests for entry URL rewriting."""

    def test_name(self):
        plugin, _ = _plugin()
        assert plugin.name == "zephyr-runtime-remote-resolver"

    def test_rewrites_matching_remote_in_place(self):
        plugin, _ = _plugin()
        args = _args()
        result = asyncio.run(plugin.before_request(args))
        assert result is args
        assert args["options"]["remotes"][0]["entry"] == "https://cdn.example.com/cart/v2/remoteEntry.js"
        assert args["options"]["remotes"][1]["entry"] == "http://localhost:3002/remoteEntry.js"

    def test_unmanaged_remote_passes_through(self):
        plugin, _ = _plugin()
        args = _args("search/List")
        asyncio.run(plugin.before_request(args))
        assert args["options"]["remotes"][1]["entry"] == "http://localhost:3002/remoteEntry.js"

    def test_alias_is_matched(self):
        manifest = build_manifest(
            "host.shop.acme",
            [ResolvedRemote("find", "search.shop.acme", "https://cdn/search.js", "https://cdn/", "1.0.0")],
            timestamp="t",
        )
        plugin, _ = _plugin(manifest)
        args = _args("find/List")
        asyncio.run(plugin.before_request(args))
        assert args["options"]["remotes"][1]["entry"] == "https://cdn/search.js"

    def test_session_override_wins(self):
        store = InMemorySessionStore({"cart.shop.acme": "cart@http://localhost:9999/remoteEntry.js"})
        plugin, _ = _plugin(session_store=store)
        args = _args()
        asyncio.run(plugin.before_request(args))
        assert args["options"]["remotes"][0]["entry"] == "http://localhost:9999/remoteEntry.js"

    def test_versioned_manifest_url_is_split(self):
        plugin, _ = _plugin(_manifest("cart@https://cdn.example.com/cart/remoteEntry.js"))
        args = _args()
        asyncio.run(plugin.before_request(args))
        assert args["options"]["remotes"][0]["entry"] == "https://cdn.example.com/cart/remoteEntry.js"

    def test_missing_manifest_passes_through(self):
        plugin, client = _plugin()
        client.get_current_manifest = AsyncMock(return_value=None)
        args = _args()
        asyncio.run(plugin.before_request(args))
        assert args["options"]["remotes"][0]["entry"] == "http://localhost:3001/remoteEntry.js"

    def test_errors_pass_through(self):
        plugin, client = _plugin()
        client.get_current_manifest = AsyncMock(side_effect=RuntimeError("boom"))
        args = _args()
        assert asyncio.run(plugin.before_request(args)) is args
        assert args["options"]["remotes"][0]["entry"] == "http://localhost:3001/remoteEntry.js"

    def test_malformed_args_pass_through(self):
        plugin, _ = _plugin()
        args = {"options": {"remotes": []}}
        assert asyncio.run(plugin.before_request(args)) is args

    def test_lookup_table_is_memoized(self, monkeypatch):
        plugin, _ = _plugin()
        calls = []
        original = ZephyrRuntimePlugin.build_lookup

        def counting(manifest, remotes):
            calls.append(1)
            return original(manifest, remotes)

        monkeypatch.setattr(plugin, "build_lookup", counting)

        async def run():
            await plugin.before_request(_args())
            await plugin.before_request(_args("cart/Checkout"))

        asyncio.run(run())
        assert len(calls) == 1

    def test_new_manifest_rebuilds_lookup(self):
        plugin, client = _plugin()
        asyncio.run(plugin.before_request(_args()))

        client.get_current_manifest = AsyncMock(
            return_value=_manifest("https://cdn.example.com/cart/v3/remoteEntry.js")
        )
        args = _args()
        asyncio.run(plugin.before_request(args))
        assert args["options"]["remotes"][0]["entry"] == "https://cdn.example.com/cart/v3/remoteEntry.js"


class TestPluginControl:
    """Tests for the OTA control surface."""

    def test_refresh_delegates(self):
        manifest = _manifest()
        plugin, client = _plugin(manifest)
        assert asyncio.run(plugin.refresh()) is manifest
        client.refresh.assert_awaited_once()

    def test_factory_returns_plugin_and_client(self):
        fetcher = MagicMock()
        fetcher.fetch = AsyncMock(return_value=_manifest())
        plugin, instance = create_zephyr_runtime_plugin(
            "https://host.example.com/zephyr-manifest.json", fetcher=fetcher
        )
        assert isinstance(plugin, ZephyrRuntimePlugin)
        assert isinstance(instance, ManifestClient)
        assert plugin.client is instance
        manifest = asyncio.run(instance.get_current_manifest())
        assert manifest.get("cart") is not None


@pytest.mark.parametrize(
    "value,expected",
    [
        ("cart@https://cdn/remoteEntry.js", "https://cdn/remoteEntry.js"),
        ("https://cdn/remoteEntry.js", "https://cdn/remoteEntry.js"),
        ("https://user@cdn/remoteEntry.js", "https://user@cdn/remoteEntry.js"),
        ("a@b@https://cdn/x.js", "b@https://cdn/x.js"),
    ],
)
def test_strip_versioned_prefix(value, expected):
    assert strip_versioned_prefix(value) == expected
