"""Tests for the zephyr-deps command line."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from zephyr_deps.args import parse_args
from zephyr_deps.cli import exit_code_for, main
from zephyr_deps.constants import ExitCodes
from zephyr_deps.errors import ZeErrors, ZephyrError
from zephyr_deps.manifest import build_manifest
from zephyr_deps.models import ResolvedRemote

REMOTE = ResolvedRemote(
    name="cart",
    application_uid="cart.shop.acme",
    remote_entry_url="https://cdn.example.com/cart/remoteEntry.js",
    public_path="https://cdn.example.com/cart/",
    version="1.0.0",
)


@pytest.fixture
def project(tmp_path):
    package_json = {
        "name": "host",
        "zephyr:dependencies": {"cart": "zephyr:cart@^1.0.0", "nav": {"ios": "2.0.0"}},
    }
    (tmp_path / "package.json").write_text(json.dumps(package_json))
    return tmp_path


class TestArgs:
    """Tests for argument parsing."""

    def test_resolve_defaults(self):
        args = parse_args(["resolve"])
        assert args.COMMAND == "resolve"
        assert args.CONTINUE_ON_ERROR is False
        assert args.LOG_LEVEL == "INFO"

    def test_inspect_requires_url(self):
        with pytest.raises(SystemExit):
            parse_args(["inspect"])

    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            parse_args([])


class TestResolveCommand:
    """Tests for ``zephyr-deps resolve``."""

    @patch("zephyr_deps.cli.resolve_remote_dependencies", new_callable=AsyncMock)
    def test_writes_manifest(self, mock_resolve, project, tmp_path):
        mock_resolve.return_value = [REMOTE]
        out_dir = tmp_path / "dist"
        code = main([
            "resolve", "--root", str(project), "--output-dir", str(out_dir),
            "--application-uid", "host.shop.acme", "--token", "tok",
        ])
        assert code == ExitCodes.SUCCESS.value

        descriptors = mock_resolve.call_args.args[0]
        assert [d.key for d in descriptors] == ["cart"]
        config = mock_resolve.call_args.kwargs["config"]
        assert config.token == "tok"
        assert config.abort_on_error is True

        written = json.loads((out_dir / "zephyr-manifest.json").read_text())
        assert written["application_uid"] == "host.shop.acme"
        assert written["dependencies"]["cart"]["version"] == "1.0.0"

    @patch("zephyr_deps.cli.resolve_remote_dependencies", new_callable=AsyncMock)
    def test_platform_selects_entries(self, mock_resolve, project, capsys):
        mock_resolve.return_value = []
        main([
            "resolve", "--root", str(project), "--platform", "ios",
            "--application-uid", "host.shop.acme", "--continue-on-error",
        ])
        descriptors = mock_resolve.call_args.args[0]
        assert [d.key for d in descriptors] == ["cart", "nav"]
        assert mock_resolve.call_args.kwargs["config"].abort_on_error is False
        printed = json.loads(capsys.readouterr().out)
        assert printed["dependencies"] == {}

    @patch("zephyr_deps.cli.resolve_remote_dependencies", new_callable=AsyncMock)
    def test_resolution_error_exit_code(self, mock_resolve, project):
        mock_resolve.side_effect = ZephyrError(
            ZeErrors.ERR_RESOLVE_REMOTES, app_uid="cart.shop.acme", version="^1.0.0", status=500
        )
        code = main(["resolve", "--root", str(project), "--application-uid", "host.shop.acme"])
        assert code == ExitCodes.RESOLUTION_ERROR.value

    @patch("zephyr_deps.cli.resolve_remote_dependencies", new_callable=AsyncMock)
    def test_catalog_entries_are_resolved_before_parsing(self, mock_resolve, tmp_path):
        mock_resolve.return_value = [REMOTE]
        (tmp_path / "pnpm-workspace.yaml").write_text(
            "catalogs:\n  remotes:\n    cart: ^1.2.0\n    nav: 2.0.0\n"
        )
        (tmp_path / "package.json").write_text(json.dumps({
            "name": "host",
            "zephyr:dependencies": {"cart": "catalog:remotes", "nav": {"ios": "catalog:remotes"}},
        }))
        code = main([
            "resolve", "--root", str(tmp_path), "--platform", "ios",
            "--application-uid", "host.shop.acme",
        ])
        assert code == ExitCodes.SUCCESS.value

        descriptors = mock_resolve.call_args.args[0]
        assert [(d.key, d.registry, d.version) for d in descriptors] == [
            ("cart", "zephyr", "^1.2.0"),
            ("nav", "zephyr", "2.0.0"),
        ]

    def test_invalid_dependency_value(self, tmp_path):
        (tmp_path / "package.json").write_text(json.dumps({"zephyr:dependencies": {"cart": 1}}))
        code = main(["resolve", "--root", str(tmp_path), "--application-uid", "host.shop.acme"])
        assert code == ExitCodes.CONFIGURATION_ERROR.value


class TestInspectCommand:
    """Tests for ``zephyr-deps inspect``."""

    @patch("zephyr_deps.cli.fetch_manifest")
    def test_prints_manifest(self, mock_fetch, capsys):
        mock_fetch.return_value = build_manifest("host.shop.acme", [REMOTE], timestamp="t")
        code = main(["inspect", "--url", "https://host.example.com"])
        assert code == ExitCodes.SUCCESS.value
        mock_fetch.assert_called_once_with("https://host.example.com/zephyr-manifest.json")
        assert json.loads(capsys.readouterr().out)["application_uid"] == "host.shop.acme"

    @patch("zephyr_deps.cli.fetch_manifest")
    def test_single_remote(self, mock_fetch, capsys):
        mock_fetch.return_value = build_manifest("host.shop.acme", [REMOTE], timestamp="t")
        main(["inspect", "--url", "https://host.example.com", "--remote", "cart"])
        assert json.loads(capsys.readouterr().out)["application_uid"] == "cart.shop.acme"

    @patch("zephyr_deps.cli.fetch_manifest")
    def test_fetch_error_exit_code(self, mock_fetch):
        mock_fetch.side_effect = ZephyrError(ZeErrors.ERR_MANIFEST_FETCH, url="u", reason="HTTP 404")
        assert main(["inspect", "--url", "https://host.example.com"]) == ExitCodes.CONNECTION_ERROR.value


def test_exit_code_mapping():
    assert exit_code_for(ZephyrError(ZeErrors.ERR_MISSING_AUTH_TOKEN)) is ExitCodes.CONFIGURATION_ERROR
    assert exit_code_for(ZephyrError(ZeErrors.ERR_PACKAGE_JSON_NOT_FOUND, path="x")) is ExitCodes.FILE_ERROR
    assert exit_code_for(ZephyrError(ZeErrors.ERR_INVALID_MANIFEST, reason="x")) is ExitCodes.RESOLUTION_ERROR
