"""
Unit tests for CLI main entry point.

Tests CLI infrastructure (global options, configuration loading) and each
cloud command against an in-memory transport.
"""

from pathlib import Path

import pytest
from click.testing import CliRunner

from mrcloud.cli.context import CLIContext
from mrcloud.cli.main import cli
from mrcloud.config.settings import REFRESH_TOKEN_ENV
from mrcloud.transport.mock import MockAdapter, MockResponse

TOKEN_URL = "https://o2.mail.ru/token"


def ok(body=None) -> MockResponse:
    return MockResponse(200, {"status": 200, "body": body})


@pytest.fixture(autouse=True)
def _no_env_token(monkeypatch):
    monkeypatch.delenv(REFRESH_TOKEN_ENV, raising=False)


@pytest.fixture
def config_path(temp_dir: Path) -> Path:
    path = temp_dir / "config.yaml"
    path.write_text(
        "auth:\n"
        "  refresh_token: rt-cli\n"
        "upload:\n"
        "  chunk_size: 4\n"
        "  base_delay: 0\n"
        "logging:\n"
        "  level: ERROR\n"
    )
    return path


@pytest.fixture
def adapter() -> MockAdapter:
    return MockAdapter({
        ("POST", TOKEN_URL): MockResponse(200, {"access_token": "cli-access-token", "expires_in": 3600}),
    })


@pytest.fixture
def invoke(config_path, adapter):
    runner = CliRunner()

    def _invoke(*args, **kwargs):
        return runner.invoke(cli, ["--config", str(config_path), *args], obj=CLIContext(adapter=adapter), **kwargs)

    return _invoke


class TestCLIMain:
    """Test CLI main entry point."""

    def test_cli_help(self):
        """Test CLI help output."""
        runner = CliRunner()
        result = runner.invoke(cli, ['--help'])

        assert result.exit_code == 0
        assert 'MrCloud' in result.output
        assert '--config' in result.output
        assert '--log-level' in result.output
        assert '--verbose' in result.output
        for command in ('ls', 'mkdir', 'rm', 'mv', 'rename', 'upload', 'share'):
            assert command in result.output

    def test_cli_version(self):
        """Test CLI version output."""
        runner = CliRunner()
        result = runner.invoke(cli, ['--version'])

        assert result.exit_code == 0
        assert '0.3.0' in result.output

    def test_cli_invalid_config(self, temp_dir):
        """Test CLI with an invalid configuration file."""
        path = temp_dir / "bad.yaml"
        path.write_text("transport:\n  backend: curl\n")

        runner = CliRunner()
        result = runner.invoke(cli, ['--config', str(path), 'ls'])

        assert result.exit_code == 1
        assert 'Invalid configuration' in result.output


class TestCloudCommands:
    """Test cloud commands."""

    def test_ls(self, invoke, adapter):
        adapter.add("GET", "/api/v2/folder", ok({
            "count": {"folders": 1, "files": 1},
            "list": [
                {"name": "docs", "home": "/docs", "kind": "folder"},
                {"name": "a.txt", "home": "/a.txt", "kind": "file", "size": 12},
            ],
        }))

        result = invoke("ls", "/")

        assert result.exit_code == 0, result.output
        assert "docs" in result.output
        assert "a.txt" in result.output
        assert "1 folder(s), 1 file(s)" in result.output

    def test_ls_uses_refreshed_token(self, invoke, adapter):
        adapter.add("GET", "/api/v2/folder", ok({"list": []}))

        invoke("ls")

        sent = adapter.sent_requests
        assert sent[0].url == TOKEN_URL
        assert sent[0].request.form["refresh_token"] == "rt-cli"
        assert sent[1].headers["Authorization"] == "Bearer cli-access-token"

    def test_mkdir(self, invoke, adapter):
        adapter.add("POST", "/api/v2/folder/add", ok("/new"))

        result = invoke("mkdir", "/new")

        assert result.exit_code == 0
        assert "/new" in result.output

    def test_rm_confirmed(self, invoke, adapter):
        adapter.add("POST", "/api/v2/file/remove", ok())

        result = invoke("rm", "/old", "--yes")

        assert result.exit_code == 0
        assert "Removed /old" in result.output

    def test_rm_declined(self, invoke, adapter):
        result = invoke("rm", "/old", input="n\n")

        assert result.exit_code == 1
        assert adapter.sent_requests == []

    def test_mv(self, invoke, adapter):
        adapter.add("POST", "/api/v2/file/move", ok("/archive/a.txt"))

        result = invoke("mv", "/a.txt", "/archive")

        assert result.exit_code == 0
        assert "/archive/a.txt" in result.output

    def test_rename(self, invoke, adapter):
        adapter.add("POST", "/api/v2/file/rename", ok("/b.txt"))

        result = invoke("rename", "/a.txt", "b.txt")

        assert result.exit_code == 0
        assert "/b.txt" in result.output

    def test_upload(self, invoke, adapter, temp_dir):
        local = temp_dir / "report.txt"
        local.write_bytes(b"0123456789")
        adapter.add("PUT", "https://upload.cloud.mail.ru/upload/docs/report.txt", MockResponse(201, "HASH"))
        adapter.add("POST", "/api/v2/file/add", ok("/docs/report.txt"))

        result = invoke("upload", str(local), "/docs/report.txt", "--chunk-size", "5")

        assert result.exit_code == 0, result.output
        assert "/docs/report.txt" in result.output
        ranges = [s.headers["Content-Range"] for s in adapter.sent_requests if s.method == "PUT"]
        assert ranges == ["bytes 0-4/10", "bytes 5-9/10"]

    def test_upload_missing_local_file(self, invoke, temp_dir):
        result = invoke("upload", str(temp_dir / "absent.bin"), "/absent.bin")
        assert result.exit_code == 2

    def test_share(self, invoke, adapter):
        adapter.add("GET", "/api/v2/file", ok({"name": "a.txt", "home": "/docs/a.txt"}))
        adapter.add("POST", "/api/v2/file/publish", ok("AbCd/xyz"))

        result = invoke("share", "/docs", "a.txt")

        assert result.exit_code == 0
        assert "https://cloud.mail.ru/public/AbCd/xyz" in result.output

    def test_share_missing_item(self, invoke, adapter):
        adapter.add("GET", "/api/v2/file", MockResponse(404, {"status": 404}))

        result = invoke("share", "/docs/nope.txt")

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_remote_error_exits_with_status_1(self, invoke, adapter):
        adapter.add("POST", "/api/v2/folder/add", MockResponse(400, {"status": 400, "body": {"home": {"error": "exists"}}}))

        result = invoke("mkdir", "/new")

        assert result.exit_code == 1
        assert "home: exists" in result.output

    def test_auth_failure_exits_with_status_1(self, invoke, adapter):
        adapter.add("POST", TOKEN_URL, MockResponse(200, {"error": "invalid_grant", "error_description": "expired"}))

        result = invoke("ls")

        assert result.exit_code == 1
        assert "invalid_grant" in result.output
