"""CLI tests: click commands driven through CliRunner with a scripted transport."""
import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from conftest import FakeHttp, fail, ok, token_response, write_credentials
from pulse_cli.credential_store import CredentialStore, CredentialStoreError
from pulse_cli.entry import App, cli


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "pulse.toml"
    path.write_text(
        "[pulse]\n"
        f"log_dir = \"{(tmp_path / 'logs').as_posix()}\"\n"
        "auto_submit_delay = 0.05\n"
        "tick_interval = 0.02\n",
        encoding="utf-8",
    )
    return path


def _invoke(config_file, credentials_path, *args, http=None):
    http = http or FakeHttp()
    with patch("pulse_cli.entry.HttpClient", return_value=http):
        result = CliRunner().invoke(
            cli, ["--config", str(config_file), "--credentials", str(credentials_path), *args]
        )
    return result, http


class TestCli:

    def test_add_success(self, config_file, credentials_path):
        result, http = _invoke(config_file, credentials_path, "add", "buy", "milk",
                               http=FakeHttp(tasks=[ok()]))

        assert result.exit_code == 0, result.output
        assert "Task saved" in result.output
        assert http.calls[0]["payload"]["title"] == "buy milk"

    def test_add_refreshes_expired_session(self, config_file, credentials_path):
        http = FakeHttp(tasks=[fail(401), ok()], token=[token_response("A2", "R2")])

        result, _ = _invoke(config_file, credentials_path, "add", "buy milk", http=http)

        assert result.exit_code == 0, result.output
        saved = json.loads(credentials_path.read_text(encoding="utf-8"))["CapacitorStorage"]
        assert saved["access_token"] == "A2"

    def test_add_server_error_exits_non_zero(self, config_file, credentials_path):
        result, _ = _invoke(config_file, credentials_path, "add", "buy milk",
                            http=FakeHttp(tasks=[fail(500, "boom")]))

        assert result.exit_code == 1
        assert "500" in result.output

    def test_add_auto_submits_after_countdown(self, config_file, credentials_path):
        result, http = _invoke(config_file, credentials_path, "add", "--auto", "buy milk",
                               http=FakeHttp(tasks=[ok()]))

        assert result.exit_code == 0, result.output
        assert "Sending in" in result.output
        assert len(http.calls) == 1

    def test_add_without_credentials(self, config_file, tmp_path):
        result, http = _invoke(config_file, tmp_path / "absent.json", "add", "buy milk")

        assert result.exit_code == 1
        assert "sync login" in result.output
        assert http.calls == []

    def test_refresh_command(self, config_file, credentials_path):
        result, http = _invoke(config_file, credentials_path, "refresh",
                               http=FakeHttp(token=[token_response("A2", "R2")]))

        assert result.exit_code == 0, result.output
        assert "Tokens refreshed" in result.output
        assert len(http.calls) == 1

    def test_refresh_rejected(self, config_file, credentials_path):
        result, _ = _invoke(config_file, credentials_path, "refresh",
                            http=FakeHttp(token=[fail(400, "invalid_grant")]))

        assert result.exit_code == 1
        assert "refresh_rejected" in result.output

    def test_status_never_prints_tokens(self, config_file, tmp_path):
        path = write_credentials(tmp_path / "c.json", access_token="secret-access")

        result, _ = _invoke(config_file, path, "status")

        assert result.exit_code == 0, result.output
        assert "https://x.test" in result.output
        assert "secret-access" not in result.output

    def test_corrupt_credentials_file(self, config_file, tmp_path):
        path = tmp_path / "c.json"
        path.write_text("{broken", encoding="utf-8")

        result, _ = _invoke(config_file, path, "add", "buy milk")

        assert result.exit_code == 1
        assert "Credentials error" in result.output

    def test_malformed_config_file(self, tmp_path, credentials_path):
        path = tmp_path / "pulse.toml"
        path.write_text("[pulse\ntimeout = ", encoding="utf-8")

        result, _ = _invoke(path, credentials_path, "status")

        assert result.exit_code == 1
        assert "Invalid config file" in result.output
        assert isinstance(result.exception, SystemExit)


def _run_interactive(cfg, http, answers):
    prompt = MagicMock()
    prompt.prompt_async = AsyncMock(side_effect=answers)
    with patch("pulse_cli.entry.HttpClient", return_value=http), \
            patch("pulse_cli.entry.SessionFactory.build_session", return_value=prompt):
        app = App(cfg)
        try:
            asyncio.run(app.run())
        finally:
            app.close()
    return prompt


class TestInteractiveRun:

    def test_credentials_error_keeps_prompting(self, cfg, monkeypatch, capsys):
        def disk_full(*args, **kwargs):
            raise CredentialStoreError("disk full")

        monkeypatch.setattr(CredentialStore, "_persist_tokens", disk_full)
        http = FakeHttp(tasks=[fail(401), ok()], token=[token_response()])

        prompt = _run_interactive(cfg, http, ["buy milk", "second task", EOFError()])

        assert prompt.prompt_async.await_count == 3
        out = capsys.readouterr().out
        assert "Start" in out
        assert "disk full" in out
        assert "Task saved" in out
        assert http.calls[-1]["payload"]["title"] == "second task"

    def test_unexpected_error_keeps_prompting(self, cfg, capsys):
        # no scripted response: the transport blows up with IndexError
        http = FakeHttp()

        prompt = _run_interactive(cfg, http, ["buy milk", EOFError()])

        assert prompt.prompt_async.await_count == 2
        out = capsys.readouterr().out
        assert "Unexpected error" in out
        assert "Exited" in out
