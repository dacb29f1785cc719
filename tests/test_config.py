"""Tests for configuration loading."""

import json
import logging
import subprocess
from datetime import datetime, timedelta, timezone

import pytest

from gha_guard import config as config_module
from gha_guard.config import load_config, resolve_token
from gha_guard.exceptions import ConfigError
from gha_guard.types import Config, PermissionSet, RepoScope, TimeoutClass
from gha_guard.utils.formatting import format_duration, status_icon
from gha_guard.utils.logging import configure_logging, get_logger, StructuredLogger


def write_config(path, data):
    path.write_text(json.dumps(data) if not isinstance(data, str) else data)
    return path


class TestLoadConfig:
    def test_defaults_without_file(self, tmp_path):
        config = load_config(argv=[], environ={}, search_paths=[tmp_path / "missing.json"])

        assert config == Config()
        assert config.permissions.read
        assert not config.permissions.trigger
        assert config.neverhang.api_timeout == 30000
        assert config.neverhang.log_timeout == 60000
        assert config.circuit_breaker.threshold == 3
        assert not config.bypass_permissions

    def test_file_merged_with_defaults(self, tmp_path):
        path = write_config(tmp_path / "gha-guard.json", {
            "permissions": {"trigger": True, "whitelist_repos": ["acme/*"]},
            "neverhang": {"log_timeout": 120000},
        })

        config = load_config(argv=[], environ={}, search_paths=[path])

        assert config.permissions.read
        assert config.permissions.trigger
        assert config.permissions.whitelist_repos == ["acme/*"]
        assert config.neverhang.api_timeout == 30000
        assert config.neverhang.bound_for(TimeoutClass.LOGS) == 120000
        assert config.auth.token_env == "GITHUB_TOKEN"

    def test_first_existing_file_wins(self, tmp_path):
        first = write_config(tmp_path / "first.json", {"permissions": {"cancel": True}})
        second = write_config(tmp_path / "second.json", {"permissions": {"admin": True}})

        config = load_config(argv=[], environ={}, search_paths=[tmp_path / "nope.json", first, second])

        assert config.permissions.cancel
        assert not config.permissions.admin

    def test_unparsable_file_skipped(self, tmp_path, caplog):
        broken = write_config(tmp_path / "broken.json", "{not json")
        good = write_config(tmp_path / "good.json", {"permissions": {"admin": True}})

        with caplog.at_level(logging.WARNING, logger="gha_guard"):
            config = load_config(argv=[], environ={}, search_paths=[broken, good])

        assert config.permissions.admin
        assert "Failed to parse" in caplog.text

    def test_undecodable_file_skipped(self, tmp_path, caplog):
        broken = tmp_path / "broken.json"
        broken.write_bytes(b"\xff\xfe")
        good = write_config(tmp_path / "good.json", {"permissions": {"cancel": True}})

        with caplog.at_level(logging.WARNING, logger="gha_guard"):
            config = load_config(argv=[], environ={}, search_paths=[broken, good])

        assert config.permissions.cancel
        assert "Failed to parse" in caplog.text

    def test_invalid_values_raise(self, tmp_path):
        path = write_config(tmp_path / "bad.json", {"neverhang": {"api_timeout": -5}})

        with pytest.raises(ConfigError) as exc_info:
            load_config(argv=[], environ={}, search_paths=[path])
        assert exc_info.value.path == str(path)

    def test_unknown_sections_ignored(self, tmp_path):
        path = write_config(tmp_path / "c.json", {"fallback": {"enabled": True}})

        assert load_config(argv=[], environ={}, search_paths=[path]) == Config()

    def test_bypass_flag(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING, logger="gha_guard"):
            config = load_config(
                argv=["gha-guard", "--bypass-permissions"],
                environ={},
                search_paths=[tmp_path / "missing.json"],
            )

        assert config.bypass_permissions
        assert "--bypass-permissions" in caplog.text
        assert "All permission checks disabled" in caplog.text

    def test_bypass_from_file(self, tmp_path, caplog):
        path = write_config(tmp_path / "c.json", {"bypass_permissions": True})

        with caplog.at_level(logging.WARNING, logger="gha_guard"):
            config = load_config(argv=[], environ={}, search_paths=[path])

        assert config.bypass_permissions
        assert "All permission checks disabled" in caplog.text

    def test_no_bypass_warning_by_default(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING, logger="gha_guard"):
            load_config(argv=[], environ={}, search_paths=[tmp_path / "missing.json"])

        assert "bypass" not in caplog.text

    def test_timeout_env_override(self, tmp_path):
        path = write_config(tmp_path / "c.json", {"neverhang": {"api_timeout": 1000}})

        config = load_config(argv=[], environ={"GHA_GUARD_TIMEOUT": "5000"}, search_paths=[path])

        assert config.neverhang.api_timeout == 5000
        assert config.neverhang.log_timeout == 60000

    @pytest.mark.parametrize("value", ["soon", "0", "-10"])
    def test_invalid_timeout_env(self, tmp_path, value):
        with pytest.raises(ConfigError, match="GHA_GUARD_TIMEOUT"):
            load_config(
                argv=[],
                environ={"GHA_GUARD_TIMEOUT": value},
                search_paths=[tmp_path / "missing.json"],
            )

    def test_frozen_access_models(self, tmp_path):
        path = write_config(tmp_path / "c.json", {
            "permissions": {"trigger": True, "blacklist_repos": ["*/secrets", "*/secrets"]},
        })

        config = load_config(argv=[], environ={}, search_paths=[path])

        assert config.permissions.permission_set() == PermissionSet(trigger=True)
        assert config.permissions.repo_scope() == RepoScope(
            blacklist_repos=frozenset({"*/secrets"})
        )


class TestResolveToken:
    def test_token_from_env(self):
        config = Config.model_validate({"auth": {"token_env": "MY_TOKEN"}})

        assert resolve_token(config, environ={"MY_TOKEN": "ghp_abc"}) == "ghp_abc"

    def test_falls_back_to_gh_cli(self, monkeypatch):
        calls = []

        def fake_run(args, **kwargs):
            calls.append(args)
            return subprocess.CompletedProcess(args, 0, stdout="gho_cli\n", stderr="")

        monkeypatch.setattr(config_module.subprocess, "run", fake_run)

        assert resolve_token(Config(), environ={}) == "gho_cli"
        assert calls == [["gh", "auth", "token"]]

    def test_gh_cli_missing(self, monkeypatch):
        def fake_run(args, **kwargs):
            raise FileNotFoundError("gh")

        monkeypatch.setattr(config_module.subprocess, "run", fake_run)

        with pytest.raises(ConfigError, match="No GITHUB_TOKEN"):
            resolve_token(Config(), environ={})

    def test_gh_cli_not_logged_in(self, monkeypatch):
        def fake_run(args, **kwargs):
            return subprocess.CompletedProcess(args, 1, stdout="", stderr="not logged in")

        monkeypatch.setattr(config_module.subprocess, "run", fake_run)

        with pytest.raises(ConfigError):
            resolve_token(Config(), environ={})


class TestLogging:
    def test_configure_logging(self):
        records = []

        class ListHandler(logging.Handler):
            def emit(self, record):
                records.append(self.format(record))

        handler = ListHandler()
        root = logging.getLogger("gha_guard")
        try:
            configure_logging("debug", format_string="%(name)s %(message)s", handler=handler)
            get_logger("guard").debug("hello")
            StructuredLogger("guard").info("call", repo="acme/web", tool=None, elapsed_ms=12)
        finally:
            root.removeHandler(handler)
            root.propagate = True
            root.setLevel(logging.NOTSET)

        assert records == [
            "gha_guard.guard hello",
            "gha_guard.guard call | repo=acme/web elapsed_ms=12",
        ]


class TestFormatting:
    def test_format_duration(self):
        assert format_duration("2026-01-01T00:00:00Z", "2026-01-01T00:00:42Z") == "42s"
        assert format_duration("2026-01-01T00:00:00Z", "2026-01-01T00:03:05Z") == "3m 5s"
        assert format_duration("2026-01-01T00:00:00Z", "2026-01-01T02:04:59Z") == "2h 4m"

    def test_format_duration_in_progress(self):
        started = datetime.now(timezone.utc) - timedelta(seconds=90)

        assert format_duration(started).startswith("1m ")

    def test_status_icon(self):
        assert status_icon("success") == "✓"
        assert status_icon("failure") == "✗"
        assert status_icon("cancelled") == "⊘"
        assert status_icon("skipped") == "⊖"
        assert status_icon(None) == "●"
        assert status_icon("timed_out") == "?"
