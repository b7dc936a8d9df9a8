"""Tests for the secondbrain CLI (init, serve, owner add)."""

import io
import os
import sqlite3
import stat
from unittest.mock import patch

import pytest

from secondbrain.cli import cmd_init, cmd_owner_add, cmd_serve, load_env_file, main


class FakeArgs:
    """Fake argparse namespace."""
    def __init__(self, **kwargs):
        self.openai = kwargs.get("openai", False)
        self.force = kwargs.get("force", False)
        self.host = kwargs.get("host", None)
        self.port = kwargs.get("port", None)
        self.config = kwargs.get("config", None)
        self.log_level = kwargs.get("log_level", None)
        self.username = kwargs.get("username", None)


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Point the CLI at tmp_path instead of ~/.second-brain."""
    brain_dir = tmp_path / ".second-brain"
    monkeypatch.setattr("secondbrain.cli.BRAIN_DIR", brain_dir)
    monkeypatch.setattr("secondbrain.cli.CONFIG_FILE", brain_dir / "config.yaml")
    monkeypatch.setattr("secondbrain.cli.ENV_FILE", brain_dir / ".env")
    for key in ("OPENAI_API_KEY", "YOUTUBE_API_KEY", "SECOND_BRAIN_SECRET_KEY", "SECOND_BRAIN_CONFIG"):
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    return brain_dir


def _env_values(brain_dir):
    values = {}
    for line in (brain_dir / ".env").read_text().splitlines():
        if "=" in line and not line.startswith("#"):
            k, _, v = line.partition("=")
            values[k] = v
    return values


class TestInitCommand:
    """Tests for `secondbrain init`."""

    def test_init_creates_config_file(self, cli_env):
        result = cmd_init(FakeArgs())

        assert result == 0
        content = (cli_env / "config.yaml").read_text()
        assert "provider: fastembed" in content
        assert str(cli_env / "brain.db") in content
        assert str(cli_env / "lancedb") in content

    def test_init_generates_secret_with_owner_only_permissions(self, cli_env):
        cmd_init(FakeArgs())

        env_file = cli_env / ".env"
        assert len(_env_values(cli_env)["SECOND_BRAIN_SECRET_KEY"]) >= 32
        assert stat.S_IMODE(env_file.stat().st_mode) == 0o600

    def test_init_keeps_existing_secret(self, cli_env):
        cmd_init(FakeArgs())
        first = _env_values(cli_env)["SECOND_BRAIN_SECRET_KEY"]

        cmd_init(FakeArgs(force=True))

        assert _env_values(cli_env)["SECOND_BRAIN_SECRET_KEY"] == first

    def test_init_copies_youtube_key_from_env(self, cli_env, monkeypatch):
        monkeypatch.setenv("YOUTUBE_API_KEY", "yt-key")
        cmd_init(FakeArgs())
        assert _env_values(cli_env)["YOUTUBE_API_KEY"] == "yt-key"

    def test_init_hints_missing_youtube_key(self, cli_env, capsys):
        cmd_init(FakeArgs())
        assert "YOUTUBE_API_KEY" in capsys.readouterr().out

    def test_init_openai_stores_key(self, cli_env, monkeypatch):
        monkeypatch.setattr("secondbrain.cli._prompt_api_key", lambda: "sk-test")

        result = cmd_init(FakeArgs(openai=True))

        assert result == 0
        assert "provider: openai" in (cli_env / "config.yaml").read_text()
        assert _env_values(cli_env)["OPENAI_API_KEY"] == "sk-test"

    def test_init_openai_without_tty_or_key_exits(self, cli_env, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO())
        with pytest.raises(SystemExit):
            cmd_init(FakeArgs(openai=True))

    def test_init_refuses_overwrite_without_force(self, cli_env):
        cli_env.mkdir(parents=True)
        (cli_env / "config.yaml").write_text("existing config")

        result = cmd_init(FakeArgs())

        assert result == 1
        assert (cli_env / "config.yaml").read_text() == "existing config"

    def test_init_force_overwrites(self, cli_env):
        cli_env.mkdir(parents=True)
        (cli_env / "config.yaml").write_text("old config")

        result = cmd_init(FakeArgs(force=True))

        assert result == 0
        assert "old config" not in (cli_env / "config.yaml").read_text()


class TestEnvFile:

    def test_load_env_file(self, cli_env, monkeypatch):
        cli_env.mkdir(parents=True)
        (cli_env / ".env").write_text("# comment\nYOUTUBE_API_KEY=from-file\n")

        load_env_file()

        assert os.environ["YOUTUBE_API_KEY"] == "from-file"

    def test_exported_variable_wins(self, cli_env, monkeypatch):
        cli_env.mkdir(parents=True)
        (cli_env / ".env").write_text("YOUTUBE_API_KEY=from-file\n")
        monkeypatch.setenv("YOUTUBE_API_KEY", "exported")

        load_env_file()

        assert os.environ["YOUTUBE_API_KEY"] == "exported"

    def test_missing_env_file_is_fine(self, cli_env):
        load_env_file()


class TestOwnerAdd:

    def _config(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(f"db:\n  path: {tmp_path / 'brain.db'}\n")
        return str(path)

    def test_prints_owner_id(self, cli_env, tmp_path, capsys):
        result = cmd_owner_add(FakeArgs(username="alice", config=self._config(tmp_path)))

        assert result == 0
        owner_id = capsys.readouterr().out.strip()
        with sqlite3.connect(tmp_path / "brain.db") as conn:
            row = conn.execute("SELECT username FROM owners WHERE id = ?", (owner_id,)).fetchone()
        assert row == ("alice",)

    def test_duplicate_username(self, cli_env, tmp_path, capsys):
        config = self._config(tmp_path)
        cmd_owner_add(FakeArgs(username="alice", config=config))

        result = cmd_owner_add(FakeArgs(username="alice", config=config))

        assert result == 1
        assert "already exists" in capsys.readouterr().out


class TestServeCommand:

    def test_serve_passes_overrides(self, cli_env, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("server:\n  port: 4000\n")

        with patch("secondbrain.server.app.run_server") as run_server:
            cmd_serve(FakeArgs(config=str(config_path), host="0.0.0.0", port=9000))

        kwargs = run_server.call_args.kwargs
        assert kwargs["config"].server.port == 4000
        assert kwargs["host"] == "0.0.0.0"
        assert kwargs["port"] == 9000
        assert kwargs["log_level"] == "info"


class TestMain:

    def test_no_command_prints_help(self, cli_env, capsys):
        with patch("sys.argv", ["secondbrain"]):
            with pytest.raises(SystemExit) as exc:
                main()
        assert exc.value.code == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_init_dispatch(self, cli_env):
        with patch("sys.argv", ["secondbrain", "init"]):
            with pytest.raises(SystemExit) as exc:
                main()
        assert exc.value.code == 0
        assert (cli_env / "config.yaml").exists()
