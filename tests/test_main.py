"""Tests for command-line configuration."""
from app.config import Settings
from app.main import parse_args, settings_from_args


def test_flags_override_environment_settings():
    base = Settings(database_url="sqlite+aiosqlite:///env.db", admin_token="env", port=8080)
    args = parse_args(["--port", "9000", "--admin-token", "cli", "--socket", "/tmp/redirect.sock"])
    settings = settings_from_args(args, base)

    assert settings.port == 9000
    assert settings.admin_token == "cli"
    assert settings.socket_path == "/tmp/redirect.sock"
    assert settings.database_url == "sqlite+aiosqlite:///env.db"


def test_no_flags_keeps_environment_settings():
    base = Settings(admin_token="env", fallback_url="https://fallback.example/")
    assert settings_from_args(parse_args([]), base) == base
