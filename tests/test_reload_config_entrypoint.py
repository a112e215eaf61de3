import importlib
import logging

import pytest


_REQUIRED_ENV = {
    "DISCORD_TOKEN": "token",
}


def _apply_required_env(monkeypatch):
    for key, value in _REQUIRED_ENV.items():
        monkeypatch.setenv(key, value)


def test_reload_config_happy_path(monkeypatch):
    _apply_required_env(monkeypatch)
    cfg = importlib.import_module("shared.config")
    importlib.reload(cfg)
    cfg.reload_config()


@pytest.mark.parametrize("missing", sorted(_REQUIRED_ENV))
def test_reload_config_fails_when_required_missing(monkeypatch, missing):
    _apply_required_env(monkeypatch)
    monkeypatch.delenv(missing, raising=False)
    import shared.config as cfg
    with pytest.raises(RuntimeError):
        cfg.reload_config()


def test_reload_config_reads_guild_allow_list(monkeypatch):
    _apply_required_env(monkeypatch)
    monkeypatch.setenv("GUILD_IDS", "111, 222;333 bogus")
    import shared.config as cfg

    cfg.reload_config()

    assert cfg.get_allowed_guild_ids() == {111, 222, 333}
    assert cfg.is_guild_allowed("222") is True
    assert cfg.is_guild_allowed(444) is False


def test_reload_config_logs_redacted_token(monkeypatch, caplog):
    secret = "abcdefghijklmnopqrstuvwx.abcdef.abcdefghijklmnopqrstuvwxyz0"
    _apply_required_env(monkeypatch)
    monkeypatch.setenv("DISCORD_TOKEN", secret)
    import shared.config as cfg

    with caplog.at_level(logging.INFO, logger="guildconsole.config"):
        cfg.reload_config()

    records = [record for record in caplog.records if record.getMessage() == "config loaded"]
    assert records
    snapshot = records[-1].config
    assert snapshot["DISCORD_TOKEN"].startswith("***")
    assert secret not in str(snapshot)
    assert cfg.get_discord_token() == secret


def test_config_exports_only_accessors(monkeypatch):
    _apply_required_env(monkeypatch)
    import shared.config as cfg

    assert all(hasattr(cfg, name) for name in cfg.__all__)
    assert set(cfg.__all__) == {
        "reload_config",
        "get_env_name",
        "get_bot_name",
        "get_bot_version",
        "get_port",
        "get_discord_token",
        "get_allowed_guild_ids",
        "is_guild_allowed",
        "get_static_dir",
        "get_log_level",
    }
