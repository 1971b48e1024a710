"""Tests for configuration loading and credential lookup."""

from prbridge_core.config import build_credential_resolver, load_config


def test_defaults_applied_when_no_config_file(tmp_path):
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["log_level"] == "INFO"
    assert config["require_write_access"] is False
    assert config["fallback_to_bot_token"] is True
    assert config["users"] == {}


def test_config_file_overrides_defaults(tmp_path):
    cfg = tmp_path / ".bridge.yml"
    cfg.write_text("log_level: DEBUG\nrequire_write_access: true\n")
    config = load_config(config_path=str(cfg))
    assert config["log_level"] == "DEBUG"
    assert config["require_write_access"] is True


def test_users_loaded(tmp_path):
    cfg = tmp_path / ".bridge.yml"
    cfg.write_text("users:\n  U07H3RSNQLD: ghp_one\n  U0SECOND: ghp_two\n")
    config = load_config(config_path=str(cfg))
    assert config["users"] == {"U07H3RSNQLD": "ghp_one", "U0SECOND": "ghp_two"}


def test_empty_config_file(tmp_path):
    cfg = tmp_path / ".bridge.yml"
    cfg.write_text("")
    config = load_config(config_path=str(cfg))
    assert config["log_level"] == "INFO"


def test_cli_overrides_config_file(tmp_path):
    cfg = tmp_path / ".bridge.yml"
    cfg.write_text("log_level: DEBUG\n")
    config = load_config(config_path=str(cfg), cli_overrides={"log_level": "WARNING"})
    assert config["log_level"] == "WARNING"


def test_none_cli_overrides_ignored(tmp_path):
    cfg = tmp_path / ".bridge.yml"
    cfg.write_text("log_level: DEBUG\n")
    config = load_config(config_path=str(cfg), cli_overrides={"log_level": None})
    assert config["log_level"] == "DEBUG"


def test_env_vars_loaded(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "gh-token")
    monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-1")
    monkeypatch.setenv("SLACK_APP_TOKEN", "xapp-1")
    monkeypatch.setenv("SLACK_SIGNING_SECRET", "shh")
    config = load_config(config_path="nonexistent.yml")
    assert config["github_token"] == "gh-token"
    assert config["slack_bot_token"] == "xoxb-1"
    assert config["slack_app_token"] == "xapp-1"
    assert config["slack_signing_secret"] == "shh"


def test_secrets_in_file_are_ignored(tmp_path, monkeypatch):
    monkeypatch.delenv("SLACK_BOT_TOKEN", raising=False)
    cfg = tmp_path / ".bridge.yml"
    cfg.write_text("slack_bot_token: xoxb-from-file\n")
    config = load_config(config_path=str(cfg))
    assert config["slack_bot_token"] is None


def test_users_dict_is_not_shared_reference(tmp_path):
    """Mutating one config's users table must not affect another."""
    config_a = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    config_b = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    config_a["users"]["U1"] = "tok"
    assert config_b["users"] == {}


class TestCredentialResolver:
    def test_mapped_user_gets_own_token(self):
        resolve = build_credential_resolver({"users": {"U1": "user-token"}, "github_token": "bot-token"})
        assert resolve("U1") == "user-token"

    def test_unmapped_user_falls_back_to_bot_token(self):
        resolve = build_credential_resolver({"users": {"U1": "user-token"}, "github_token": "bot-token"})
        assert resolve("U2") == "bot-token"

    def test_fallback_disabled(self):
        resolve = build_credential_resolver(
            {"users": {"U1": "user-token"}, "github_token": "bot-token", "fallback_to_bot_token": False}
        )
        assert resolve("U2") is None
        assert resolve("U1") == "user-token"

    def test_blank_tokens_are_ignored(self):
        resolve = build_credential_resolver(
            {"users": {"U1": ""}, "github_token": "bot-token", "fallback_to_bot_token": False}
        )
        assert resolve("U1") is None

    def test_missing_users_table(self):
        resolve = build_credential_resolver({"users": None, "github_token": None})
        assert resolve("U1") is None

    def test_table_is_copied(self):
        users = {"U1": "user-token"}
        resolve = build_credential_resolver({"users": users, "fallback_to_bot_token": False})
        users["U2"] = "late-token"
        assert resolve("U2") is None
