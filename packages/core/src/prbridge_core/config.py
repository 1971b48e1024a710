import os
from pathlib import Path
from typing import Callable, Optional

import yaml

DEFAULT_CONFIG: dict = {
    "log_level": "INFO",
    "require_write_access": False,  # check GitHub push access before relaying a decision
    "fallback_to_bot_token": True,  # unmapped Slack users act with the bot's GitHub token
    "users": {},  # Slack user id -> GitHub personal access token
}

_ENV_KEYS = {
    "github_token": "GITHUB_TOKEN",
    "slack_bot_token": "SLACK_BOT_TOKEN",
    "slack_app_token": "SLACK_APP_TOKEN",
    "slack_signing_secret": "SLACK_SIGNING_SECRET",
}


def load_config(config_path: str = ".prbridge.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .prbridge.yml in the current directory
      3. CLI argument overrides
    Secrets are always read from the environment.
    """
    config = {**DEFAULT_CONFIG, "users": dict(DEFAULT_CONFIG["users"])}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    for key, env_name in _ENV_KEYS.items():
        config[key] = os.environ.get(env_name)

    return config


def build_credential_resolver(config: dict) -> Callable[[str], Optional[str]]:
    """
    Return a lookup from Slack user id to the GitHub token to act with.

    Users listed under ``users`` act with their own token. Everyone else
    acts with the bot token when ``fallback_to_bot_token`` is set, and is
    refused (None) otherwise.
    """
    users = {str(user_id): token for user_id, token in (config.get("users") or {}).items() if token}
    fallback = config.get("github_token") if config.get("fallback_to_bot_token", True) else None

    def resolve_credential(user_id: str) -> Optional[str]:
        return users.get(user_id, fallback)

    return resolve_credential
