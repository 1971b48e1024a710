"""serve command — run the Slack bot."""

from __future__ import annotations

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from prbridge_slack.app import create_app, start_socket_mode

console = Console()

_REQUIRED = {
    "github_token": "GITHUB_TOKEN (or run `gh auth login`)",
    "slack_bot_token": "SLACK_BOT_TOKEN",
    "slack_app_token": "SLACK_APP_TOKEN",
}


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


@click.command("serve")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log verbosity. Overrides config file.",
)
@click.pass_context
def serve_cmd(ctx, log_level: str | None):
    """Listen for GitHub PR links in Slack and relay reviews.

    \b
    Required environment variables:
      SLACK_BOT_TOKEN       Bot token (xoxb-...)
      SLACK_APP_TOKEN       App-level token with connections:write (xapp-...)
      GITHUB_TOKEN          GitHub token used to read pull requests
    Optional:
      SLACK_SIGNING_SECRET  Only needed when serving over HTTP
    """
    config = ctx.obj["config"]
    if log_level:
        config["log_level"] = log_level

    missing = [label for key, label in _REQUIRED.items() if not config.get(key)]
    if missing:
        raise click.UsageError("Missing configuration: " + ", ".join(missing))

    configure_logging(config.get("log_level", "INFO"))

    users = config.get("users") or {}
    console.print(f"[dim]{len(users)} Slack user(s) mapped to GitHub tokens.[/dim]")
    if config.get("require_write_access"):
        console.print("[dim]Write access to the repository is required to review.[/dim]")

    app = create_app(config)
    console.print("[bold green]⚡️ prbridge is running[/bold green]")
    start_socket_mode(app, config["slack_app_token"])
