"""CLI entry point for prbridge.

Commands:
  serve    — connect to Slack over Socket Mode and relay PR cards and reviews
  preview  — render the card for one pull request in the terminal
"""

from __future__ import annotations

import importlib.metadata

import click
from dotenv import load_dotenv

from prbridge_cli.commands.preview import preview_cmd
from prbridge_cli.commands.serve import serve_cmd


@click.group()
@click.version_option(
    version=importlib.metadata.version("prbridge"),
    prog_name="prbridge",
)
@click.option(
    "--config",
    "config_path",
    default=".prbridge.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRBRIDGE_CONFIG",
)
@click.pass_context
def main(ctx: click.Context, config_path: str):
    """Slack bot that turns GitHub PR links into review cards."""
    from prbridge_core.config import load_config
    from prbridge_cli.auth import resolve_github_token

    load_dotenv()
    ctx.ensure_object(dict)

    config = load_config(config_path)

    config["github_token"] = resolve_github_token(config)

    ctx.obj["config"] = config
    ctx.obj["config_path"] = config_path


main.add_command(serve_cmd)
main.add_command(preview_cmd)
