"""preview command — show the card prbridge would post for a pull request."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.table import Table
from rich.text import Text

from prbridge_core.card import block_kind, render_card
from prbridge_core.errors import PRBridgeError
from prbridge_core.gh.pull_request import ReviewPlatform
from prbridge_core.normalizer import normalize_pull_request

console = Console()


def _block_text(block: dict) -> str:
    if block.get("type") == "actions":
        return "  ".join(element["text"]["text"] for element in block.get("elements", []))
    if "fields" in block:
        return "\n".join(field["text"] for field in block["fields"])
    return (block.get("text") or {}).get("text", "")


@click.command("preview")
@click.option("--repo", required=True, help="GitHub repository in owner/name format.")
@click.option("--pr", "pr_number", type=int, required=True, help="Pull request number.")
@click.option("--json", "as_json", is_flag=True, help="Print raw Block Kit JSON.")
@click.pass_context
def preview_cmd(ctx, repo: str, pr_number: int, as_json: bool):
    """Render the Slack card for a pull request without posting it."""
    config = ctx.obj["config"]
    token = config.get("github_token")
    if not token:
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )
    owner, sep, name = repo.partition("/")
    if not sep or not owner or not name:
        raise click.BadParameter("expected owner/name", param_hint="--repo")

    try:
        payload = ReviewPlatform(token).fetch_review_request(owner, name, pr_number)
        request = normalize_pull_request(payload)
    except PRBridgeError as e:
        raise click.ClickException(e.describe()) from e

    blocks = render_card(request, owner, name, pr_number)

    if as_json:
        click.echo(json.dumps(blocks, indent=2, ensure_ascii=False))
        return

    table = Table(title=f"Card — {owner}/{name} #{pr_number}", show_header=True, header_style="bold cyan")
    table.add_column("Block", style="bold", width=12)
    table.add_column("Content")
    for block in blocks:
        table.add_row(block_kind(block) or block.get("type", "?"), Text(_block_text(block)))
    console.print(table)
