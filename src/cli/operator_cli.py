"""Typer-based operator CLI: scrape a tenant's site and chat with it locally."""

import os

os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

from pathlib import Path

_project_root = Path(__file__).resolve().parent.parent.parent
from dotenv import load_dotenv

load_dotenv(_project_root / ".env")
load_dotenv(_project_root / ".env.local")

import asyncio

import typer

from src.errors import CoreError, ValidationError
from src.services.chat_service import ChatService, get_chat_service
from src.services.scrape_service import get_scrape_service

app = typer.Typer(help="Operate the website chat assistant from a terminal.")

QUIT_WORDS = ("quit", "exit")


def _fail(message: str) -> None:
    typer.echo(f"✗ {message}", err=True)
    raise typer.Exit(1)


@app.command()
def scrape(
    tenant_id: str = typer.Argument(..., help="Tenant to store the snapshot under"),
    url: str = typer.Argument(..., help="Website URL to extract"),
):
    """Extract a website and replace the tenant's snapshot."""
    typer.echo(f"Scraping {url} for tenant {tenant_id}...")
    try:
        result = asyncio.run(get_scrape_service().scrape(tenant_id, url))
    except CoreError as e:
        _fail(f"Scrape failed ({e.code}): {e.message}")
    typer.echo(f"✓ Stored {result.item_count} content items")


def _run_chat_repl(service: ChatService, tenant_id: str) -> None:
    """Read visitor messages until 'quit' or an empty line."""
    typer.echo(
        f"\nChatting as tenant {tenant_id} (type 'quit' or press Enter with empty message to exit).\n"
    )
    while True:
        message = typer.prompt("You", default="", show_default=False)
        if not message.strip() or message.strip().lower() in QUIT_WORDS:
            break
        try:
            result = asyncio.run(service.chat(tenant_id, message))
        except ValidationError as e:
            typer.echo(f"Rejected: {e.message}", err=True)
            continue
        except CoreError as e:
            typer.echo(f"Error ({e.code}): {e.message}", err=True)
            continue
        typer.echo(f"Assistant: {result.answer}")
    typer.echo("Exiting chat.\n")


@app.command()
def chat(tenant_id: str = typer.Argument(..., help="Tenant whose snapshot grounds answers")):
    """Interactive chat grounded in the tenant's stored snapshot."""
    service = get_chat_service()
    try:
        snapshot = get_scrape_service().get_snapshot(tenant_id)
    except CoreError as e:
        _fail(f"Could not load snapshot ({e.code}): {e.message}")
    if snapshot is None:
        typer.echo(
            "No website content stored for this tenant; answers will not be grounded.",
            err=True,
        )
    _run_chat_repl(service, tenant_id)


@app.command()
def history(tenant_id: str = typer.Argument(..., help="Tenant to list turns for")):
    """Print the tenant's conversation in creation order."""
    try:
        turns = get_chat_service().list_turns(tenant_id)
    except CoreError as e:
        _fail(f"Could not load turns ({e.code}): {e.message}")
    if not turns:
        typer.echo("No turns recorded.")
        return
    for turn in turns:
        stamp = turn.created_at.isoformat(timespec="seconds")
        typer.echo(f"[{stamp}] {turn.role.value}: {turn.content}")
        if turn.metadata is not None:
            typer.echo(
                typer.style(
                    f"  model={turn.metadata.model_id} "
                    f"prompt_tokens={turn.metadata.prompt_tokens} "
                    f"completion_tokens={turn.metadata.completion_tokens}",
                    fg=typer.colors.BRIGHT_BLACK,
                )
            )


if __name__ == "__main__":
    app()
