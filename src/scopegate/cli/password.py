"""Shared admin password CLI commands."""

import typer
from rich.console import Console

from scopegate.config import settings
from scopegate.services.credentials import hash_password, verify_password

console = Console()
app = typer.Typer(help="Shared admin password helpers")

MIN_PASSWORD_LENGTH = 8


@app.command("hash")
def hash_command(
    password: str = typer.Option(
        ..., prompt=True, hide_input=True, confirmation_prompt=True, help="Password to hash"
    ),
):
    """Print an ADMIN_PASSWORD_HASH value for a password."""
    if len(password) < MIN_PASSWORD_LENGTH:
        console.print(f"[red]Error:[/red] Use at least {MIN_PASSWORD_LENGTH} characters")
        raise typer.Exit(1)

    console.print(f"ADMIN_PASSWORD_HASH={hash_password(password)}")


@app.command("check")
def check_command(
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Password to check"),
):
    """Check a password against the configured ADMIN_PASSWORD_HASH."""
    if not settings.admin_password_hash:
        console.print("[red]Error:[/red] ADMIN_PASSWORD_HASH is not configured")
        raise typer.Exit(1)

    if verify_password(password, settings.admin_password_hash):
        console.print("[green]Password matches[/green]")
    else:
        console.print("[red]Password does not match[/red]")
        raise typer.Exit(1)
