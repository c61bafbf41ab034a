"""Admin directory CLI commands."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from scopegate.database import get_session_context
from scopegate.services.directory import add_admin_email, list_directory, remove_admin_email
from scopegate.services.errors import AdminAuthError
from scopegate.services.scopes import get_admin_scope_label

console = Console()
app = typer.Typer(help="Manage which emails hold which admin scopes")

SCOPE_HELP = "Scope: admin, approvals, updates or coordinator"


@app.command("list")
def list_entries():
    """List authorized emails per scope."""

    async def _list():
        async with get_session_context() as session:
            directory = await list_directory(session)

        table = Table(title="Admin directory")
        table.add_column("Scope", style="cyan")
        table.add_column("Label", style="dim")
        table.add_column("Emails", style="green")

        for scope, emails in directory.items():
            table.add_row(
                scope.value,
                get_admin_scope_label(scope),
                "\n".join(emails) if emails else "[red]none configured[/red]",
            )

        console.print(table)

    asyncio.run(_list())


@app.command("add")
def add_entry(
    scope: str = typer.Argument(..., help=SCOPE_HELP),
    email: str = typer.Argument(..., help="Admin email"),
):
    """Authorize an email for a scope."""

    async def _add():
        async with get_session_context() as session:
            try:
                added = await add_admin_email(session, scope, email)
            except AdminAuthError as e:
                console.print(f"[red]Error:[/red] {e.message}")
                raise typer.Exit(1) from e

        if added:
            console.print(f"[green]Authorized[/green] {email.strip().lower()} for {scope}")
        else:
            console.print(f"[yellow]Warning:[/yellow] {email} already holds {scope}")

    asyncio.run(_add())


@app.command("remove")
def remove_entry(
    scope: str = typer.Argument(..., help=SCOPE_HELP),
    email: str = typer.Argument(..., help="Admin email"),
):
    """Remove an email from a scope.

    Existing sessions lose the scope on their next check.
    """

    async def _remove():
        async with get_session_context() as session:
            try:
                removed = await remove_admin_email(session, scope, email)
            except AdminAuthError as e:
                console.print(f"[red]Error:[/red] {e.message}")
                raise typer.Exit(1) from e

        if removed:
            console.print(f"[green]Removed[/green] {email.strip().lower()} from {scope}")
        else:
            console.print(f"[red]Error:[/red] {email} does not hold {scope}")
            raise typer.Exit(1)

    asyncio.run(_remove())
