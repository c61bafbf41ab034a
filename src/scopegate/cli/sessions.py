"""Admin session CLI commands."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from scopegate.database import get_session_context
from scopegate.models import utcnow
from scopegate.services.errors import AdminAuthError
from scopegate.services.issuer import SessionIssuer
from scopegate.services.store import SessionStore

console = Console()
app = typer.Typer(help="Inspect, issue and revoke admin sessions")


@app.command("list")
def list_sessions(
    email: str | None = typer.Option(None, "--email", "-e", help="Only sessions for this email"),
    limit: int = typer.Option(50, "--limit", "-l", help="Maximum sessions to show"),
):
    """List issued sessions, newest first."""

    async def _list():
        async with get_session_context() as session:
            store = SessionStore(session)
            sessions = await store.list_sessions(email.strip().lower() if email else None, limit)

        now = utcnow()
        table = Table(title="Admin sessions")
        table.add_column("ID", style="cyan")
        table.add_column("Email", style="green")
        table.add_column("Method", style="dim")
        table.add_column("Created", style="dim")
        table.add_column("Expires", style="dim")
        table.add_column("State")

        for admin_session in sessions:
            if admin_session.revoked:
                state = "[red]revoked[/red]"
            elif admin_session.is_expired(now):
                state = "[yellow]expired[/yellow]"
            else:
                state = "[green]active[/green]"
            method = "passcode" if admin_session.code_hash else "password/token"
            expires = (
                admin_session.expires_at.strftime("%Y-%m-%d %H:%M")
                if admin_session.expires_at
                else "-"
            )
            table.add_row(
                admin_session.id,
                admin_session.email,
                method,
                admin_session.created_at.strftime("%Y-%m-%d %H:%M"),
                expires,
                state,
            )

        console.print(table)

    asyncio.run(_list())


@app.command("revoke")
def revoke_session(session_id: str = typer.Argument(..., help="Session ID (see `sessions list`)")):
    """Revoke a session by ID."""

    async def _revoke():
        async with get_session_context() as session:
            store = SessionStore(session)
            async with store.transaction():
                revoked = await store.revoke_session_by_id(session_id)

        if not revoked:
            console.print(f"[red]Error:[/red] Session {session_id} not found")
            raise typer.Exit(1)
        console.print(f"[green]Revoked session:[/green] {session_id}")

    asyncio.run(_revoke())


@app.command("issue-token")
def issue_token(
    email: str = typer.Argument(..., help="Admin email the token acts as"),
    hours: int = typer.Option(
        24 * 30, "--hours", "-H", help="Token lifetime in hours"
    ),
):
    """Issue a long-lived bearer token for automation (e.g. scheduled dispatch)."""

    async def _issue():
        async with get_session_context() as session:
            issuer = SessionIssuer(session)
            try:
                issued = await issuer.issue_automation_token(email, session_ttl_hours=hours)
            except AdminAuthError as e:
                console.print(f"[red]Error:[/red] {e.message}")
                raise typer.Exit(1) from e

        console.print(f"[green]Token:[/green] {issued.token}")
        console.print(f"[dim]Email: {issued.email}  Expires: {issued.expires_at}[/dim]")

    asyncio.run(_issue())
