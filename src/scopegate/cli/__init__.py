"""CLI commands using Typer."""

import typer

from scopegate.cli.db import app as db_app
from scopegate.cli.directory import app as directory_app
from scopegate.cli.password import app as password_app
from scopegate.cli.sessions import app as sessions_app

app = typer.Typer(name="scopegate", help="Scopegate admin session CLI")

# Register sub-apps
app.add_typer(db_app, name="db")
app.add_typer(directory_app, name="directory")
app.add_typer(sessions_app, name="sessions")
app.add_typer(password_app, name="password")


@app.command()
def version():
    """Show version information."""
    from scopegate import __version__

    typer.echo(f"Scopegate v{__version__}")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind to"),
    port: int = typer.Option(8000, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
):
    """Run the API server."""
    import uvicorn

    from scopegate.logging import get_uvicorn_log_config

    uvicorn.run(
        "scopegate.main:app",
        host=host,
        port=port,
        reload=reload,
        log_config=get_uvicorn_log_config(),
    )


if __name__ == "__main__":
    app()
