"""WorkOffice CLI: database setup and the development server."""

from __future__ import annotations

import asyncio
import logging
import subprocess
import sys
from pathlib import Path

import typer
from workoffice_persistence import ConnectionManager, create_schema, load_connections, redact_url

app = typer.Typer(name="workoffice", help="WorkOffice worker registry API.")


def _setup_logging(verbose: bool = True) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("[%(asctime)s] [%(name)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S"))
    logger = logging.getLogger("workoffice_persistence")
    logger.addHandler(handler)
    logger.setLevel(logging.INFO if verbose else logging.WARNING)


async def _init_db(connections: ConnectionManager) -> None:
    try:
        await create_schema(connections.get_sql_engine())
    finally:
        await connections.close_all()


@app.command("init-db")
def init_db(
    root: Path = typer.Option(Path("."), "--root", "-r", help="Project root directory."),
) -> None:
    """Create the worker tables for the default connection profile."""
    _setup_logging()
    connections = load_connections(root)
    url = connections.get_profile("default").url
    asyncio.run(_init_db(connections))
    typer.echo(f"Database ready at {redact_url(url)}")


@app.command()
def serve(
    root: Path = typer.Option(Path("."), "--root", "-r", help="Project root directory."),
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Bind address."),
    port: int = typer.Option(8000, "--port", "-p", help="Port number."),
    reload: bool = typer.Option(True, "--reload/--no-reload", help="Enable auto-reload for development."),
) -> None:
    """Start the WorkOffice API with uvicorn.

    Examples:

        workoffice serve

        workoffice serve --host 0.0.0.0 --port 9000 --no-reload
    """
    typer.echo(f"Starting server at http://{host}:{port} ...")

    cmd = [
        sys.executable,
        "-m",
        "uvicorn",
        "workoffice_api:app",
        "--host",
        host,
        "--port",
        str(port),
    ]
    if reload:
        cmd.append("--reload")

    try:
        result = subprocess.run(cmd, cwd=str(root))  # noqa: S603
        raise typer.Exit(code=result.returncode)
    except KeyboardInterrupt:
        typer.echo("\nServer stopped.")


if __name__ == "__main__":
    app()
