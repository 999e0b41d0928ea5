#!/usr/bin/env python3
"""
Main CLI entry point for the chatgraph gateway.
"""

import asyncio
import os
import sys

import click
import uvicorn

from chatgraph import __version__
from chatgraph.logging import configure_logging, get_logger

logger = get_logger(__name__)


@click.group()
@click.version_option(version=__version__, prog_name="chatgraph")
def cli() -> None:
    """chatgraph CLI - run the gateway and manage its stores."""
    pass


@cli.command()
@click.option("--host", default="0.0.0.0", help="Host to bind to (default: 0.0.0.0)")
@click.option("--port", default=4000, type=int, help="Port to bind to (default: 4000)")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Log level (default: info)",
)
@click.option(
    "--memory",
    is_flag=True,
    default=False,
    help="Use in-memory stores instead of MongoDB and the relational database",
)
def serve(host: str, port: int, reload: bool, log_level: str, memory: bool) -> None:
    """Start the GraphQL gateway."""
    configure_logging(debug=(log_level == "debug"))

    logger.info("Starting chatgraph server", host=host, port=port, reload=reload, memory=memory)

    # The app reads its settings from the environment at import time
    if log_level == "debug":
        os.environ["CHATGRAPH_DEBUG"] = "true"
    else:
        os.environ.setdefault("CHATGRAPH_DEBUG", "false")
    os.environ.setdefault("CHATGRAPH_LOG_LEVEL", log_level)
    if memory:
        os.environ["CHATGRAPH_STORE_BACKEND"] = "memory"

    try:
        if reload:
            # Reload spawns a fresh process which re-reads the environment
            uvicorn.run(
                "chatgraph.api.app:app",
                host=host,
                port=port,
                reload=True,
                log_level=log_level,
                access_log=True,
            )
        else:
            from chatgraph.api.app import create_app
            from chatgraph.config import Settings

            uvicorn.run(
                create_app(Settings()),
                host=host,
                port=port,
                log_level=log_level,
                access_log=True,
            )
    except KeyboardInterrupt:
        logger.info("Server shutdown requested by user")
    except Exception as e:
        logger.error("Server startup failed", error=str(e))
        sys.exit(1)


@cli.command()
def schema() -> None:
    """Validate the schema and print its type definitions."""
    from chatgraph.exceptions import SchemaValidationError
    from chatgraph.graphql import TYPE_DEFS, build_registry

    try:
        build_registry()
    except SchemaValidationError as e:
        for problem in e.problems:
            click.echo(f"error: {problem}", err=True)
        sys.exit(1)
    click.echo(TYPE_DEFS.strip())


@cli.group()
def db() -> None:
    """Manage the relational store."""
    pass


@db.command("init")
@click.option("--database-url", default=None, help="Override CHATGRAPH_DATABASE_URL")
def db_init(database_url: str | None) -> None:
    """Create the messages table if it does not exist."""
    from chatgraph.config import settings
    from chatgraph.datasources import RelationalDataSource

    configure_logging(debug=settings.debug)
    source = RelationalDataSource(
        database_url or settings.database_url,
        pool_size=settings.database_pool_size,
        pool_timeout=settings.pool_timeout,
    )

    async def _run() -> None:
        await source.connect()
        try:
            await source.create_schema()
        finally:
            await source.close()

    try:
        asyncio.run(_run())
    except Exception as e:
        logger.error("Database initialization failed", error=str(e))
        sys.exit(1)
    click.echo("Relational schema is up to date")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
