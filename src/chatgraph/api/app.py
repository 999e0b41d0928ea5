"""
Main FastAPI application for the chatgraph gateway
"""

import json
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import Settings, settings
from ..context import ContextFactory
from ..datasources import DataSources, RelationalDataSource, create_data_sources
from ..exceptions import OperationError
from ..execution import DispatchEngine, ExecutionResult, FieldError, parse_operation
from ..graphql import build_registry
from ..logging import configure_logging, get_logger
from ..middleware import LoggingContextMiddleware, sanitize_params
from ..schema import Registry

logger = get_logger(__name__)


@dataclass(frozen=True)
class Gateway:
    """Process-wide collaborators, built once at startup."""

    registry: Registry
    engine: DispatchEngine
    contexts: ContextFactory
    sources: DataSources


def _error_response(message: str, status_code: int, code: str = "BAD_REQUEST") -> JSONResponse:
    result = ExecutionResult(data=None, errors=[FieldError(message, [], code)])
    return JSONResponse(result.formatted, status_code=status_code)


async def execute_graphql(
    gateway: Gateway, request: Request, payload: dict[str, Any]
) -> JSONResponse:
    """Execute one GraphQL-over-HTTP payload ({query, variables, operationName})."""
    query = payload.get("query")
    if not isinstance(query, str) or not query.strip():
        return _error_response("Must provide query string", 400)

    variables = payload.get("variables") or {}
    if isinstance(variables, str):
        try:
            variables = json.loads(variables)
        except json.JSONDecodeError:
            return _error_response("Variables are invalid JSON", 400)
    if not isinstance(variables, dict):
        return _error_response("Variables must be an object", 400)

    operation_name = payload.get("operationName") or None
    if operation_name is not None and not isinstance(operation_name, str):
        return _error_response("operationName must be a string", 400)

    try:
        operation = parse_operation(query, variables, operation_name)
    except OperationError as e:
        return _error_response(e.public_message, 400, e.code)

    if operation.kind == "mutation" and request.method == "GET":
        return _error_response("Mutations are only allowed over POST", 405)

    logger.debug(
        "Executing GraphQL operation",
        kind=operation.kind,
        operation=operation.name,
        variables=sanitize_params(variables),
    )
    context = gateway.contexts.build(request)
    result = await gateway.engine.execute(operation, context)
    return JSONResponse(result.formatted)


def create_app(
    app_settings: Settings | None = None, sources: DataSources | None = None
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        app_settings: Settings to use (defaults to the global settings)
        sources: Pre-built data sources (defaults to ones built from settings)

    Raises:
        SchemaValidationError: If the schema registry is invalid; the server
            must not start with a broken schema
    """
    app_settings = app_settings or settings
    configure_logging(debug=app_settings.debug)

    logger.info("Validating GraphQL schema...")
    registry = build_registry()
    data_sources = sources or create_data_sources(app_settings)
    gateway = Gateway(
        registry=registry,
        engine=DispatchEngine(registry),
        contexts=ContextFactory(data_sources),
        sources=data_sources,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting chatgraph API...", store_backend=app_settings.store_backend)
        await data_sources.connect()
        if app_settings.auto_create_tables and isinstance(
            data_sources.messages, RelationalDataSource
        ):
            await data_sources.messages.create_schema()

        yield

        logger.info("Shutting down chatgraph API...")
        await data_sources.close()

    app = FastAPI(
        title="chatgraph",
        description="GraphQL gateway over a document store and a relational store",
        version=__version__,
        lifespan=lifespan,
        debug=app_settings.debug,
    )
    app.state.gateway = gateway

    app.add_middleware(LoggingContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():  # pyright: ignore [reportUnusedFunction]
        """Health check endpoint."""
        stores = await gateway.sources.health()
        return {
            "status": "healthy" if all(stores.values()) else "degraded",
            "version": __version__,
            "stores": stores,
        }

    @app.post("/graphql")
    async def graphql_post(request: Request) -> JSONResponse:  # pyright: ignore
        """GraphQL over HTTP POST."""
        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return _error_response("Request body must be valid JSON", 400)
        if not isinstance(payload, dict):
            return _error_response("Request body must be a JSON object", 400)
        return await execute_graphql(gateway, request, payload)

    @app.get("/graphql")
    async def graphql_get(request: Request) -> JSONResponse:  # pyright: ignore
        """GraphQL over HTTP GET (queries only)."""
        return await execute_graphql(gateway, request, dict(request.query_params))

    logger.info("GraphQL endpoint initialized successfully", endpoint="/graphql")
    return app


# Create the main application instance
app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "chatgraph.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower(),
    )
