"""FastAPI application for oracle-kb.

Main entry point for the REST API server.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from oracle_kb_common import configure_logging, get_logger, get_settings, init_telemetry
from oracle_kb_storage import SearchContext

from oracle_kb_api.metrics import instrument_request, track_request_status

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan context manager for startup/shutdown.

    - Startup: Open the database and start connecting to chroma-mcp in the background
    - Shutdown: Close chroma-mcp (graceful, then forced) and the database
    """
    settings = get_settings()
    configure_logging(settings.log_level, json_output=settings.log_format == "json")
    init_telemetry(console_export=settings.enable_console_tracing)
    logger.info("api_starting", host=settings.api_host, port=settings.api_port)

    context = await SearchContext.open(settings)
    app.state.search_context = context
    context.start_warmup()

    logger.info("api_started", db_path=str(settings.db_path))

    yield

    logger.info("api_stopping")
    app.state.search_context = None
    await context.close()
    logger.info("api_stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Oracle-KB API",
        description="Hybrid keyword + semantic search over the oracle knowledge base",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def record_request_metrics(request: Request, call_next):
        endpoint = request.url.path
        with instrument_request(endpoint, request.method):
            response = await call_next(request)
        track_request_status(endpoint, request.method, response.status_code)
        return response

    # Import and include routers
    from oracle_kb_api.routes.health import router as health_router
    from oracle_kb_api.routes.search import router as search_router

    app.include_router(health_router, tags=["Health"])
    app.include_router(search_router, prefix="/search", tags=["Search"])

    return app


# Create the app instance
app = create_app()


def run() -> None:
    """Serve the API with uvicorn on the configured host and port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "oracle_kb_api.main:app",
        host=settings.api_host,
        port=settings.api_port,
    )


if __name__ == "__main__":
    run()
