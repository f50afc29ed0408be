"""
ManuPilot Sourcing API - Main Application

FastAPI application serving the sourcing core:
- RFQ submission with supplier matching
- Supplier quote normalization and structured quotes
- Project readiness and feasibility scoring
- Partner reviews
- Sample QC and photo inspection, notifications and NDA acceptance
"""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from manupilot.api.routes import account, projects, quotes, reviews, rfq, samples
from manupilot.config.settings import Settings, settings as default_settings
from manupilot.database import DataStore, DataStoreError, InvalidValueError, build_store
from manupilot.services.sourcing import LLMQuoteAnalyzer, QuoteAnalyzer, RuleBasedQuoteAnalyzer
from manupilot.utils.ai_client import CompletionClient, OpenAICompletionClient
from manupilot.utils.logging import get_logger, request_logger, setup_logging

logger = get_logger(__name__)


def build_quote_analyzer(settings: Settings, client: CompletionClient | None) -> QuoteAnalyzer:
    """Select the configured quote scoring strategy."""
    if settings.sourcing.quote_analyzer == "rules" or client is None:
        return RuleBasedQuoteAnalyzer()
    return LLMQuoteAnalyzer(client, model=settings.ai.default_model)


def create_app(
    settings: Settings | None = None,
    store: DataStore | None = None,
    completion_client: CompletionClient | None = None,
    quote_analyzer: QuoteAnalyzer | None = None,
) -> FastAPI:
    """
    Build the application.

    Collaborators passed in are used as-is; the rest are constructed from
    settings when the application starts.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        # Startup
        setup_logging(settings)
        logger.info("Starting ManuPilot Sourcing API", version=settings.app_version)

        owns_store = app.state.store is None
        if owns_store:
            app.state.store = build_store(settings.database, echo=settings.debug)
        await app.state.store.initialize()
        logger.info("Data store initialized", backend=type(app.state.store).__name__)

        if app.state.completion_client is None:
            if settings.ai.api_key is None:
                logger.warning("AI_API_KEY not set; completion calls will fail")
            app.state.completion_client = OpenAICompletionClient.from_settings(settings.ai)
        if app.state.quote_analyzer is None:
            app.state.quote_analyzer = build_quote_analyzer(settings, app.state.completion_client)
        logger.info("Quote analyzer configured", analyzer=app.state.quote_analyzer.name)

        yield

        # Shutdown
        logger.info("Shutting down ManuPilot Sourcing API")
        if owns_store:
            await app.state.store.close()

    app = FastAPI(
        title=settings.app_name,
        description="""
## ManuPilot Sourcing API

Sourcing core for the ManuPilot manufacturing platform.

### Authentication

All endpoints except the system endpoints require a bearer token issued
by the identity provider: `Authorization: Bearer <token>`
        """,
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
    )

    app.state.store = store
    app.state.completion_client = completion_client
    app.state.quote_analyzer = quote_analyzer

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests with timing under a request id."""
        start_time = time.perf_counter()
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex

        request_logger.bind(request_id)
        request_logger.log_request(
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)
            request_logger.log_response(
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=(time.perf_counter() - start_time) * 1000,
            )
        finally:
            request_logger.clear()

        response.headers["X-Request-ID"] = request_id
        return response

    # Exception handlers
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle validation errors with detailed messages."""
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "detail": "Validation error",
                "errors": jsonable_errors(exc),
            },
        )

    @app.exception_handler(InvalidValueError)
    async def invalid_value_exception_handler(request: Request, exc: InvalidValueError):
        """Client sent a value the store cannot hold."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc)},
        )

    @app.exception_handler(DataStoreError)
    async def data_store_exception_handler(request: Request, exc: DataStoreError):
        """Backend unavailable or rejected the operation."""
        logger.error(
            "Data store error",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
        )
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Data store unavailable"},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected errors."""
        logger.error(
            "Unhandled exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "An unexpected error occurred"},
        )

    # Include routers
    app.include_router(rfq.router, prefix=f"{settings.api_prefix}/rfq", tags=["RFQ"])
    app.include_router(quotes.router, prefix=f"{settings.api_prefix}/quotes", tags=["Quotes"])
    app.include_router(reviews.router, prefix=f"{settings.api_prefix}/reviews", tags=["Reviews"])
    app.include_router(projects.router, prefix=settings.api_prefix, tags=["Projects"])
    app.include_router(samples.router, prefix=settings.api_prefix, tags=["Sample QC"])
    app.include_router(account.router, prefix=settings.api_prefix, tags=["Account"])

    # Health check endpoint
    @app.get("/health", tags=["System"])
    async def health_check():
        """System health check endpoint."""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
        }

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/api/docs" if settings.debug else "Disabled in production",
            "services": [
                "RFQ Supplier Matching",
                "Quote Normalization",
                "Readiness and Feasibility Scoring",
            ],
        }

    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors without non-serializable context objects."""
    return [
        {key: value for key, value in error.items() if key in ("type", "loc", "msg", "input")}
        for error in exc.errors()
    ]


app = create_app()


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    uvicorn.run(
        "manupilot.main:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=default_settings.debug,
        workers=default_settings.workers if not default_settings.debug else 1,
    )


if __name__ == "__main__":
    run()
