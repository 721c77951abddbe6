"""
FastAPI web application for the Opsboard operations dashboard.

The app is built by create_app(), which wires configuration, the record
store and the assistant onto app.state. Tests build their own app with an
in-memory store and a fake LLM client; `uvicorn web.main:app` serves the
module-level instance.
"""
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.gzip import GZipMiddleware

from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from core.config import AppConfig, ConfigurationError, load_config, validate_config
from core.exceptions import (
    ChatConfigurationError,
    ProviderError,
    StoreError,
    ValidationError,
)
from core.llm_client import LLMClient
from core.observability import MetricsCollector, get_logger, setup_logging
from core.store import RecordStore
from web.middleware import RequestLoggingMiddleware, RequestTimeoutMiddleware
from web.routes import api, chat
from web.routes.api._deps import limiter
from web.services.assistant import AssistantBridge

logger = get_logger(__name__)


def _error(status_code: int, message: str) -> ORJSONResponse:
    return ORJSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
    )


def _register_exception_handlers(app: FastAPI) -> None:
    """Render every known failure as the {success: false, error} envelope."""

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return _error(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"{location}: {first.get('msg')}" if location else first.get("msg")
        else:
            message = "Invalid request"
        return _error(400, message)

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        logger.error(
            f"Store error on {request.method} {request.url.path}: {exc}",
            extra={"table": exc.table},
        )
        return _error(500, str(exc))

    @app.exception_handler(ProviderError)
    async def provider_error_handler(request: Request, exc: ProviderError):
        return _error(500, exc.message)

    @app.exception_handler(ChatConfigurationError)
    async def chat_configuration_handler(request: Request, exc: ChatConfigurationError):
        return _error(503, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        logger.warning(f"Rate limit exceeded for {get_remote_address(request)}")
        return _error(429, f"Rate limit exceeded: {exc.detail}")


def create_app(
    config: Optional[AppConfig] = None,
    store: Optional[RecordStore] = None,
    llm: Optional[LLMClient] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        config: Application configuration (default: loaded from environment)
        store: Record store to use instead of one built from config.database
        llm: LLM client to use instead of one built from config.chat
    """
    config = config or load_config()
    setup_logging(level=config.logging.level, json_format=config.logging.json_format)

    app = FastAPI(
        title="Opsboard",
        description="Operations dashboard for manufacturing, testing, field service and sales",
        version=config.version,
        default_response_class=ORJSONResponse,
    )

    app.state.config = config
    app.state.metrics = MetricsCollector()
    app.state.limiter = limiter
    app.state.store = store
    app.state.assistant = None

    _register_exception_handlers(app)

    # Last added runs first; logging wraps the timeout so correlation_id is set
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(
        RequestTimeoutMiddleware,
        timeout=config.web.request_timeout,
        slow_timeout=config.web.chat_timeout,
    )
    app.add_middleware(RequestLoggingMiddleware, metrics=app.state.metrics)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.web.allowed_origin],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(api.router, prefix="/api")
    app.include_router(chat.router, prefix="/api")
    app.include_router(api.health_router)

    @app.on_event("startup")
    async def startup_event():
        logger.info("Opsboard starting...")

        # Validate configuration early - fail fast with clear errors
        try:
            validate_config(config)
            logger.info("Configuration validated")
        except ConfigurationError as e:
            logger.critical(f"Configuration error: {e}")
            raise SystemExit(1)

        record_store = app.state.store
        try:
            if record_store is None:
                record_store = RecordStore(config.database)
            await record_store.connect()
            await record_store.now()
        except StoreError as e:
            logger.critical(f"Record store unavailable: {e}")
            raise SystemExit(1)
        app.state.store = record_store

        app.state.assistant = AssistantBridge(
            record_store,
            llm or LLMClient.from_config(config.chat),
            context_rows=config.chat.context_rows,
        )
        if not app.state.assistant.is_available:
            logger.warning("ANTHROPIC_API_KEY not set, chat assistant disabled")

        logger.info(f"Opsboard ready on port {config.web.port}")

    @app.on_event("shutdown")
    async def shutdown_event():
        if app.state.store is not None:
            await app.state.store.close()
        logger.info("Opsboard stopped")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=app.state.config.web.host, port=app.state.config.web.port)
