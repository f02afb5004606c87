import logging
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from slowapi.errors import RateLimitExceeded

from app.config import Settings, load_settings
from app.logging_config import setup_logging
from app.middleware import RequestLoggingMiddleware
from app.ratelimit import limiter
from app.receipt.base import ReceiptExtractor
from app.receipt.factory import get_receipt_extractor
from app.routes import receipts
from app.schemas import INTERNAL_ERROR, RATE_LIMITED, ReceiptAPIError

logger = logging.getLogger("receipts")


def _init_sentry(dsn: str, environment: str) -> None:
    # Disable the auto-detected OpenAI Agents integration due to
    # version incompatibility (sentry-sdk expects a different internal API)
    _disabled = []
    try:
        from sentry_sdk.integrations.openai_agents import OpenAIAgentsIntegration
        _disabled.append(OpenAIAgentsIntegration)
    except ImportError:
        pass
    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=0.1,
        send_default_pii=False,
        disabled_integrations=_disabled,
    )


async def receipt_api_error_handler(request: Request, exc: ReceiptAPIError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_response().to_json())


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(
        "Rate limit exceeded",
        extra={"extra_data": {"path": request.url.path, "limit": str(exc.detail)}},
    )
    error = ReceiptAPIError(429, RATE_LIMITED, f"Rate limit exceeded: {exc.detail}")
    return JSONResponse(status_code=429, content=error.to_response().to_json())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error: {exc}", exc_info=exc)
    error = ReceiptAPIError(500, INTERNAL_ERROR, "An internal server error occurred")
    return JSONResponse(status_code=500, content=error.to_response().to_json())


def _build_extractor(settings: Settings) -> ReceiptExtractor | None:
    try:
        return get_receipt_extractor(settings)
    except ValueError as e:
        logger.error(f"Receipt extraction config error: {e}")
        return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    extractor = app.state.extractor
    if extractor is not None:
        await extractor.aclose()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()

    if settings.sentry_dsn:
        _init_sentry(settings.sentry_dsn, settings.app_env)

    setup_logging(settings.log_level)

    app = FastAPI(title="Receipt Scanner API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.limiter = limiter
    app.state.extractor = _build_extractor(settings)

    app.add_exception_handler(ReceiptAPIError, receipt_api_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    # Routes
    app.include_router(receipts.router, prefix="/api")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/ping", response_class=PlainTextResponse)
    def ping():
        return "pong"

    @app.get("/hello")
    def hello():
        return {"message": "Hello World!"}

    logger.info(
        "Receipt Scanner API configured",
        extra={"extra_data": {
            "environment": settings.app_env,
            "provider": settings.receipt_provider,
            "endpoint": "POST /api/receipt/process",
        }},
    )
    return app


if __name__ == "__main__":
    import uvicorn

    _settings = load_settings()
    uvicorn.run(create_app(_settings), host="0.0.0.0", port=_settings.port)
