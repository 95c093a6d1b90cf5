"""FastAPI application exposing opening and rebuttal generation over HTTP."""

import logging
import time
import uuid
from collections.abc import Callable

from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.middleware.base import BaseHTTPMiddleware

from config.config_loader import AppConfig, load_config
from debatesim.errors import ValidationError
from debatesim.gateway import ProviderGateway
from debatesim.models import HistoryEntry, Role, Side
from debatesim.prompts import PromptBuilder
from debatesim.providers.base import (
    ProviderError,
    ProviderRequestFailed,
    ProviderTimeout,
    ProviderUnavailable,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/debate", tags=["debate"])


class HistoryItem(BaseModel):
    role: Role
    content: str


class OpeningRequest(BaseModel):
    topic: str | None = None
    aiSide: str | None = None


class GenerateRequest(BaseModel):
    topic: str | None = None
    aiSide: str | None = None
    conversationHistory: list[HistoryItem] = Field(default_factory=list)
    userMessage: str | None = None


class GenerateResponse(BaseModel):
    response: str


def _parse_side(value: str | None, message: str) -> Side:
    try:
        return Side(value)
    except ValueError as exc:
        raise ValidationError(message) from exc


@router.post("/opening", response_model=GenerateResponse)
async def generate_opening(request: Request, body: OpeningRequest):
    """Generate the AI's opening statement for a topic and side."""
    topic = (body.topic or "").strip()
    if not topic or not body.aiSide:
        raise ValidationError("Topic and aiSide are required")
    ai_side = _parse_side(body.aiSide, "aiSide must be 'for' or 'against'")

    prompts: PromptBuilder = request.app.state.prompts
    gateway: ProviderGateway = request.app.state.gateway
    response = await gateway.generate(prompts.build_opening_request(topic, ai_side))
    logger.info("Opening generated: %d chars", len(response.content))
    return GenerateResponse(response=response.content)


@router.post("/generate", response_model=GenerateResponse)
async def generate_rebuttal(request: Request, body: GenerateRequest):
    """Generate a rebuttal from the conversation so far plus the user's latest message."""
    topic = (body.topic or "").strip()
    if not topic or not body.aiSide or not (body.userMessage or "").strip():
        raise ValidationError("Missing required fields")
    ai_side = _parse_side(body.aiSide, "aiSide must be 'for' or 'against'")

    history = [HistoryEntry(role=item.role, content=item.content) for item in body.conversationHistory]
    prompts: PromptBuilder = request.app.state.prompts
    gateway: ProviderGateway = request.app.state.gateway
    response = await gateway.generate(
        prompts.build_rebuttal_request(topic, ai_side, history, body.userMessage.strip())
    )
    logger.info("Rebuttal generated: %d chars from %d history entries", len(response.content), len(history))
    return GenerateResponse(response=response.content)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request and stamps the response with an X-Request-ID header."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())[:8]
        start_time = time.monotonic()
        request.state.request_id = request_id

        response = await call_next(request)

        duration_ms = round((time.monotonic() - start_time) * 1000, 2)
        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(
            level,
            "%s %s %s -> %d (%.2fms)",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        response.headers["X-Request-ID"] = request_id
        return response


_ERROR_STATUS: list[tuple[type[Exception], int, str]] = [
    (ProviderUnavailable, 503, "AI provider is not configured"),
    (ProviderTimeout, 504, "AI response took too long"),
    (ProviderRequestFailed, 502, "AI provider request failed"),
    (ProviderError, 500, "Failed to generate AI response"),
]


def _install_error_handlers(app: FastAPI) -> None:
    async def validation_error(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc)})

    async def request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": "Missing required fields"})

    def provider_handler(status: int, message: str):
        async def handler(request: Request, exc: Exception) -> JSONResponse:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
            return JSONResponse(status_code=status, content={"error": message})
        return handler

    app.add_exception_handler(ValidationError, validation_error)
    app.add_exception_handler(RequestValidationError, request_validation_error)
    for exc_type, status, message in _ERROR_STATUS:
        app.add_exception_handler(exc_type, provider_handler(status, message))


def _setup_cors(app: FastAPI, origins: tuple[str, ...]) -> None:
    """Allow the configured origins, or every origin when none are configured.

    Credentials are only allowed with an explicit origin list.
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(origins) or ["*"],
        allow_credentials=bool(origins),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )


def create_app(config: AppConfig | None = None, gateway: ProviderGateway | None = None) -> FastAPI:
    """Build the FastAPI app. The gateway is resolved once and shared by all requests."""
    config = config or load_config()
    gateway = gateway or ProviderGateway.from_config(config)

    app = FastAPI(
        title="DebateSim API",
        description="Opening statements and rebuttals for human-vs-AI debates",
        version="1.0.0",
    )
    app.state.config = config
    app.state.gateway = gateway
    app.state.prompts = PromptBuilder(config.prompts, config.defaults.word_limit)

    _setup_cors(app, config.server.allowed_origins)
    app.add_middleware(LoggingMiddleware)
    _install_error_handlers(app)
    app.include_router(router)

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "message": "DebateSim backend is running",
            "provider": gateway.provider_id,
            "model": gateway.model_id,
        }

    return app
