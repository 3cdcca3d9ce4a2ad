# main.py
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

import uvicorn
from fastapi import BackgroundTasks, FastAPI, HTTPException, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from models import ChatRequest, ChatResponse, ErrorResponse, HealthResponse, LeadNotification
from settings import Settings
from middleware import attach_cors, request_cors_headers
from services.chat_turn import ChatTurnHandler, CompletionFn
from services.lead_webhook import notify_lead
from services.openai_client import MissingCredentialError, ProviderError, chat_completion

logger = logging.getLogger("martivi-chat.api")

Notifier = Callable[..., Awaitable[bool]]

CHAT_PATH = "/api/chat"
INVALID_PAYLOAD = "Invalid request payload"
NOT_CONFIGURED = "Server is not configured"
UPSTREAM_FAILED = "Upstream model request failed"
INTERNAL_ERROR = "Internal server error"

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


def create_app(settings: Settings,
               completion: Optional[CompletionFn] = None,
               notifier: Optional[Notifier] = None) -> FastAPI:
    # ─────────────────────────────────────────────────────────────
    # App & Settings
    # ─────────────────────────────────────────────────────────────
    app = FastAPI(title="Martivi Consulting Chat API", version="1.0.0")
    app.state.settings = settings
    app.state.chat_handler = ChatTurnHandler(settings, completion or chat_completion)
    app.state.notifier = notifier or notify_lead
    attach_cors(app, settings)

    # ─────────────────────────────────────────────────────────────
    # Error shape: {"error": ...}, never {"detail": ...}
    # ─────────────────────────────────────────────────────────────
    @app.exception_handler(RequestValidationError)
    async def invalid_payload(request: Request, exc: RequestValidationError):
        logger.info("[CHAT] rejected payload (%d errors)", len(exc.errors()))
        return JSONResponse({"error": INVALID_PAYLOAD}, status_code=400)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            {"error": str(exc.detail)},
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        # served by ServerErrorMiddleware, outside the CORS layer
        logger.exception("[CHAT][ERROR] unhandled: %s", exc)
        return JSONResponse(
            {"error": INTERNAL_ERROR},
            status_code=500,
            headers=request_cors_headers(request, request.app.state.settings),
        )

    # ─────────────────────────────────────────────────────────────
    # Routes
    # ─────────────────────────────────────────────────────────────
    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.options(CHAT_PATH)
    @app.options(CHAT_PATH + "/", include_in_schema=False)
    def preflight():
        return Response(status_code=204)

    @app.get(CHAT_PATH, response_model=HealthResponse)
    @app.get(CHAT_PATH + "/", response_model=HealthResponse, include_in_schema=False)
    def liveness():
        return HealthResponse(ok=True)

    @app.post(CHAT_PATH, response_model=ChatResponse, responses=ERROR_RESPONSES)
    @app.post(CHAT_PATH + "/", response_model=ChatResponse, responses=ERROR_RESPONSES, include_in_schema=False)
    async def chat(req: ChatRequest, request: Request, background_tasks: BackgroundTasks):
        handler: ChatTurnHandler = request.app.state.chat_handler
        try:
            result = await run_in_threadpool(handler.handle, req)
        except MissingCredentialError:
            logger.error("[CHAT][CONFIG] OPENAI_API_KEY missing")
            raise HTTPException(status_code=500, detail=NOT_CONFIGURED)
        except ProviderError as e:
            logger.error("[CHAT][OPENAI] %s", e)
            raise HTTPException(status_code=502, detail=UPSTREAM_FAILED)

        if result.notification is not None:
            background_tasks.add_task(_deliver_lead, request.app, result.notification)

        return ChatResponse(reply=result.reply)

    return app


async def _deliver_lead(app: FastAPI, notification: LeadNotification) -> None:
    settings: Settings = app.state.settings
    try:
        await app.state.notifier(
            settings.LEAD_WEBHOOK_URL,
            notification,
            timeout=settings.WEBHOOK_TIMEOUT,
        )
    except Exception as e:
        # custom notifiers may raise; the reply has already gone out
        logger.error("[WEBHOOK][ERROR] %s", e)


settings = Settings()
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - [%(levelname)s] - %(name)s - %(message)s",
)
app = create_app(settings)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
