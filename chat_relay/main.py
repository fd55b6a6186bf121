"""
CHAT RELAY MAIN API
===================

This module defines the FastAPI application for the website chat widget.
The widget runs on the company's site; this relay holds the OpenAI key and
a short per-session memory so the widget never talks to OpenAI directly.

ENDPOINTS:
  GET  /health    - Liveness probe. Always "OK", no auth, no dependencies.
  POST /api/chat  - Body {message, sessionId?}. Returns {reply, sessionId}.
                    Requires an allowed Origin and the X-Widget-Token header.

SESSION:
  If sessionId is omitted, the relay generates a UUID and returns it; the
  widget sends it back on the next request to continue the conversation.
  Only the last 12 turns are kept and sent to the model.

ERRORS:
  Every failure returns {"reply": "<short message>"} with a status code:
  403 origin, 401 token, 429 rate limit, 400 bad payload, 500 missing
  configuration or upstream failure. Details are logged, never returned.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from langchain_core.language_models.chat_models import BaseChatModel
from starlette.middleware.base import BaseHTTPMiddleware

import config
from config import Settings
from chat_relay.errors import GENERIC_ERROR_MESSAGE, OriginRejectedError, RelayError
from chat_relay.models import ErrorResponse
from chat_relay.services.chat_service import ChatService
from chat_relay.services.completion_gateway import CompletionGateway
from chat_relay.services.prompt_assembler import PromptAssembler
from chat_relay.services.rate_limiter import SlidingWindowRateLimiter
from chat_relay.services.request_guard import WIDGET_TOKEN_HEADER, RequestGuard
from chat_relay.services.session_store import SessionStore, build_session_store


# -----------------------------------------------------------------------------
# LOGGING
# -----------------------------------------------------------------------------
logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s | %(levelname)-8s | %(name)-12s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger("chat_relay")

CHAT_PATH = "/api/chat"


# -------------------------------------------------------------------------
# MIDDLEWARE
# -------------------------------------------------------------------------

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Basic hardening headers on every response. No CSP: we never serve HTML."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Cross-Origin-Resource-Policy"] = "same-site"
        return response


class PreflightOriginMiddleware(BaseHTTPMiddleware):
    """
    Answers CORS preflights for the chat endpoint from unknown (or missing)
    origins with 403, using the same predicate as the request guard. Allowed
    preflights fall through to CORSMiddleware.
    """

    def __init__(self, app, guard: RequestGuard):
        super().__init__(app)
        self.guard = guard

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS" and request.url.path == CHAT_PATH:
            origin = request.headers.get("origin")
            if not self.guard.origin_allowed(origin):
                logger.warning("Preflight rejected: origin=%r", origin)
                return JSONResponse(
                    status_code=OriginRejectedError.status_code,
                    content=ErrorResponse(reply=OriginRejectedError.public_message).model_dump(),
                )
        return await call_next(request)


def _rate_limit_headers(request: Request) -> dict:
    result = getattr(request.state, "rate_limit", None)
    return result.headers() if result is not None else {}


# -------------------------------------------------------------------------
# APP FACTORY
# -------------------------------------------------------------------------

def create_app(
    settings: Optional[Settings] = None,
    llm: Optional[BaseChatModel] = None,
    store: Optional[SessionStore] = None,
    rate_limiter: Optional[SlidingWindowRateLimiter] = None,
) -> FastAPI:
    """
    Build the relay. Everything the handlers use hangs off ``app.state``, so
    each app (and each test) gets its own sessions and rate-limit counters.

    ``llm`` replaces the OpenAI chat model (tests pass a fake); ``store`` and
    ``rate_limiter`` replace the defaults built from ``settings``.
    """
    settings = settings or Settings.from_env()

    if store is None:
        store = build_session_store(
            max_turns=settings.max_history_turns,
            redis_url=settings.session_redis_url,
            ttl_seconds=settings.session_ttl_seconds,
        )
    if rate_limiter is None:
        rate_limiter = SlidingWindowRateLimiter(
            limit=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )

    guard = RequestGuard(
        allowed_origins=settings.allowed_origins,
        widget_token=settings.widget_token,
        openai_api_key=settings.openai_api_key,
        rate_limiter=rate_limiter,
        max_body_bytes=settings.max_body_bytes,
        max_message_length=settings.max_message_length,
        max_session_id_length=settings.max_session_id_length,
        trust_proxy=settings.trust_proxy,
    )
    gateway = CompletionGateway(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        temperature=settings.temperature,
        timeout=settings.upstream_timeout_seconds,
        llm=llm,
    )
    assembler = PromptAssembler(
        store=store,
        system_prompt=settings.system_prompt,
        max_turns=settings.max_history_turns,
    )
    chat_service = ChatService(
        store=store,
        assembler=assembler,
        gateway=gateway,
        max_turns=settings.max_history_turns,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Log the effective configuration on startup; close the store on shutdown."""
        logger.info("=" * 60)
        logger.info("Chat relay starting up")
        logger.info("    - Model: %s (temperature %s)", settings.openai_model, settings.temperature)
        logger.info("    - Allowed origins: %s", ", ".join(sorted(settings.allowed_origins)))
        logger.info("    - OpenAI key set: %s", bool(settings.openai_api_key))
        logger.info("    - Widget token set: %s", bool(settings.widget_token))
        logger.info("    - Session store: %s", type(store).__name__)
        logger.info("=" * 60)
        if not settings.openai_api_key:
            logger.warning("OPENAI_API_KEY not set. Chat requests will fail with 500.")
        if not settings.widget_token:
            logger.warning("WIDGET_TOKEN not set. Chat requests will fail with 500.")

        yield

        logger.info("Shutting down chat relay...")
        await store.close()

    app = FastAPI(
        title="Clickmesh Chat Relay",
        description="Relay between the website chat widget and OpenAI",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.guard = guard
    app.state.store = store
    app.state.chat_service = chat_service

    # Starlette runs the last added middleware first.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=False,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type", WIDGET_TOKEN_HEADER],
        expose_headers=["RateLimit-Limit", "RateLimit-Remaining", "RateLimit-Reset", "Retry-After"],
    )
    app.add_middleware(PreflightOriginMiddleware, guard=guard)
    app.add_middleware(SecurityHeadersMiddleware)

    # =========================================================================
    # ERROR TRANSLATION
    # =========================================================================

    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError):
        client = guard.client_key(request)
        if exc.status_code >= 500:
            logger.error(
                "%s on %s from %s: %s",
                type(exc).__name__,
                request.url.path,
                client,
                exc.detail,
                exc_info=exc if exc.__cause__ is not None else None,
            )
        else:
            logger.warning(
                "Rejected %s from %s: %s (%s)",
                request.url.path,
                client,
                type(exc).__name__,
                exc.detail,
            )
        headers = {**_rate_limit_headers(request), **exc.headers}
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(reply=exc.public_message).model_dump(),
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled %s on %s: %s", type(exc).__name__, request.url.path, exc, exc_info=exc
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(reply=GENERIC_ERROR_MESSAGE).model_dump(),
        )

    # =========================================================================
    # API ENDPOINTS
    # =========================================================================

    @app.get("/health", response_class=PlainTextResponse)
    async def health():
        """Liveness probe."""
        return PlainTextResponse("OK")

    @app.post(CHAT_PATH)
    async def chat(request: Request):
        """
        Chat endpoint for the widget.

        REQUEST BODY:
        {
            "message": "Hola",
            "sessionId": "optional-session-id"
        }

        RESPONSE:
        {
            "reply": "¡Hola! ¿En qué puedo ayudarte?",
            "sessionId": "session-id-here"
        }
        """
        try:
            payload = await guard.admit(request)
            result = await chat_service.process_message(payload.message, payload.session_id)
        except RelayError:
            raise
        except Exception as e:
            raise RelayError(f"unexpected error: {type(e).__name__}: {e}") from e

        return JSONResponse(
            content=result.model_dump(by_alias=True),
            headers=_rate_limit_headers(request),
        )

    return app


app = create_app()


# -------------------------------------------------------------------------
# STANDALONE RUN (python -m chat_relay.main)
# -------------------------------------------------------------------------
def run():
    """Start the uvicorn server (same as run.py)."""
    uvicorn.run(
        "chat_relay.main:app",
        host=config.HOST,
        port=config.PORT,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
