"""
REQUEST GUARD MODULE
====================

Decides whether a POST /api/chat request may reach the model. Checks run in
a fixed order and the first failure ends the request:

  1. Origin        - must be present and in the allow-list (403).
  2. Widget token  - X-Widget-Token must match WIDGET_TOKEN (401); an unset
                     WIDGET_TOKEN is a server misconfiguration (500), and so
                     is an unset OPENAI_API_KEY, reported right after.
  3. Rate limit    - per client address (429). Only requests that get this
                     far are counted.
  4. Payload       - JSON body under the size limit (read incrementally,
                     abandoned as soon as it grows past the limit) with a non-empty message
                     of acceptable length (400).

The origin predicate is also used for CORS preflight handling in main.py, so
both paths apply the same policy: requests without an Origin header are
rejected.
"""

import json
import logging
import secrets
from typing import Any, Iterable, Optional

from fastapi import Request

from chat_relay.errors import (
    AuthorizationError,
    ConfigurationError,
    OriginRejectedError,
    RateLimitError,
    ValidationError,
)
from chat_relay.models import ChatRequest
from chat_relay.services.rate_limiter import RateLimitResult, SlidingWindowRateLimiter

logger = logging.getLogger("chat_relay")

WIDGET_TOKEN_HEADER = "X-Widget-Token"

EMPTY_MESSAGE = "Escribe un mensaje para poder ayudarte."
MESSAGE_TOO_LONG = "El mensaje es demasiado largo. Resúmelo un poco, por favor."


class RequestGuard:
    """Composed admission checks for the chat endpoint."""

    def __init__(
        self,
        allowed_origins: Iterable[str],
        widget_token: str,
        openai_api_key: str,
        rate_limiter: SlidingWindowRateLimiter,
        max_body_bytes: int,
        max_message_length: int,
        max_session_id_length: int = 128,
        trust_proxy: bool = False,
    ):
        self.allowed_origins = frozenset(allowed_origins)
        self.widget_token = widget_token
        self.openai_api_key = openai_api_key
        self.rate_limiter = rate_limiter
        self.max_body_bytes = max_body_bytes
        self.max_message_length = max_message_length
        self.max_session_id_length = max_session_id_length
        self.trust_proxy = trust_proxy

    # -------------------------------------------------------------------------
    # Individual checks
    # -------------------------------------------------------------------------

    def origin_allowed(self, origin: Optional[str]) -> bool:
        return bool(origin) and origin in self.allowed_origins

    def check_origin(self, origin: Optional[str]) -> None:
        if not self.origin_allowed(origin):
            raise OriginRejectedError(f"origin not allowed: {origin!r}")

    def check_token(self, provided: Optional[str]) -> None:
        if not self.widget_token:
            raise ConfigurationError("WIDGET_TOKEN")
        if not provided or not secrets.compare_digest(
            provided.encode("utf-8"), self.widget_token.encode("utf-8")
        ):
            raise AuthorizationError("missing or invalid widget token")

    def check_provider_key(self) -> None:
        if not self.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY")

    def check_rate(self, client_key: str) -> RateLimitResult:
        result = self.rate_limiter.check(client_key)
        if not result.allowed:
            raise RateLimitError(
                f"rate limit exceeded for {client_key}",
                headers=result.headers(),
            )
        return result

    def parse_payload(self, body: bytes) -> ChatRequest:
        """Validate the raw body and return the trimmed chat request."""
        if len(body) > self.max_body_bytes:
            raise ValidationError(f"body of {len(body)} bytes exceeds {self.max_body_bytes}")

        try:
            data = json.loads(body) if body else None
        except (ValueError, UnicodeDecodeError, RecursionError) as e:
            raise ValidationError(f"malformed JSON body: {type(e).__name__}: {e}") from e

        if not isinstance(data, dict):
            raise ValidationError("body must be a JSON object")

        message = data.get("message")
        if message is None:
            message = ""
        if not isinstance(message, str):
            raise ValidationError("message must be a string")

        text = message.strip()
        if not text:
            raise ValidationError("empty message", public_message=EMPTY_MESSAGE)
        if len(text) > self.max_message_length:
            raise ValidationError(
                f"message of {len(text)} characters exceeds {self.max_message_length}",
                public_message=MESSAGE_TOO_LONG,
            )

        session_id = self._parse_session_id(data.get("sessionId"))
        return ChatRequest(message=text, session_id=session_id)

    def _parse_session_id(self, value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        if not isinstance(value, str):
            raise ValidationError("sessionId must be a string")
        if len(value) > self.max_session_id_length:
            raise ValidationError(f"sessionId longer than {self.max_session_id_length} characters")
        return value

    def client_key(self, request: Request) -> str:
        """Client address used for rate limiting."""
        if self.trust_proxy:
            forwarded = request.headers.get("x-forwarded-for", "")
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop
        if request.client and request.client.host:
            return request.client.host
        return "unknown"

    # -------------------------------------------------------------------------
    # Composition
    # -------------------------------------------------------------------------

    async def admit(self, request: Request) -> ChatRequest:
        """
        Run every check in order. Returns the validated request; raises a
        RelayError subclass on the first failure.

        The rate limit result is left on ``request.state.rate_limit`` so the
        endpoint can add RateLimit-* headers to its response.
        """
        self.check_origin(request.headers.get("origin"))
        self.check_token(request.headers.get(WIDGET_TOKEN_HEADER))
        self.check_provider_key()

        client = self.client_key(request)
        request.state.rate_limit = self.check_rate(client)

        body = await self.read_body(request)
        return self.parse_payload(body)

    async def read_body(self, request: Request) -> bytes:
        """
        Read the request body, giving up as soon as it passes max_body_bytes.
        A declared Content-Length over the limit is rejected before reading;
        chunked uploads are counted as they arrive.
        """
        declared = request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > self.max_body_bytes:
            raise ValidationError(f"declared body of {declared} bytes exceeds {self.max_body_bytes}")

        body = bytearray()
        async for chunk in request.stream():
            body.extend(chunk)
            if len(body) > self.max_body_bytes:
                raise ValidationError(f"body exceeds {self.max_body_bytes} bytes while streaming")
        return bytes(body)
