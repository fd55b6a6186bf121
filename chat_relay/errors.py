"""
Error taxonomy for the chat relay.

Each error carries the HTTP status and the short message shown to the widget
user. Internal detail goes to the log through the exception itself (its
``__cause__`` or ``detail``), never to the client.
"""

from typing import Dict, Optional


GENERIC_ERROR_MESSAGE = "Ha ocurrido un error. Inténtalo de nuevo en unos segundos."


class RelayError(Exception):
    """Base class: an expected failure that ends the request with a JSON reply."""

    status_code = 500
    public_message = GENERIC_ERROR_MESSAGE

    def __init__(
        self,
        detail: str = "",
        public_message: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(detail or self.public_message)
        self.detail = detail
        if public_message is not None:
            self.public_message = public_message
        self.headers = headers or {}


class ConfigurationError(RelayError):
    """A required secret is missing. Operator-fixable, so the message names it."""

    status_code = 500

    def __init__(self, setting_name: str):
        super().__init__(
            detail=f"{setting_name} is not configured",
            public_message=f"Falta configurar {setting_name} en el servidor.",
        )
        self.setting_name = setting_name


class OriginRejectedError(RelayError):
    status_code = 403
    public_message = "Origen no permitido."


class AuthorizationError(RelayError):
    status_code = 401
    public_message = "No autorizado."


class RateLimitError(RelayError):
    status_code = 429
    public_message = "Demasiadas solicitudes. Inténtalo de nuevo en un minuto."


class ValidationError(RelayError):
    """Bad payload: malformed body, empty or oversized message."""

    status_code = 400
    public_message = "Solicitud no válida."


class UpstreamError(RelayError):
    """The completion provider failed or returned something unusable."""

    status_code = 500
    public_message = GENERIC_ERROR_MESSAGE
