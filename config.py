"""
CONFIGURATION MODULE
====================

PURPOSE:
  Central place for all chat relay settings: the OpenAI key, the widget token,
  the allowed origins, request limits and the assistant's system prompt.
  The relay is deployed once per website; each deployment has its own .env.

WHAT THIS FILE DOES:
  - Loads environment variables from .env (so secrets stay out of code).
  - Exposes OPENAI_API_KEY, OPENAI_MODEL and the fixed sampling temperature.
  - Exposes WIDGET_TOKEN, the shared secret the web widget sends on every request.
  - Parses ALLOWED_ORIGINS (comma separated) with a hardcoded fallback pair.
  - Defines the request limits: history window, message length, body size, rate limit.
  - Holds the default system prompt (overridable through SYSTEM_PROMPT or SYSTEM_PROMPT_FILE).
  - Bundles all of the above in a frozen Settings object for the app factory.

USAGE:
  `from config import Settings` and call `Settings.from_env()`, or build a
  Settings(...) directly in tests. Module constants are the defaults.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple
from dotenv import load_dotenv


# -----------------------------------------------------------------------------
# LOGGING
# -----------------------------------------------------------------------------
logger = logging.getLogger("chat_relay")


# -----------------------------------------------------------------------------
# ENVIRONMENT
# -----------------------------------------------------------------------------
load_dotenv()

BASE_DIR = Path(__file__).parent


# ============================================================================
# OPENAI CONFIGURATION
# ============================================================================
# The completion provider. The key is required at request time, not at
# startup: a missing key turns every chat request into a 500 with an
# explanatory message instead of crashing the process.

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "").strip() or "gpt-4o-mini"
TEMPERATURE = 0.35
UPSTREAM_TIMEOUT_SECONDS = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "30"))

# ============================================================================
# WIDGET ACCESS
# ============================================================================
# WIDGET_TOKEN should be long (32-64 characters). If it is not set, chat
# requests fail with 500: an unset token never means "no token required".

WIDGET_TOKEN = os.getenv("WIDGET_TOKEN", "").strip()

DEFAULT_ALLOWED_ORIGINS: Tuple[str, ...] = (
    "https://automatizacionesbilbao.es",
    "https://www.automatizacionesbilbao.es",
)


def parse_origins(raw: str) -> List[str]:
    """Split a comma separated origin list, dropping blanks."""
    return [origin.strip() for origin in (raw or "").split(",") if origin.strip()]


ALLOWED_ORIGINS = parse_origins(os.getenv("ALLOWED_ORIGINS", "")) or list(DEFAULT_ALLOWED_ORIGINS)

# Behind a reverse proxy (Render, nginx) the socket peer is the proxy itself.
TRUST_PROXY = os.getenv("TRUST_PROXY", "").strip().lower() in {"1", "true", "yes", "on"}

# ============================================================================
# SERVER
# ============================================================================
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# ============================================================================
# LIMITS
# ============================================================================
# Turns (single user or assistant messages) kept per session and sent to the model.
MAX_HISTORY_TURNS = 12

# Characters allowed in one user message, after trimming whitespace.
MAX_MESSAGE_LENGTH = 2000

# Raw request body size for POST /api/chat.
MAX_BODY_BYTES = 16 * 1024

# Longest client-supplied sessionId we accept.
MAX_SESSION_ID_LENGTH = 128

# 20 requests per minute per client address.
RATE_LIMIT_MAX_REQUESTS = 20
RATE_LIMIT_WINDOW_SECONDS = 60

# ============================================================================
# SESSION STORAGE
# ============================================================================
# Empty SESSION_REDIS_URL keeps sessions in memory (lost on restart, which is fine).
SESSION_REDIS_URL = os.getenv("SESSION_REDIS_URL", "").strip()
SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", str(24 * 60 * 60)))

# ============================================================================
# ASSISTANT PERSONALITY
# ============================================================================
# Business rules for the website assistant. Edit through SYSTEM_PROMPT or
# SYSTEM_PROMPT_FILE without touching code.

DEFAULT_SYSTEM_PROMPT = """Eres el asistente de la web de Clickmesh (automatización y soluciones digitales).
Objetivo: resolver dudas y, cuando haya intención comercial, convertirla en lead cualificado.

Estilo:
- Profesional, claro, sin exageraciones.
- Respuestas directas, con pasos accionables.
- Si falta información, pregunta solo lo mínimo.

Reglas:
- No inventes precios, plazos, resultados garantizados ni tecnologías no confirmadas.
- Si el usuario pide presupuesto o muestra intención de contratar, debes pedir:
  (1) Nombre, (2) Empresa, (3) Email, (4) Teléfono, (5) Qué proceso quiere automatizar, (6) Herramientas que usa (si lo sabe).
- Si el usuario quiere hablar con una persona, ofrece contacto y sugiere agendar.
- Si la consulta es poco concreta, guía con 2-3 preguntas cerradas.
- Si hay dudas sobre datos, LOPDGDD o RGPD, responde de forma general y sugiere consulta profesional.

Importante:
- Si el usuario aporta datos personales, trátalos con discreción y no los repitas innecesariamente.
"""


def load_system_prompt() -> str:
    """
    Resolve the system prompt: SYSTEM_PROMPT wins, then SYSTEM_PROMPT_FILE,
    then the built-in prompt. An unreadable file falls back to the default
    with a warning so a typo in the path does not take the relay down.
    """
    inline = os.getenv("SYSTEM_PROMPT", "").strip()
    if inline:
        return inline

    prompt_file = os.getenv("SYSTEM_PROMPT_FILE", "").strip()
    if prompt_file:
        path = Path(prompt_file)
        if not path.is_absolute():
            path = BASE_DIR / path
        try:
            content = path.read_text(encoding="utf-8").strip()
            if content:
                return content
            logger.warning("System prompt file %s is empty, using default prompt", path)
        except OSError as e:
            logger.warning("Could not read system prompt file %s: %s", path, e)

    return DEFAULT_SYSTEM_PROMPT


SYSTEM_PROMPT = load_system_prompt()


# ============================================================================
# SETTINGS OBJECT
# ============================================================================

@dataclass(frozen=True)
class Settings:
    """
    Everything the app factory needs, in one immutable object.

    Defaults come from the module constants above (i.e. from the environment
    at import time). Tests build their own instance instead of patching env.
    """
    openai_api_key: str = OPENAI_API_KEY
    openai_model: str = OPENAI_MODEL
    temperature: float = TEMPERATURE
    upstream_timeout_seconds: float = UPSTREAM_TIMEOUT_SECONDS
    widget_token: str = WIDGET_TOKEN
    allowed_origins: Tuple[str, ...] = field(default_factory=lambda: tuple(ALLOWED_ORIGINS))
    trust_proxy: bool = TRUST_PROXY
    max_history_turns: int = MAX_HISTORY_TURNS
    max_message_length: int = MAX_MESSAGE_LENGTH
    max_body_bytes: int = MAX_BODY_BYTES
    max_session_id_length: int = MAX_SESSION_ID_LENGTH
    rate_limit_max_requests: int = RATE_LIMIT_MAX_REQUESTS
    rate_limit_window_seconds: float = RATE_LIMIT_WINDOW_SECONDS
    session_redis_url: str = SESSION_REDIS_URL
    session_ttl_seconds: int = SESSION_TTL_SECONDS
    system_prompt: str = SYSTEM_PROMPT

    @classmethod
    def from_env(cls) -> "Settings":
        """Settings as configured by the environment and .env."""
        return cls()
