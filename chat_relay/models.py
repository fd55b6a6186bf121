"""
DATA MODELS MODULE
==================

Pydantic models for the wire format of POST /api/chat and for the turns
kept in the session store. The widget speaks camelCase (sessionId); Python
code uses snake_case through field aliases.

MODELS:
  ChatMessage     - One stored turn (role + content). Immutable once created.
  ChatRequest     - Body of POST /api/chat after validation (message + optional session_id).
  ChatResponse    - Successful reply (reply text + sessionId).
  ErrorResponse   - Body of every error response (reply text only).
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# ==============================================================================
# STORED TURNS
# ==============================================================================

class ChatMessage(BaseModel):
    """
    A single turn in a conversation (user or assistant).
    Stored in order inside a session; order defines chronology.
    """
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str


# ==============================================================================
# REQUEST / RESPONSE MODELS
# ==============================================================================

class ChatRequest(BaseModel):
    """
    Validated body of POST /api/chat.

    The request guard builds this after its own checks (trimmed, non-empty,
    length-limited message), so FastAPI never sees the raw body as a model and
    bad input maps to our 400 instead of a 422.
    """
    model_config = ConfigDict(populate_by_name=True)

    message: str
    session_id: Optional[str] = Field(default=None, alias="sessionId")


class ChatResponse(BaseModel):
    """
    Response body for POST /api/chat.

    - reply: The assistant's reply text.
    - sessionId: Send it back on the next request to continue the conversation.
    """
    model_config = ConfigDict(populate_by_name=True)

    reply: str
    session_id: str = Field(alias="sessionId")


class ErrorResponse(BaseModel):
    """Every failure answers with a short, user-facing message only."""
    reply: str
