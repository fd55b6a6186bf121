"""
COMPLETION GATEWAY MODULE
=========================

One non-streaming chat completion per request, through LangChain's
ChatOpenAI. Fixed model and temperature; no retries (a failed call is
reported to the user, who can simply send the message again).

Whatever goes wrong upstream (network, provider error, odd response) comes
out of here as a single UpstreamError. A missing OPENAI_API_KEY is reported
as a ConfigurationError before any call is attempted.
"""

import logging
from typing import Any, List, Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage
from langchain_openai import ChatOpenAI

from chat_relay.errors import ConfigurationError, UpstreamError

logger = logging.getLogger("chat_relay")

FALLBACK_REPLY = "No he podido responder ahora mismo."


def extract_reply_text(response: Any) -> str:
    """
    Pull the reply text out of a model response. Content may be a plain
    string or a list of content blocks; anything else counts as empty.
    """
    content = getattr(response, "content", None)
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text") or ""))
        return "".join(parts).strip()
    return ""


class CompletionGateway:
    """
    Thin client around the chat model. The model is created lazily so the
    relay can start (and answer /health) without an API key.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        temperature: float,
        timeout: Optional[float] = None,
        llm: Optional[BaseChatModel] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self._llm = llm

    def _get_llm(self) -> BaseChatModel:
        if self._llm is None:
            self._llm = ChatOpenAI(
                model=self.model,
                temperature=self.temperature,
                api_key=self.api_key,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._llm

    async def complete(self, messages: List[BaseMessage]) -> str:
        """Send the prompt, return the trimmed reply (or the fallback reply)."""
        if not self.api_key:
            raise ConfigurationError("OPENAI_API_KEY")

        llm = self._get_llm()
        try:
            response = await llm.ainvoke(messages)
        except Exception as e:
            raise UpstreamError(f"completion call failed: {type(e).__name__}: {e}") from e

        reply = extract_reply_text(response)
        if not reply:
            logger.warning("Model %s returned an empty reply, using fallback text", self.model)
            return FALLBACK_REPLY
        return reply
