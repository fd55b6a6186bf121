"""
CHAT SERVICE MODULE
===================

Runs one chat exchange after the request guard has admitted it:

  1. Resolve the session id and build the prompt (PromptAssembler).
  2. Ask the model (CompletionGateway).
  3. Append the user and assistant turns, trim, and store (the only write).

Requests for the same session are serialized with a per-session lock held
from reading the history until writing it back, so two concurrent messages
cannot both build on the same old history and lose a turn. The lock is
process-local: with a shared Redis store and several worker processes, two
workers can still race on the same session.

If the model call fails, nothing is written.
"""

import asyncio
import logging
from typing import Optional
from weakref import WeakValueDictionary

from chat_relay.models import ChatMessage, ChatResponse
from chat_relay.services.completion_gateway import CompletionGateway
from chat_relay.services.prompt_assembler import PromptAssembler, new_session_id
from chat_relay.services.session_store import SessionStore, trim_history

logger = logging.getLogger("chat_relay")


class ChatService:
    def __init__(
        self,
        store: SessionStore,
        assembler: PromptAssembler,
        gateway: CompletionGateway,
        max_turns: int,
    ):
        self.store = store
        self.assembler = assembler
        self.gateway = gateway
        self.max_turns = max_turns
        # Entries disappear once no request holds or waits on the lock.
        self._locks: "WeakValueDictionary[str, asyncio.Lock]" = WeakValueDictionary()

    def _session_lock(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    async def process_message(self, message: str, session_id: Optional[str] = None) -> ChatResponse:
        sid = session_id or new_session_id()

        async with self._session_lock(sid):
            prompt = await self.assembler.assemble(sid, message)
            logger.info(
                "Chat request: session=%s history_turns=%s message_chars=%s",
                sid,
                len(prompt.history),
                len(message),
            )

            reply = await self.gateway.complete(prompt.messages)

            updated = trim_history(
                prompt.history
                + [
                    ChatMessage(role="user", content=message),
                    ChatMessage(role="assistant", content=reply),
                ],
                self.max_turns,
            )
            await self.store.put(sid, updated)

        logger.info("Chat reply: session=%s reply_chars=%s", sid, len(reply))
        return ChatResponse(reply=reply, session_id=sid)
