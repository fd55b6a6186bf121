"""
PROMPT ASSEMBLER MODULE
=======================

Builds the message list sent to the model for one request:

  [system prompt] + [last N stored turns] + [new user message]

Reads the session store but never writes it; the history is only updated by
ChatService after the model has answered.
"""

import uuid
from dataclasses import dataclass
from typing import List, Optional

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from chat_relay.models import ChatMessage
from chat_relay.services.session_store import SessionStore, trim_history


def new_session_id() -> str:
    return str(uuid.uuid4())


def to_lc_messages(turns: List[ChatMessage]) -> List[BaseMessage]:
    """Stored turns as LangChain messages."""
    messages: List[BaseMessage] = []
    for turn in turns:
        if turn.role == "assistant":
            messages.append(AIMessage(content=turn.content))
        else:
            messages.append(HumanMessage(content=turn.content))
    return messages


@dataclass
class AssembledPrompt:
    session_id: str
    history: List[ChatMessage]
    messages: List[BaseMessage]


class PromptAssembler:
    def __init__(self, store: SessionStore, system_prompt: str, max_turns: int):
        self.store = store
        self.system_prompt = system_prompt
        self.max_turns = max_turns

    async def assemble(self, session_id: Optional[str], message: str) -> AssembledPrompt:
        """
        Resolve the session id (generate one if absent) and build the prompt.

        ``history`` is the trimmed window the prompt was built from; the
        caller appends the new turns to it before storing.
        """
        sid = session_id or new_session_id()
        history = trim_history(await self.store.get(sid), self.max_turns)

        messages: List[BaseMessage] = [SystemMessage(content=self.system_prompt)]
        messages.extend(to_lc_messages(history))
        messages.append(HumanMessage(content=message))

        return AssembledPrompt(session_id=sid, history=history, messages=messages)
