"""Tests for prompt assembly."""

import uuid

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from chat_relay.models import ChatMessage
from chat_relay.services.prompt_assembler import PromptAssembler, to_lc_messages
from chat_relay.services.session_store import InMemorySessionStore


def test_to_lc_messages_maps_roles():
    messages = to_lc_messages(
        [ChatMessage(role="user", content="Hola"), ChatMessage(role="assistant", content="¡Hola!")]
    )
    assert isinstance(messages[0], HumanMessage)
    assert isinstance(messages[1], AIMessage)
    assert [m.content for m in messages] == ["Hola", "¡Hola!"]


@pytest.mark.asyncio
async def test_new_session_gets_generated_id():
    store = InMemorySessionStore(max_turns=12)
    assembler = PromptAssembler(store, system_prompt="SYS", max_turns=12)

    prompt = await assembler.assemble(None, "Hola")

    uuid.UUID(prompt.session_id)
    assert prompt.history == []
    assert isinstance(prompt.messages[0], SystemMessage)
    assert prompt.messages[0].content == "SYS"
    assert isinstance(prompt.messages[-1], HumanMessage)
    assert prompt.messages[-1].content == "Hola"
    assert len(prompt.messages) == 2


@pytest.mark.asyncio
async def test_history_window_is_limited():
    store = InMemorySessionStore(max_turns=20)
    await store.put(
        "s",
        [ChatMessage(role="user" if i % 2 == 0 else "assistant", content=str(i)) for i in range(20)],
    )
    assembler = PromptAssembler(store, system_prompt="SYS", max_turns=12)

    prompt = await assembler.assemble("s", "nuevo")

    assert prompt.session_id == "s"
    assert len(prompt.history) == 12
    assert prompt.history[0].content == "8"
    assert [m.content for m in prompt.messages[1:-1]] == [str(i) for i in range(8, 20)]
    assert prompt.messages[-1].content == "nuevo"


@pytest.mark.asyncio
async def test_assemble_does_not_write_to_store():
    store = InMemorySessionStore(max_turns=12)
    assembler = PromptAssembler(store, system_prompt="SYS", max_turns=12)

    prompt = await assembler.assemble("s", "Hola")

    assert await store.get(prompt.session_id) == []
    assert len(store) == 0
