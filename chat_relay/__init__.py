"""
CHAT RELAY APPLICATION PACKAGE
==============================

Main Python package for the website chat relay. The web widget posts a
message here; the relay checks where it came from, forwards it with a short
conversation window to OpenAI and returns the reply.

  from chat_relay.main import app, create_app
  from chat_relay.models import ChatRequest, ChatResponse
  from chat_relay.services.chat_service import ChatService

FILE STRUCTURE:
  chat_relay/
    __init__.py   - This file; marks 'chat_relay' as a package.
    main.py       - FastAPI app factory, middleware and HTTP endpoints (/health, /api/chat).
    models.py     - Pydantic models for the wire format and stored turns.
    errors.py     - Error taxonomy; every error knows its HTTP status and client message.
    services/     - Request guard, rate limiter, session store, prompt assembly, OpenAI gateway.
"""
