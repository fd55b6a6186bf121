"""
SERVICES PACKAGE
=================

Business logic lives here. The API layer (chat_relay.main) calls these
services; only the request guard looks at the HTTP request itself.

MODULES:
    session_store      - SessionStore interface, in-memory and Redis backends
    rate_limiter       - Sliding-window request counter per client address
    request_guard      - Origin, widget token, rate limit and payload checks
    prompt_assembler   - System prompt + recent history + new user turn
    completion_gateway - One OpenAI chat completion call via LangChain
    chat_service       - Ties the above together for POST /api/chat
"""
