"""
RUN SCRIPT - Start the chat relay
=================================

PURPOSE:
  Single entry point to start the relay in production or locally.

WHAT IT DOES:
  - Runs chat_relay.main:app with uvicorn on HOST (default 0.0.0.0) and PORT
    (default 3000; hosting platforms such as Render set PORT themselves).
  - RELOAD=1 restarts the server on code changes (local development only).

USAGE:
  python run.py

NOTE:
  Before running, set OPENAI_API_KEY and WIDGET_TOKEN (and optionally
  ALLOWED_ORIGINS) in .env or the environment.
"""

import os

import uvicorn

import config

# ------------------------------------------------------------------------------
# ENTRY POINT
# ------------------------------------------------------------------------------
if __name__ == "__main__":
    uvicorn.run(
        "chat_relay.main:app",
        host=config.HOST,
        port=config.PORT,
        reload=os.getenv("RELOAD", "").strip().lower() in {"1", "true", "yes"},
        proxy_headers=config.TRUST_PROXY,
        log_level=config.LOG_LEVEL.lower(),
    )
