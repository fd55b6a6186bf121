"""
WIDGET SMOKE CLIENT - Talk to a running relay from the terminal
===============================================================

PURPOSE:
Command-line stand-in for the website widget. Sends messages to
POST /api/chat with the same Origin and X-Widget-Token headers the widget
uses, and keeps the sessionId the relay hands back so the conversation
continues across messages.

USAGE:
    python widget_client.py

    Make sure the relay is running first: python run.py

ENVIRONMENT:
    RELAY_URL      - Base URL of the relay (default http://localhost:3000)
    RELAY_ORIGIN   - Origin header to send (default: first allowed origin)
    WIDGET_TOKEN   - Shared widget secret (same value as the server's)

COMMANDS:
    /clear - Start a new session
    /quit or /exit - Exit
"""

import os
from typing import Optional, Tuple

import requests

import config


# -----------------------------------------------------------------------------
# CONFIGURATION
# -----------------------------------------------------------------------------
BASE_URL = os.getenv("RELAY_URL", f"http://localhost:{config.PORT}").rstrip("/")
ORIGIN = os.getenv("RELAY_ORIGIN", "").strip() or config.ALLOWED_ORIGINS[0]


# -----------------------------------------------------------------------------
# API CALLS
# -----------------------------------------------------------------------------

def send_message(
    message: str,
    session_id: Optional[str] = None,
    base_url: str = BASE_URL,
    origin: str = ORIGIN,
    token: str = config.WIDGET_TOKEN,
    timeout: float = 60,
) -> Tuple[str, Optional[str]]:
    """
    Send one message to the relay.

    Returns:
        (reply, session_id): the relay's reply (or a readable error) and the
        session id to use next time. On errors the given session_id is kept.
    """
    body = {"message": message}
    if session_id:
        body["sessionId"] = session_id

    try:
        response = requests.post(
            f"{base_url}/api/chat",
            json=body,
            headers={"Origin": origin, "X-Widget-Token": token},
            timeout=timeout,
        )
    except requests.exceptions.ConnectionError:
        return "Cannot connect to the relay. Start it with: python run.py", session_id
    except requests.exceptions.Timeout:
        return "Request timed out.", session_id

    try:
        data = response.json()
    except ValueError:
        return f"Error: {response.status_code} - {response.text}", session_id

    if response.status_code == 200:
        return data.get("reply", ""), data.get("sessionId", session_id)
    return f"Error {response.status_code}: {data.get('reply', response.text)}", session_id


# -----------------------------------------------------------------------------
# MAIN LOOP
# -----------------------------------------------------------------------------

def main():
    print("\n" + "=" * 60)
    print("Chat relay - widget smoke client")
    print(f"Relay: {BASE_URL}   Origin: {ORIGIN}")
    print("Commands: /clear (new session), /quit")
    print("=" * 60 + "\n")

    if not config.WIDGET_TOKEN:
        print("WIDGET_TOKEN is not set; the relay will answer 500 or 401.\n")

    session_id = None
    while True:
        try:
            user_input = input("\nYou: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\nGoodbye!")
            break

        if not user_input:
            continue
        if user_input in ("/quit", "/exit"):
            print("\nGoodbye!")
            break
        if user_input == "/clear":
            session_id = None
            print("Session cleared.")
            continue

        reply, session_id = send_message(user_input, session_id)
        print(f"Assistant: {reply}")


if __name__ == "__main__":
    main()
