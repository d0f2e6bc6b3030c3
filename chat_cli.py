#!/usr/bin/env python3
"""Interactive terminal chat against a running chat relay.

Usage:
    python chat_cli.py                          # relay at RELAY_URL (default http://localhost:8000)
    python chat_cli.py http://relay:8000        # explicit relay address

Commands:
    tools    - toggle tool-augmented mode (/api/chat/generate)
    history  - print the conversation so far
    clear    - start over
    quit     - exit
"""

import sys

import requests

from chat_relay.client import ENDPOINTS
from chat_relay.config import settings
from chat_relay.core.conversation import ConversationStore
from chat_relay.core.stream_consumer import StreamConsumer
from chat_relay.services.upstream_service import ChatMode

# --- ANSI Colors ---
ASSISTANT_COLOR = "\033[96m"
USER_COLOR = "\033[97m"
RESET = "\033[0m"
DIM = "\033[90m"
BOLD = "\033[1m"
YELLOW = "\033[93m"
RED = "\033[91m"

DIVIDER = DIM + "─" * 50 + RESET


def mode_label(tool_mode: bool) -> str:
    return "tools" if tool_mode else "chat"


def print_header(relay_url: str, store: ConversationStore):
    print()
    print(f"{BOLD}" + "=" * 50 + f"{RESET}")
    print(f"{BOLD}  Chat Relay{RESET}")
    print(f"  {DIM}{relay_url}{RESET}")
    print(f"  {YELLOW}mode: {mode_label(store.tool_mode)}{RESET}")
    print(f"{BOLD}" + "=" * 50 + f"{RESET}")
    print(f"  {DIM}[tools | history | clear | quit]{RESET}")
    print()


def print_history(store: ConversationStore):
    if not len(store):
        print(f"\n  {DIM}(empty){RESET}\n")
        return
    print(DIVIDER)
    for message in store.messages:
        color = USER_COLOR if message.role == "user" else ASSISTANT_COLOR
        print(f"  {color}{message.role}{RESET}: {message.content}")
    print(DIVIDER)
    print()


def send_message(relay_url: str, store: ConversationStore, text: str) -> None:
    """POST to the relay and echo the reply as it streams in."""
    if not store.begin_request():
        print(f"  {RED}[busy] a reply is still streaming{RESET}")
        return

    store.append_user_message(text)
    print(f"  {ASSISTANT_COLOR}assistant{RESET}: ", end="", flush=True)
    consumer = StreamConsumer(
        store, on_text=lambda piece: print(piece, end="", flush=True)
    )
    url = relay_url.rstrip("/") + ENDPOINTS[ChatMode.from_flag(store.tool_mode)]
    try:
        with requests.post(url, json={"message": text}, stream=True) as resp:
            if resp.ok:
                consumer.consume(resp.iter_content(chunk_size=None))
            else:
                consumer.fail(requests.HTTPError(f"Relay returned {resp.status_code}"))
    except requests.exceptions.RequestException as e:
        if not consumer.done:
            consumer.fail(e)
    finally:
        store.end_request()

    if consumer.error is not None:
        print(f"\n  {RED}{store.messages[-1].content}{RESET}")
        print(f"  {DIM}{consumer.error}{RESET}")
    print("\n")


def main():
    relay_url = sys.argv[1] if len(sys.argv) > 1 else settings.RELAY_URL
    store = ConversationStore()
    print_header(relay_url, store)

    while True:
        try:
            user_input = input(f"  {BOLD}you{RESET}: ").strip()
        except (EOFError, KeyboardInterrupt):
            print(f"\n\n  {DIM}bye.{RESET}")
            break

        if not user_input:
            continue

        command = user_input.lower()
        if command in ("quit", "exit", "q"):
            break
        if command == "tools":
            store.toggle_tool_mode()
            print(f"  {YELLOW}mode: {mode_label(store.tool_mode)}{RESET}\n")
            continue
        if command == "history":
            print_history(store)
            continue
        if command == "clear":
            store.clear()
            print(f"  {DIM}conversation cleared{RESET}\n")
            continue

        send_message(relay_url, store, user_input)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print(f"\n\n{DIM}bye.{RESET}")
