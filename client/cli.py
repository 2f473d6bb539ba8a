"""
Terminal chat client for the NIC server.

Usage:
    python -m client.cli chat [--no-stream] [--url URL]
    python -m client.cli check [--url URL]

Inside a chat session:
    /new        start a new conversation
    /list       list conversations, newest first
    /switch N   switch to conversation N from /list
    /quit       leave
"""

from __future__ import annotations

import argparse
import sys
from typing import Dict, List, Optional, TextIO, Tuple

import httpx

from client.api import ChatAPIError, NICClient
from client.conversation import ConversationStore


def print_conversations(store: ConversationStore, out: TextIO) -> None:
    for index, conversation in enumerate(store.conversations, start=1):
        marker = "*" if conversation.id == store.active_id else " "
        out.write(
            f"{marker} {index}. {conversation.title} "
            f"({len(conversation.messages)} messages, {conversation.created_at:%H:%M})\n"
        )


def handle_command(line: str, store: ConversationStore, out: TextIO) -> bool:
    """Run a slash command. Returns False when the session should end."""
    command, _, arg = line.partition(" ")
    if command == "/quit":
        return False
    if command == "/new":
        store.create()
        out.write("Started a new conversation.\n")
    elif command == "/list":
        print_conversations(store, out)
    elif command == "/switch":
        try:
            conversation = store.select(int(arg) - 1)
        except (ValueError, IndexError):
            out.write(f"Unknown conversation: {arg!r}\n")
        else:
            out.write(f"Switched to: {conversation.title}\n")
            for turn in conversation.messages:
                out.write(f"{turn.role.title()}: {turn.content}\n")
    else:
        out.write(f"Unknown command: {command}\n")
    return True


def _request_reply(
    api: NICClient, payload: List[Dict[str, str]], stream: bool, out: TextIO
) -> Tuple[str, Optional[str]]:
    if not stream:
        data = api.send(payload)
        answer = data.get("message") or ""
        out.write(answer)
        return answer, data.get("title")

    chunks = []
    with api.stream(payload) as reply:
        for chunk in reply:
            chunks.append(chunk)
            out.write(chunk)
            out.flush()
    return "".join(chunks), reply.title


def send_turn(
    api: NICClient, store: ConversationStore, text: str, stream: bool, out: TextIO
) -> None:
    """Send one user turn; on failure the turn is dropped so it can be retried."""
    conversation = store.active
    conversation.add("user", text)
    out.write("Assistant: ")
    try:
        answer, title = _request_reply(api, conversation.payload(), stream, out)
        if not answer.strip():
            raise ChatAPIError(200, {"error": "empty reply"})
    except (ChatAPIError, httpx.HTTPError):
        conversation.messages.pop()
        raise
    out.write("\n\n")
    conversation.apply_title(title)
    conversation.add("assistant", answer)


def cmd_chat(args: argparse.Namespace) -> int:
    store = ConversationStore()
    store.create()
    print("NIC nutrition chat (type /quit to exit, /new for a new conversation)\n")

    with NICClient(args.url) as api:
        while True:
            try:
                line = input("You: ").strip()
            except (EOFError, KeyboardInterrupt):
                print()
                break
            if not line:
                continue
            if line.startswith("/"):
                if not handle_command(line, store, sys.stdout):
                    break
                continue
            try:
                send_turn(api, store, line, not args.no_stream, sys.stdout)
            except (ChatAPIError, httpx.HTTPError) as exc:
                print(f"\nError: {exc}\n")
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    with NICClient(args.url) as api:
        try:
            result = api.check()
        except httpx.HTTPError as exc:
            print(f"Error: {exc}")
            return 1
    if result.get("success"):
        print(result.get("response"))
        return 0
    print(f"Error: {result.get('error')}")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="NIC nutrition chat client")
    parser.add_argument("--url", default=None, help="Server URL (default: $NIC_API_URL)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    chat = subparsers.add_parser("chat", help="Interactive chat session")
    chat.add_argument("--no-stream", action="store_true", help="Wait for full replies")
    chat.set_defaults(func=cmd_chat)

    check = subparsers.add_parser("check", help="Verify model connectivity")
    check.set_defaults(func=cmd_check)
    return parser


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
