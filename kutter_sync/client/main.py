"""Console client for the chat sync engine."""
import asyncio
import sys
from typing import Optional

from .api import APIClient
from .config import SERVER_URL
from .engine import SyncEngine
from .errors import AuthenticationError, SessionRejectedError
from .identity import IdentityContext
from .models import Editing, Message, Replying
from .storage import clear_token, get_server_url, get_token, store_server_url, store_token
from .store import (
    CHAT_ADDED,
    CHAT_OPENED,
    CHAT_PROMOTED,
    COMPOSITION_CLEARED,
    COMPOSITION_ENTERED,
    FRIEND_ACCEPTED,
    FRIEND_REQUEST_ADDED,
    MESSAGE_ADDED,
    MESSAGE_EDITED,
    MESSAGE_REMOVED,
    StoreEvent,
)
from ..shared.utils import format_timestamp

HELP = """Commands:
  /chats              list chats, most recent first
  /open <chat_id>     open a chat
  /reply <msg_id>     reply to a message
  /edit <msg_id>      edit one of your messages
  /cancel             leave reply/edit mode
  /delete <msg_id>    delete one of your messages
  /friend <username>  send a friend request
  /accept <req_id>    accept a friend request
  /requests           list friend requests
  /bio <text>         change your biography
  /profile <username> show a user's profile
  /avatar <path>      upload a profile photo
  /logout             log out and quit
  /quit               quit
Anything else is sent to the open chat."""


def render_message(message: Message) -> str:
    reply = ""
    if message.reply_target:
        reply = f"  (↪ @{message.reply_target.author_username}: {message.reply_target.body})\n"
    edited = " (edited)" if message.edited else ""
    return f"{reply}[{message.id}] {format_timestamp(message.created_at)} @{message.author_username}: {message.body}{edited}"


class ConsoleClient:
    """Prints store changes and turns typed commands into engine intents."""

    def __init__(self, engine: SyncEngine):
        self.engine = engine
        engine.store.subscribe(self.on_store_event)

    def on_store_event(self, event: StoreEvent) -> None:
        kind, payload = event
        if kind == MESSAGE_ADDED:
            print(render_message(payload))
        elif kind == MESSAGE_EDITED:
            print(f"~ {render_message(payload)}")
        elif kind == MESSAGE_REMOVED:
            print(f"- message {payload.id} deleted")
        elif kind in (CHAT_ADDED, CHAT_PROMOTED):
            print(f"* chat {payload.id} with @{payload.other_user(self.engine.username)}")
        elif kind == CHAT_OPENED:
            print(f"=== chat {payload} with @{self.engine.store.open_chat_partner} ===")
        elif kind == FRIEND_REQUEST_ADDED:
            print(f"* friend request {payload.id}: @{payload.sender_username} -> @{payload.receiver_username}")
        elif kind == FRIEND_ACCEPTED:
            print(f"* friend @{payload.other_user(self.engine.username)}")
        elif kind == COMPOSITION_ENTERED:
            if isinstance(payload, Replying):
                print(f"replying to @{payload.target_author}: {payload.target_body}")
            elif isinstance(payload, Editing):
                print(f"editing message {payload.target_id}: {self.engine.store.draft}")
        elif kind == COMPOSITION_CLEARED:
            print("(composer cleared)")

    @staticmethod
    def notify(level: str, text: str) -> None:
        prefix = "!" if level == "error" else "i"
        print(f"[{prefix}] {text}")

    def _message_key(self, arg: str):
        try:
            ident = int(arg)
        except ValueError:
            ident = arg
        key = self.engine.find_message_key(ident)
        if key is None:
            self.notify("error", f"No message {arg} in the open chat")
        return key

    async def handle(self, line: str) -> bool:
        """Run one command; False means quit."""
        engine = self.engine
        command, _, arg = line.strip().partition(" ")
        arg = arg.strip()
        if command == "/quit":
            return False
        if command == "/logout":
            await engine.logout()
            clear_token()
            return False
        if command == "/help":
            print(HELP)
        elif command == "/chats":
            for rank, chat in enumerate(engine.store.chats):
                partner = chat.other_user(engine.username)
                avatar = await engine.resolve_avatar(partner)
                print(f"{rank}. [{chat.id}] @{partner} {avatar}")
        elif command == "/open" and arg.isdigit():
            await engine.load_chat(int(arg))
        elif command in ("/reply", "/edit", "/delete"):
            key = self._message_key(arg)
            if key is None:
                return True
            if command == "/reply":
                engine.start_reply(key)
            elif command == "/edit":
                engine.start_edit(key)
            else:
                await engine.delete_message(key)
        elif command == "/cancel":
            engine.cancel_composition()
        elif command == "/friend":
            await engine.send_friend_request(arg)
        elif command == "/accept" and arg.isdigit():
            await engine.accept_friend_request(int(arg))
        elif command == "/requests":
            for request in engine.store.friend_requests:
                print(f"[{request.id}] @{request.sender_username} -> @{request.receiver_username} ({request.status})")
        elif command == "/bio":
            await engine.change_bio(arg)
        elif command == "/profile":
            profile = await engine.view_profile(arg)
            if profile:
                avatar = await engine.resolve_avatar(profile.username)
                print(f"@{profile.username}: {profile.biography or '(no biography)'}")
                print(f"  photo: {avatar}")
        elif command == "/avatar":
            await engine.upload_avatar(arg)
        elif command.startswith("/"):
            print(HELP)
        else:
            engine.set_draft(line)
            await engine.send()
        return True


async def login(engine: SyncEngine) -> Optional[IdentityContext]:
    """Start the session; a rejected token is forgotten so the next launch asks again."""
    try:
        return await engine.start()
    except AuthenticationError as exc:
        if isinstance(exc, SessionRejectedError):
            clear_token()
        print(f"Login failed: {exc}")
        return None


async def run(server_url: str, token: Optional[str]) -> None:
    api = APIClient(server_url, token=token)
    engine = SyncEngine(api, server_url, token=token, notify=ConsoleClient.notify)
    client = ConsoleClient(engine)
    identity = await login(engine)
    if identity is None:
        return
    print(f"Welcome, @{identity.username}! Type /help for commands.")
    loop = asyncio.get_running_loop()
    try:
        while True:
            line = await loop.run_in_executor(None, input, "> ")
            if not await client.handle(line):
                break
    except EOFError:
        print()
    finally:
        await engine.stop()


def main():
    print("Kutter Sync Client")
    server_url = SERVER_URL or get_server_url() or input("Server URL (e.g. http://127.0.0.1:8080): ").strip()
    store_server_url(server_url)
    token = get_token()
    if not token:
        token = input("Session token: ").strip()
        store_token(token)
    try:
        asyncio.run(run(server_url, token))
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    main()
