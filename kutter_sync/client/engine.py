"""Session controller tying identity, channels, router and store together."""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set, Type

import requests
from pydantic import BaseModel, ValidationError

from . import actions
from .composition import CompositionMachine
from .config import CHAT_RELOAD_DELAY, FRIEND_REQUEST_PATH, MESSAGING_PATH, RECONNECT_DELAY, TOKEN_COOKIE
from .connection import ConnectionManager, Connector
from .errors import ActionError, AuthenticationError, FetchError
from .identity import IdentityContext
from .logging_config import configure_logging
from .models import MessageKey
from .reconciler import Outcome, Reconciler
from .router import FRIEND_REQUESTS, MESSAGING, EventRouter
from .store import StateStore
from ..shared.dto import (
    ChangeBioEvent,
    ChatRecord,
    DeleteEvent,
    EditMessageEvent,
    ErrorEvent,
    FriendRequestEvent,
    FriendRequestRecord,
    MessageRecord,
    NewChatEvent,
    NewMessageEvent,
    UserRecord,
)
from ..shared.utils import websocket_url

logger = configure_logging()

INFO = "info"
ERROR = "error"

Notifier = Callable[[str, str], Any]


def log_notice(level: str, text: str) -> None:
    logger.info("NOTICE level=%s text=%s", level, text)


class SyncEngine:
    """Keeps the local projection in sync with the server for one session."""

    def __init__(
        self,
        api,
        origin: str,
        *,
        token: Optional[str] = None,
        notify: Optional[Notifier] = None,
        connector: Optional[Connector] = None,
        reconnect_delay: float = RECONNECT_DELAY,
        chat_reload_delay: float = CHAT_RELOAD_DELAY,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        self.api = api
        self.origin = origin
        self.token = token
        self.notify = notify or log_notice
        self.connector = connector
        self.reconnect_delay = reconnect_delay
        self.chat_reload_delay = chat_reload_delay
        self._sleep = sleep
        self.store = StateStore()
        self.reconciler = Reconciler(self.store)
        self.identity: Optional[IdentityContext] = None
        self.composition: Optional[CompositionMachine] = None
        self.messaging: Optional[ConnectionManager] = None
        self.friend_channel: Optional[ConnectionManager] = None
        self._chat_load_generation = 0
        self._background: Set[asyncio.Task] = set()
        self.messaging_router = EventRouter(
            MESSAGING,
            {
                "new_message": self._on_new_message,
                "delete": self._on_delete,
                "new_chat": self._on_new_chat,
                "edit_message": self._on_edit_message,
                "change_bio": self._on_change_bio,
                "error": self._on_error,
            },
        )
        self.friend_router = EventRouter(
            FRIEND_REQUESTS,
            {
                "send_request": self._on_friend_request,
                "accept": self._on_friend_accept,
                "error": self._on_error,
            },
        )

    @property
    def username(self) -> str:
        if self.identity is None:
            raise ActionError("Session not started")
        return self.identity.username

    # lifecycle

    async def start(self) -> IdentityContext:
        try:
            self.identity = await asyncio.to_thread(IdentityContext.verify, self.api)
        except requests.RequestException as exc:
            logger.warning("VERIFY_FAIL reason=request_error error=%s", exc)
            raise AuthenticationError("Could not verify session") from exc
        self.composition = CompositionMachine(self.store, self.identity.username)
        headers = {"Cookie": f"{TOKEN_COOKIE}={self.token}"} if self.token else {}
        self.friend_channel = self._channel(FRIEND_REQUESTS, FRIEND_REQUEST_PATH, self.friend_router, self._on_friend_open, headers)
        self.messaging = self._channel(MESSAGING, MESSAGING_PATH, self.messaging_router, self._on_messaging_open, headers)
        if not await self.friend_channel.connect():
            await self.load_friend_requests()
        if not await self.messaging.connect():
            await self.load_chats()
        logger.info("SESSION_STARTED username=%s", self.identity.username)
        return self.identity

    async def stop(self) -> None:
        for task in list(self._background):
            task.cancel()
        self._background.clear()
        for channel in (self.messaging, self.friend_channel):
            if channel is not None:
                await channel.close()
        self.store.reset()
        logger.info("SESSION_STOPPED")

    def _channel(self, name, path, router, on_open, headers) -> ConnectionManager:
        return ConnectionManager(
            name,
            websocket_url(self.origin, path),
            router.route,
            on_open=on_open,
            on_drop=self._on_channel_drop,
            headers=headers,
            connector=self.connector,
            reconnect_delay=self.reconnect_delay,
            sleep=self._sleep,
        )

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    # snapshot loading

    async def _fetch_records(self, call, model: Type[BaseModel], *args) -> List[Any]:
        try:
            data = await asyncio.to_thread(call, *args)
            if not isinstance(data, list):
                raise TypeError(f"expected a list, got {type(data).__name__}")
        except (requests.RequestException, TypeError, ValueError) as exc:
            raise FetchError(str(exc)) from exc
        records = []
        for item in data:
            try:
                records.append(model.model_validate(item))
            except ValidationError as exc:
                logger.warning("RECORD_SKIPPED model=%s errors=%s", model.__name__, exc.error_count())
        return records

    async def load_chats(self) -> bool:
        try:
            records = await self._fetch_records(self.api.list_chats, ChatRecord)
        except FetchError as exc:
            logger.warning("LOAD_CHATS_FAIL error=%s", exc)
            self.notify(ERROR, "Error fetching chats")
            return False
        added = self.reconciler.seed_chats(records)
        logger.info("LOAD_CHATS_SUCCESS total=%s added=%s", len(records), len(added))
        return True

    async def load_friend_requests(self) -> bool:
        try:
            records = await self._fetch_records(self.api.list_friend_requests, FriendRequestRecord)
        except FetchError as exc:
            logger.warning("LOAD_FRIEND_REQUESTS_FAIL error=%s", exc)
            self.notify(ERROR, "Error fetching friend requests")
            return False
        self.reconciler.seed_friend_requests(records)
        return True

    async def load_chat(self, chat_id: int) -> bool:
        """Open ``chat_id`` and load its history; repeated opens are a no-op."""
        if chat_id == self.store.open_chat_id:
            return False
        chat = self.store.chat(chat_id)
        if chat is None:
            self._report(ActionError(f"Unknown chat: {chat_id}"))
            return False
        if self.composition is not None:
            self.composition.cancel()
        self.reconciler.open_chat(chat_id, chat.other_user(self.username))
        self._chat_load_generation += 1
        return await self._refresh_messages(chat_id, self._chat_load_generation)

    async def _refresh_messages(self, chat_id: int, generation: int) -> bool:
        try:
            records = await self._fetch_records(self.api.get_messages, MessageRecord, chat_id)
        except FetchError as exc:
            logger.warning("LOAD_CHAT_FAIL chat_id=%s error=%s", chat_id, exc)
            self.notify(ERROR, "Error fetching messages")
            return False
        if generation != self._chat_load_generation or chat_id != self.store.open_chat_id:
            logger.info("LOAD_CHAT_STALE chat_id=%s", chat_id)
            return False
        self.reconciler.seed_messages(chat_id, records)
        return True

    async def _reload_chats_later(self) -> None:
        await self._sleep(self.chat_reload_delay)
        await self.load_chats()

    # channel callbacks

    async def _on_messaging_open(self) -> None:
        await self.load_chats()
        if self.store.open_chat_id is not None:
            await self._refresh_messages(self.store.open_chat_id, self._chat_load_generation)

    async def _on_friend_open(self) -> None:
        await self.load_friend_requests()

    def _on_channel_drop(self, error: Optional[BaseException]) -> None:
        if error is not None:
            self.notify(ERROR, "Connection error. Reconnecting...")

    # messaging channel handlers

    async def _on_new_message(self, event: NewMessageEvent) -> None:
        outcome = self.reconciler.apply_new_message(event)
        if outcome is Outcome.UNKNOWN_CHAT:
            await self.load_chats()
            outcome = self.reconciler.apply_new_message(event)
        if outcome is Outcome.NOT_OPEN and not self.identity.is_me(event.username):
            self.notify(INFO, f"New message from: @{event.username}")

    def _on_delete(self, event: DeleteEvent) -> None:
        self.reconciler.apply_delete(event.message_id)

    async def _on_new_chat(self, event: NewChatEvent) -> None:
        await self.load_chats()

    def _on_edit_message(self, event: EditMessageEvent) -> None:
        self.reconciler.apply_edit(event)

    def _on_change_bio(self, event: ChangeBioEvent) -> None:
        self.notify(INFO, "Biography changed successfully")

    def _on_error(self, event: ErrorEvent) -> None:
        logger.warning("SERVER_ERROR message=%s", event.payload.message)
        self.notify(ERROR, event.payload.message)

    # friend-request channel handlers

    def _on_friend_request(self, event: FriendRequestEvent) -> None:
        added = self.reconciler.apply_friend_request(event)
        if added and not self.identity.is_me(event.sender_username):
            self.notify(INFO, f"You received a friend request from @{event.sender_username}!")

    async def _on_friend_accept(self, event: FriendRequestEvent) -> None:
        if not self.reconciler.apply_friend_accept(event):
            return
        me = self.username
        partner = event.sender_username if event.receiver_username == me else event.receiver_username
        frame = actions.new_chat(me, partner)
        if frame is not None:
            await self.messaging.send(frame)
        self._spawn(self._reload_chats_later())
        self.notify(INFO, "Friend request accepted")

    # user intents

    def _report(self, exc: ActionError) -> None:
        logger.info("ACTION_REJECTED reason=%s", exc)
        self.notify(ERROR, str(exc))

    async def _send(self, channel: Optional[ConnectionManager], frame: Optional[Dict[str, Any]], failure: str) -> bool:
        if frame is None:
            return False
        if channel is None or not channel.is_open:
            self._report(ActionError("Connection not ready. Please wait..."))
            return False
        if not await channel.send(frame):
            self.notify(ERROR, failure)
            return False
        return True

    def set_draft(self, text: str) -> None:
        self.composition.set_draft(text)

    def find_message_key(self, ident: Any) -> Optional[MessageKey]:
        for message in self.store.messages:
            if message.key.ident == ident:
                return message.key
        return None

    def start_reply(self, key: MessageKey) -> bool:
        try:
            self.composition.start_reply(key)
        except ActionError as exc:
            self._report(exc)
            return False
        return True

    def start_edit(self, key: MessageKey) -> bool:
        try:
            self.composition.start_edit(key)
        except ActionError as exc:
            self._report(exc)
            return False
        return True

    def cancel_composition(self) -> None:
        self.composition.cancel()

    async def send(self) -> bool:
        """Send the draft as a new message, reply or edit depending on the mode."""
        try:
            frame = actions.compose_frame(self.store)
        except ActionError as exc:
            self._report(exc)
            return False
        failure = "Failed to edit message" if frame and frame["action"] == "edit_message" else "Failed to send message"
        if not await self._send(self.messaging, frame, failure):
            return False
        self.composition.finish()
        return True

    async def delete_message(self, key: MessageKey) -> bool:
        try:
            frame = actions.delete_message(self.store, self.username, key)
        except ActionError as exc:
            self._report(exc)
            return False
        return await self._send(self.messaging, frame, "Failed to delete message")

    async def send_friend_request(self, receiver: str) -> bool:
        try:
            frame = actions.send_request(self.username, receiver)
        except ActionError as exc:
            self._report(exc)
            return False
        return await self._send(self.friend_channel, frame, "Error sending friend request")

    async def accept_friend_request(self, request_id: int) -> bool:
        try:
            frame = actions.accept_request(self.store, self.username, request_id)
        except ActionError as exc:
            self._report(exc)
            return False
        return await self._send(self.friend_channel, frame, "Error sending friend request")

    async def change_bio(self, biography: str) -> bool:
        return await self._send(self.messaging, actions.change_bio(biography), "Failed to change biography")

    async def create_chat(self, partner: str) -> bool:
        try:
            frame = actions.new_chat(self.username, partner)
        except ActionError as exc:
            self._report(exc)
            return False
        return await self._send(self.messaging, frame, "Failed to create chat")

    # profile collaborators

    async def view_profile(self, username: str) -> Optional[UserRecord]:
        try:
            data = await asyncio.to_thread(self.api.get_profile, username)
            return UserRecord.model_validate(data)
        except (requests.RequestException, ValidationError, LookupError) as exc:
            logger.warning("PROFILE_FAIL username=%s error=%s", username, exc)
            self.notify(ERROR, f"Could not load profile of @{username}")
            return None

    async def resolve_avatar(self, username: str) -> str:
        """Uploaded photo path for ``username``, or the default avatar."""
        return await asyncio.to_thread(self.api.resolve_avatar, username)

    async def upload_avatar(self, file_path: Path) -> bool:
        try:
            await asyncio.to_thread(self.api.upload_avatar, file_path)
        except (requests.RequestException, OSError) as exc:
            logger.warning("AVATAR_UPLOAD_FAIL error=%s", exc)
            self.notify(ERROR, "Failed to update profile photo")
            return False
        self.notify(INFO, "Profile photo updated successfully")
        return True

    async def logout(self) -> None:
        try:
            await asyncio.to_thread(self.api.logout)
        except requests.RequestException as exc:
            logger.warning("LOGOUT_FAIL error=%s", exc)
        await self.stop()
        self.notify(INFO, "Logout successfully")
