"""Merge push events and snapshot fetches into the state store.

Every path here is insert-if-absent keyed by chat id, composite message key
or friend request id, so seed and push commute and re-seeding after a
reconnect converges to the same state.
"""
from __future__ import annotations

import enum
from typing import Iterable, List

from .logging_config import configure_logging
from .models import Chat, FriendRequest, Message
from .store import StateStore
from ..shared.dto import (
    ChatRecord,
    EditMessageEvent,
    FriendRequestEvent,
    FriendRequestRecord,
    MessageRecord,
    NewMessageEvent,
)

logger = configure_logging()


class Outcome(enum.Enum):
    INSERTED = "inserted"
    DUPLICATE = "duplicate"
    NOT_OPEN = "not_open"
    UNKNOWN_CHAT = "unknown_chat"


class Reconciler:
    def __init__(self, store: StateStore):
        self.store = store

    def open_chat(self, chat_id: int, partner: str) -> None:
        """Switch the open chat; its rendered-message set starts empty."""
        self.store.open_chat(chat_id, partner)

    def apply_new_message(self, event: NewMessageEvent) -> Outcome:
        store = self.store
        if not store.has_chat(event.chat_id):
            logger.info("NEW_MESSAGE_UNKNOWN_CHAT chat_id=%s", event.chat_id)
            return Outcome.UNKNOWN_CHAT
        store.promote_chat(event.chat_id)
        if event.chat_id != store.open_chat_id:
            return Outcome.NOT_OPEN
        message = Message.from_record(event.chat_id, event)
        if not store.add_message(message):
            logger.debug("NEW_MESSAGE_DUPLICATE key=%s", message.key)
            return Outcome.DUPLICATE
        return Outcome.INSERTED

    def apply_delete(self, message_id: int) -> int:
        return self.store.remove_messages(message_id)

    def apply_edit(self, event: EditMessageEvent) -> int:
        if event.chat_id != self.store.open_chat_id:
            return 0
        edited = 0
        for message in self.store.find_messages(event.id):
            if self.store.edit_message(message.key, event.message):
                edited += 1
        return edited

    def seed_chats(self, records: Iterable[ChatRecord]) -> List[Chat]:
        added = []
        for record in records:
            chat = Chat.from_record(record)
            if self.store.add_chat(chat):
                added.append(chat)
        return added

    def seed_messages(self, chat_id: int, records: Iterable[MessageRecord]) -> List[Message]:
        if chat_id != self.store.open_chat_id:
            return []
        added = []
        for record in records:
            message = Message.from_record(chat_id, record)
            if self.store.add_message(message):
                added.append(message)
            elif message.edited:
                self.store.mark_edited(message.key)
        return added

    def seed_friend_requests(self, records: Iterable[FriendRequestRecord]) -> List[FriendRequest]:
        changed = []
        for record in records:
            request = FriendRequest.from_record(record)
            if request.accepted:
                if self.store.accept_friend_request(request):
                    changed.append(request)
            elif self.store.add_friend_request(request):
                changed.append(request)
        return changed

    def apply_friend_request(self, event: FriendRequestEvent) -> bool:
        request = FriendRequest(event.id, event.sender_username, event.receiver_username)
        return self.store.add_friend_request(request)

    def apply_friend_accept(self, event: FriendRequestEvent) -> bool:
        request = FriendRequest(event.id, event.sender_username, event.receiver_username)
        return self.store.accept_friend_request(request)
