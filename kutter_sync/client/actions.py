"""Map local user intents onto outbound channel frames.

Builders only read the store. State changes caused by an action arrive
later as the server's echo and go through the reconciler like any other
push event. A builder returns ``None`` for an intent that is silently
ignored (empty input) and raises ActionError for a missing precondition.
"""
from typing import Any, Dict, Optional

from .errors import ActionError
from .models import Editing, MessageKey, Replying
from .store import StateStore
from ..shared.dto import (
    AcceptPayload,
    ChangeBioPayload,
    DeleteMessagePayload,
    EditMessagePayload,
    NewChatPayload,
    NewMessagePayload,
    OutboundFrame,
    SendRequestPayload,
)

Frame = Dict[str, Any]


def _frame(action: str, payload) -> Frame:
    return OutboundFrame(action=action, payload=payload.model_dump()).model_dump()


def _require_open_chat(store: StateStore) -> None:
    if store.open_chat_id is None:
        raise ActionError("Chat not ready. Please wait...")


def compose_frame(store: StateStore) -> Optional[Frame]:
    """Frame for the composer's draft in its current mode."""
    _require_open_chat(store)
    body = store.draft.strip()
    if not body:
        return None
    state = store.composition
    if isinstance(state, Editing):
        return edit_message(state.target, body)
    reply = None
    if isinstance(state, Replying):
        if not isinstance(state.target_id, int):
            raise ActionError("Message is not acknowledged by the server yet")
        reply = state.target_id
    return new_message(store, body, reply)


def new_message(store: StateStore, body: str, reply: Optional[int] = None) -> Optional[Frame]:
    _require_open_chat(store)
    body = body.strip()
    if not body:
        return None
    if not store.open_chat_partner:
        raise ActionError("No chat partner selected")
    return _frame("new_message", NewMessagePayload(message=body, chat_partner=store.open_chat_partner, reply=reply))


def edit_message(target: MessageKey, body: str) -> Optional[Frame]:
    body = body.strip()
    if not body:
        return None
    if not isinstance(target.ident, int):
        raise ActionError("Message is not acknowledged by the server yet")
    return _frame("edit_message", EditMessagePayload(message_id=target.ident, message=body))


def delete_message(store: StateStore, username: str, target: MessageKey) -> Frame:
    _require_open_chat(store)
    message = store.message(target)
    if message is None:
        raise ActionError("Message not found in the open chat")
    if message.author_username != username:
        raise ActionError("You can only delete your own messages")
    if message.id is None:
        raise ActionError("Message is not acknowledged by the server yet")
    return _frame("delete_message", DeleteMessagePayload(id=message.id))


def change_bio(biography: str) -> Frame:
    return _frame("change_bio", ChangeBioPayload(biography=biography.strip()))


def new_chat(username: str, partner: str) -> Optional[Frame]:
    partner = partner.strip()
    if not partner:
        return None
    if partner == username:
        raise ActionError("You cannot start a chat with yourself")
    return _frame("new_chat", NewChatPayload(second_user_name=partner))


def send_request(username: str, receiver: str) -> Optional[Frame]:
    receiver = receiver.strip()
    if not receiver:
        return None
    if receiver == username:
        raise ActionError("Cannot send friend request to yourself")
    return _frame("send_request", SendRequestPayload(receiver_username=receiver))


def accept_request(store: StateStore, username: str, request_id: int) -> Frame:
    request = store.friend_request(request_id)
    if request is None:
        raise ActionError("Friend request not found")
    if request.accepted:
        raise ActionError("Friend request already accepted")
    if request.receiver_username != username:
        raise ActionError("You can't accept your own friend request")
    return _frame("accept", AcceptPayload(friend_id=request_id))
