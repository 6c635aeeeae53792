"""In-memory projection of chats, messages and friend requests for one session."""
from __future__ import annotations

from collections import OrderedDict
from dataclasses import replace
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple

from .models import ACCEPTED, Chat, CompositionState, FriendRequest, Idle, Message, MessageKey

# Store event kinds observed by the render collaborator.
CHAT_ADDED = "chat_added"
CHAT_PROMOTED = "chat_promoted"
CHAT_OPENED = "chat_opened"
MESSAGE_ADDED = "message_added"
MESSAGE_REMOVED = "message_removed"
MESSAGE_EDITED = "message_edited"
EDITED_MARKER_ADDED = "edited_marker_added"
FRIEND_REQUEST_ADDED = "friend_request_added"
FRIEND_ACCEPTED = "friend_accepted"
COMPOSITION_ENTERED = "composition_entered"
COMPOSITION_CLEARED = "composition_cleared"
DRAFT_CHANGED = "draft_changed"
STORE_RESET = "store_reset"


class StoreEvent(NamedTuple):
    kind: str
    payload: Any


Listener = Callable[[StoreEvent], None]


class StateStore:
    """Single owner of the session's mutable state.

    Writers are the reconciler and the composition machine; everybody else
    reads through the tuple views and subscribes to change events.
    """

    def __init__(self) -> None:
        self._listeners: List[Listener] = []
        self._chats: "OrderedDict[int, Chat]" = OrderedDict()
        self._messages: "OrderedDict[MessageKey, Message]" = OrderedDict()
        self._friend_requests: Dict[int, FriendRequest] = {}
        self.open_chat_id: Optional[int] = None
        self.open_chat_partner: Optional[str] = None
        self.composition: CompositionState = Idle()
        self.draft: str = ""

    # listeners

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, kind: str, payload: Any = None) -> None:
        event = StoreEvent(kind, payload)
        for listener in list(self._listeners):
            listener(event)

    # chats

    @property
    def chats(self) -> Tuple[Chat, ...]:
        return tuple(self._chats.values())

    def chat(self, chat_id: int) -> Optional[Chat]:
        return self._chats.get(chat_id)

    def has_chat(self, chat_id: int) -> bool:
        return chat_id in self._chats

    def rank(self, chat_id: int) -> int:
        for index, key in enumerate(self._chats):
            if key == chat_id:
                return index
        raise KeyError(chat_id)

    def add_chat(self, chat: Chat) -> bool:
        if chat.id in self._chats:
            return False
        self._chats[chat.id] = chat
        self._emit(CHAT_ADDED, chat)
        return True

    def promote_chat(self, chat_id: int) -> bool:
        """Move ``chat_id`` to the front; False when absent or already first."""
        if chat_id not in self._chats:
            return False
        if next(iter(self._chats)) == chat_id:
            return False
        self._chats.move_to_end(chat_id, last=False)
        self._emit(CHAT_PROMOTED, self._chats[chat_id])
        return True

    # open chat and its messages

    def open_chat(self, chat_id: int, partner: Optional[str]) -> None:
        self.open_chat_id = chat_id
        self.open_chat_partner = partner
        self._messages.clear()
        self._emit(CHAT_OPENED, chat_id)

    @property
    def messages(self) -> Tuple[Message, ...]:
        return tuple(self._messages.values())

    def has_message(self, key: MessageKey) -> bool:
        return key in self._messages

    def message(self, key: MessageKey) -> Optional[Message]:
        return self._messages.get(key)

    def find_messages(self, message_id: int) -> List[Message]:
        return [msg for key, msg in self._messages.items() if key.ident == message_id]

    def add_message(self, message: Message) -> bool:
        """Insert ``message`` at its chronological position in the open chat."""
        if message.chat_id != self.open_chat_id or message.key in self._messages:
            return False
        last = next(reversed(self._messages.values()), None)
        self._messages[message.key] = message
        if last is not None and message.order_key < last.order_key:
            ordered = sorted(self._messages.items(), key=lambda item: item[1].order_key)
            self._messages = OrderedDict(ordered)
        self._emit(MESSAGE_ADDED, message)
        return True

    def remove_messages(self, message_id: int) -> int:
        keys = [key for key in self._messages if key.ident == message_id]
        for key in keys:
            self._emit(MESSAGE_REMOVED, self._messages.pop(key))
        return len(keys)

    def edit_message(self, key: MessageKey, body: str) -> bool:
        """Replace the body of ``key``; the edited marker is only added once."""
        current = self._messages.get(key)
        if current is None:
            return False
        updated = current.with_body(body)
        self._messages[key] = updated
        self._emit(MESSAGE_EDITED, updated)
        if not current.edited:
            self._emit(EDITED_MARKER_ADDED, updated)
        return True

    def mark_edited(self, key: MessageKey) -> bool:
        current = self._messages.get(key)
        if current is None or current.edited:
            return False
        updated = replace(current, edited=True)
        self._messages[key] = updated
        self._emit(EDITED_MARKER_ADDED, updated)
        return True

    # friend requests

    @property
    def friend_requests(self) -> Tuple[FriendRequest, ...]:
        return tuple(self._friend_requests.values())

    def friend_request(self, request_id: int) -> Optional[FriendRequest]:
        return self._friend_requests.get(request_id)

    def add_friend_request(self, request: FriendRequest) -> bool:
        if request.id in self._friend_requests:
            return False
        self._friend_requests[request.id] = request
        self._emit(FRIEND_ACCEPTED if request.accepted else FRIEND_REQUEST_ADDED, request)
        return True

    def accept_friend_request(self, request: FriendRequest) -> bool:
        current = self._friend_requests.get(request.id)
        if current is not None and current.accepted:
            return False
        accepted = FriendRequest(request.id, request.sender_username, request.receiver_username, ACCEPTED)
        self._friend_requests[request.id] = accepted
        self._emit(FRIEND_ACCEPTED, accepted)
        return True

    # composition

    def set_composition(self, state: CompositionState) -> None:
        previous = self.composition
        self.composition = state
        if isinstance(state, Idle):
            if not isinstance(previous, Idle):
                self._emit(COMPOSITION_CLEARED, previous)
        else:
            self._emit(COMPOSITION_ENTERED, state)

    def set_draft(self, text: str) -> None:
        if text != self.draft:
            self.draft = text
            self._emit(DRAFT_CHANGED, text)

    def reset(self) -> None:
        self._chats.clear()
        self._messages.clear()
        self._friend_requests.clear()
        self.open_chat_id = None
        self.open_chat_partner = None
        self.composition = Idle()
        self.draft = ""
        self._emit(STORE_RESET)
