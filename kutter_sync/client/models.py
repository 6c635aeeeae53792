"""Client-side models for identities, chats, messages and friend requests."""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import NamedTuple, Optional, Tuple, Union

from ..shared.dto import ChatRecord, FriendRequestRecord, MessageRecord

PENDING = "pending"
ACCEPTED = "accepted"


@dataclass(frozen=True)
class Identity:
    username: str
    display_photo_url: str
    biography: Optional[str] = None


@dataclass(frozen=True)
class Chat:
    id: int
    participant_a: str
    participant_b: str

    def other_user(self, me: str) -> str:
        return self.participant_b if self.participant_a == me else self.participant_a

    @classmethod
    def from_record(cls, record: ChatRecord) -> "Chat":
        return cls(id=record.id, participant_a=record.first_user_name, participant_b=record.second_user_name)


class MessageKey(NamedTuple):
    """Composite identity of a message: server ids may repeat across authors."""

    ident: Union[int, str]
    author_username: str


@dataclass(frozen=True)
class ReplyTarget:
    author_username: str
    body: str


@dataclass(frozen=True)
class Message:
    id: Optional[int]
    chat_id: int
    author_username: str
    body: str
    created_at: Optional[datetime] = None
    edited: bool = False
    reply_target: Optional[ReplyTarget] = None
    timestamp: Optional[str] = None

    @property
    def key(self) -> MessageKey:
        if self.id is not None:
            return MessageKey(self.id, self.author_username)
        if self.timestamp:
            return MessageKey(self.timestamp, self.author_username)
        if self.created_at is not None:
            return MessageKey(self.created_at.isoformat(), self.author_username)
        raise ValueError("Message has no id, timestamp or creation time")

    @property
    def order_key(self) -> Tuple[float, float, str, str]:
        """Chronological position; ties fall back to the server id and author."""
        created = self.created_at.timestamp() if self.created_at else math.inf
        ident = self.id if self.id is not None else math.inf
        return (created, ident, self.timestamp or "", self.author_username)

    def with_body(self, body: str) -> "Message":
        return replace(self, body=body, edited=True)

    @classmethod
    def from_record(cls, chat_id: int, record: MessageRecord) -> "Message":
        reply = None
        if record.replied_user or record.replied_message:
            reply = ReplyTarget(record.replied_user or "", record.replied_message or "")
        return cls(
            id=record.id,
            chat_id=chat_id,
            author_username=record.username,
            body=record.message,
            created_at=record.time,
            edited=record.edited,
            reply_target=reply,
            timestamp=record.timestamp,
        )


@dataclass(frozen=True)
class FriendRequest:
    id: int
    sender_username: str
    receiver_username: str
    status: str = PENDING

    @property
    def accepted(self) -> bool:
        return self.status == ACCEPTED

    def other_user(self, me: str) -> str:
        return self.receiver_username if self.sender_username == me else self.sender_username

    @classmethod
    def from_record(cls, record: FriendRequestRecord) -> "FriendRequest":
        status = ACCEPTED if record.status == ACCEPTED else PENDING
        return cls(record.id, record.sender_username, record.receiver_username, status)


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Replying:
    target: MessageKey
    target_author: str
    target_body: str

    @property
    def target_id(self) -> Union[int, str]:
        return self.target.ident


@dataclass(frozen=True)
class Editing:
    target: MessageKey

    @property
    def target_id(self) -> Union[int, str]:
        return self.target.ident


CompositionState = Union[Idle, Replying, Editing]
