"""Pydantic models for REST records and channel frames."""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, model_validator


# REST records


class UserRecord(BaseModel):
    username: str
    pfp_path: Optional[str] = None
    biography: Optional[str] = None


class VerifyResponse(BaseModel):
    status: str
    user: Optional[UserRecord] = None
    message: Optional[str] = None


class ChatRecord(BaseModel):
    id: int
    first_user_name: str
    second_user_name: str


class MessageRecord(BaseModel):
    id: Optional[int] = None
    username: str
    message: str
    replied_user: Optional[str] = None
    replied_message: Optional[str] = None
    time: Optional[datetime] = None
    timestamp: Optional[str] = None
    edited: bool = False

    @model_validator(mode="after")
    def require_identity(self) -> "MessageRecord":
        if self.id is None and not self.timestamp and self.time is None:
            raise ValueError("Message needs an id, a timestamp or a time")
        return self


class FriendRequestRecord(BaseModel):
    id: int
    sender_username: str
    receiver_username: str
    status: str = "pending"


# Inbound frames, messaging channel


class NewMessageEvent(MessageRecord):
    chat_id: int


class DeleteEvent(BaseModel):
    message_id: int


class EditMessageEvent(BaseModel):
    id: int
    chat_id: int
    message: str


class NewChatEvent(BaseModel):
    id: Optional[int] = None
    first_user_name: str
    second_user_name: str


class ChangeBioEvent(BaseModel):
    pass


class ErrorPayload(BaseModel):
    message: str


class ErrorEvent(BaseModel):
    payload: ErrorPayload


# Inbound frames, friend-request channel


class FriendRequestEvent(BaseModel):
    id: int
    sender_username: str
    receiver_username: str


# Outbound frames


class OutboundFrame(BaseModel):
    action: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class NewMessagePayload(BaseModel):
    message: str
    chat_partner: str
    reply: Optional[int] = None


class EditMessagePayload(BaseModel):
    message_id: int
    message: str


class DeleteMessagePayload(BaseModel):
    id: int


class ChangeBioPayload(BaseModel):
    biography: str


class NewChatPayload(BaseModel):
    second_user_name: str


class SendRequestPayload(BaseModel):
    receiver_username: str


class AcceptPayload(BaseModel):
    friend_id: int
