"""Decode inbound channel frames and dispatch them to typed handlers."""
from __future__ import annotations

import json
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple, Type, Union

from pydantic import BaseModel, ValidationError

from .errors import FrameError
from .logging_config import configure_logging
from ..shared.dto import (
    ChangeBioEvent,
    DeleteEvent,
    EditMessageEvent,
    ErrorEvent,
    FriendRequestEvent,
    NewChatEvent,
    NewMessageEvent,
)

logger = configure_logging()

MESSAGING = "messaging"
FRIEND_REQUESTS = "friend_requests"

ACTION_MODELS: Dict[str, Dict[str, Type[BaseModel]]] = {
    MESSAGING: {
        "new_message": NewMessageEvent,
        "delete": DeleteEvent,
        "new_chat": NewChatEvent,
        "edit_message": EditMessageEvent,
        "change_bio": ChangeBioEvent,
        "error": ErrorEvent,
    },
    FRIEND_REQUESTS: {
        "send_request": FriendRequestEvent,
        "accept": FriendRequestEvent,
        "error": ErrorEvent,
    },
}

Handler = Callable[[Any], Union[None, Awaitable[None]]]


def decode_frame(channel: str, raw: Union[str, bytes]) -> Tuple[str, BaseModel]:
    """Return ``(action, event)`` for a raw frame or raise FrameError."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise FrameError("unparseable") from exc
    if not isinstance(data, dict):
        raise FrameError("not_an_object")
    action = data.get("action")
    if not isinstance(action, str):
        raise FrameError("missing_action")
    model = ACTION_MODELS[channel].get(action)
    if model is None:
        raise FrameError(f"unknown_action action={action}")
    try:
        return action, model.model_validate(data)
    except ValidationError as exc:
        raise FrameError(f"invalid_fields action={action} errors={exc.error_count()}") from exc


class EventRouter:
    """Routes frames of one channel; never lets a bad frame escape."""

    def __init__(self, channel: str, handlers: Mapping[str, Handler]):
        if channel not in ACTION_MODELS:
            raise ValueError(f"Unknown channel: {channel}")
        unknown = set(handlers) - set(ACTION_MODELS[channel])
        if unknown:
            raise ValueError(f"No frame model for actions: {sorted(unknown)}")
        self.channel = channel
        self.handlers = dict(handlers)

    async def route(self, raw: Union[str, bytes]) -> bool:
        try:
            action, event = decode_frame(self.channel, raw)
        except FrameError as exc:
            logger.warning("FRAME_DROPPED channel=%s reason=%s", self.channel, exc)
            return False
        handler: Optional[Handler] = self.handlers.get(action)
        if handler is None:
            logger.info("FRAME_IGNORED channel=%s action=%s", self.channel, action)
            return False
        try:
            result = handler(event)
            if result is not None:
                await result
        except Exception:  # noqa: BLE001
            logger.exception("FRAME_HANDLER_FAILED channel=%s action=%s", self.channel, action)
            return False
        return True
