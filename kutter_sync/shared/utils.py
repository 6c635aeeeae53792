"""Shared utility functions."""
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlsplit

SECURE_SCHEMES = {"https", "wss"}


def websocket_url(origin: str, path: str) -> str:
    """Return the channel URL for ``path`` on the host serving ``origin``.

    A secure page origin maps to ``wss``, anything else to ``ws``.
    """
    parts = urlsplit(origin if "://" in origin else f"http://{origin}")
    if not parts.netloc:
        raise ValueError(f"Origin has no host: {origin!r}")
    scheme = "wss" if parts.scheme in SECURE_SCHEMES else "ws"
    return f"{scheme}://{parts.netloc}{path}"


def avatar_path(username: str) -> str:
    return f"/uploads/{username}.png"


def format_timestamp(value: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Render a message time as ``HH:MM`` today, ``DD/MM/YYYY at HH:MM`` otherwise."""
    if value is None:
        return ""
    now = now or datetime.now(timezone.utc)
    if value.tzinfo is not None and now.tzinfo is not None:
        value = value.astimezone(now.tzinfo)
    time_part = value.strftime("%H:%M")
    if value.date() == now.date():
        return time_part
    return f"{value.strftime('%d/%m/%Y')} at {time_part}"
