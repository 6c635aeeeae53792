"""Local client storage for the server URL and session token."""
import json
from typing import Any, Dict, Optional

from .config import STORAGE_FILE


def load_state() -> Dict[str, Any]:
    if STORAGE_FILE.exists():
        with STORAGE_FILE.open("r", encoding="utf-8") as f:
            return json.load(f)
    return {}


def save_state(data: Dict[str, Any]) -> None:
    STORAGE_FILE.parent.mkdir(parents=True, exist_ok=True)
    with STORAGE_FILE.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def store_token(token: str) -> None:
    state = load_state()
    state["token"] = token
    save_state(state)


def clear_token() -> None:
    state = load_state()
    state.pop("token", None)
    save_state(state)


def get_token() -> Optional[str]:
    return load_state().get("token")


def store_server_url(url: str) -> None:
    state = load_state()
    state["server_url"] = url
    save_state(state)


def get_server_url() -> Optional[str]:
    return load_state().get("server_url")
