"""HTTP API client for the chat server's snapshot endpoints."""
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from .config import DEFAULT_AVATAR, REQUEST_TIMEOUT, TOKEN_COOKIE
from ..shared.utils import avatar_path


class APIClient:
    def __init__(self, base_url: str, token: Optional[str] = None, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        if token:
            self.session.cookies.set(TOKEN_COOKIE, token)

    def _get(self, path: str) -> Any:
        resp = self.session.get(f"{self.base_url}{path}", timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()
        return resp.json()

    def verify(self) -> Dict[str, Any]:
        return self._get("/verify")

    def list_chats(self) -> List[Dict[str, Any]]:
        return self._get("/chats")

    def get_messages(self, chat_id: int) -> List[Dict[str, Any]]:
        return self._get(f"/messages/{chat_id}")

    def list_friend_requests(self) -> List[Dict[str, Any]]:
        return self._get("/friend_req")

    def get_profile(self, username: str) -> Dict[str, Any]:
        data = self._get(f"/users/{username}")
        if isinstance(data, list):
            if not data:
                raise LookupError(f"User not found: {username}")
            return data[0]
        return data

    def resolve_avatar(self, username: str) -> str:
        """Return the uploaded avatar path for ``username`` or the default one."""
        path = avatar_path(username)
        try:
            resp = self.session.head(f"{self.base_url}{path}", timeout=REQUEST_TIMEOUT)
        except requests.RequestException:
            return DEFAULT_AVATAR
        return path if resp.ok else DEFAULT_AVATAR

    def upload_avatar(self, file_path: Path) -> None:
        with Path(file_path).open("rb") as f:
            resp = self.session.post(
                f"{self.base_url}/upload_avatar",
                files={"file": (Path(file_path).name, f)},
                timeout=REQUEST_TIMEOUT,
            )
        resp.raise_for_status()

    def logout(self) -> None:
        resp = self.session.delete(f"{self.base_url}/logout", timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()
