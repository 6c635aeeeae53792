"""Client configuration values."""
import os
from pathlib import Path

SERVER_URL = os.environ.get("KUTTER_SERVER_URL", "")
REQUEST_TIMEOUT = float(os.environ.get("KUTTER_REQUEST_TIMEOUT", "10"))

# Flat delay between a dropped channel and the next connect attempt.
RECONNECT_DELAY = float(os.environ.get("KUTTER_RECONNECT_DELAY", "3.0"))
# Grace period for the server to create the chat after a friend acceptance.
CHAT_RELOAD_DELAY = float(os.environ.get("KUTTER_CHAT_RELOAD_DELAY", "1.5"))

MESSAGING_PATH = "/ws"
FRIEND_REQUEST_PATH = "/ws/friend_req"
TOKEN_COOKIE = "token"
DEFAULT_AVATAR = "/uploads/40237818034128031427800137284873941207891342780912374098.jpg"

LOG_FILE = Path(os.environ.get("KUTTER_LOG_FILE", Path.home() / ".kutter_sync.log"))
STORAGE_FILE = Path(os.environ.get("KUTTER_STORAGE_FILE", Path.home() / ".kutter_sync.json"))
