import unittest
from datetime import datetime, timezone

from kutter_sync.shared.utils import avatar_path, format_timestamp, websocket_url


class WebsocketUrlTests(unittest.TestCase):
    def test_secure_origin_uses_wss(self):
        self.assertEqual(websocket_url("https://chat.example.com", "/ws"), "wss://chat.example.com/ws")

    def test_plain_origin_uses_ws(self):
        self.assertEqual(
            websocket_url("http://127.0.0.1:8080/", "/ws/friend_req"),
            "ws://127.0.0.1:8080/ws/friend_req",
        )

    def test_bare_host(self):
        self.assertEqual(websocket_url("localhost:8080", "/ws"), "ws://localhost:8080/ws")

    def test_origin_without_host(self):
        with self.assertRaises(ValueError):
            websocket_url("https://", "/ws")


class FormatTimestampTests(unittest.TestCase):
    def test_today_shows_time_only(self):
        now = datetime(2024, 5, 1, 18, 0, tzinfo=timezone.utc)
        value = datetime(2024, 5, 1, 9, 5, tzinfo=timezone.utc)
        self.assertEqual(format_timestamp(value, now), "09:05")

    def test_older_shows_date(self):
        now = datetime(2024, 5, 2, 18, 0, tzinfo=timezone.utc)
        value = datetime(2024, 5, 1, 9, 5, tzinfo=timezone.utc)
        self.assertEqual(format_timestamp(value, now), "01/05/2024 at 09:05")

    def test_missing(self):
        self.assertEqual(format_timestamp(None), "")

    def test_avatar_path(self):
        self.assertEqual(avatar_path("bob"), "/uploads/bob.png")


if __name__ == "__main__":
    unittest.main()
