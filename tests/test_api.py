import unittest
from unittest import mock

import requests
from requests.cookies import RequestsCookieJar

from kutter_sync.client.api import APIClient
from kutter_sync.client.config import DEFAULT_AVATAR, REQUEST_TIMEOUT


def response(payload=None, ok=True):
    resp = mock.Mock()
    resp.ok = ok
    resp.json.return_value = payload
    if not ok:
        resp.raise_for_status.side_effect = requests.HTTPError("500 Server Error")
    return resp


class APIClientTests(unittest.TestCase):
    def setUp(self) -> None:
        self.session = mock.Mock()
        self.session.cookies = RequestsCookieJar()
        self.client = APIClient("http://chat.test/", token="tok", session=self.session)

    def test_token_sent_as_cookie(self):
        self.assertEqual(self.session.cookies.get("token"), "tok")

    def test_snapshot_endpoints(self):
        self.session.get.return_value = response([{"id": 1}])
        self.assertEqual(self.client.list_chats(), [{"id": 1}])
        self.client.get_messages(4)
        self.client.list_friend_requests()
        urls = [call.args[0] for call in self.session.get.call_args_list]
        self.assertEqual(
            urls,
            ["http://chat.test/chats", "http://chat.test/messages/4", "http://chat.test/friend_req"],
        )
        self.session.get.assert_called_with("http://chat.test/friend_req", timeout=REQUEST_TIMEOUT)

    def test_http_errors_propagate(self):
        self.session.get.return_value = response(ok=False)
        with self.assertRaises(requests.HTTPError):
            self.client.verify()

    def test_profile_list_response(self):
        self.session.get.return_value = response([{"username": "bob"}])
        self.assertEqual(self.client.get_profile("bob"), {"username": "bob"})
        self.session.get.return_value = response([])
        with self.assertRaises(LookupError):
            self.client.get_profile("ghost")

    def test_resolve_avatar_falls_back_to_default(self):
        self.session.head.return_value = response(ok=True)
        self.assertEqual(self.client.resolve_avatar("bob"), "/uploads/bob.png")
        self.session.head.return_value = response(ok=False)
        self.assertEqual(self.client.resolve_avatar("bob"), DEFAULT_AVATAR)
        self.session.head.side_effect = requests.ConnectionError("down")
        self.assertEqual(self.client.resolve_avatar("bob"), DEFAULT_AVATAR)

    def test_logout(self):
        self.session.delete.return_value = response()
        self.client.logout()
        self.session.delete.assert_called_once_with("http://chat.test/logout", timeout=REQUEST_TIMEOUT)


if __name__ == "__main__":
    unittest.main()
