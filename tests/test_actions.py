import unittest

from kutter_sync.client import actions
from kutter_sync.client.errors import ActionError
from kutter_sync.client.models import ACCEPTED, Editing, FriendRequest, Message, MessageKey, Replying
from kutter_sync.client.store import StateStore


class ActionBuilderTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = StateStore()
        self.store.open_chat(1, "bob")
        self.store.add_message(Message(1, 1, "bob", "lunch?"))
        self.store.add_message(Message(2, 1, "alice", "sure"))
        self.events = []
        self.store.subscribe(self.events.append)

    def test_plain_message(self):
        self.store.draft = "  hello  "
        frame = actions.compose_frame(self.store)
        self.assertEqual(
            frame,
            {"action": "new_message", "payload": {"message": "hello", "chat_partner": "bob", "reply": None}},
        )

    def test_reply_attaches_target(self):
        self.store.composition = Replying(MessageKey(1, "bob"), "bob", "lunch?")
        self.store.draft = "yes"
        frame = actions.compose_frame(self.store)
        self.assertEqual(frame["payload"]["reply"], 1)

    def test_edit_mode_builds_edit_frame(self):
        self.store.composition = Editing(MessageKey(2, "alice"))
        self.store.draft = "sure thing"
        frame = actions.compose_frame(self.store)
        self.assertEqual(frame, {"action": "edit_message", "payload": {"message_id": 2, "message": "sure thing"}})

    def test_whitespace_body_is_noop(self):
        self.store.draft = "   \n"
        self.assertIsNone(actions.compose_frame(self.store))
        self.assertEqual(self.events, [])

    def test_no_open_chat(self):
        store = StateStore()
        store.draft = "hello"
        with self.assertRaises(ActionError):
            actions.compose_frame(store)

    def test_no_partner(self):
        self.store.open_chat_partner = None
        with self.assertRaises(ActionError):
            actions.new_message(self.store, "hello")

    def test_delete_only_own_messages(self):
        frame = actions.delete_message(self.store, "alice", MessageKey(2, "alice"))
        self.assertEqual(frame, {"action": "delete_message", "payload": {"id": 2}})
        with self.assertRaises(ActionError):
            actions.delete_message(self.store, "alice", MessageKey(1, "bob"))
        with self.assertRaises(ActionError):
            actions.delete_message(self.store, "alice", MessageKey(3, "alice"))

    def test_friend_request_frames(self):
        self.assertEqual(
            actions.send_request("alice", " dave "),
            {"action": "send_request", "payload": {"receiver_username": "dave"}},
        )
        self.assertIsNone(actions.send_request("alice", "  "))
        with self.assertRaises(ActionError):
            actions.send_request("alice", "alice")

    def test_accept_requires_incoming_pending_request(self):
        self.store.add_friend_request(FriendRequest(7, "bob", "alice"))
        self.store.add_friend_request(FriendRequest(8, "alice", "carol"))
        self.store.add_friend_request(FriendRequest(9, "dave", "alice", ACCEPTED))

        self.assertEqual(
            actions.accept_request(self.store, "alice", 7),
            {"action": "accept", "payload": {"friend_id": 7}},
        )
        for request_id in (8, 9, 10):
            with self.assertRaises(ActionError):
                actions.accept_request(self.store, "alice", request_id)

    def test_bio_and_new_chat(self):
        self.assertEqual(actions.change_bio(" hi there "), {"action": "change_bio", "payload": {"biography": "hi there"}})
        self.assertEqual(
            actions.new_chat("alice", "bob"),
            {"action": "new_chat", "payload": {"second_user_name": "bob"}},
        )
        with self.assertRaises(ActionError):
            actions.new_chat("alice", "alice")

    def test_builders_do_not_mutate_store(self):
        self.store.draft = "hello"
        before = (self.store.chats, self.store.messages, self.store.composition, self.store.draft)
        actions.compose_frame(self.store)
        actions.delete_message(self.store, "alice", MessageKey(2, "alice"))
        self.assertEqual(before, (self.store.chats, self.store.messages, self.store.composition, self.store.draft))
        self.assertEqual(self.events, [])


if __name__ == "__main__":
    unittest.main()
