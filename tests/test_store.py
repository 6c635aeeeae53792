import dataclasses
import unittest
from datetime import datetime, timezone

from kutter_sync.client.models import Chat, Editing, Idle, Message, MessageKey, Replying
from kutter_sync.client.store import (
    CHAT_PROMOTED,
    COMPOSITION_CLEARED,
    COMPOSITION_ENTERED,
    EDITED_MARKER_ADDED,
    MESSAGE_ADDED,
    StateStore,
)


class StateStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = StateStore()
        self.events = []
        self.store.subscribe(self.events.append)

    def kinds(self):
        return [event.kind for event in self.events]

    def test_chats_keep_insertion_order_and_ignore_duplicates(self):
        self.assertTrue(self.store.add_chat(Chat(1, "alice", "bob")))
        self.assertTrue(self.store.add_chat(Chat(2, "alice", "carol")))
        self.assertFalse(self.store.add_chat(Chat(1, "alice", "bob")))
        self.assertEqual([chat.id for chat in self.store.chats], [1, 2])
        self.assertEqual(self.store.rank(2), 1)

    def test_promote_moves_chat_to_front_once(self):
        self.store.add_chat(Chat(1, "alice", "bob"))
        self.store.add_chat(Chat(2, "alice", "carol"))
        self.store.add_chat(Chat(3, "alice", "dave"))

        self.assertTrue(self.store.promote_chat(3))
        self.assertEqual([chat.id for chat in self.store.chats], [3, 1, 2])
        self.assertFalse(self.store.promote_chat(3))
        self.assertFalse(self.store.promote_chat(99))
        self.assertEqual(self.kinds().count(CHAT_PROMOTED), 1)

    def test_messages_kept_in_chronological_order(self):
        self.store.open_chat(1, "bob")
        noon = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        self.store.add_message(Message(3, 1, "bob", "latest", created_at=noon.replace(hour=13)))
        self.store.add_message(Message(1, 1, "bob", "oldest", created_at=noon.replace(hour=11)))
        self.store.add_message(Message(2, 1, "alice", "middle", created_at=noon))
        self.store.add_message(Message(2, 1, "bob", "middle too", created_at=noon))
        self.assertEqual(
            [m.body for m in self.store.messages],
            ["oldest", "middle", "middle too", "latest"],
        )

    def test_messages_only_accepted_for_open_chat(self):
        self.store.open_chat(1, "bob")
        self.assertFalse(self.store.add_message(Message(1, 2, "bob", "elsewhere")))
        self.assertTrue(self.store.add_message(Message(1, 1, "bob", "hi")))
        self.assertFalse(self.store.add_message(Message(1, 1, "bob", "hi")))
        self.assertEqual(len(self.store.messages), 1)
        self.assertEqual(self.kinds().count(MESSAGE_ADDED), 1)

    def test_message_without_identity_has_no_key(self):
        with self.assertRaises(ValueError):
            Message(None, 1, "bob", "anonymous").key

    def test_opening_a_chat_clears_rendered_messages(self):
        self.store.open_chat(1, "bob")
        self.store.add_message(Message(1, 1, "bob", "hi"))
        self.store.open_chat(2, "carol")
        self.assertEqual(self.store.messages, ())
        self.assertFalse(self.store.has_message(MessageKey(1, "bob")))

    def test_edited_marker_added_once(self):
        self.store.open_chat(1, "bob")
        self.store.add_message(Message(5, 1, "bob", "first"))
        key = MessageKey(5, "bob")

        self.store.edit_message(key, "second")
        self.store.edit_message(key, "third")

        self.assertEqual(self.store.message(key).body, "third")
        self.assertTrue(self.store.message(key).edited)
        self.assertEqual(self.kinds().count(EDITED_MARKER_ADDED), 1)

    def test_remove_absent_message_is_noop(self):
        self.store.open_chat(1, "bob")
        self.assertEqual(self.store.remove_messages(404), 0)

    def test_views_are_immutable(self):
        self.store.add_chat(Chat(1, "alice", "bob"))
        chats = self.store.chats
        self.assertIsInstance(chats, tuple)
        with self.assertRaises(dataclasses.FrozenInstanceError):
            chats[0].id = 2

    def test_composition_events(self):
        key = MessageKey(1, "bob")
        self.store.set_composition(Replying(key, "bob", "hi"))
        self.store.set_composition(Idle())
        self.store.set_composition(Idle())
        self.store.set_composition(Editing(key))
        self.assertEqual(
            [kind for kind in self.kinds() if kind.startswith("composition")],
            [COMPOSITION_ENTERED, COMPOSITION_CLEARED, COMPOSITION_ENTERED],
        )

    def test_reset_clears_everything(self):
        self.store.add_chat(Chat(1, "alice", "bob"))
        self.store.open_chat(1, "bob")
        self.store.set_draft("text")
        self.store.reset()
        self.assertEqual(self.store.chats, ())
        self.assertIsNone(self.store.open_chat_id)
        self.assertEqual(self.store.draft, "")
        self.assertIsInstance(self.store.composition, Idle)

    def test_unsubscribe(self):
        seen = []
        unsubscribe = self.store.subscribe(seen.append)
        unsubscribe()
        self.store.add_chat(Chat(1, "alice", "bob"))
        self.assertEqual(seen, [])


if __name__ == "__main__":
    unittest.main()
