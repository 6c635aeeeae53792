"""Composer mode state machine: plain send, reply or edit, one at a time."""
from __future__ import annotations

from .errors import ActionError
from .logging_config import configure_logging
from .models import CompositionState, Editing, Idle, MessageKey, Replying
from .store import StateStore

logger = configure_logging()


class CompositionMachine:
    """Drives ``StateStore.composition`` and the draft buffer.

    Entering a mode always tears the active one down first, so the store
    never holds two composition aids at once.
    """

    def __init__(self, store: StateStore, username: str):
        self.store = store
        self.username = username

    @property
    def state(self) -> CompositionState:
        return self.store.composition

    def start_reply(self, key: MessageKey) -> Replying:
        target = self.store.message(key)
        if target is None:
            raise ActionError("Message not found in the open chat")
        self._teardown()
        state = Replying(key, target.author_username, target.body)
        self.store.set_composition(state)
        return state

    def start_edit(self, key: MessageKey) -> Editing:
        target = self.store.message(key)
        if target is None:
            raise ActionError("Message not found in the open chat")
        if target.author_username != self.username:
            raise ActionError("You can only edit your own messages")
        self._teardown()
        state = Editing(key)
        self.store.set_composition(state)
        self.store.set_draft(target.body)
        return state

    def cancel(self) -> None:
        self._teardown()

    def set_draft(self, text: str) -> None:
        self.store.set_draft(text)

    def finish(self) -> None:
        """Return to Idle and clear the draft after a send went out."""
        self._teardown()
        self.store.set_draft("")

    def _teardown(self) -> None:
        if not isinstance(self.store.composition, Idle):
            logger.debug("COMPOSITION_TEARDOWN state=%s", type(self.store.composition).__name__)
            self.store.set_composition(Idle())
