"""Recoverable error types raised inside the sync engine."""


class SyncError(Exception):
    """Base class for every error the engine reports instead of crashing."""


class ActionError(SyncError):
    """A local action was attempted without the state it requires."""


class FetchError(SyncError):
    """A snapshot request failed; the previous state is kept."""


class FrameError(SyncError):
    """An inbound frame could not be decoded or validated."""


class AuthenticationError(SyncError):
    """The session could not be verified at startup."""


class SessionRejectedError(AuthenticationError):
    """The server answered that the stored session token is not logged in."""
