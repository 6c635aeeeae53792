"""Identity of the authenticated user, resolved once per session."""
from pydantic import ValidationError

from .errors import AuthenticationError, SessionRejectedError
from .logging_config import configure_logging
from .models import Identity
from ..shared.dto import VerifyResponse

logger = configure_logging()


class IdentityContext:
    """Read-only holder of the session's identity."""

    def __init__(self, identity: Identity):
        self._identity = identity

    @property
    def identity(self) -> Identity:
        return self._identity

    @property
    def username(self) -> str:
        return self._identity.username

    def is_me(self, username: str) -> bool:
        return username == self._identity.username

    @classmethod
    def verify(cls, api) -> "IdentityContext":
        """Build the context from ``GET /verify`` or raise AuthenticationError."""
        try:
            response = VerifyResponse.model_validate(api.verify())
        except ValidationError as exc:
            logger.warning("VERIFY_FAIL reason=malformed_response")
            raise AuthenticationError("Unexpected verification response") from exc
        if response.status != "success" or response.user is None:
            logger.warning("VERIFY_FAIL reason=%s", response.message or response.status)
            raise SessionRejectedError("You are not logged in")
        user = response.user
        logger.info("VERIFY_SUCCESS username=%s", user.username)
        return cls(Identity(user.username, user.pfp_path or "", user.biography))
