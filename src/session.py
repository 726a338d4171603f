"""In-memory login session and care-circle directory."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from src.config import settings

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """The signed-in user of this process."""

    user_id: str
    role: str  # "elder" or "caretaker"
    session_id: str


class SessionManager:
    """Holds at most one active session."""

    def __init__(self) -> None:
        self._current: Session | None = None

    @property
    def current(self) -> Session | None:
        return self._current

    def create_session(self, user_id: str, role: str) -> str:
        """Start a session for *user_id* and return its new session ID."""
        self._current = Session(user_id=user_id, role=role, session_id=uuid.uuid4().hex)
        logger.info("Session started for %s (%s)", user_id, role)
        return self._current.session_id

    def set_session(self, user_id: str, role: str, session_id: str) -> None:
        """Restore a previously issued session."""
        self._current = Session(user_id=user_id, role=role, session_id=session_id)

    def is_logged_in(self) -> bool:
        return self._current is not None

    def clear(self) -> None:
        if self._current is not None:
            logger.info("Session ended for %s", self._current.user_id)
        self._current = None


@dataclass
class Caretakers:
    """Contact addresses of one elder's caregivers."""

    emails: set[str] = field(default_factory=set)
    phones: set[str] = field(default_factory=set)


class CareCircle:
    """Maps elder names to the caregivers who should hear about them."""

    def __init__(self) -> None:
        self._circles: dict[str, Caretakers] = {}

    @classmethod
    def from_settings(cls, elder_name: str) -> CareCircle:
        """Build a circle for one elder from CARETAKER_EMAILS / CARETAKER_PHONES."""
        circle = cls()
        circle.add(
            elder_name,
            emails=settings.get_caretaker_emails(),
            phones=settings.get_caretaker_phones(),
        )
        return circle

    def add(
        self,
        elder_name: str,
        *,
        emails: list[str] | set[str] = (),
        phones: list[str] | set[str] = (),
    ) -> None:
        caretakers = self._circles.setdefault(elder_name, Caretakers())
        caretakers.emails.update(emails)
        caretakers.phones.update(phones)

    def addresses(self, elder_name: str, channel: str = "email") -> set[str]:
        """Return the caregiver addresses for *elder_name* on *channel*."""
        caretakers = self._circles.get(elder_name)
        if caretakers is None:
            return set()
        if channel == "sms":
            return set(caretakers.phones)
        return set(caretakers.emails)
