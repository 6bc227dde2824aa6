from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class User:
    """
    An authenticated identity.

    The password hash never leaves the identity store.
    """

    id: int
    email: str
    display_name: str


@dataclass(frozen=True, slots=True)
class Session:
    """A login session. Valid strictly before expires_at."""

    token: str = field(repr=False)
    user_id: int
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at
