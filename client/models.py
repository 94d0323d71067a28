"""
client/models.py -- Client-only value types.

Collections and items reuse the frozen dataclasses from catalog/models.py.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class UserProfile:
    """The signed-in user as reported by GET /me."""

    id: int
    username: str
    firstname: Optional[str] = None
    lastname: Optional[str] = None

    @property
    def display_name(self) -> str:
        full = " ".join(part for part in (self.firstname, self.lastname) if part)
        return full or self.username


@dataclass(frozen=True)
class GuardDecision:
    """Outcome of a route guard check. redirect is set only when allowed is False."""

    allowed: bool
    redirect: Optional[str] = None
    identity: Optional[UserProfile] = None


@dataclass(frozen=True)
class Route:
    """Where the navigator ended up after resolving a path.

    name is one of: login, collection, item, not-found. error carries an
    inline message for the login view (bad credentials).
    """

    path: str
    name: str
    params: tuple[tuple[str, int], ...] = ()
    error: Optional[str] = None

    def param(self, key: str) -> Optional[int]:
        return dict(self.params).get(key)
