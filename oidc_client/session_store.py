"""
In-memory browser sessions keyed by the opaque session cookie.
Holds tokens and the UserInfo profile after a successful login. Lost on restart.
"""
import re
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from oidc_client.random_token import new_session_id

# Cookie values we are willing to reuse as session ids
_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{16,128}$")


@dataclass
class UserProfile:
    sub: str = ""
    email: str = ""
    name: str = ""
    locale: str = ""
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "UserProfile":
        """Pick the well-known string claims; keep everything in `raw`."""

        def _str(key: str) -> str:
            value = claims.get(key)
            return value if isinstance(value, str) else ""

        return cls(
            sub=_str("sub"),
            email=_str("email"),
            name=_str("name"),
            locale=_str("locale"),
            raw=dict(claims),
        )


@dataclass
class Session:
    access_token: str = ""
    refresh_token: str = ""
    id_token: str = ""
    token_type: str = ""
    scope: str = ""
    # None when the provider sent no lifetime (unknown, not "already expired")
    expires_at: datetime | None = None
    profile: UserProfile | None = None

    def expired(self, now: datetime | None = None) -> bool:
        """True once expires_at has passed. Expired sessions stay readable."""
        if self.expires_at is None:
            return False
        return (now or datetime.now(timezone.utc)) >= self.expires_at


class SessionStore:
    """Session id -> Session. One lock around the dict; never held across network I/O."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def get_or_create(self, cookie_value: str | None) -> tuple[str, bool]:
        """
        Return (session_id, created). Reuses a well-formed cookie value; otherwise mints
        a new id and the caller must set the cookie. No record is stored until login completes.
        """
        if cookie_value and _SESSION_ID_RE.match(cookie_value):
            return cookie_value, False
        return new_session_id(), True

    def get(self, session_id: str | None) -> Session | None:
        if not session_id:
            return None
        with self._lock:
            return self._sessions.get(session_id)

    def put(self, session_id: str, session: Session) -> None:
        """Replace the record wholesale (last write wins)."""
        with self._lock:
            self._sessions[session_id] = session

    def delete(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
