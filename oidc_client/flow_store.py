"""
In-memory store for pending authorization flows (state -> session id, nonce).
Used between /login and /auth/callback. Each state is consumed at most once; TTL to avoid unbounded growth.
"""
import logging
import threading
import time
from dataclasses import dataclass

from oidc_client.config import PENDING_AUTH_TTL_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingAuthorization:
    session_id: str
    nonce: str
    created_at: float

    def expired(self, now: float | None = None, ttl: float = PENDING_AUTH_TTL_SECONDS) -> bool:
        return ((now if now is not None else time.monotonic()) - self.created_at) > ttl


class PendingAuthorizations:
    def __init__(self, ttl_seconds: float = PENDING_AUTH_TTL_SECONDS) -> None:
        self._ttl = ttl_seconds
        self._pending: dict[str, PendingAuthorization] = {}
        self._lock = threading.Lock()

    def register(self, state: str, session_id: str, nonce: str) -> PendingAuthorization:
        pending = PendingAuthorization(session_id=session_id, nonce=nonce, created_at=time.monotonic())
        with self._lock:
            self._purge_expired(pending.created_at)
            self._pending[state] = pending
        return pending

    def consume(self, state: str) -> PendingAuthorization | None:
        """
        Atomically remove and return the pending flow for `state`.
        None for unknown, already consumed or expired state.
        """
        now = time.monotonic()
        with self._lock:
            pending = self._pending.pop(state, None)
            self._purge_expired(now)
        if pending is None or pending.expired(now, self._ttl):
            return None
        return pending

    def _purge_expired(self, now: float) -> None:
        # Caller holds the lock
        expired = [s for s, p in self._pending.items() if p.expired(now, self._ttl)]
        for s in expired:
            del self._pending[s]
        if expired:
            logger.debug("Dropped %d abandoned authorization flow(s)", len(expired))

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)
