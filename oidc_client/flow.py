"""
Authorization Code flow: build the authorize redirect, exchange the code at the token endpoint,
fetch UserInfo, and record the result in the session store.
No ID token validation (signature, iss, aud, exp, nonce) is performed; tokens are kept as received.
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import urlencode

import httpx

from oidc_client.config import HTTP_TIMEOUT, ClientConfig
from oidc_client.discovery import ProviderMetadata
from oidc_client.errors import BadRequest, ProfileFetchError, UpstreamExchangeError
from oidc_client.flow_store import PendingAuthorizations
from oidc_client.random_token import new_nonce, new_state
from oidc_client.session_store import Session, SessionStore, UserProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenResponse:
    access_token: str = ""
    refresh_token: str = ""
    id_token: str = ""
    token_type: str = ""
    scope: str = ""
    expires_in: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TokenResponse":
        def _str(key: str) -> str:
            value = data.get(key)
            return value if isinstance(value, str) else ""

        expires_in = data.get("expires_in")
        if isinstance(expires_in, bool) or not isinstance(expires_in, (int, float)):
            expires_in = 0
        elif not math.isfinite(expires_in):
            raise UpstreamExchangeError(f"Token endpoint returned a non-finite expires_in: {expires_in}")
        return cls(
            access_token=_str("access_token"),
            refresh_token=_str("refresh_token"),
            id_token=_str("id_token"),
            token_type=_str("token_type"),
            scope=_str("scope"),
            expires_in=int(expires_in),
        )

    def to_session(self, issued_at: datetime | None = None) -> Session:
        """
        Copy token fields verbatim; expiry only for a positive lifetime.
        Raises UpstreamExchangeError when the lifetime does not fit in a datetime.
        """
        expires_at = None
        if self.expires_in > 0:
            try:
                expires_at = (issued_at or datetime.now(timezone.utc)) + timedelta(seconds=self.expires_in)
            except OverflowError as e:
                raise UpstreamExchangeError(
                    f"Token endpoint returned an out-of-range expires_in: {self.expires_in}"
                ) from e
        return Session(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            id_token=self.id_token,
            token_type=self.token_type,
            scope=self.scope,
            expires_at=expires_at,
        )


def build_authorize_url(
    *,
    authorization_endpoint: str,
    client_id: str,
    redirect_uri: str,
    scope: str,
    state: str,
    nonce: str,
) -> str:
    """Build the provider authorization URL with the Authorization Code request params."""
    params = {
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": scope,
        "state": state,
        "nonce": nonce,
    }
    sep = "&" if "?" in authorization_endpoint else "?"
    return f"{authorization_endpoint}{sep}{urlencode(params)}"


class FlowController:
    """Drives login, callback and logout against one provider. Holds no per-request state."""

    def __init__(
        self,
        config: ClientConfig,
        provider: ProviderMetadata,
        sessions: SessionStore,
        pending: PendingAuthorizations,
    ) -> None:
        self.config = config
        self.provider = provider
        self.sessions = sessions
        self.pending = pending

    def begin_login(self, session_id: str) -> str:
        """Register a pending flow for `session_id` and return the provider redirect URL."""
        state = new_state()
        nonce = new_nonce()
        self.pending.register(state, session_id=session_id, nonce=nonce)
        logger.info("Starting login for session %s... (state %s...)", session_id[:6], state[:6])
        return build_authorize_url(
            authorization_endpoint=self.provider.authorization_endpoint,
            client_id=self.config.client_id,
            redirect_uri=self.config.redirect_uri,
            scope=self.config.scope,
            state=state,
            nonce=nonce,
        )

    def abandon_login(self, state: str | None, error: str) -> None:
        """Provider redirected back with ?error=. Spend the state so it cannot be replayed."""
        if state:
            self.pending.consume(state)
        logger.info("Provider returned error %r for state %s...", error, (state or "")[:6])

    async def complete_login(self, state: str | None, code: str | None) -> str:
        """
        Consume the pending flow for `state`, exchange `code` for tokens, fetch UserInfo
        (best effort) and store the session. Returns the session id that was updated.
        """
        if not state or not code:
            raise BadRequest("Missing state or code parameter.")

        pending = self.pending.consume(state)
        if pending is None:
            logger.info("Callback with unknown or used state %s...", state[:6])
            raise BadRequest("Invalid or expired state. Please try logging in again.")

        tokens = await self.exchange_code(code)
        session = tokens.to_session()

        if self.provider.userinfo_endpoint and tokens.access_token:
            try:
                session.profile = await self.fetch_profile(tokens.access_token)
            except ProfileFetchError as e:
                logger.warning("UserInfo fetch failed; continuing without profile: %s", e)

        self.sessions.put(pending.session_id, session)
        logger.info("Login complete for session %s...", pending.session_id[:6])
        return pending.session_id

    async def exchange_code(self, code: str) -> TokenResponse:
        """POST the authorization code to the token endpoint. Raises UpstreamExchangeError."""
        try:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
                r = await client.post(
                    self.provider.token_endpoint,
                    data={
                        "grant_type": "authorization_code",
                        "code": code,
                        "redirect_uri": self.config.redirect_uri,
                        "client_id": self.config.client_id,
                        "client_secret": self.config.client_secret,
                    },
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.warning("Token endpoint unreachable: %s", e)
            raise UpstreamExchangeError(f"Token exchange failed: {e}") from e

        if r.status_code != 200:
            logger.warning("Token endpoint returned HTTP %s", r.status_code)
            raise UpstreamExchangeError(f"Token endpoint error: HTTP {r.status_code} {r.text}")

        try:
            data = r.json()
        except ValueError as e:
            raise UpstreamExchangeError(f"Token endpoint returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise UpstreamExchangeError("Token endpoint returned a non-object JSON body")
        return TokenResponse.from_dict(data)

    async def fetch_profile(self, access_token: str) -> UserProfile:
        """GET UserInfo with the access token. Raises ProfileFetchError."""
        try:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
                r = await client.get(
                    self.provider.userinfo_endpoint,
                    headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            raise ProfileFetchError(f"UserInfo request failed: {e}") from e

        if r.status_code != 200:
            raise ProfileFetchError(f"UserInfo returned HTTP {r.status_code}")

        try:
            claims = r.json()
        except ValueError as e:
            raise ProfileFetchError(f"UserInfo returned invalid JSON: {e}") from e
        if not isinstance(claims, dict):
            raise ProfileFetchError("UserInfo returned a non-object JSON body")
        return UserProfile.from_claims(claims)

    def logout(self, session_id: str) -> None:
        if self.sessions.delete(session_id):
            logger.info("Session %s... logged out", session_id[:6])

    def current_session(self, session_id: str | None) -> Session | None:
        return self.sessions.get(session_id)
