"""
OIDC test client configuration. Environment-driven; defaults target a local provider on :8080.
"""
import os
from dataclasses import dataclass, field

# OpenID Provider issuer; discovery document lives under {issuer}/.well-known/
ISSUER = os.environ.get("OIDC_ISSUER", "http://localhost:8080")

# Client credentials registered at the provider (confidential client)
CLIENT_ID = os.environ.get("OIDC_CLIENT_ID", "third-web-app")
CLIENT_SECRET = os.environ.get("OIDC_CLIENT_SECRET", "third-secret")

# Callback URL the provider redirects the browser to after authorization
REDIRECT_URI = os.environ.get("OIDC_REDIRECT_URI", "http://localhost:4000/auth/callback")

# host:port for uvicorn; ":4000" listens on all interfaces
LISTEN_ADDR = os.environ.get("OIDC_LISTEN_ADDR", ":4000")

# Whitespace-separated scopes requested at /login
SCOPES = os.environ.get("OIDC_SCOPES", "openid profile email offline_access").split()

LOG_LEVEL = os.environ.get("OIDC_LOG_LEVEL", "INFO").upper()

SESSION_COOKIE_NAME = "oidc_client_session"
# Absolute cookie lifetime; not renewed on activity
SESSION_COOKIE_TTL_SECONDS = 12 * 60 * 60

# Abandoned logins are dropped after this many seconds
PENDING_AUTH_TTL_SECONDS = 600

# Upper bound for discovery, token and userinfo calls
HTTP_TIMEOUT = 10.0


@dataclass(frozen=True)
class ClientConfig:
    """Settings the flow controller and index page need. Defaults come from the environment."""

    issuer: str = ISSUER
    client_id: str = CLIENT_ID
    client_secret: str = CLIENT_SECRET
    redirect_uri: str = REDIRECT_URI
    listen_addr: str = LISTEN_ADDR
    scopes: list[str] = field(default_factory=lambda: list(SCOPES))

    def __post_init__(self) -> None:
        missing = [
            name
            for name in ("issuer", "client_id", "client_secret", "redirect_uri")
            if not getattr(self, name).strip()
        ]
        if not self.scopes:
            missing.append("scopes")
        if missing:
            raise ValueError(f"Missing required client settings: {', '.join(missing)}")
        split_listen_addr(self.listen_addr)

    @property
    def scope(self) -> str:
        """Scopes as sent in the authorization request."""
        return " ".join(self.scopes)

    @property
    def bind(self) -> tuple[str, int]:
        """(host, port) for uvicorn."""
        return split_listen_addr(self.listen_addr)


def split_listen_addr(addr: str) -> tuple[str, int]:
    """
    Split "host:port" into (host, port). An empty host (":4000") means all interfaces.
    Raises ValueError for a missing or non-numeric port.
    """
    host, sep, port = addr.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"Invalid listen address: {addr!r}")
    return host or "0.0.0.0", int(port)
