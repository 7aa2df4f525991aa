"""
HTML pages for the test client. Debugging surface only: tokens are shown verbatim.
"""
import html
import json
from typing import Any

import jwt

from oidc_client.config import ClientConfig
from oidc_client.discovery import ProviderMetadata
from oidc_client.session_store import Session


def _e(value: Any) -> str:
    if value is None or value == "":
        return "-"
    return html.escape(str(value))


def _pretty(data: dict[str, Any]) -> str:
    return html.escape(json.dumps(data, indent=2, sort_keys=True, default=str))


def id_token_claims(id_token: str) -> dict[str, Any] | None:
    """
    Decode the ID token payload WITHOUT verifying signature or claims, for display only.
    Returns None when the token is empty or not a JWT.
    """
    if not id_token:
        return None
    try:
        return jwt.decode(id_token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        return None


def _session_section(session: Session | None) -> str:
    if session is None:
        return """<p>No tokens yet.</p>"""

    if session.expires_at is None:
        expires = "-"
    else:
        expires = _e(session.expires_at.isoformat())
        if session.expired():
            expires += " (expired)"

    parts = [
        f"<p><strong>Access Token:</strong> <code>{_e(session.access_token)}</code></p>",
        f"<p><strong>ID Token:</strong> <code>{_e(session.id_token)}</code></p>",
        f"<p><strong>Refresh Token:</strong> <code>{_e(session.refresh_token)}</code></p>",
        f"<p><strong>Token Type:</strong> {_e(session.token_type)}</p>",
        f"<p><strong>Scope:</strong> <code>{_e(session.scope)}</code></p>",
        f"<p><strong>Expires At:</strong> {expires}</p>",
    ]

    claims = id_token_claims(session.id_token)
    if claims is not None:
        parts.append("<h3>ID Token Claims (unverified)</h3>")
        parts.append(f"<pre>{_pretty(claims)}</pre>")

    if session.profile is not None:
        p = session.profile
        parts.append("<h3>User Info</h3>")
        parts.append(
            "<ul>"
            f"<li>Subject: {_e(p.sub)}</li>"
            f"<li>Email: {_e(p.email)}</li>"
            f"<li>Name: {_e(p.name)}</li>"
            f"<li>Locale: {_e(p.locale)}</li>"
            "</ul>"
        )
        parts.append(f"<pre>{_pretty(p.raw)}</pre>")

    parts.append('<p><a href="/logout">Clear Session</a></p>')
    return "\n    ".join(parts)


def render_index(config: ClientConfig, provider: ProviderMetadata, session: Session | None) -> str:
    """Configuration, provider endpoints and the current session."""
    scopes = ", ".join(html.escape(s) for s in config.scopes)
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>OIDC Test Client</title></head>
<body>
  <h1>OIDC Test Client</h1>
  <section>
    <h2>Configuration</h2>
    <ul>
      <li>Issuer: {_e(config.issuer)}</li>
      <li>Client ID: {_e(config.client_id)}</li>
      <li>Redirect URI: {_e(config.redirect_uri)}</li>
      <li>Scopes: {scopes}</li>
    </ul>
  </section>
  <section>
    <h2>Provider</h2>
    <ul>
      <li>Issuer: {_e(provider.issuer)}</li>
      <li>Authorization Endpoint: {_e(provider.authorization_endpoint)}</li>
      <li>Token Endpoint: {_e(provider.token_endpoint)}</li>
      <li>Userinfo Endpoint: {_e(provider.userinfo_endpoint)}</li>
    </ul>
  </section>
  <section>
    <h2>Session</h2>
    {_session_section(session)}
  </section>
  <p><a href="/login">Start Authorization Code Flow</a></p>
</body>
</html>"""


def render_error(title: str, message: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{html.escape(title)}</title></head>
<body>
  <h1>{html.escape(title)}</h1>
  <p>{html.escape(message)}</p>
  <p><a href="/">Home</a></p>
</body>
</html>"""
