"""Tests for the index page rendering."""
from datetime import datetime, timedelta, timezone

import jwt

from oidc_client.presentation import id_token_claims, render_error, render_index
from oidc_client.session_store import Session, UserProfile

SIGNING_KEY = "test-signing-key-that-is-long-enough-for-hs256"


def test_id_token_claims_decodes_without_verification():
    token = jwt.encode({"sub": "42", "nonce": "n1", "aud": "acme"}, SIGNING_KEY, algorithm="HS256")
    claims = id_token_claims(token)
    assert claims == {"sub": "42", "nonce": "n1", "aud": "acme"}


def test_id_token_claims_opaque_token():
    assert id_token_claims("idt1") is None
    assert id_token_claims("") is None


def test_render_index_shows_config_and_provider(config, provider):
    page = render_index(config, provider, None)
    assert "acme" in page
    assert "openid, profile" in page
    assert "https://op.example/authorize" in page
    assert "No tokens yet" in page


def test_render_index_session_with_profile(config, provider):
    session = Session(
        access_token="tok1",
        id_token="idt1",
        token_type="Bearer",
        scope="openid profile",
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        profile=UserProfile.from_claims({"sub": "u1", "name": "<script>x</script>"}),
    )
    page = render_index(config, provider, session)
    assert "tok1" in page
    assert "Bearer" in page
    assert "(expired)" not in page
    assert "<script>x</script>" not in page
    assert "&lt;script&gt;" in page
    assert 'href="/logout"' in page


def test_render_index_marks_expired_session(config, provider):
    session = Session(access_token="tok1", expires_at=datetime.now(timezone.utc) - timedelta(seconds=1))
    page = render_index(config, provider, session)
    assert "(expired)" in page
    assert "tok1" in page


def test_render_index_shows_unverified_id_token_claims(config, provider):
    token = jwt.encode({"sub": "42", "email": "x@example.com"}, SIGNING_KEY, algorithm="HS256")
    page = render_index(config, provider, Session(access_token="at", id_token=token))
    assert "ID Token Claims (unverified)" in page
    assert "x@example.com" in page


def test_render_error_escapes_message():
    page = render_error("Error", "bad <b>state</b>")
    assert "bad &lt;b&gt;state&lt;/b&gt;" in page
