"""
Opaque random values for session ids, CSRF state and nonces.
"""
import secrets

SESSION_ID_LENGTH = 32
STATE_LENGTH = 24
NONCE_LENGTH = 24


def random_opaque_token(length: int) -> str:
    """
    Return `length` URL-safe characters (A-Z a-z 0-9 - _) from the OS CSPRNG.
    Each character carries 6 bits, so 24 chars give 144 bits.
    """
    if length <= 0:
        raise ValueError("length must be positive")
    # token_urlsafe(n) yields ~1.33n chars; n bytes is always enough for n chars
    return secrets.token_urlsafe(length)[:length]


def new_session_id() -> str:
    return random_opaque_token(SESSION_ID_LENGTH)


def new_state() -> str:
    """Opaque value for CSRF protection; echoed back in the callback."""
    return random_opaque_token(STATE_LENGTH)


def new_nonce() -> str:
    """Random value sent with the authorization request for ID token binding."""
    return random_opaque_token(NONCE_LENGTH)
