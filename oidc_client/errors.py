"""
Errors raised by the OIDC client. Request-level failures carry the HTTP status shown to the browser.
"""


class OIDCClientError(Exception):
    """Base class for all client errors."""


class DiscoveryError(OIDCClientError):
    """Provider metadata could not be fetched or parsed. Fatal at startup."""


class ProfileFetchError(OIDCClientError):
    """UserInfo call failed. Logged and ignored; login continues without a profile."""


class CallbackError(OIDCClientError):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequest(CallbackError):
    """Missing or unknown state/code, or an error returned by the provider."""

    status_code = 400


class UpstreamExchangeError(CallbackError):
    """Token endpoint unreachable, non-200, or returned an undecodable body."""

    status_code = 502
