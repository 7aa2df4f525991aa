"""
Shared fixtures: a fixed provider snapshot (no discovery over the network) and a fake httpx response.
"""
import pytest
from fastapi.testclient import TestClient

from oidc_client.config import ClientConfig
from oidc_client.discovery import ProviderMetadata
from oidc_client.main import create_app

OP = "https://op.example"


class FakeResponse:
    """Just enough of httpx.Response for the client code."""

    def __init__(self, status_code=200, json_body=None, text=""):
        self.status_code = status_code
        self._json = json_body
        self.text = text
        self.headers = {"content-type": "application/json"} if json_body is not None else {}

    def json(self):
        if self._json is None:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._json


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def config():
    return ClientConfig(
        issuer=OP,
        client_id="acme",
        client_secret="acme-secret",
        redirect_uri="http://localhost:4000/auth/callback",
        listen_addr=":4000",
        scopes=["openid", "profile"],
    )


@pytest.fixture
def provider():
    return ProviderMetadata(
        issuer=OP,
        authorization_endpoint=f"{OP}/authorize",
        token_endpoint=f"{OP}/token",
    )


@pytest.fixture
def provider_with_userinfo():
    return ProviderMetadata(
        issuer=OP,
        authorization_endpoint=f"{OP}/authorize",
        token_endpoint=f"{OP}/token",
        userinfo_endpoint=f"{OP}/userinfo",
    )


@pytest.fixture
def app(config, provider):
    return create_app(config, provider)


@pytest.fixture
def client(app):
    return TestClient(app)
