import httpx
import pytest

from api import create_app
from models import storage

IDP = "https://idp.example.com"


class FakeProvider:
    """Answers the token and userinfo calls of the OAuth2 client."""

    def __init__(self):
        self.userinfo = {"sub": "1234", "email": "a@example.com", "name": "Alice"}
        self.token_status = 200
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/token":
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": "provider-access-token", "token_type": "Bearer"})
        if request.url.path == "/userinfo":
            return httpx.Response(200, json=self.userinfo)
        return httpx.Response(404)

    @property
    def transport(self):
        return httpx.MockTransport(self.handler)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def app(tmp_path, provider):
    app = create_app(
        "testing",
        overrides={
            # File-backed so worker threads share the same database
            "DATABASE_URL": f"sqlite:///{tmp_path / 'auth.db'}",
            "OAUTH2_CLIENTS": {
                "google": {
                    "client_id": "test-client",
                    "client_secret": "test-client-secret",
                    "authorization_uri": f"{IDP}/authorize",
                    "token_uri": f"{IDP}/token",
                    "user_info_uri": f"{IDP}/userinfo",
                    "scopes": ["openid", "email", "profile"],
                },
            },
        },
        oauth2_transport=provider.transport,
    )
    yield app
    storage.close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth(app):
    """The auth components built by the app factory."""
    return app.extensions["auth"]


@pytest.fixture
def codec(auth):
    return auth["token_codec"]


@pytest.fixture
def make_user(auth):
    def _make(email="a@example.com", nickname=None):
        return auth["users"].upsert(email, nickname)

    return _make


@pytest.fixture
def bearer(codec, app):
    def _bearer(user):
        token = codec.issue_for_user(user, app.config["ACCESS_TOKEN_EXPIRES"])
        return {"Authorization": f"Bearer {token}"}

    return _bearer
