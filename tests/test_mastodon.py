from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from tootfeed import mastodon
from tootfeed.errors import EndpointError, FeedFetchError, RegistrationError, TokenExchangeError, TransportError
from tootfeed.schemas import ClientRegistration

from conftest import ENDPOINT, FakeServer


def test_authorize_url_matches_expected_string() -> None:
    url = mastodon.build_authorize_url("https://example.social", "A")
    assert url == (
        "https://example.social/oauth/authorize?client_id=A"
        "&redirect_uri=urn:ietf:wg:oauth:2.0:oob&response_type=code&scope=read+write"
    )


@pytest.mark.parametrize(
    "endpoint,client_id",
    [
        ("https://mastodon.example", "abc123"),
        ("http://localhost:3000", "id with space"),
        ("https://fosstodon.org/", "x&y=z"),
    ],
)
def test_authorize_url_is_well_formed(endpoint: str, client_id: str) -> None:
    parts = urlsplit(mastodon.build_authorize_url(endpoint, client_id))
    assert parts.scheme in {"http", "https"}
    assert parts.path == "/oauth/authorize"
    assert parse_qs(parts.query) == {
        "client_id": [client_id],
        "redirect_uri": ["urn:ietf:wg:oauth:2.0:oob"],
        "response_type": ["code"],
        "scope": ["read write"],
    }


def test_normalize_endpoint_strips_whitespace_and_slash() -> None:
    assert mastodon.normalize_endpoint("  https://example.social/ ") == "https://example.social"
    assert mastodon.normalize_endpoint(None) == ""


def test_authorize_url_needs_endpoint() -> None:
    with pytest.raises(EndpointError):
        mastodon.build_authorize_url("   ", "A")


@pytest.mark.anyio
async def test_register_app_sends_oob_request(server: FakeServer) -> None:
    async with server.client() as client:
        registration = await mastodon.register_app(client, ENDPOINT, client_name="tootfeed", website="http://localhost")

    assert registration == ClientRegistration(client_id="A", client_secret="B")
    (request,) = server.calls("/api/v1/apps")
    assert str(request.url) == "https://example.social/api/v1/apps"
    assert server.json_body(request) == {
        "client_name": "tootfeed",
        "redirect_uris": "urn:ietf:wg:oauth:2.0:oob",
        "scopes": "read write",
        "website": "http://localhost",
    }


@pytest.mark.anyio
@pytest.mark.parametrize("status", [400, 422, 500, 503])
async def test_register_app_rejects_error_status(server: FakeServer, status: int) -> None:
    server.apps_response = (status, {"error": "nope"})
    async with server.client() as client:
        with pytest.raises(RegistrationError):
            await mastodon.register_app(client, ENDPOINT)


@pytest.mark.anyio
async def test_register_app_transport_failure(server: FakeServer) -> None:
    server.fail_with = httpx.ConnectError("connection refused")
    async with server.client() as client:
        with pytest.raises(TransportError) as excinfo:
            await mastodon.register_app(client, ENDPOINT)
    assert excinfo.value.user_message.startswith("Registration failed:")


@pytest.mark.anyio
async def test_request_token_posts_authorization_code(server: FakeServer) -> None:
    registration = ClientRegistration(client_id="A", client_secret="B")
    async with server.client() as client:
        token = await mastodon.request_token(client, ENDPOINT, registration, "XYZ")

    assert token == "T1"
    (request,) = server.calls("/oauth/token")
    assert server.json_body(request) == {
        "client_id": "A",
        "client_secret": "B",
        "grant_type": "authorization_code",
        "code": "XYZ",
        "redirect_uri": "urn:ietf:wg:oauth:2.0:oob",
    }


@pytest.mark.anyio
async def test_request_token_rejects_error_status(server: FakeServer) -> None:
    server.token_response = (400, {"error": "invalid_grant"})
    async with server.client() as client:
        with pytest.raises(TokenExchangeError):
            await mastodon.request_token(client, ENDPOINT, ClientRegistration("A", "B"), "XYZ")


@pytest.mark.anyio
async def test_request_token_without_access_token(server: FakeServer) -> None:
    server.token_response = (200, {"token_type": "Bearer"})
    async with server.client() as client:
        with pytest.raises(TokenExchangeError):
            await mastodon.request_token(client, ENDPOINT, ClientRegistration("A", "B"), "XYZ")


@pytest.mark.anyio
async def test_fetch_home_timeline_parses_statuses(server: FakeServer) -> None:
    async with server.client() as client:
        entries = await mastodon.fetch_home_timeline(client, ENDPOINT, "T1")

    (request,) = server.calls("/api/v1/timelines/home")
    assert request.headers["Authorization"] == "Bearer T1"
    assert len(entries) == 1
    entry = entries[0]
    assert entry.id == "109"
    assert entry.account.acct == "alice"
    assert entry.account.display_name == "Alice"
    assert entry.created is not None and entry.created.year == 2024


@pytest.mark.anyio
@pytest.mark.parametrize("response", [(401, {"error": "The access token is invalid"}), (200, {"error": "x"})])
async def test_fetch_home_timeline_failures(server: FakeServer, response) -> None:
    server.timeline_response = response
    async with server.client() as client:
        with pytest.raises(FeedFetchError):
            await mastodon.fetch_home_timeline(client, ENDPOINT, "T1")


@pytest.mark.anyio
async def test_fetch_home_timeline_transport_failure(server: FakeServer) -> None:
    server.fail_with = httpx.ReadTimeout("timed out")
    async with server.client() as client:
        with pytest.raises(FeedFetchError):
            await mastodon.fetch_home_timeline(client, ENDPOINT, "T1")
