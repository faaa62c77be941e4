from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

import httpx

from tootfeed import config
from tootfeed.errors import (
    EndpointError,
    FeedFetchError,
    RegistrationError,
    TokenExchangeError,
    TransportError,
)
from tootfeed.schemas import ClientRegistration, FeedEntry

logger = logging.getLogger("tootfeed")

OOB_REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"
SCOPES = "read write"

APPS_PATH = "/api/v1/apps"
AUTHORIZE_PATH = "/oauth/authorize"
TOKEN_PATH = "/oauth/token"
HOME_TIMELINE_PATH = "/api/v1/timelines/home"


def normalize_endpoint(raw: str | None) -> str:
    return (raw or "").strip().rstrip("/")


def require_endpoint(endpoint: str | None) -> str:
    normalized = normalize_endpoint(endpoint)
    if not normalized:
        raise EndpointError("no server address set")
    return normalized


def _body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {"raw": response.text[:500]}


async def register_app(
    client: httpx.AsyncClient,
    endpoint: str,
    client_name: str | None = None,
    website: str | None = None,
) -> ClientRegistration:
    url = f"{require_endpoint(endpoint)}{APPS_PATH}"
    payload = {
        "client_name": client_name or config.CLIENT_NAME,
        "redirect_uris": OOB_REDIRECT_URI,
        "scopes": SCOPES,
        "website": website or config.WEBSITE,
    }
    try:
        response = await client.post(url, json=payload)
    except httpx.HTTPError as exc:
        logger.warning("register_app_fail status_code=%s error=%s", None, exc)
        raise TransportError(str(exc), step=RegistrationError.step) from exc
    if not response.is_success:
        logger.warning("register_app_fail status_code=%s response=%s", response.status_code, response.text[:500])
        raise RegistrationError(f"server answered HTTP {response.status_code}")
    data = _body(response)
    if not isinstance(data, dict) or not data.get("client_id") or not data.get("client_secret"):
        logger.warning("register_app_fail status_code=%s reason=missing_credentials", response.status_code)
        raise RegistrationError("server response has no client credentials")
    logger.info("register_app_success status_code=%s client_id=%s", response.status_code, data["client_id"])
    return ClientRegistration(client_id=str(data["client_id"]), client_secret=str(data["client_secret"]))


def build_authorize_url(endpoint: str, client_id: str) -> str:
    query = urlencode(
        {
            "client_id": client_id,
            "redirect_uri": OOB_REDIRECT_URI,
            "response_type": "code",
            "scope": SCOPES,
        },
        safe=":",
    )
    return f"{require_endpoint(endpoint)}{AUTHORIZE_PATH}?{query}"


async def request_token(
    client: httpx.AsyncClient,
    endpoint: str,
    registration: ClientRegistration,
    code: str,
) -> str:
    url = f"{require_endpoint(endpoint)}{TOKEN_PATH}"
    payload = {
        "client_id": registration.client_id,
        "client_secret": registration.client_secret,
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": OOB_REDIRECT_URI,
    }
    try:
        response = await client.post(url, json=payload)
    except httpx.HTTPError as exc:
        logger.warning("token_exchange_fail status_code=%s error=%s", None, exc)
        raise TransportError(str(exc), step=TokenExchangeError.step) from exc
    if not response.is_success:
        logger.warning("token_exchange_fail status_code=%s response=%s", response.status_code, response.text[:500])
        raise TokenExchangeError(f"server answered HTTP {response.status_code}")
    data = _body(response)
    token = data.get("access_token") if isinstance(data, dict) else None
    if not isinstance(token, str) or not token:
        logger.warning("token_exchange_fail status_code=%s reason=missing_access_token", response.status_code)
        raise TokenExchangeError("server response has no access token")
    logger.info("token_exchange_success status_code=%s", response.status_code)
    return token


async def fetch_home_timeline(client: httpx.AsyncClient, endpoint: str, token: str) -> list[FeedEntry]:
    url = f"{require_endpoint(endpoint)}{HOME_TIMELINE_PATH}"
    headers = {"Authorization": f"Bearer {token}"}
    try:
        response = await client.get(url, headers=headers)
    except httpx.HTTPError as exc:
        logger.warning("fetch_timeline_fail status_code=%s error=%s", None, exc)
        raise FeedFetchError(f"network error: {exc}") from exc
    if not response.is_success:
        logger.warning("fetch_timeline_fail status_code=%s", response.status_code)
        raise FeedFetchError(f"server answered HTTP {response.status_code}")
    data = _body(response)
    if not isinstance(data, list):
        logger.warning("fetch_timeline_fail status_code=%s reason=not_a_list", response.status_code)
        raise FeedFetchError("unexpected timeline response")
    try:
        entries = [FeedEntry.from_json(item) for item in data if isinstance(item, dict)]
    except ValueError as exc:
        logger.warning("fetch_timeline_fail status_code=%s reason=%s", response.status_code, exc)
        raise FeedFetchError("unexpected timeline response") from exc
    logger.info("fetch_timeline_success status_code=%s entries=%s", response.status_code, len(entries))
    return entries
