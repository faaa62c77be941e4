"""Sign-in flow and timeline for the single account of this app.

Every public step catches its own `FlowError`, keeps the user-facing
message in `error` and reports the outcome as a `StepResult`. A failed
step never changes the state, apart from the corrupt-staging recovery in
`submit_code`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

import httpx

from tootfeed import config, mastodon
from tootfeed.errors import (
    CorruptStateError,
    EndpointError,
    FlowError,
    FlowStateError,
    InvalidTransition,
    TokenExchangeError,
)
from tootfeed.schemas import FeedEntry
from tootfeed.state import SessionEvent, SessionState, next_state
from tootfeed.storage import SessionRepository

logger = logging.getLogger("tootfeed")

ClientFactory = Callable[[], httpx.AsyncClient]


def default_client_factory() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=config.HTTP_TIMEOUT)


@dataclass(frozen=True)
class StepResult:
    ok: bool
    error: str | None = None


class SessionManager:
    def __init__(self, repository: SessionRepository, client_factory: ClientFactory | None = None) -> None:
        self.repository = repository
        self.client_factory = client_factory or default_client_factory
        self.state = SessionState.LOGGED_OUT
        self.feed: list[FeedEntry] = []
        self.error: str | None = None
        self.authorize_url: str | None = None

    @property
    def endpoint(self) -> str:
        return self.repository.load_endpoint() or config.DEFAULT_ENDPOINT

    def set_endpoint(self, raw: str) -> str:
        endpoint = mastodon.normalize_endpoint(raw)
        previous = self.repository.load_endpoint()
        self.repository.save_endpoint(endpoint)
        logger.info("endpoint_saved endpoint=%s", endpoint)
        if previous is not None and previous != endpoint and self.repository.has_staged_registration():
            # the staged credentials belong to the previous server
            self._discard_staging()
        return endpoint

    def _apply(self, event: SessionEvent) -> None:
        previous = self.state
        self.state = next_state(self.state, event)
        logger.info("session_transition event=%s from=%s to=%s", event.value, previous.value, self.state.value)

    def _fail(self, exc: FlowError) -> StepResult:
        self.error = exc.user_message
        logger.warning("session_step_fail step=%s error=%s", exc.step, exc)
        return StepResult(ok=False, error=self.error)

    async def restore(self) -> StepResult:
        """Pick up where the previous process left off.

        Runs once at startup. A stored token goes straight to the timeline
        without registering or exchanging anything.
        """
        self.feed = []
        self.error = None
        self.authorize_url = None
        self.state = SessionState.LOGGED_OUT
        if self.repository.restore_token():
            self._apply(SessionEvent.SESSION_RESTORED)
            return await self.refresh_feed()
        if self.repository.has_staged_registration():
            self._apply(SessionEvent.REGISTRATION_SUCCEEDED)
            staged = self.repository.read_staged_registration()
            if staged.registration is not None and self.endpoint:
                self.authorize_url = mastodon.build_authorize_url(self.endpoint, staged.registration.client_id)
        return StepResult(ok=True)

    async def start_login(self) -> StepResult:
        try:
            if self.state is SessionState.LOGGED_IN:
                raise InvalidTransition("already signed in")
            endpoint = mastodon.require_endpoint(self.endpoint)
            async with self.client_factory() as client:
                registration = await mastodon.register_app(client, endpoint)
            if mastodon.normalize_endpoint(self.endpoint) != endpoint:
                raise EndpointError("server address changed while registering")
            # raises if the session moved on while we were registering
            self._apply(SessionEvent.REGISTRATION_SUCCEEDED)
        except FlowError as exc:
            return self._fail(exc)
        self.repository.stage_registration(registration)
        self.authorize_url = mastodon.build_authorize_url(endpoint, registration.client_id)
        self.error = None
        return StepResult(ok=True)

    async def submit_code(self, code: str) -> StepResult:
        code = (code or "").strip()
        try:
            if self.state is SessionState.LOGGED_IN:
                raise InvalidTransition("already signed in")
            if not code:
                raise TokenExchangeError("no authorization code entered")
            staged = self.repository.read_staged_registration()
            if staged.corrupt:
                self._discard_staging()
                raise CorruptStateError("stored app data is unreadable, please log in again")
            if staged.registration is None:
                raise FlowStateError("no app data, please log in again")
            if self.state is SessionState.LOGGED_OUT:
                # registration staged by an earlier process
                self._apply(SessionEvent.REGISTRATION_SUCCEEDED)
            endpoint = mastodon.require_endpoint(self.endpoint)
            async with self.client_factory() as client:
                token = await mastodon.request_token(client, endpoint, staged.registration, code)
            if self.repository.read_staged_registration().registration != staged.registration:
                raise FlowStateError("app data changed while exchanging the code, please log in again")
            self._apply(SessionEvent.CODE_ACCEPTED)
        except FlowError as exc:
            return self._fail(exc)
        self.repository.clear_staged_registration()
        self.repository.persist_token(token)
        self.authorize_url = None
        self.error = None
        return await self.refresh_feed()

    def _discard_staging(self) -> None:
        self.repository.clear_staged_registration()
        self.authorize_url = None
        if self.state is not SessionState.LOGGED_IN:
            self._apply(SessionEvent.STAGING_DISCARDED)

    def _signed_in_with(self, token: str | None) -> bool:
        return self.state is SessionState.LOGGED_IN and bool(token) and self.repository.restore_token() == token

    async def refresh_feed(self) -> StepResult:
        token = self.repository.restore_token()
        if not self._signed_in_with(token):
            return self._fail(InvalidTransition("not signed in"))
        try:
            endpoint = mastodon.require_endpoint(self.endpoint)
            async with self.client_factory() as client:
                entries = await mastodon.fetch_home_timeline(client, endpoint, token)
        except FlowError as exc:
            if not self._signed_in_with(token):
                logger.info("fetch_timeline_dropped reason=session_changed")
                return StepResult(ok=False)
            return self._fail(exc)
        if not self._signed_in_with(token):
            # logged out (or signed in again) while the request was in flight
            logger.info("fetch_timeline_dropped reason=session_changed")
            return StepResult(ok=False)
        self.feed = entries
        self.error = None
        return StepResult(ok=True)

    def logout(self) -> StepResult:
        self.repository.clear_token()
        self.repository.clear_staged_registration()
        self.feed = []
        self.error = None
        self.authorize_url = None
        self._apply(SessionEvent.LOGOUT_REQUESTED)
        return StepResult(ok=True)
