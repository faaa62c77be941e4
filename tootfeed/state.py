from __future__ import annotations

from enum import Enum

from tootfeed.errors import InvalidTransition


class SessionState(str, Enum):
    LOGGED_OUT = "logged_out"
    AUTHORIZING = "authorizing"
    LOGGED_IN = "logged_in"


class SessionEvent(str, Enum):
    REGISTRATION_SUCCEEDED = "registration_succeeded"
    CODE_ACCEPTED = "code_accepted"
    SESSION_RESTORED = "session_restored"
    STAGING_DISCARDED = "staging_discarded"
    LOGOUT_REQUESTED = "logout_requested"


_TRANSITIONS: dict[tuple[SessionState, SessionEvent], SessionState] = {
    (SessionState.LOGGED_OUT, SessionEvent.REGISTRATION_SUCCEEDED): SessionState.AUTHORIZING,
    # a fresh registration silently supersedes the staged one
    (SessionState.AUTHORIZING, SessionEvent.REGISTRATION_SUCCEEDED): SessionState.AUTHORIZING,
    (SessionState.AUTHORIZING, SessionEvent.CODE_ACCEPTED): SessionState.LOGGED_IN,
    (SessionState.AUTHORIZING, SessionEvent.STAGING_DISCARDED): SessionState.LOGGED_OUT,
    (SessionState.LOGGED_OUT, SessionEvent.STAGING_DISCARDED): SessionState.LOGGED_OUT,
    (SessionState.LOGGED_OUT, SessionEvent.SESSION_RESTORED): SessionState.LOGGED_IN,
}


def next_state(state: SessionState, event: SessionEvent) -> SessionState:
    if event is SessionEvent.LOGOUT_REQUESTED:
        return SessionState.LOGGED_OUT
    try:
        return _TRANSITIONS[(state, event)]
    except KeyError:
        raise InvalidTransition(f"cannot apply {event.value} while {state.value}") from None
