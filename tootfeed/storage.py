"""Durable session state.

Three values survive a restart: the server endpoint, the access token, and
the app registration staged while the user is away authorizing. The
repository only knows string keys; where they live is up to the backend.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from tootfeed import db
from tootfeed.schemas import ClientRegistration

logger = logging.getLogger("tootfeed")

ENDPOINT_KEY = "server_endpoint"
TOKEN_KEY = "access_token"
STAGED_REGISTRATION_KEY = "staged_registration"


class StorageBackend(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStorage:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value

    def delete(self, key: str) -> None:
        self.values.pop(key, None)


class SqlStorage:
    """Backend on the application database (`settings` table)."""

    def get(self, key: str) -> str | None:
        with db.get_session() as session:
            return db.get_setting(session, key)

    def set(self, key: str, value: str) -> None:
        with db.get_session() as session:
            db.set_setting(session, key, value)

    def delete(self, key: str) -> None:
        with db.get_session() as session:
            db.delete_setting(session, key)


@dataclass(frozen=True)
class StagedRead:
    registration: ClientRegistration | None = None
    corrupt: bool = False
    error: str | None = None

    @property
    def missing(self) -> bool:
        return self.registration is None and not self.corrupt


class SessionRepository:
    def __init__(self, backend: StorageBackend) -> None:
        self.backend = backend

    def load_endpoint(self) -> str | None:
        return self.backend.get(ENDPOINT_KEY)

    def save_endpoint(self, endpoint: str) -> None:
        self.backend.set(ENDPOINT_KEY, endpoint)

    def persist_token(self, token: str) -> None:
        self.backend.set(TOKEN_KEY, token)
        logger.info("session_token_saved")

    def restore_token(self) -> str | None:
        return self.backend.get(TOKEN_KEY) or None

    def clear_token(self) -> None:
        self.backend.delete(TOKEN_KEY)
        logger.info("session_token_cleared")

    def stage_registration(self, registration: ClientRegistration) -> None:
        self.backend.set(STAGED_REGISTRATION_KEY, registration.to_json())

    def has_staged_registration(self) -> bool:
        return self.backend.get(STAGED_REGISTRATION_KEY) is not None

    def read_staged_registration(self) -> StagedRead:
        raw = self.backend.get(STAGED_REGISTRATION_KEY)
        if raw is None:
            return StagedRead()
        try:
            return StagedRead(registration=ClientRegistration.from_json(raw))
        except (ValueError, TypeError) as exc:
            # json.JSONDecodeError is a ValueError
            logger.warning("staged_registration_corrupt error=%s", exc)
            return StagedRead(corrupt=True, error=str(exc))

    def clear_staged_registration(self) -> None:
        self.backend.delete(STAGED_REGISTRATION_KEY)
