from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class ClientRegistration:
    client_id: str
    client_secret: str

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str) -> ClientRegistration:
        """Parse a staged registration blob.

        Raises ValueError when the blob is not a JSON object holding two
        non-empty strings.
        """
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("registration blob is not an object")
        client_id = data.get("client_id")
        client_secret = data.get("client_secret")
        if not isinstance(client_id, str) or not client_id:
            raise ValueError("client_id missing")
        if not isinstance(client_secret, str) or not client_secret:
            raise ValueError("client_secret missing")
        return cls(client_id=client_id, client_secret=client_secret)


@dataclass(frozen=True)
class FeedAccount:
    id: str
    username: str
    acct: str
    display_name: str

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> FeedAccount:
        return cls(
            id=str(data.get("id") or ""),
            username=str(data.get("username") or ""),
            acct=str(data.get("acct") or ""),
            display_name=str(data.get("display_name") or ""),
        )


@dataclass(frozen=True)
class FeedEntry:
    id: str
    content: str
    created_at: str
    account: FeedAccount

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> FeedEntry:
        account = data.get("account")
        if not isinstance(account, dict):
            raise ValueError("status without account")
        return cls(
            id=str(data.get("id") or ""),
            content=str(data.get("content") or ""),
            created_at=str(data.get("created_at") or ""),
            account=FeedAccount.from_json(account),
        )

    @property
    def created(self) -> datetime | None:
        if not self.created_at:
            return None
        try:
            return datetime.fromisoformat(self.created_at.replace("Z", "+00:00"))
        except ValueError:
            return None
