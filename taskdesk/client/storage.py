from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

@dataclass(frozen=True)
class TokenPairData:
    access_token: str
    refresh_token: str
    expires_in: int
    refresh_expires_at: str | None = None

    @classmethod
    def from_json(cls, body: dict) -> "TokenPairData":
        return cls(
            access_token=body["access_token"],
            refresh_token=body["refresh_token"],
            expires_in=int(body["expires_in"]),
            refresh_expires_at=body.get("refresh_expires_at"),
        )

class TokenStorage:
    """
    Tokens held in process memory only.

    Nothing is persisted, so nothing outlives the client or leaks to other
    processes; clear() wipes every field.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self.access_token: str | None = None
        self.refresh_token: str | None = None
        self.access_expires_at: float | None = None

    def save(self, pair: TokenPairData) -> None:
        self.access_token = pair.access_token
        self.refresh_token = pair.refresh_token
        self.access_expires_at = self._clock() + pair.expires_in

    def clear(self) -> None:
        self.access_token = None
        self.refresh_token = None
        self.access_expires_at = None

    def access_is_fresh(self, skew_seconds: float = 0.0) -> bool:
        if not self.access_token or self.access_expires_at is None:
            return False
        return self._clock() < self.access_expires_at - skew_seconds

    @property
    def empty(self) -> bool:
        return self.access_token is None and self.refresh_token is None
