from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import timedelta
from typing import Any

import httpx

from taskdesk.client.coordinator import CoordinatorState, LogoutListener, RefreshCoordinator
from taskdesk.client.storage import TokenPairData, TokenStorage
from taskdesk.errors import InactivityTimeout, InvalidToken

logger = logging.getLogger(__name__)

class TaskdeskClient:
    """
    Async API client that keeps the bearer token alive.

    Every request goes through the RefreshCoordinator; a 401 from the
    resource layer forces one refresh and one retry, nothing more.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
        inactivity_window: timedelta = timedelta(minutes=30),
        clock: Callable[[], float] = time.time,
    ):
        self.http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)
        self.storage = TokenStorage(clock=clock)
        self.coordinator = RefreshCoordinator(
            self.storage,
            self._refresh_call,
            inactivity_window=inactivity_window,
            clock=clock,
        )

    async def __aenter__(self) -> "TaskdeskClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    def on_logout(self, listener: LogoutListener) -> None:
        self.coordinator.on_logout(listener)

    async def request_link(self, email: str) -> str | None:
        r = await self.http.post("/auth/request-link", json={"email": email})
        r.raise_for_status()
        return r.json().get("token")

    async def login(self, magic_token: str) -> TokenPairData:
        r = await self.http.post("/auth/redeem", json={"token": magic_token})
        r.raise_for_status()
        pair = TokenPairData.from_json(r.json())
        self.coordinator.start_session(pair)
        return pair

    async def logout(self) -> None:
        """
        Revoke the refresh token server-side, then tear the session down.

        The refresh token is the credential here, so logout still works after
        the access token has expired.
        """
        if self.coordinator.state is CoordinatorState.refreshing:
            # let the rotation land so the token revoked below is the live one
            try:
                await self.coordinator.refresh()
            except (InvalidToken, httpx.HTTPError) as e:
                logger.info("refresh before logout failed: %s", e.__class__.__name__)

        refresh_token = self.storage.refresh_token
        try:
            if refresh_token:
                r = await self.http.post("/auth/logout", json={"refresh_token": refresh_token})
                if r.is_error:
                    logger.warning("logout rejected with status %s", r.status_code)
        except httpx.HTTPError as e:
            logger.warning("logout call failed: %s", e.__class__.__name__)
        finally:
            self.coordinator.end_session()

    async def _refresh_call(self, refresh_token: str) -> TokenPairData:
        r = await self.http.post("/auth/refresh", json={"refresh_token": refresh_token})
        if r.status_code == 401:
            body = r.json()
            detail = body.get("detail", "invalid refresh token")
            if body.get("code") == InactivityTimeout.code:
                raise InactivityTimeout(detail)
            raise InvalidToken(detail)
        r.raise_for_status()
        return TokenPairData.from_json(r.json())

    async def _send(self, method: str, url: str, token: str, **kwargs: Any) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        headers["authorization"] = f"bearer {token}"
        return await self.http.request(method, url, headers=headers, **kwargs)

    async def request(
        self, method: str, url: str, *, user_initiated: bool = True, **kwargs: Any
    ) -> httpx.Response:
        if user_initiated:
            self.coordinator.note_activity()

        token = await self.coordinator.get_token()
        r = await self._send(method, url, token, **kwargs)
        if r.status_code != 401:
            return r

        # rejected although it looked fresh locally (clock skew, server restart)
        token = await self.coordinator.refresh(stale_token=token)
        return await self._send(method, url, token, **kwargs)

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def patch(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PATCH", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", url, **kwargs)
