"""
Single-flight access-token refresh for the async client.

Any number of coroutines may ask for a token at once. When the stored
access token is stale exactly one refresh call goes out; every caller that
arrives while it is running awaits the same future and sees the same new
token or the same exception. A failed refresh tears the session down once.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import timedelta
from enum import Enum

from taskdesk.client.storage import TokenPairData, TokenStorage
from taskdesk.errors import InactivityTimeout, InvalidToken

logger = logging.getLogger(__name__)

RefreshFn = Callable[[str], Awaitable[TokenPairData]]
LogoutListener = Callable[[BaseException], None]

class CoordinatorState(str, Enum):
    idle = "idle"
    refreshing = "refreshing"
    failed = "failed"

def _consume_exception(fut: asyncio.Future) -> None:
    # waiters may all have gone away; keep asyncio from warning about it
    if not fut.cancelled():
        fut.exception()

class RefreshCoordinator:
    def __init__(
        self,
        storage: TokenStorage,
        refresh_fn: RefreshFn,
        *,
        inactivity_window: timedelta = timedelta(minutes=30),
        skew_seconds: float = 0.0,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage
        self._refresh_fn = refresh_fn
        self.inactivity_window = inactivity_window
        self.skew_seconds = skew_seconds
        self._clock = clock

        self.state = CoordinatorState.idle
        self.failure: BaseException | None = None
        self._inflight: asyncio.Future | None = None
        self._task: asyncio.Task | None = None
        self._last_activity = clock()
        self._logout_listeners: list[LogoutListener] = []

    def on_logout(self, listener: LogoutListener) -> None:
        self._logout_listeners.append(listener)

    def note_activity(self) -> None:
        self._last_activity = self._clock()

    def is_user_active(self) -> bool:
        return self._clock() - self._last_activity <= self.inactivity_window.total_seconds()

    def start_session(self, pair: TokenPairData) -> None:
        """Install a freshly issued pair, e.g. after login."""
        self.storage.save(pair)
        self.state = CoordinatorState.idle
        self.failure = None
        self.note_activity()

    def end_session(self, reason: BaseException | None = None) -> None:
        self._teardown(reason or InvalidToken("logged out"))

    async def get_token(self) -> str:
        if self.state is CoordinatorState.failed:
            raise self.failure  # type: ignore[misc]
        if self.state is CoordinatorState.idle and self.storage.access_is_fresh(self.skew_seconds):
            return self.storage.access_token  # type: ignore[return-value]
        return await self.refresh()

    async def refresh(self, stale_token: str | None = None) -> str:
        """
        Start a refresh, or join the one already in flight.

        stale_token is the access token a request was rejected with. When a
        newer token has already replaced it, that token is returned and no
        refresh call is made.
        """
        if self.state is CoordinatorState.failed:
            raise self.failure  # type: ignore[misc]

        if self._inflight is None:
            current = self.storage.access_token
            if stale_token is not None and current is not None and current != stale_token:
                return current

            loop = asyncio.get_running_loop()
            fut = loop.create_future()
            fut.add_done_callback(_consume_exception)
            self._inflight = fut
            self.state = CoordinatorState.refreshing
            # own task: a waiter giving up must not abort the refresh
            self._task = loop.create_task(self._run(fut))

        return await asyncio.shield(self._inflight)

    async def _run(self, fut: asyncio.Future) -> None:
        refresh_token = self.storage.refresh_token
        try:
            if not refresh_token:
                raise InvalidToken("no refresh token")
            # checked before the network call, not raced against it
            if not self.is_user_active():
                raise InactivityTimeout()
            pair = await self._refresh_fn(refresh_token)
        except asyncio.CancelledError:
            self._inflight = None
            if not fut.done():
                fut.cancel()
            raise
        except Exception as exc:
            logger.warning("token refresh failed: %s", exc.__class__.__name__)
            self._teardown(exc)
            if not fut.done():
                fut.set_exception(exc)
        else:
            if self.state is CoordinatorState.failed:
                # logged out while the call was in flight; drop the new pair
                if not fut.done():
                    fut.set_exception(self.failure)  # type: ignore[arg-type]
                return
            self.storage.save(pair)
            self.state = CoordinatorState.idle
            self._inflight = None
            if not fut.done():
                fut.set_result(pair.access_token)

    def _teardown(self, exc: BaseException) -> None:
        if self.state is CoordinatorState.failed:
            return

        self.state = CoordinatorState.failed
        self.failure = exc
        self._inflight = None
        self.storage.clear()

        logger.info("session ended: %s", exc)
        for listener in list(self._logout_listeners):
            try:
                listener(exc)
            except Exception:
                logger.exception("logout listener failed")
