"""App access token cache for the provider's own API.

The token moves through three states: absent (never fetched or
invalidated), valid until a deadline, and expired. Time comes from an
injected clock so expiry can be tested without sleeping.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from enum import Enum

# Refresh this many seconds before the provider-reported expiry
REFRESH_MARGIN_SECONDS = 600.0

TokenFetcher = Callable[[], Awaitable[tuple[str, float]]]


class TokenState(str, Enum):
    ABSENT = "absent"
    VALID = "valid"
    EXPIRED = "expired"


class AppAccessToken:
    """Caches a client-credentials token and refreshes it when expired.

    Args:
        fetch: Coroutine returning ``(access_token, expires_in_seconds)``.
        clock: Monotonic time source in seconds.
        refresh_margin: Seconds subtracted from ``expires_in``.
    """

    def __init__(
        self,
        fetch: TokenFetcher,
        clock: Callable[[], float] = time.monotonic,
        refresh_margin: float = REFRESH_MARGIN_SECONDS,
    ) -> None:
        self._fetch = fetch
        self._clock = clock
        self._refresh_margin = refresh_margin
        self._token: str | None = None
        self._valid_until: float | None = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> TokenState:
        if self._token is None or self._valid_until is None:
            return TokenState.ABSENT
        if self._clock() < self._valid_until:
            return TokenState.VALID
        return TokenState.EXPIRED

    async def get(self) -> str:
        """Return a usable token, fetching a new one unless the cached one is valid."""
        if self.state is TokenState.VALID:
            return self._token  # type: ignore[return-value]

        async with self._lock:
            # Another task may have refreshed while we waited
            if self.state is TokenState.VALID:
                return self._token  # type: ignore[return-value]
            token, expires_in = await self._fetch()
            self._token = token
            self._valid_until = self._clock() + max(expires_in - self._refresh_margin, 0.0)
            return token

    def invalidate(self) -> None:
        """Drop the cached token, e.g. after the API rejects it."""
        self._token = None
        self._valid_until = None
