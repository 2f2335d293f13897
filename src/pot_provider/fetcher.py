"""Bounded-retry HTTP POST used as the solver's transport."""

import asyncio
from typing import Any, Awaitable, Callable

import httpx

from pot_provider.dispatcher import Dispatcher
from pot_provider.errors import TransportError
from pot_provider.logging import get_logger

logger = get_logger("fetcher")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY_SECONDS = 5.0
DEFAULT_TIMEOUT_SECONDS = 30.0

Transport = Callable[[str, dict[str, Any]], Awaitable["FetchResponse"]]

# Everything client.post raises for a request that never produced a response.
# InvalidURL, CookieConflict and StreamError sit outside httpx.HTTPError, and
# TypeError/ValueError come from encoding a json body.
_SEND_ERRORS = (
    httpx.HTTPError,
    httpx.InvalidURL,
    httpx.CookieConflict,
    httpx.StreamError,
    TypeError,
    ValueError,
)


class FetchResponse:
    """Response handed back to the solver.

    The payload is only parsed when json() is awaited.
    """

    def __init__(
        self,
        ok: bool,
        status: int | str | None = None,
        load: Callable[[], Any] | None = None,
    ):
        self.ok = ok
        self.status = status
        self._load = load

    async def json(self) -> Any:
        if self._load is None:
            return None
        return self._load()

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> "FetchResponse":
        def load() -> Any:
            return response.json() if response.content else None

        return cls(ok=response.is_success, status=response.status_code, load=load)

    @classmethod
    def failure(cls, status: int | str | None) -> "FetchResponse":
        return cls(ok=False, status=status)

    def __repr__(self) -> str:
        return f"FetchResponse(ok={self.ok}, status={self.status!r})"


class RetryingFetcher:
    """POSTs through a dispatcher, retrying transport failures a fixed number of times."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._sleep = sleep

    async def _send(
        self,
        client: httpx.AsyncClient,
        url: str,
        body: Any,
        headers: dict[str, str] | None,
    ) -> httpx.Response:
        if body is None or isinstance(body, (str, bytes)):
            kwargs = {"content": body}
        else:
            kwargs = {"json": body}
        try:
            return await client.post(url, headers=headers, timeout=self.timeout, **kwargs)
        except _SEND_ERRORS as e:
            # HTTP statuses only come from completed responses, see FetchResponse.from_httpx
            raise TransportError(f"POST {url} failed: {e!r}", status=type(e).__name__) from e

    async def _attempt(
        self,
        url: str,
        body: Any,
        headers: dict[str, str] | None,
        dispatcher: Dispatcher | None,
    ) -> httpx.Response:
        if dispatcher is not None:
            return await self._send(dispatcher.client, url, body, headers)
        async with httpx.AsyncClient(trust_env=False) as client:
            return await self._send(client, url, body, headers)

    async def post(
        self,
        url: str,
        body: Any = None,
        headers: dict[str, str] | None = None,
        dispatcher: Dispatcher | None = None,
    ) -> FetchResponse:
        """POST with retries. Transport failures end in an ok=False response, never an exception."""
        last_status: int | str | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                response = await self._attempt(url, body, headers, dispatcher)
            except TransportError as e:
                last_status = e.status
                if attempt >= self.max_attempts:
                    logger.warning(
                        "Giving up on %s after %d attempts: %s", url, attempt, e.message
                    )
                    break
                logger.debug(
                    "Attempt %d/%d failed, retrying in %ss: %s",
                    attempt, self.max_attempts, self.retry_delay, e.message,
                )
                await self._sleep(self.retry_delay)
                continue
            return FetchResponse.from_httpx(response)

        return FetchResponse.failure(last_status)

    async def fetch(
        self,
        url: str,
        options: dict[str, Any] | None = None,
        dispatcher: Dispatcher | None = None,
    ) -> FetchResponse:
        """Solver-facing form: fetch(url, {"body": ..., "headers": ...})."""
        options = options or {}
        return await self.post(url, options.get("body"), options.get("headers"), dispatcher)

    def transport_for(self, dispatcher: Dispatcher | None) -> Transport:
        """Bind a dispatcher, returning the callable the solver calls."""

        async def transport(url: str, options: dict[str, Any] | None = None) -> FetchResponse:
            return await self.fetch(url, options, dispatcher)

        return transport
