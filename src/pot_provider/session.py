"""Session token management: cache lookup and token generation."""

from datetime import datetime, timedelta
from typing import Any, Callable, Mapping

from pot_provider.cache import DEFAULT_TTL, TokenCache
from pot_provider.config import Config
from pot_provider.dispatcher import Dispatcher, build_dispatcher, resolve_proxy
from pot_provider.errors import (
    ChallengeError,
    IdentifierGenerationError,
    InvalidTokenError,
    TokenGenerationError,
)
from pot_provider.fetcher import RetryingFetcher
from pot_provider.logging import get_logger, truncate_token
from pot_provider.models import SessionToken, utc_now
from pot_provider.solver import (
    DEFAULT_REQUEST_KEY,
    ChallengeRequest,
    ChallengeSolver,
    ExecutionContext,
)
from pot_provider.visitor import InnertubeVisitorSource, VisitorIdentifierSource

logger = get_logger("session")

DispatcherFactory = Callable[[str | None, str | None, bool], Dispatcher | None]


class SessionManager:
    """Issues tokens per content binding, serving fresh ones from cache.

    Concurrent misses for the same binding each generate a token; the last
    one to finish is what stays cached.
    """

    def __init__(
        self,
        solver: ChallengeSolver,
        visitor_source: VisitorIdentifierSource | None = None,
        *,
        token_ttl: timedelta = DEFAULT_TTL,
        request_key: str = DEFAULT_REQUEST_KEY,
        fetcher: RetryingFetcher | None = None,
        dispatcher_factory: DispatcherFactory = build_dispatcher,
        clock: Callable[[], datetime] = utc_now,
        environ: Mapping[str, str] | None = None,
        initial_cache: Mapping[str, SessionToken | dict[str, Any]] | None = None,
    ):
        self._solver = solver
        self._visitor_source = visitor_source or InnertubeVisitorSource()
        self._cache = TokenCache(ttl=token_ttl, clock=clock)
        self._request_key = request_key
        self._fetcher = fetcher or RetryingFetcher()
        self._dispatcher_factory = dispatcher_factory
        self._environ = environ
        if initial_cache:
            self.set_cache(initial_cache)

    @classmethod
    def from_config(
        cls,
        config: Config,
        solver: ChallengeSolver,
        visitor_source: VisitorIdentifierSource | None = None,
        **kwargs,
    ) -> "SessionManager":
        fetcher = RetryingFetcher(
            max_attempts=config.fetch.max_attempts,
            retry_delay=config.fetch.retry_delay_seconds,
            timeout=config.fetch.timeout_seconds,
        )
        return cls(
            solver,
            visitor_source,
            token_ttl=timedelta(hours=config.token_ttl_hours),
            request_key=config.request_key,
            fetcher=fetcher,
            **kwargs,
        )

    @property
    def token_ttl(self) -> timedelta:
        return self._cache.ttl

    # Maintenance operations

    def invalidate_all(self) -> None:
        self._cache.invalidate_all()
        logger.info("Token cache invalidated")

    def cleanup(self) -> int:
        removed = self._cache.cleanup()
        if removed:
            logger.debug("Removed %d expired tokens", removed)
        return removed

    def get_cache_snapshot(self, cleanup: bool = False) -> dict[str, SessionToken]:
        return self._cache.snapshot(cleanup=cleanup)

    def set_cache(self, entries: Mapping[str, SessionToken | dict[str, Any]]) -> None:
        """Replace the cache, e.g. with a snapshot saved before a restart.

        Raises:
            ValueError: If an entry cannot be read as a SessionToken, carries an
                empty token, or is filed under a key other than its content binding.
        """
        restored = {}
        for key, value in (entries or {}).items():
            session = value if isinstance(value, SessionToken) else SessionToken.from_dict(value)
            if not isinstance(session.token, str) or not session.token:
                raise ValueError(f"Cache entry {key!r} has no token")
            if session.content_binding != key:
                raise ValueError(
                    f"Cache entry {key!r} is bound to {session.content_binding!r}"
                )
            restored[key] = session
        self._cache.replace(restored)

    # Token generation

    async def _resolve_binding(self, content_binding: str | None) -> str:
        if content_binding:
            return content_binding

        logger.info("No content binding provided, generating visitor data")
        try:
            visitor_data = await self._visitor_source.generate()
        except IdentifierGenerationError:
            raise
        except Exception as e:
            raise IdentifierGenerationError(f"Unable to generate visitor data: {e}") from e
        if not visitor_data:
            raise IdentifierGenerationError("Unable to generate visitor data")
        return visitor_data

    async def request_token(
        self,
        content_binding: str | None = None,
        proxy: str | None = None,
        bypass_cache: bool = False,
        source_address: str | None = None,
        disable_tls_verification: bool = False,
    ) -> SessionToken:
        """Return a fresh token for the binding, generating one on a cache miss.

        Raises:
            IdentifierGenerationError: No binding given and none could be minted.
            ChallengeError: The solver could not produce a challenge.
            TokenGenerationError: The solver could not produce a token.
            InvalidTokenError: The solver produced an empty token.
        """
        binding = await self._resolve_binding(content_binding)

        self.cleanup()
        if not bypass_cache:
            cached = self._cache.get(binding)
            if cached is not None:
                logger.info("Token for %s still fresh, returning cached token", binding)
                return cached

        logger.info("Generating token for %s", binding)

        dispatcher = self._dispatcher_factory(
            resolve_proxy(proxy, self._environ),
            source_address,
            disable_tls_verification,
        )
        context = ExecutionContext(identifier=binding, dispatcher=dispatcher)
        try:
            token = await self._generate(binding, context)
        finally:
            context.close()
            if dispatcher is not None:
                await dispatcher.aclose()

        session = self._cache.put(binding, token)
        logger.info("Generated token %s for %s", truncate_token(token), binding)
        return session

    async def _generate(self, binding: str, context: ExecutionContext) -> str:
        request = ChallengeRequest(
            identifier=binding,
            request_key=self._request_key,
            fetch=self._fetcher.transport_for(context.dispatcher),
            context=context,
        )

        try:
            challenge = await self._solver.create_challenge(request)
        except Exception as e:
            raise ChallengeError(f"Error while attempting to retrieve challenge: {e!r}") from e
        if challenge is None:
            raise ChallengeError("Could not get challenge")

        try:
            token = await self._solver.generate_token(challenge, request)
        except Exception as e:
            raise TokenGenerationError(f"Error while trying to generate token: {e!r}") from e

        if not token:
            raise InvalidTokenError("Solver reported success but returned no token")
        return token
