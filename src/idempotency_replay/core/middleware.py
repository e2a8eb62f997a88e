"""Framework-agnostic entry point of the idempotency replay engine.

``IdempotencyMiddleware`` binds a cache store, a configuration and an
optional credential extractor, and runs each request through the state
machine. It returns a ``StateResult``; rendering rejections is left to the
calling layer (see ``adapters.asgi`` for the HTTP rendering).

Examples:
    Using the middleware directly::

        from idempotency_replay.config import IdempotencyConfig
        from idempotency_replay.core.middleware import IdempotencyMiddleware
        from idempotency_replay.core.replay import ReplayedResponse, Request
        from idempotency_replay.storage.memory import MemoryCacheStore

        middleware = IdempotencyMiddleware(MemoryCacheStore(), IdempotencyConfig())

        async def handler(request: Request) -> ReplayedResponse:
            return ReplayedResponse(status=201, headers={}, body=b"created")

        result = await middleware.process(request, handler)
        response = result.raise_for_error()
"""

from collections.abc import Callable

from idempotency_replay.config import IdempotencyConfig
from idempotency_replay.core.replay import Request
from idempotency_replay.core.state_machine import Handler, StateResult, process_request
from idempotency_replay.keys import derive_cache_key, extract_bearer_token
from idempotency_replay.storage.base import CacheStore

CredentialExtractor = Callable[[Request], str | None]


def bearer_credential(request: Request) -> str | None:
    """Default credential extractor: the request's bearer token."""
    return extract_bearer_token(request.headers)


class IdempotencyMiddleware:
    """Framework-agnostic idempotency middleware.

    Attributes:
        store: Cache store for idempotency records
        config: Configuration object
        credential_extractor: Returns the caller's credential, used to scope
            cache keys per tenant
    """

    def __init__(
        self,
        store: CacheStore,
        config: IdempotencyConfig | None = None,
        credential_extractor: CredentialExtractor | None = None,
    ) -> None:
        """Initialize the middleware.

        Args:
            store: Cache store for idempotency records
            config: Configuration object (uses defaults if not provided)
            credential_extractor: Custom credential extraction; defaults to
                the bearer token from the Authorization header
        """
        self.store = store
        self.config = config or IdempotencyConfig()
        self.credential_extractor = credential_extractor or bearer_credential

    async def process(self, request: Request, handler: Handler) -> StateResult:
        """Process a request with idempotency handling.

        Args:
            request: The incoming request
            handler: Async function executing the real operation

        Returns:
            StateResult holding the response to emit or the rejection

        Raises:
            StorageError: If the cache store fails
        """
        return await process_request(
            store=self.store,
            config=self.config,
            request=request,
            handler=handler,
            cache_key_for=lambda key: self.cache_key(request, key),
        )

    def cache_key(self, request: Request, key: str) -> str:
        """Derive the cache key for a validated idempotency key."""
        return derive_cache_key(key, self.credential_extractor(request))
