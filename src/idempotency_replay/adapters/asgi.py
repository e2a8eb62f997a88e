"""ASGI middleware adapter for FastAPI and Starlette applications.

The adapter:
1. Converts the Starlette request to the engine's Request
2. Runs it through IdempotencyMiddleware, with the rest of the ASGI app as
   the handler
3. Renders the StateResult: responses are rebuilt with every header value
   preserved; rejections become ``{"message": "..."}`` JSON responses with
   the rejection's status (400, or 409 while the key is in progress)

Examples:
    FastAPI integration::

        from fastapi import FastAPI
        from idempotency_replay.adapters.asgi import ASGIIdempotencyMiddleware
        from idempotency_replay.config import IdempotencyConfig
        from idempotency_replay.storage.memory import MemoryCacheStore

        app = FastAPI()
        app.add_middleware(
            ASGIIdempotencyMiddleware,
            store=MemoryCacheStore(),
            config=IdempotencyConfig(),
        )

    Starlette integration::

        from starlette.applications import Starlette
        from starlette.middleware import Middleware

        app = Starlette(
            middleware=[Middleware(ASGIIdempotencyMiddleware, store=store)],
        )
"""

from collections.abc import Awaitable, Callable
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request as StarletteRequest
from starlette.responses import JSONResponse, Response

from idempotency_replay.config import IdempotencyConfig
from idempotency_replay.core.middleware import CredentialExtractor, IdempotencyMiddleware
from idempotency_replay.core.replay import ReplayedResponse, Request
from idempotency_replay.core.state_machine import StateResult
from idempotency_replay.storage.base import CacheStore
from idempotency_replay.utils.headers import group_header_items


class ASGIIdempotencyMiddleware(BaseHTTPMiddleware):
    """ASGI middleware for idempotency handling.

    Attributes:
        middleware: Core middleware instance
    """

    def __init__(
        self,
        app: Any,
        store: CacheStore,
        config: IdempotencyConfig | None = None,
        credential_extractor: CredentialExtractor | None = None,
    ) -> None:
        """Initialize the ASGI middleware.

        Args:
            app: The ASGI application
            store: Cache store for idempotency records
            config: Configuration object (uses defaults if not provided)
            credential_extractor: Custom credential extraction for cache keys
        """
        super().__init__(app)
        self.middleware = IdempotencyMiddleware(store, config, credential_extractor)

    async def dispatch(
        self,
        request: StarletteRequest,
        call_next: Callable[[StarletteRequest], Awaitable[Response]],
    ) -> Response:
        """Process an ASGI request with idempotency handling.

        Args:
            request: The Starlette request object
            call_next: Function to call the next middleware/handler

        Returns:
            Starlette Response object
        """
        internal_request = await self._convert_request(request)

        async def handler(_req: Request) -> ReplayedResponse:
            response = await call_next(request)

            body = b""
            if hasattr(response, "body_iterator"):
                async for chunk in response.body_iterator:
                    body += chunk.encode("utf-8") if isinstance(chunk, str) else bytes(chunk)
            else:
                body = bytes(response.body)

            return ReplayedResponse(
                status=response.status_code,
                headers=group_header_items(response.headers.items()),
                body=body,
            )

        result = await self.middleware.process(internal_request, handler)

        return self._convert_result(result)

    async def _convert_request(self, request: StarletteRequest) -> Request:
        """Convert a Starlette request to the internal Request format."""
        body = await request.body()

        return Request(
            method=request.method,
            path=request.url.path,
            headers=dict(request.headers.items()),
            body=body,
        )

    def _convert_result(self, result: StateResult) -> Response:
        """Render a StateResult as a Starlette response."""
        if result.error is not None:
            return JSONResponse(
                status_code=result.error.status_code,
                content={"message": result.error.message},
            )

        assert result.response is not None
        return self._convert_response(result.response)

    def _convert_response(self, response: ReplayedResponse) -> Response:
        """Convert an internal response to a Starlette Response.

        Content-Length is recomputed from the body; every other header value
        is appended in order so repeated headers survive.
        """
        starlette_response = Response(content=response.body, status_code=response.status)

        for name, values in response.headers.items():
            if name.lower() == "content-length":
                continue
            for value in values:
                starlette_response.headers.append(name, value)

        return starlette_response
