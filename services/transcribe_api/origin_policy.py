"""Transcript Relay - Cross-origin policy.

Requests without an Origin header are server-to-server calls and pass
untouched. Browser origins must match an allow-list entry exactly. A
mismatched origin is handed straight to the application, so its response
(preflight included) carries no Access-Control-* headers at all and the
browser rejects it. Preflights on every path use the same rule.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence

from starlette.datastructures import Headers
from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send

ALLOWED_METHODS = ("GET", "POST", "OPTIONS")
ALLOWED_HEADERS = ("Content-Type", "Authorization", "X-Requested-With")
PREFLIGHT_MAX_AGE_SECONDS = 86400


def is_origin_allowed(origin: str | None, allowed_origins: Collection[str]) -> bool:
    """Exact-match origin check. No wildcard or pattern matching."""
    if origin is None:
        return True
    return origin in allowed_origins


class OriginPolicyMiddleware(CORSMiddleware):
    """CORSMiddleware restricted to exact allow-list matching.

    Allowed origins are echoed back with credentials permitted and
    Vary: Origin, so shared caches never reuse one origin's grant for another.
    """

    def __init__(self, app: ASGIApp, allowed_origins: Sequence[str] = ()) -> None:
        if "*" in allowed_origins:
            raise ValueError("Wildcard origins are not supported with credentials")
        super().__init__(
            app,
            allow_origins=list(allowed_origins),
            allow_methods=list(ALLOWED_METHODS),
            allow_headers=list(ALLOWED_HEADERS),
            allow_credentials=True,
            max_age=PREFLIGHT_MAX_AGE_SECONDS,
        )
        self.allowed_origins = frozenset(allowed_origins)

    def is_allowed_origin(self, origin: str) -> bool:
        return is_origin_allowed(origin, self.allowed_origins)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            origin = Headers(scope=scope).get("origin")
            if origin is not None and not self.is_allowed_origin(origin):
                # No grant of any kind: skip the CORS layer entirely
                await self.app(scope, receive, send)
                return
        await super().__call__(scope, receive, send)
