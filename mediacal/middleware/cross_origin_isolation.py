"""
Cross-Origin Isolation Middleware.

Adds COOP/COEP headers so the page is cross-origin isolated, which
SharedArrayBuffer-based client-side audio extraction needs. Isolation
blocks embedding cross-origin iframes (YouTube) that do not opt in, so it
is off unless ENABLE_CROSS_ORIGIN_ISOLATION is set.
"""

from starlette.middleware.base import BaseHTTPMiddleware

ISOLATION_HEADERS = {
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Embedder-Policy": "require-corp",
}


class CrossOriginIsolationMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        response = await call_next(request)
        for name, value in ISOLATION_HEADERS.items():
            response.headers[name] = value
        return response
