"""
Middleware components for request processing.

This package contains middleware for:
- Request context (request ID bound into log context)
- Site-wide shared-secret access gate
- Cross-origin isolation response headers
"""

from mediacal.middleware.cross_origin_isolation import CrossOriginIsolationMiddleware
from mediacal.middleware.request_context import RequestContextMiddleware
from mediacal.middleware.site_access import SiteAccessMiddleware

__all__ = [
    "CrossOriginIsolationMiddleware",
    "RequestContextMiddleware",
    "SiteAccessMiddleware",
]
