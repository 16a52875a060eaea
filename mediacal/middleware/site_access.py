"""
Site Access Middleware - Optional shared-secret gate for the whole site.

When a secret is configured every request must carry one of:
- Authorization: Basic <base64(user:secret)>   (user is ignored)
- Authorization: Basic <base64(secret)>
- Authorization: Bearer <secret>

Anything else gets 401 with a Basic challenge so browsers show their
password prompt. With no secret configured the middleware is a pass-through.

Usage:
    app.add_middleware(SiteAccessMiddleware, secret=settings.SITE_ACCESS_SECRET)
"""

import base64
import binascii
import secrets

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import PlainTextResponse

from mediacal.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

REALM = "Protected"


def _credential_from_header(header: str | None) -> str | None:
    if not header:
        return None
    scheme, _, value = header.partition(" ")
    scheme = scheme.lower()
    value = value.strip()

    if scheme == "bearer":
        return value or None

    if scheme == "basic":
        try:
            decoded = base64.b64decode(value, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return None
        # user:password, or the bare password
        _, sep, password = decoded.partition(":")
        return password if sep else decoded

    return None


class SiteAccessMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, secret: str | None = None):
        super().__init__(app)
        self.secret = secret
        logger.info("Site access middleware initialized", enabled=bool(secret))

    def is_authorized(self, header: str | None) -> bool:
        if not self.secret:
            return True
        credential = _credential_from_header(header)
        if credential is None:
            return False
        return secrets.compare_digest(credential.encode("utf-8"), self.secret.encode("utf-8"))

    async def dispatch(self, request, call_next):
        if self.is_authorized(request.headers.get("authorization")):
            return await call_next(request)

        logger.warning("Site access denied", path=request.url.path)
        return PlainTextResponse(
            "Authentication required",
            status_code=401,
            headers={"WWW-Authenticate": f'Basic realm="{REALM}"'},
        )
