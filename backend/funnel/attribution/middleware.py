"""Attribution middleware.

WHAT: Enforces HTTPS, captures affiliate slugs into the ``aff`` cookie and
      normalises the apex domain onto ``www``
WHY: Affiliate links look like ``https://myndmatterspack.com/<slug>``; the slug
     must be remembered for checkout and stripped from the visible URL

Per GET request exactly one of these happens, first match wins:
    1. HTTPS redirect (301) when the proxy reports a plaintext request
    2. Slug redirect (302) to the canonical home page, setting the cookie
    3. Canonical redirect (301) from the apex domain to www
    4. Pass-through to routes / static files

Non-GET requests (checkout POSTs, Stripe webhooks) are never redirected.

REFERENCES:
    - funnel/attribution/slugs.py: classify_path
    - funnel/attribution/context.py: AttributionContext
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse

from ..deps import Settings
from .context import AttributionContext, encode_affiliate_cookie
from .slugs import classify_path

logger = logging.getLogger(__name__)

FORWARDED_PROTO_HEADER = "x-forwarded-proto"


def _request_host(request: Request) -> str:
    """Host header without port, lowercased."""
    return request.headers.get("host", "").split(":")[0].strip().lower()


def _original_url(request: Request) -> str:
    """Path plus query string exactly as the client sent it."""
    raw_path = request.scope.get("raw_path")
    path = raw_path.decode("latin-1").split("?", 1)[0] if raw_path else request.url.path
    query = request.url.query
    return f"{path}?{query}" if query else path


class AttributionMiddleware(BaseHTTPMiddleware):
    """Affiliate capture plus HTTPS / canonical host redirects."""

    def __init__(self, app, settings: Settings):
        super().__init__(app)
        self.settings = settings

    async def dispatch(self, request, call_next):
        settings = self.settings
        context = AttributionContext.from_cookies(request.cookies, settings.AFFILIATE_COOKIE_NAME)

        if request.method != "GET":
            request.scope[AttributionContext.SCOPE_KEY] = context
            return await call_next(request)

        host = _request_host(request)

        # 1) HTTPS enforcement behind the load balancer
        forwarded_proto = request.headers.get(FORWARDED_PROTO_HEADER)
        if forwarded_proto and forwarded_proto.split(",")[0].strip().lower() != "https":
            target = f"https://{host}{_original_url(request)}"
            logger.debug(f"[ATTRIBUTION] Plaintext request, redirecting to {target}")
            return RedirectResponse(target, status_code=301)

        # 2) Affiliate slug capture
        classification = classify_path(request.url.path)
        if classification.is_slug:
            slug = classification.slug
            target_host = settings.canonical_host if host == settings.PRIMARY_DOMAIN else host
            response = RedirectResponse(f"https://{target_host}/", status_code=302)
            response.set_cookie(
                settings.AFFILIATE_COOKIE_NAME,
                encode_affiliate_cookie(slug),
                max_age=settings.cookie_max_age,
                domain=settings.cookie_domain,
                secure=True,
                httponly=False,
                samesite="lax",
            )
            logger.info(f"[ATTRIBUTION] Captured affiliate slug '{slug}' on host {host}")
            return response

        # 3) Canonical apex -> www
        if host == settings.PRIMARY_DOMAIN:
            target = f"https://{settings.canonical_host}{_original_url(request)}"
            return RedirectResponse(target, status_code=301)

        request.scope[AttributionContext.SCOPE_KEY] = context
        return await call_next(request)
