"""Request-scoped attribution state.

WHAT: Typed value the attribution middleware stores in the ASGI scope, plus
      the encoding used for the ``aff`` cookie value
WHY: Route handlers read attribution through a dependency instead of
     ad hoc attributes bolted onto the request object

The cookie value is the percent-encoded slug, so any slug survives the cookie
header unquoted and client script can read it back with decodeURIComponent.
"""

from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import quote, unquote


def encode_affiliate_cookie(slug: str) -> str:
    return quote(slug, safe="")


def decode_affiliate_cookie(value: Optional[str]) -> Optional[str]:
    """Slug stored in an ``aff`` cookie value, or None when blank."""
    if not value:
        return None
    return unquote(value).strip() or None


@dataclass(frozen=True)
class AttributionContext:
    """Affiliate the attribution middleware attached to the current request.

    Attributes:
        affiliate: Decoded slug from the attribution cookie, if the browser sent one
    """

    SCOPE_KEY = "funnel.attribution"

    affiliate: Optional[str] = None

    @classmethod
    def from_cookies(cls, cookies: Mapping[str, str], cookie_name: str) -> "AttributionContext":
        return cls(affiliate=decode_affiliate_cookie(cookies.get(cookie_name)))
