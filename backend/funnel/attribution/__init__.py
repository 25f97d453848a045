"""
Affiliate Attribution
=====================

Path-based affiliate capture for the marketing site.

Visitors arrive on ``https://myndmatterspack.com/<slug>``. The slug is stored
in the ``aff`` cookie (shared by apex and www) and the visitor is bounced to
the home page on the canonical host. Checkout later reads the cookie back.

Components:
- slugs.py: decides whether a path's first segment is an affiliate slug
- context.py: request-scoped attribution value handed to route handlers
- middleware.py: HTTPS / slug / canonical-host redirects
"""

from .context import AttributionContext
from .slugs import RESERVED_PATHS, STATIC_EXTENSIONS, SlugClassification, classify_path

__all__ = [
    "AttributionContext",
    "RESERVED_PATHS",
    "STATIC_EXTENSIONS",
    "SlugClassification",
    "classify_path",
]
