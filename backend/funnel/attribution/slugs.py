"""Affiliate slug classification.

WHAT: Decides whether the first path segment of a GET is an affiliate slug
WHY: Assets and site pages must never be captured as slugs, while any other
     segment (``/partnerxyz``) is treated as a referral link

Rules, in order:
    1. Take the first non-empty path segment, lowercased
    2. No segment (site root) -> not a slug
    3. First or last segment ends in a static-file extension -> not a slug
    4. Segment is reserved (site pages, asset folders, API routes) -> not a slug
    5. Anything else -> slug
"""

import re
from dataclasses import dataclass
from typing import AbstractSet, Literal, Optional

# Site pages, asset folders and application routes
RESERVED_PATHS: frozenset[str] = frozenset({
    "index.html",
    "success.html",
    "cancel.html",
    "checkout.html",
    "delivery-details.html",
    "script.js",
    "checkout.js",
    "style.css",
    "images",
    "img",
    "assets",
    "static",
    "fonts",
    "css",
    "js",
    "favicon.ico",
    "robots.txt",
    "sitemap.xml",
    "create-checkout-session",
    "stripe",
    "health",
    "docs",
    "redoc",
    "openapi.json",
})

STATIC_EXTENSIONS: frozenset[str] = frozenset({
    # styles & scripts
    "css", "js", "mjs", "map",
    # images
    "png", "jpg", "jpeg", "gif", "svg", "webp", "avif", "ico", "bmp",
    # fonts
    "woff", "woff2", "ttf", "otf", "eot",
    # media
    "mp4", "webm", "mov", "mp3", "wav", "ogg",
    # documents
    "html", "htm", "pdf", "txt", "xml", "json", "webmanifest",
})

SlugKind = Literal["root", "asset", "reserved", "slug"]


@dataclass(frozen=True)
class SlugClassification:
    """Outcome of classifying a request path."""

    kind: SlugKind
    slug: Optional[str] = None

    @property
    def is_slug(self) -> bool:
        return self.kind == "slug"


def _extension_pattern(extensions: AbstractSet[str]) -> re.Pattern:
    alternatives = "|".join(sorted(re.escape(ext) for ext in extensions))
    return re.compile(rf"\.(?:{alternatives})$", re.IGNORECASE)


_DEFAULT_EXTENSION_RE = _extension_pattern(STATIC_EXTENSIONS)


def classify_path(
    path: str,
    reserved: AbstractSet[str] = RESERVED_PATHS,
    extensions: AbstractSet[str] = STATIC_EXTENSIONS,
) -> SlugClassification:
    """Classify a request path as root, asset, reserved page or affiliate slug.

    Args:
        path: URL path of the request (no query string)
        reserved: Lowercase first segments that are never slugs
        extensions: File extensions (without dot) that mark static assets

    Returns:
        SlugClassification with ``slug`` set only when ``kind == "slug"``
    """
    segments = [segment for segment in path.split("/") if segment]
    if not segments:
        return SlugClassification(kind="root")

    first = segments[0].lower()

    if extensions is STATIC_EXTENSIONS:
        extension_re = _DEFAULT_EXTENSION_RE
    else:
        extension_re = _extension_pattern(extensions)
    if extension_re.search(first) or extension_re.search(segments[-1]):
        return SlugClassification(kind="asset")

    if first in reserved:
        return SlugClassification(kind="reserved")

    return SlugClassification(kind="slug", slug=first)
