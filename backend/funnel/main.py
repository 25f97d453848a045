"""FastAPI application entrypoint.

Wires the attribution middleware, the checkout and webhook routers, a
healthcheck, and the static marketing site (mounted last so API routes win).
"""

import logging
from typing import Optional

from fastapi import FastAPI
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from . import schemas
from .attribution.middleware import AttributionMiddleware
from .deps import Settings, get_settings
from .routers import checkout as checkout_router
from .routers import stripe_webhooks as stripe_webhooks_router
from .services.stripe_gateway import StripeGateway
from .static_site import SiteStaticFiles
from .telemetry import init_sentry


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    init_sentry(settings)

    app = FastAPI(
        title="MYND Matters funnel",
        description="""
        Marketing site server for the MYND Matters Pack.

        - Affiliate links (`/<slug>`) set the `aff` cookie and land on the home page
        - `POST /create-checkout-session` starts a Stripe Checkout Session
        - `POST /stripe/webhook` reconciles affiliate metadata onto subscriptions and invoices
        """,
        version="1.0.0",
    )

    # Process-wide configuration, read-only after start-up
    app.state.settings = settings
    app.state.stripe_gateway = StripeGateway(
        api_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
    )

    app.add_middleware(AttributionMiddleware, settings=settings)
    # Added last so it runs first: trust X-Forwarded-Proto/For from the load balancer
    # so request.url.scheme is "https" in production (used for Stripe redirect URLs)
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

    app.include_router(checkout_router.router)
    app.include_router(stripe_webhooks_router.router)

    @app.get(
        "/health",
        response_model=schemas.HealthResponse,
        tags=["Health"],
        summary="Health check",
    )
    def health():
        return schemas.HealthResponse(status="ok")

    # Catch-all: must stay after every API route
    app.mount("/", SiteStaticFiles(directory=settings.STATIC_DIR), name="site")

    logger.info(
        f"[STARTUP] Serving {settings.STATIC_DIR} for {settings.PRIMARY_DOMAIN} "
        f"({settings.CHECKOUT_MODE}, {settings.UNIT_AMOUNT} {settings.CURRENCY.upper()})"
    )
    return app
