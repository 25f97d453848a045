"""
Sentry Error Tracking
=====================

Centralized error tracking for the funnel server.

Related files:
- funnel/main.py: Initializes Sentry in create_app
- funnel/routers/checkout.py: Reports Stripe checkout failures
- funnel/services/webhook_reconciler.py: Reports swallowed webhook faults

Environment Variables:
- SENTRY_DSN: Sentry project DSN (Sentry stays disabled without it)
- ENVIRONMENT: Environment name (production, staging, development)
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

if TYPE_CHECKING:
    from funnel.deps import Settings

logger = logging.getLogger(__name__)


def init_sentry(settings: "Settings") -> bool:
    """
    Initialize Sentry SDK for FastAPI.

    Should be called once during application startup.

    Returns:
        True if Sentry was initialized, False when no DSN is configured
        or initialization failed.
    """
    if not settings.SENTRY_DSN:
        return False

    try:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT,
            integrations=[
                FastApiIntegration(transaction_style="endpoint"),
                LoggingIntegration(
                    level=logging.INFO,        # Capture INFO+ as breadcrumbs
                    event_level=logging.ERROR,  # Send ERROR+ as events
                ),
            ],
            traces_sample_rate=0.1,
            # Checkout metadata carries names and addresses
            send_default_pii=False,
            release=os.environ.get("RELEASE_VERSION"),
        )
        logger.debug(f"[SENTRY] Initialized for {settings.ENVIRONMENT} environment")
        return True
    except Exception as e:
        logger.error(f"[SENTRY] Failed to initialize: {e}")
        return False


def capture_exception(exception: Exception, extra: Optional[dict] = None) -> None:
    """
    Capture a handled exception to Sentry.

    Use this for exceptions that are caught and turned into a response
    but should still be tracked.

    Example:
        try:
            await gateway.update_invoice_metadata(invoice_id, merged)
        except Exception as e:
            capture_exception(e, extra={"invoice_id": invoice_id})
    """
    if not sentry_sdk.is_initialized():
        return

    try:
        with sentry_sdk.new_scope() as scope:
            for key, value in (extra or {}).items():
                scope.set_extra(key, value)
            sentry_sdk.capture_exception(exception)
    except Exception as e:
        logger.error(f"[SENTRY] Failed to capture exception: {e}")
