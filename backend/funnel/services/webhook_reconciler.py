"""Stripe webhook reconciliation.

WHAT: Copies checkout metadata (affiliate, customer fields) onto the Stripe
      objects created after the browser left: subscriptions and invoices
WHY: Metadata set on a Checkout Session does not reliably carry over to every
     related object, and reporting joins on it

EVENTS HANDLED:
    - checkout.session.completed: session metadata -> subscription
    - invoice.created: invoice + subscription + customer metadata -> invoice
    - invoice.payment_succeeded: logged only
    - anything else: ignored

The entry point ``dispatch_event`` is the error boundary: a verified event is
always acknowledged, handler faults are logged and reported to Sentry.
"""

import logging
from typing import Any, Mapping, Optional

from ..telemetry.sentry import capture_exception
from .stripe_gateway import StripeGateway

logger = logging.getLogger(__name__)


def _metadata_of(obj: Any) -> dict[str, str]:
    """Plain dict copy of a Stripe object's metadata (empty when absent)."""
    if not obj:
        return {}
    metadata = obj.get("metadata")
    return dict(metadata) if metadata else {}


def merge_invoice_metadata(
    invoice_metadata: Mapping[str, str],
    subscription_metadata: Mapping[str, str],
    customer_metadata: Mapping[str, str],
) -> dict[str, str]:
    """Merge metadata for an invoice.

    Subscription values override existing invoice values; customer values only
    fill keys that neither of the other two carry.
    """
    merged = dict(customer_metadata)
    merged.update(invoice_metadata)
    merged.update(subscription_metadata)
    return merged


def _invoice_subscription_id(invoice: Mapping[str, Any]) -> Optional[str]:
    """Subscription id of an invoice across Stripe API versions."""
    subscription = invoice.get("subscription")
    if not subscription:
        parent = invoice.get("parent") or {}
        subscription = (parent.get("subscription_details") or {}).get("subscription")
    if isinstance(subscription, Mapping):
        subscription = subscription.get("id")
    return subscription or None


def _object_id(value: Any) -> Optional[str]:
    if isinstance(value, Mapping):
        return value.get("id")
    return value or None


async def handle_checkout_session_completed(session: Mapping[str, Any], gateway: StripeGateway) -> str:
    """Propagate session metadata onto the subscription it created."""
    if session.get("mode") != "subscription":
        logger.info(f"[STRIPE_WEBHOOK] Session {session.get('id')} is one-time, nothing to propagate")
        return "skipped"

    subscription_id = _object_id(session.get("subscription"))
    metadata = _metadata_of(session)
    if not subscription_id or not metadata:
        logger.info(
            f"[STRIPE_WEBHOOK] Session {session.get('id')} has no subscription or metadata to propagate"
        )
        return "skipped"

    await gateway.update_subscription_metadata(subscription_id, metadata)
    logger.info(
        f"[STRIPE_WEBHOOK] Copied session {session.get('id')} metadata to subscription {subscription_id} "
        f"(affiliate={metadata.get('affiliate', '')!r})"
    )
    return "processed"


async def handle_invoice_created(invoice: Mapping[str, Any], gateway: StripeGateway) -> str:
    """Tag a new invoice with its subscription's and customer's metadata."""
    invoice_id = invoice.get("id")
    subscription_id = _invoice_subscription_id(invoice)
    customer_id = _object_id(invoice.get("customer"))

    subscription_metadata: dict[str, str] = {}
    if subscription_id:
        subscription = await gateway.retrieve_subscription(subscription_id)
        subscription_metadata = _metadata_of(subscription)

    customer_metadata: dict[str, str] = {}
    if customer_id:
        customer = await gateway.retrieve_customer(customer_id)
        customer_metadata = _metadata_of(customer)

    merged = merge_invoice_metadata(_metadata_of(invoice), subscription_metadata, customer_metadata)
    if not merged:
        logger.info(f"[STRIPE_WEBHOOK] Invoice {invoice_id} has no metadata to apply")
        return "skipped"

    await gateway.update_invoice_metadata(invoice_id, merged)
    logger.info(
        f"[STRIPE_WEBHOOK] Invoice {invoice_id} tagged from subscription={subscription_id} customer={customer_id}"
    )
    return "processed"


async def process_event(event: Mapping[str, Any], gateway: StripeGateway) -> str:
    """Route a verified event to its handler and return the action taken."""
    event_type = event.get("type", "unknown")
    data_object = (event.get("data") or {}).get("object") or {}

    if event_type == "checkout.session.completed":
        return await handle_checkout_session_completed(data_object, gateway)
    elif event_type == "invoice.created":
        return await handle_invoice_created(data_object, gateway)
    elif event_type == "invoice.payment_succeeded":
        logger.info(
            f"[STRIPE_WEBHOOK] Invoice {data_object.get('id')} paid "
            f"(affiliate={_metadata_of(data_object).get('affiliate', '')!r})"
        )
        return "acknowledged"
    else:
        logger.info(f"[STRIPE_WEBHOOK] Unhandled event type: {event_type}")
        return "ignored"


async def dispatch_event(event: Mapping[str, Any], gateway: StripeGateway) -> str:
    """Process a verified event, never raising.

    Stripe retries any delivery that is not acknowledged with a 2xx, and a
    retry cannot fix a fault in our own handling, so failures are reported
    and turned into the ``error`` action instead.
    """
    event_type = event.get("type", "unknown")
    try:
        return await process_event(event, gateway)
    except Exception as e:
        logger.exception(f"[STRIPE_WEBHOOK] Failed to process {event_type} event {event.get('id')}")
        capture_exception(e, extra={"event_id": event.get("id"), "event_type": event_type})
        return "error"
