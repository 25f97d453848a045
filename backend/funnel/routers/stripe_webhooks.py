"""Stripe webhook endpoint.

WHAT: Receives Stripe events and hands verified ones to the reconciler
WHY: Subscriptions and invoices are created by Stripe after the customer
     leaves our site; their metadata is fixed up here

Security:
    - The raw, unparsed body is verified against STRIPE_WEBHOOK_SECRET with
      the Stripe SDK before anything in it is trusted
    - Verification failures answer 400 and nothing is processed

Acknowledgment:
    - Every verified event answers 200, even when handling fails, so Stripe
      does not redeliver it forever (see dispatch_event)

REFERENCES:
    - funnel/services/webhook_reconciler.py
    - https://docs.stripe.com/webhooks#verify-events
"""

import json
import logging

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request, status

from .. import schemas
from ..services.stripe_gateway import StripeGateway
from ..services.webhook_reconciler import dispatch_event
from ..deps import get_stripe_gateway

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "stripe-signature"

router = APIRouter(
    prefix="/stripe",
    tags=["Webhooks"],
)


@router.post(
    "/webhook",
    response_model=schemas.WebhookResponse,
    summary="Stripe webhook handler",
    description="""
    Receives and processes Stripe webhook events.

    Handled events:
        - checkout.session.completed: copy session metadata to the subscription
        - invoice.created: merge invoice, subscription and customer metadata onto the invoice
        - invoice.payment_succeeded: logged

    Responses:
        - 200 for every event whose signature verifies
        - 400 when the signature or payload is invalid
    """,
    responses={400: {"model": schemas.ErrorResponse, "description": "Invalid signature or payload"}},
)
async def handle_stripe_webhook(
    request: Request,
    gateway: StripeGateway = Depends(get_stripe_gateway),
):
    """Verify and process a Stripe webhook delivery."""
    # Raw body: any re-serialisation would break the signature
    body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)

    try:
        gateway.verify_webhook(body, signature)
    except stripe.SignatureVerificationError as e:
        logger.warning(f"[STRIPE_WEBHOOK] Signature verification failed: {e.user_message or e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook signature"
        )
    except ValueError as e:
        logger.warning(f"[STRIPE_WEBHOOK] Invalid payload: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook payload"
        )

    # Work on the raw JSON, not the SDK's event object
    event = json.loads(body)
    event_type = event.get("type", "unknown")
    logger.info(f"[STRIPE_WEBHOOK] Received {event_type} ({event.get('id')})")

    action = await dispatch_event(event, gateway)
    return schemas.WebhookResponse(event_type=event_type, action=action)
