"""Stripe API gateway.

WHAT: Thin async wrapper around the Stripe SDK calls the funnel needs
WHY: One place that holds the API key and turns SDK calls into awaitables,
     so routes and the webhook reconciler can be tested with a fake

All request-making calls use the SDK's ``*_async`` variants (httpx transport),
so a slow Stripe response never blocks other requests on the event loop.

REFERENCES:
    - https://docs.stripe.com/api/checkout/sessions/create
    - https://docs.stripe.com/webhooks#verify-events
"""

import logging
from typing import Any, Optional

import stripe

logger = logging.getLogger(__name__)


class StripeGateway:
    """Stripe calls scoped to one API key."""

    def __init__(self, api_key: str, webhook_secret: str):
        self._api_key = api_key
        self._webhook_secret = webhook_secret

    async def create_checkout_session(self, params: dict[str, Any]) -> Any:
        return await stripe.checkout.Session.create_async(api_key=self._api_key, **params)

    async def retrieve_subscription(self, subscription_id: str) -> Any:
        return await stripe.Subscription.retrieve_async(subscription_id, api_key=self._api_key)

    async def update_subscription_metadata(self, subscription_id: str, metadata: dict[str, str]) -> Any:
        return await stripe.Subscription.modify_async(
            subscription_id, api_key=self._api_key, metadata=metadata
        )

    async def retrieve_customer(self, customer_id: str) -> Any:
        return await stripe.Customer.retrieve_async(customer_id, api_key=self._api_key)

    async def update_invoice_metadata(self, invoice_id: str, metadata: dict[str, str]) -> Any:
        return await stripe.Invoice.modify_async(invoice_id, api_key=self._api_key, metadata=metadata)

    def verify_webhook(self, payload: bytes, signature_header: Optional[str]) -> None:
        """Verify a webhook delivery against the signing secret.

        Raises:
            stripe.SignatureVerificationError: signature missing, stale or wrong
            ValueError: payload is not valid JSON
        """
        if not signature_header:
            raise stripe.SignatureVerificationError("Missing Stripe-Signature header", signature_header, payload)
        stripe.Webhook.construct_event(payload, signature_header, self._webhook_secret)
