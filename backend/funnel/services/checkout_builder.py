"""Checkout Session request builder.

WHAT: Turns the delivery-details form plus the attributed affiliate into the
      parameters for ``stripe.checkout.Session.create``
WHY: The same metadata bag must land on the session, the subscription (or
     payment intent) and the invoice so reporting can join them

Affiliate priority (first non-blank wins):
    1. ``affiliate`` field posted by the form
    2. Affiliate the attribution middleware attached to this request
    3. ``aff`` cookie
    4. empty string
"""

from typing import Any, Optional

from ..deps import Settings
from ..schemas import CheckoutSessionRequest


def resolve_affiliate(*candidates: Optional[str]) -> str:
    """Return the first non-blank candidate, normalised to lowercase.

    Candidates are passed in priority order; ``None`` and whitespace-only
    values are skipped.
    """
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip().lower()
    return ""


def build_metadata(form: CheckoutSessionRequest, affiliate: str) -> dict[str, str]:
    """Flat string metadata shared by every Stripe object of one checkout."""
    return {
        "affiliate": affiliate,
        "name": form.name,
        "email": form.email,
        "phone": form.phone,
        "address_line1": form.address1,
        "address_line2": form.address2,
        "postal_code": form.postal_code,
    }


def clamp_quantity(requested: Optional[int], settings: Settings) -> int:
    if requested is None:
        return settings.QUANTITY_MIN
    return max(settings.QUANTITY_MIN, min(settings.QUANTITY_MAX, requested))


def build_line_item(settings: Settings, quantity: int) -> dict[str, Any]:
    price_data: dict[str, Any] = {
        "currency": settings.CURRENCY,
        "unit_amount": settings.UNIT_AMOUNT,
        "product_data": {
            "name": settings.PRODUCT_NAME,
            "description": settings.PRODUCT_DESCRIPTION,
        },
    }
    if settings.CHECKOUT_MODE == "subscription":
        price_data["recurring"] = {"interval": settings.RECURRING_INTERVAL}

    line_item: dict[str, Any] = {"price_data": price_data, "quantity": quantity}
    if settings.ADJUSTABLE_QUANTITY:
        line_item["adjustable_quantity"] = {
            "enabled": True,
            "minimum": settings.QUANTITY_MIN,
            "maximum": settings.QUANTITY_MAX,
        }
    return line_item


def build_session_params(
    settings: Settings,
    form: CheckoutSessionRequest,
    affiliate: str,
    base_url: str,
) -> dict[str, Any]:
    """Assemble the Checkout Session creation parameters.

    Args:
        settings: Application settings (mode, price, quantity bounds)
        form: Customer details posted by the delivery-details page
        affiliate: Resolved affiliate slug (may be empty)
        base_url: ``scheme://host`` of the current request, used for redirects

    Returns:
        Keyword arguments for ``stripe.checkout.Session.create``
    """
    metadata = build_metadata(form, affiliate)
    base_url = base_url.rstrip("/")

    params: dict[str, Any] = {
        "mode": settings.CHECKOUT_MODE,
        "payment_method_types": ["card"],
        "line_items": [build_line_item(settings, clamp_quantity(form.quantity, settings))],
        "metadata": metadata,
        "success_url": f"{base_url}/success.html",
        "cancel_url": f"{base_url}/cancel.html",
    }

    if settings.CHECKOUT_MODE == "subscription":
        # Subscription invoices are tagged later by the invoice.created webhook
        params["subscription_data"] = {"metadata": dict(metadata)}
    else:
        params["payment_intent_data"] = {"metadata": dict(metadata)}
        params["invoice_creation"] = {
            "enabled": True,
            "invoice_data": {"metadata": dict(metadata)},
        }

    if form.email:
        params["customer_email"] = form.email

    return params
