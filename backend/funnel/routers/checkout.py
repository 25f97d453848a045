"""Stripe Checkout endpoint.

WHAT: Creates a Stripe Checkout Session for the MYND Matters Pack
WHY: The delivery-details page posts the customer's details here and
     redirects the browser to the returned hosted checkout URL

Flow:
    1. Parse the customer details; malformed input answers 400
    2. Resolve the affiliate (form field -> middleware context -> aff cookie)
    3. Build session params with the metadata bag on every related object
    4. Create the session via Stripe, return its URL

Every failure answers with the same ``{"error": ...}`` shape. Stripe and
unexpected failures answer 500 with a generic message; the Stripe error
classification is logged, the raw message and credentials never reach the
client.

REFERENCES:
    - funnel/services/checkout_builder.py
    - https://docs.stripe.com/api/checkout/sessions/create
"""

import json
import logging

import stripe
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from .. import schemas
from ..attribution.context import AttributionContext, decode_affiliate_cookie
from ..deps import Settings, get_app_settings, get_attribution, get_stripe_gateway
from ..services.checkout_builder import build_session_params, resolve_affiliate
from ..services.stripe_gateway import StripeGateway
from ..telemetry.sentry import capture_exception

logger = logging.getLogger(__name__)

INVALID_DETAILS_MESSAGE = "Invalid checkout details"

router = APIRouter(
    tags=["Checkout"],
    responses={
        400: {"model": schemas.CheckoutErrorResponse, "description": "Request body is not valid checkout details"},
        500: {"model": schemas.CheckoutErrorResponse, "description": "Checkout session could not be created"},
    },
)


def _checkout_failed() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=schemas.CheckoutErrorResponse().model_dump(),
    )


def _invalid_details() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=schemas.CheckoutErrorResponse(error=INVALID_DETAILS_MESSAGE).model_dump(),
    )


def parse_checkout_form(body: bytes) -> schemas.CheckoutSessionRequest:
    """Validate a raw JSON body; an empty body or ``null`` is an empty form.

    Raises:
        ValueError: body is not JSON or does not match CheckoutSessionRequest
            (pydantic's ValidationError is a ValueError)
    """
    data = json.loads(body) if body.strip() else None
    if data is None:
        data = {}
    return schemas.CheckoutSessionRequest.model_validate(data)


@router.post(
    "/create-checkout-session",
    response_model=schemas.CheckoutSessionResponse,
    summary="Create checkout session",
    description="""
    Create a Stripe Checkout Session for the configured product.

    The affiliate is taken from the request body when present, otherwise
    from the attribution cookie. The same metadata (affiliate + customer
    details) is attached to the session, the subscription or payment intent,
    and the invoice.
    """,
    openapi_extra={
        "requestBody": {
            "required": False,
            "content": {"application/json": {"schema": schemas.CheckoutSessionRequest.model_json_schema()}},
        }
    },
)
async def create_checkout_session(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    attribution: AttributionContext = Depends(get_attribution),
    gateway: StripeGateway = Depends(get_stripe_gateway),
):
    """Create Stripe Checkout session."""
    # Parsed here so malformed input keeps the {"error"} contract instead of a 422
    try:
        form = parse_checkout_form(await request.body())
    except ValueError as e:
        logger.warning(f"[CHECKOUT] Rejected checkout details: type={type(e).__name__}")
        return _invalid_details()

    affiliate = resolve_affiliate(
        form.affiliate,
        attribution.affiliate,
        decode_affiliate_cookie(request.cookies.get(settings.AFFILIATE_COOKIE_NAME)),
    )
    base_url = f"{request.url.scheme}://{request.url.netloc}"
    params = build_session_params(settings, form, affiliate, base_url)

    try:
        session = await gateway.create_checkout_session(params)
    except stripe.StripeError as e:
        logger.error(
            f"[CHECKOUT] Stripe rejected session creation: type={type(e).__name__} "
            f"code={e.code} http_status={e.http_status}"
        )
        capture_exception(e, extra={"affiliate": affiliate, "stripe_code": e.code})
        return _checkout_failed()
    except Exception as e:
        logger.error(f"[CHECKOUT] Unexpected error creating session: type={type(e).__name__}")
        capture_exception(e, extra={"affiliate": affiliate})
        return _checkout_failed()

    logger.info(f"[CHECKOUT] Created session {session['id']} (affiliate={affiliate!r})")
    return schemas.CheckoutSessionResponse(url=session["url"])
