"""Request and response schemas for the funnel API."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CheckoutSessionRequest(BaseModel):
    """Customer details posted by the delivery-details page."""

    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "name": "Tan Wei Ling",
                "email": "weiling@example.com",
                "phone": "+65 9123 4567",
                "address1": "10 Anson Road",
                "address2": "#12-01",
                "postalCode": "079903",
                "affiliate": "partnerxyz",
            }
        },
    )

    name: str = Field(default="", description="Customer full name")
    email: str = Field(default="", description="Customer email, prefilled on Stripe Checkout")
    phone: str = Field(default="", description="Contact number")
    address1: str = Field(default="", description="Delivery address line 1")
    address2: str = Field(default="", description="Delivery address line 2")
    postal_code: str = Field(default="", alias="postalCode", description="Delivery postal code")
    affiliate: Optional[str] = Field(
        default=None,
        description="Affiliate slug from the hidden form field; overrides the aff cookie",
    )
    quantity: Optional[int] = Field(default=None, description="Requested quantity, clamped to configured bounds")


class CheckoutSessionResponse(BaseModel):
    """Hosted checkout URL the browser is sent to."""

    url: str = Field(description="Stripe Checkout URL")


class CheckoutErrorResponse(BaseModel):
    """Generic checkout failure, never includes provider detail."""

    error: str = Field(default="Unable to create checkout session")


class WebhookResponse(BaseModel):
    """Acknowledgment returned to Stripe for every verified event."""

    received: bool = True
    event_type: str = Field(description="Stripe event type")
    action: str = Field(description="processed, skipped, acknowledged, ignored or error")


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str = Field(description="Error message")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service status", examples=["ok"])
