"""Dependency providers and settings management."""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from fastapi import Request
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .attribution.context import AttributionContext
from .services.stripe_gateway import StripeGateway

REPO_ROOT = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    """Application settings loaded from environment or .env."""

    STRIPE_SECRET_KEY: str
    STRIPE_WEBHOOK_SECRET: str
    PORT: int = 8000

    # Apex domain without "www." or protocol
    PRIMARY_DOMAIN: str = "myndmatterspack.com"
    AFFILIATE_COOKIE_NAME: str = "aff"
    AFFILIATE_COOKIE_MAX_AGE_DAYS: int = 90

    # Product configuration
    CHECKOUT_MODE: Literal["subscription", "payment"] = "subscription"
    CURRENCY: str = "sgd"
    UNIT_AMOUNT: int = 25800  # minor units, S$258.00
    RECURRING_INTERVAL: Literal["day", "week", "month", "year"] = "month"
    PRODUCT_NAME: str = "The MYND Matters Pack"
    PRODUCT_DESCRIPTION: str = "Monthly subscription for the MYND Matters Programme"
    ADJUSTABLE_QUANTITY: bool = False
    QUANTITY_MIN: int = 1
    QUANTITY_MAX: int = 10

    STATIC_DIR: Path = REPO_ROOT / "public"

    SENTRY_DSN: Optional[str] = None
    ENVIRONMENT: str = "development"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @model_validator(mode="after")
    def _check_quantity_bounds(self) -> "Settings":
        if self.QUANTITY_MIN < 1 or self.QUANTITY_MIN > self.QUANTITY_MAX:
            raise ValueError("QUANTITY_MIN must be >= 1 and <= QUANTITY_MAX")
        return self

    @property
    def canonical_host(self) -> str:
        return f"www.{self.PRIMARY_DOMAIN}"

    @property
    def cookie_domain(self) -> str:
        # Leading dot shares the cookie across apex and www
        return f".{self.PRIMARY_DOMAIN}"

    @property
    def cookie_max_age(self) -> int:
        return self.AFFILIATE_COOKIE_MAX_AGE_DAYS * 24 * 60 * 60


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()  # type: ignore[call-arg]


def get_app_settings(request: Request) -> Settings:
    """Settings the running application was built with."""
    return request.app.state.settings


def get_stripe_gateway(request: Request) -> StripeGateway:
    """Shared Stripe gateway created at application start-up."""
    return request.app.state.stripe_gateway


def get_attribution(request: Request) -> AttributionContext:
    """Attribution context attached by the attribution middleware.

    Empty when the middleware is not installed (e.g. a bare router mounted
    in tests); the checkout route then falls back to the cookie itself.
    """
    return request.scope.get(AttributionContext.SCOPE_KEY) or AttributionContext()
