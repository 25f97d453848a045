"""Pytest configuration for funnel integration tests

WHAT: Provides shared fixtures for HTTP endpoint tests
WHY: Every test gets its own app, settings and a Stripe gateway whose
     network calls are replaced by AsyncMocks (signature checks stay real)
REFERENCES:
    - funnel/main.py: create_app
    - funnel/deps.py: Settings, get_stripe_gateway
    - funnel/services/stripe_gateway.py: StripeGateway
"""

import hashlib
import hmac
import json
import os
import sys
import time
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

# Ensure backend is in path
BACKEND_ROOT = Path(__file__).resolve().parents[2]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

# Set test environment
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_dummy")

PRIMARY_DOMAIN = "myndmatterspack.com"
WEBHOOK_SECRET = "whsec_test_secret"


# ============================================================================
# Settings & Stripe Fixtures
# ============================================================================

@pytest.fixture
def site_dir(tmp_path) -> Path:
    """Minimal static site with a home page and one asset."""
    site = tmp_path / "public"
    site.mkdir()
    (site / "index.html").write_text("<h1>MYND Matters home</h1>")
    (site / "success.html").write_text("<h1>Thank you</h1>")
    (site / "style.css").write_text("body { color: #222; }")
    return site


@pytest.fixture
def settings(site_dir):
    from funnel.deps import Settings

    return Settings(
        STRIPE_SECRET_KEY="sk_test_123",
        STRIPE_WEBHOOK_SECRET=WEBHOOK_SECRET,
        PRIMARY_DOMAIN=PRIMARY_DOMAIN,
        STATIC_DIR=site_dir,
    )


@pytest.fixture
def stripe_gateway(settings):
    """Real gateway (real signature verification) with mocked API calls."""
    from funnel.services.stripe_gateway import StripeGateway

    gateway = StripeGateway(
        api_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
    )
    gateway.create_checkout_session = AsyncMock(
        return_value={"id": "cs_test_123", "url": "https://checkout.stripe.com/c/pay/cs_test_123"}
    )
    gateway.retrieve_subscription = AsyncMock(return_value={"id": "sub_123", "metadata": {}})
    gateway.update_subscription_metadata = AsyncMock(return_value={"id": "sub_123"})
    gateway.retrieve_customer = AsyncMock(return_value={"id": "cus_123", "metadata": {}})
    gateway.update_invoice_metadata = AsyncMock(return_value={"id": "in_123"})
    return gateway


# ============================================================================
# Application & Client Fixtures
# ============================================================================

@pytest.fixture
def app(settings, stripe_gateway):
    """Create FastAPI test application."""
    from funnel.deps import get_stripe_gateway
    from funnel.main import create_app

    test_app = create_app(settings)
    test_app.dependency_overrides[get_stripe_gateway] = lambda: stripe_gateway
    return test_app


@pytest.fixture
def client(app) -> TestClient:
    """Client talking to the canonical www host."""
    return TestClient(app, base_url=f"http://www.{PRIMARY_DOMAIN}")


@pytest.fixture
def apex_client(app) -> TestClient:
    """Client talking to the bare apex domain."""
    return TestClient(app, base_url=f"http://{PRIMARY_DOMAIN}")


# ============================================================================
# Webhook Helpers
# ============================================================================

def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header the way Stripe signs deliveries."""
    timestamp = timestamp or int(time.time())
    signed_payload = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def make_event(event_type: str, data_object: dict, event_id: str = "evt_test_123") -> bytes:
    return json.dumps({
        "id": event_id,
        "object": "event",
        "type": event_type,
        "data": {"object": data_object},
    }).encode("utf-8")


@pytest.fixture
def post_webhook(client):
    """POST a correctly signed Stripe event to /stripe/webhook."""

    def _post(event_type: str, data_object: dict, event_id: str = "evt_test_123"):
        payload = make_event(event_type, data_object, event_id)
        return client.post(
            "/stripe/webhook",
            content=payload,
            headers={"Stripe-Signature": sign_payload(payload), "Content-Type": "application/json"},
        )

    return _post


@pytest.fixture(name="make_event")
def make_event_fixture():
    return make_event


@pytest.fixture(name="sign_payload")
def sign_payload_fixture():
    return sign_payload
