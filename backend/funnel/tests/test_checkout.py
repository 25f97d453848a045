"""Tests for POST /create-checkout-session.

WHAT: Affiliate resolution through the HTTP stack, metadata propagation,
      redirect URLs and failure handling
WHY: The affiliate must survive from the referral link to every Stripe object,
     and Stripe failures must never leak detail to the browser

REFERENCES:
    - funnel/routers/checkout.py
    - funnel/services/checkout_builder.py
"""

import logging
from urllib.parse import unquote

import stripe

PRIMARY_DOMAIN = "myndmatterspack.com"

FORM = {
    "name": "Tan Wei Ling",
    "email": "weiling@example.com",
    "phone": "+65 9123 4567",
    "address1": "10 Anson Road",
    "address2": "#12-01",
    "postalCode": "079903",
}


def _sent_params(stripe_gateway) -> dict:
    stripe_gateway.create_checkout_session.assert_awaited_once()
    return stripe_gateway.create_checkout_session.await_args.args[0]


class TestAffiliateResolution:
    def test_cookie_affiliate_used_when_body_has_none(self, client, stripe_gateway):
        response = client.post(
            "/create-checkout-session", json=FORM, headers={"Cookie": "aff=partnerxyz"}
        )

        assert response.status_code == 200
        params = _sent_params(stripe_gateway)
        assert params["metadata"]["affiliate"] == "partnerxyz"

    def test_body_affiliate_beats_cookie(self, client, stripe_gateway):
        response = client.post(
            "/create-checkout-session",
            json={**FORM, "affiliate": "FormPartner"},
            headers={"Cookie": "aff=cookiepartner"},
        )

        assert response.status_code == 200
        assert _sent_params(stripe_gateway)["metadata"]["affiliate"] == "formpartner"

    def test_blank_body_affiliate_falls_back_to_cookie(self, client, stripe_gateway):
        client.post(
            "/create-checkout-session",
            json={**FORM, "affiliate": "  "},
            headers={"Cookie": "aff=cookiepartner"},
        )

        assert _sent_params(stripe_gateway)["metadata"]["affiliate"] == "cookiepartner"

    def test_no_affiliate_anywhere_gives_empty_string(self, client, stripe_gateway):
        client.post("/create-checkout-session", json=FORM)

        assert _sent_params(stripe_gateway)["metadata"]["affiliate"] == ""


class TestSessionRequest:
    def test_returns_checkout_url(self, client):
        response = client.post("/create-checkout-session", json=FORM)

        assert response.status_code == 200
        assert response.json() == {"url": "https://checkout.stripe.com/c/pay/cs_test_123"}

    def test_metadata_attached_to_session_and_subscription(self, client, stripe_gateway):
        client.post("/create-checkout-session", json=FORM, headers={"Cookie": "aff=partnerxyz"})

        params = _sent_params(stripe_gateway)
        expected = {
            "affiliate": "partnerxyz",
            "name": "Tan Wei Ling",
            "email": "weiling@example.com",
            "phone": "+65 9123 4567",
            "address_line1": "10 Anson Road",
            "address_line2": "#12-01",
            "postal_code": "079903",
        }
        assert params["metadata"] == expected
        assert params["subscription_data"]["metadata"] == expected
        assert params["mode"] == "subscription"
        assert params["customer_email"] == "weiling@example.com"

    def test_configured_price_and_quantity(self, client, stripe_gateway):
        client.post("/create-checkout-session", json=FORM)

        line_item = _sent_params(stripe_gateway)["line_items"][0]
        assert line_item["quantity"] == 1
        assert line_item["price_data"]["unit_amount"] == 25800
        assert line_item["price_data"]["currency"] == "sgd"
        assert line_item["price_data"]["recurring"] == {"interval": "month"}

    def test_redirect_urls_follow_request_host(self, client, stripe_gateway):
        client.post("/create-checkout-session", json=FORM)

        params = _sent_params(stripe_gateway)
        assert params["success_url"] == f"http://www.{PRIMARY_DOMAIN}/success.html"
        assert params["cancel_url"] == f"http://www.{PRIMARY_DOMAIN}/cancel.html"

    def test_redirect_urls_use_forwarded_https_scheme(self, client, stripe_gateway):
        client.post(
            "/create-checkout-session", json=FORM, headers={"X-Forwarded-Proto": "https"}
        )

        assert _sent_params(stripe_gateway)["success_url"] == f"https://www.{PRIMARY_DOMAIN}/success.html"

    def test_empty_body_still_creates_session(self, client, stripe_gateway):
        response = client.post("/create-checkout-session")

        assert response.status_code == 200
        params = _sent_params(stripe_gateway)
        assert params["metadata"]["name"] == ""
        assert "customer_email" not in params


class TestFailures:
    def test_stripe_error_returns_generic_500(self, client, stripe_gateway, caplog):
        stripe_gateway.create_checkout_session.side_effect = stripe.InvalidRequestError(
            "No such price: sk_live_secret_detail", param="line_items", code="resource_missing",
            http_status=400,
        )

        with caplog.at_level(logging.ERROR, logger="funnel.routers.checkout"):
            response = client.post("/create-checkout-session", json=FORM)

        assert response.status_code == 500
        assert response.json() == {"error": "Unable to create checkout session"}
        assert "sk_live" not in response.text
        assert "InvalidRequestError" in caplog.text
        assert "resource_missing" in caplog.text

    def test_network_error_returns_generic_500(self, client, stripe_gateway):
        stripe_gateway.create_checkout_session.side_effect = stripe.APIConnectionError("connection reset")

        response = client.post("/create-checkout-session", json=FORM)

        assert response.status_code == 500
        assert response.json() == {"error": "Unable to create checkout session"}

    def test_unexpected_error_returns_generic_500(self, client, stripe_gateway):
        stripe_gateway.create_checkout_session.side_effect = RuntimeError("boom")

        response = client.post("/create-checkout-session", json=FORM)

        assert response.status_code == 500
        assert response.json() == {"error": "Unable to create checkout session"}


class TestReferralToCheckoutScenario:
    def test_slug_visit_then_checkout_carries_affiliate(self, apex_client, client, stripe_gateway):
        visit = apex_client.get("/partnerxyz", follow_redirects=False)

        assert visit.status_code == 302
        assert visit.headers["location"] == f"https://www.{PRIMARY_DOMAIN}/"
        assert visit.headers["set-cookie"].startswith(f"aff=partnerxyz; Domain=.{PRIMARY_DOMAIN};")

        response = client.post(
            "/create-checkout-session", json=FORM, headers={"Cookie": "aff=partnerxyz"}
        )

        assert response.status_code == 200
        assert _sent_params(stripe_gateway)["metadata"]["affiliate"] == "partnerxyz"


class TestEncodedAffiliateCookie:
    """Slugs that needed encoding reach Stripe metadata as the plain slug."""

    def test_encoded_cookie_is_decoded(self, client, stripe_gateway):
        response = client.post(
            "/create-checkout-session", json=FORM, headers={"Cookie": "aff=partner%20xyz"}
        )

        assert response.status_code == 200
        assert _sent_params(stripe_gateway)["metadata"]["affiliate"] == "partner xyz"

    def test_slug_visit_then_form_post_carries_plain_slug(self, client, stripe_gateway):
        visit = client.get("/caf%C3%A9", follow_redirects=False)
        cookie_value = visit.headers["set-cookie"].split(";", 1)[0].split("=", 1)[1]

        # checkout.js copies decodeURIComponent(cookie) into the affiliate field
        client.post(
            "/create-checkout-session",
            json={**FORM, "affiliate": unquote(cookie_value)},
            headers={"Cookie": f"aff={cookie_value}"},
        )

        assert _sent_params(stripe_gateway)["metadata"]["affiliate"] == "café"


class TestInvalidDetails:
    def test_malformed_json_returns_error_shape(self, client, stripe_gateway):
        response = client.post(
            "/create-checkout-session",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid checkout details"}
        stripe_gateway.create_checkout_session.assert_not_awaited()

    def test_non_integer_quantity_returns_error_shape(self, client, stripe_gateway):
        response = client.post("/create-checkout-session", json={**FORM, "quantity": "lots"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid checkout details"}
        stripe_gateway.create_checkout_session.assert_not_awaited()

    def test_json_null_body_is_an_empty_form(self, client, stripe_gateway):
        response = client.post(
            "/create-checkout-session",
            content=b"null",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 200
        assert _sent_params(stripe_gateway)["metadata"]["name"] == ""
