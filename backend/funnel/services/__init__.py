"""Stripe-facing services: gateway, checkout builder, webhook reconciler."""
