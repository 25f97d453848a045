"""
Telemetry Module
================

Observability for the funnel server.

Components:
- sentry.py: Error tracking for checkout and webhook failures

Environment Variables:
- SENTRY_DSN: Sentry project DSN
- ENVIRONMENT: Environment name reported with every event

Usage:
    from funnel.telemetry import init_sentry, capture_exception
"""

from funnel.telemetry.sentry import capture_exception, init_sentry

__all__ = [
    "init_sentry",
    "capture_exception",
]
