#!/usr/bin/env python3
"""
MYND Matters funnel startup script

Starts the FastAPI server that serves the marketing site and Stripe checkout.
"""

import sys
from pathlib import Path

import uvicorn
from pydantic import ValidationError

from funnel.deps import get_settings


def main():
    """Start the funnel server."""
    env_file = Path(".env")
    if not env_file.exists():
        print("⚠️  WARNING: No .env file found!")
        print("   Create a .env file with these variables:")
        print("   STRIPE_SECRET_KEY=sk_test_...")
        print("   STRIPE_WEBHOOK_SECRET=whsec_...")
        print("")

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"❌ Invalid configuration:\n{e}")
        sys.exit(1)

    print("🚀 Starting MYND Matters funnel server...")
    print(f"   🌐 Site:     http://localhost:{settings.PORT}")
    print(f"   📚 API docs: http://localhost:{settings.PORT}/docs")
    print("")

    try:
        uvicorn.run(
            "funnel.main:create_app",
            factory=True,
            host="0.0.0.0",
            port=settings.PORT,
            proxy_headers=True,
            forwarded_allow_ips="*",
            log_level="info",
        )
    except KeyboardInterrupt:
        print("\n👋 Shutting down funnel server...")


if __name__ == "__main__":
    main()
