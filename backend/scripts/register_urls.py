#!/usr/bin/env python
"""
Register the C2B confirmation and validation URLs with Daraja.

Reads the same environment (or .env) as the server.

Usage:
    python scripts/register_urls.py
"""
import asyncio
import json
import sys

from mpesa_c2b.core.config import get_settings
from mpesa_c2b.services.daraja_auth import AuthClient
from mpesa_c2b.services.errors import GatewayError
from mpesa_c2b.services.register import register_urls


def main() -> int:
    settings = get_settings()
    try:
        data = asyncio.run(register_urls(settings, AuthClient.from_settings(settings)))
    except GatewayError as e:
        print(f"Error: {e.public_message}", file=sys.stderr)
        return 1

    print("=== URLs Registered ===")
    print(f"Short code       : {settings.short_code}")
    print(f"Confirmation URL : {settings.confirmation_url}")
    print(f"Validation URL   : {settings.validation_url}")
    print(json.dumps(data, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
