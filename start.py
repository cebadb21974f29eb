#!/usr/bin/env python3
"""
Startup script for the Directus Slack relay.
"""

import sys

import uvicorn
from pydantic import ValidationError

from app.config import get_settings

if __name__ == "__main__":
    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}", file=sys.stderr)
        sys.exit(1)

    print(f"Starting Directus Slack relay...")
    print(f"Listen: {settings.addr}:{settings.port}")
    print(f"Directus base URL: {settings.directus_base_url}")
    print(f"Log Level: {settings.log_level}")
    print("-" * 50)

    uvicorn.run(
        "app.main:create_app",
        factory=True,
        host=settings.addr,
        port=settings.port,
        log_level=settings.log_level.lower()
    )
