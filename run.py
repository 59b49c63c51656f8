#!/usr/bin/env python3
"""Etsy Listing Builder - start the local app and open it in the browser."""

import sys
import threading
import webbrowser

import uvicorn

from listing_builder.config import settings

# Colors for output
RED = "\033[0;31m"
GREEN = "\033[0;32m"
BLUE = "\033[0;34m"
YELLOW = "\033[1;33m"
NC = "\033[0m"  # No Color


def check_configuration() -> bool:
    """Warn about settings the Etsy consent screen will reject."""
    ok = True
    if not settings.etsy_client_id:
        print(f"{RED}ETSY_CLIENT_ID is not set. Add your app keystring to .env.{NC}")
        ok = False
    if not settings.redirect_uri.endswith("/"):
        print(
            f"{YELLOW}Warning: REDIRECT_URI has no trailing slash. It must match the "
            f"Callback URL registered with Etsy exactly.{NC}"
        )
    return ok


def open_login_page(base_url: str) -> None:
    """Open the login redirect once the server has had a moment to start."""
    timer = threading.Timer(1.5, webbrowser.open, args=(f"{base_url}/auth/login",))
    timer.daemon = True
    timer.start()


def main() -> int:
    base_url = f"http://{settings.host}:{settings.port}"
    print(f"{BLUE}Etsy Listing Builder{NC}")

    if not check_configuration():
        return 1

    print(f"{GREEN}Serving on {base_url} (callback: {settings.redirect_uri}){NC}")
    open_login_page(base_url)
    uvicorn.run(
        "listing_builder.api.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print(f"\n{YELLOW}Interrupted by user{NC}")
        sys.exit(0)
