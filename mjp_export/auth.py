"""
Authentication module: reuse a saved portal session or let the user log in
by hand, then persist the session.

MJP logins go through BundID / ELSTER certificates, which cannot be
scripted. The batch therefore only ever runs against an already
authenticated session: either restored from session.json or established
manually in the opened (headed) browser window.
"""

import os
import logging
from playwright.sync_api import Page, BrowserContext

from mjp_export.utils import get_session_path, capture_diagnostics

logger = logging.getLogger("mjp_export")

WAIT_STRATEGY = "domcontentloaded"
NAV_TIMEOUT = 60_000

# URL fragments that mean "not logged in"
_LOGIN_MARKERS = ("login", "anmeld", "/auth", "bundid", "elster")


def _on_login_page(url: str) -> bool:
    lower = url.lower()
    return any(marker in lower for marker in _LOGIN_MARKERS)


def is_session_valid(context: BrowserContext, portal_url: str) -> bool:
    """
    Check if a saved session is still valid by opening the portal and
    polling the URL until the SPA finishes routing.
    """
    if not os.path.exists(get_session_path()):
        logger.info("No saved session found.")
        return False

    page = context.pages[0] if context.pages else context.new_page()
    logger.info("Checking if saved session is still valid...")

    try:
        page.goto(portal_url, wait_until=WAIT_STRATEGY, timeout=NAV_TIMEOUT)

        # The SPA may briefly route through its login page
        for i in range(15):
            page.wait_for_timeout(1000)
            logger.debug(f"  Session check {i+1}s: {page.url}")
            if not _on_login_page(page.url) and "#/" in page.url:
                logger.info(f"Session is valid — landed on: {page.url}")
                return True

        logger.info(f"Session expired — final URL: {page.url}")
        return False
    except Exception as e:
        logger.warning(f"Session check failed: {e}")
        return False


def login(page: Page, portal_url: str) -> None:
    """Open the portal and wait for the user to finish logging in by hand."""
    logger.info("Starting manual login flow...")
    page.goto(portal_url, wait_until=WAIT_STRATEGY, timeout=NAV_TIMEOUT)

    print("\n" + "=" * 60)
    print("  MEIN JUSTIZPOSTFACH LOGIN")
    print("=" * 60)
    print("  Log in in the opened browser window.")
    print("  When your inbox is visible, press Enter here.")
    print("=" * 60)
    input("\n  Press Enter to continue...")

    if _on_login_page(page.url):
        capture_diagnostics(page, "login_failed")
        raise RuntimeError(
            f"Login failed — still on a login page: {page.url}. "
            f"Run again and complete the login before pressing Enter."
        )
    logger.info(f"Login successful! Landed on: {page.url}")


def save_session(context: BrowserContext) -> None:
    """Save browser session (cookies + localStorage) to session.json."""
    session_path = get_session_path()
    context.storage_state(path=session_path)
    logger.info(f"Session saved to: {session_path}")


def authenticate(context: BrowserContext, portal_url: str) -> Page:
    """
    Full auth flow:
    - Try to restore saved session
    - If expired, let the user log in manually
    - Save session for future runs
    Returns the authenticated page.
    """
    if is_session_valid(context, portal_url):
        return context.pages[0]

    for p in context.pages:
        p.close()
    page = context.new_page()
    login(page, portal_url)
    save_session(context)
    return page
