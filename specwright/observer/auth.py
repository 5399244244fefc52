"""Login stage: fills credentials and verifies that the session is authenticated."""

from __future__ import annotations

import logging
from typing import Optional

from playwright.async_api import Page

from specwright.models.config import ExecutionConfig
from specwright.observer.element_inventory import count_addressable
from specwright.url_utils import is_login_location

logger = logging.getLogger(__name__)


class LoginResult:
    """Result of a login attempt."""

    def __init__(
        self,
        success: bool,
        error: Optional[str] = None,
        post_login_url: Optional[str] = None,
        element_count: int = 0,
    ):
        self.success = success
        self.error = error
        self.post_login_url = post_login_url
        self.element_count = element_count


def requires_login(context: str, config: ExecutionConfig) -> bool:
    return context not in config.no_auth_contexts


async def perform_login(page: Page, config: ExecutionConfig) -> LoginResult:
    """Log in through the application's form.

    Success needs both a redirect away from the login page and a page with
    at least ``credentials.min_elements`` addressable elements. A sparse page
    is re-counted once after ``recheck_delay_ms`` before giving up.
    """
    creds = config.credentials
    login_url = config.login_url
    if not creds.email or not creds.password:
        return LoginResult(success=False, error="No credentials configured")

    logger.info("Login: navigating to %s as %s (password=***)", login_url, creds.email)
    try:
        await page.goto(login_url, wait_until="domcontentloaded",
                        timeout=config.browser.navigation_timeout_ms)
        await page.fill(creds.email_selector, creds.email)
        await page.fill(creds.password_selector, creds.password)
        await page.click(creds.submit_selector)
    except Exception as e:
        logger.error("Login form interaction failed: %s", e)
        return LoginResult(success=False, error=f"Login form interaction failed: {e}",
                           post_login_url=page.url)

    try:
        await page.wait_for_url(
            lambda url: not is_login_location(url, login_url),
            timeout=creds.redirect_timeout_ms,
        )
    except Exception:
        logger.warning("Login: still on %s after %dms", page.url, creds.redirect_timeout_ms)
        return LoginResult(success=False, error="No redirect away from the login page",
                           post_login_url=page.url)

    try:
        await page.wait_for_load_state("networkidle", timeout=config.browser.idle_timeout_ms)
    except Exception:
        pass  # long-polling pages never go idle

    if is_login_location(page.url, login_url):
        return LoginResult(success=False, error="Returned to the login page",
                           post_login_url=page.url)

    count = await count_addressable(page)
    if count < creds.min_elements:
        logger.debug("Login: only %d addressable elements, re-checking in %dms",
                     count, creds.recheck_delay_ms)
        await page.wait_for_timeout(creds.recheck_delay_ms)
        count = await count_addressable(page)
        if count < creds.min_elements:
            return LoginResult(
                success=False,
                error=f"Logged-in page too sparse ({count} < {creds.min_elements} elements)",
                post_login_url=page.url,
                element_count=count,
            )

    logger.info("Login successful, landed on %s (%d elements)", page.url, count)
    return LoginResult(success=True, post_login_url=page.url, element_count=count)
