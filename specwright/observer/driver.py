"""Observation driver: login, navigate, open the sub-section, then snapshot."""

from __future__ import annotations

import logging
import time
from enum import Enum

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from specwright.errors import (
    AuthenticationFailure,
    NavigationFailure,
    ObservationInsufficient,
    SynthesisError,
)
from specwright.models.config import ExecutionConfig
from specwright.models.intent import Intent
from specwright.models.observation import Observation
from specwright.observer.auth import perform_login, requires_login
from specwright.observer.element_inventory import aria_snapshot, collect_inventory
from specwright.observer.section_activator import activate_section
from specwright.observer.session import Session
from specwright.url_utils import same_location

logger = logging.getLogger(__name__)


class DriverState(str, Enum):
    IDLE = "idle"
    AUTHENTICATING = "authenticating"
    NAVIGATING = "navigating"
    SECTION_ACTIVATING = "section_activating"
    OBSERVING = "observing"
    CLOSED = "closed"
    FAILED = "failed"


_TRANSITIONS: dict[DriverState, tuple[DriverState, ...]] = {
    DriverState.IDLE: (DriverState.AUTHENTICATING, DriverState.NAVIGATING),
    DriverState.AUTHENTICATING: (DriverState.NAVIGATING,),
    DriverState.NAVIGATING: (DriverState.SECTION_ACTIVATING,),
    DriverState.SECTION_ACTIVATING: (DriverState.OBSERVING,),
    DriverState.OBSERVING: (DriverState.CLOSED,),
}


class ObservationDriver:
    """Walks one browser session through the observation states."""

    def __init__(self, config: ExecutionConfig):
        self.config = config
        self.state = DriverState.IDLE
        self.history: list[DriverState] = [DriverState.IDLE]

    def _transition(self, new_state: DriverState) -> None:
        if new_state not in (DriverState.FAILED, DriverState.CLOSED):
            allowed = _TRANSITIONS.get(self.state, ())
            if new_state not in allowed:
                raise RuntimeError(f"Illegal driver transition {self.state.value} -> {new_state.value}")
        logger.debug("Driver: %s -> %s", self.state.value, new_state.value)
        self.state = new_state
        self.history.append(new_state)

    async def observe(self, session: Session, intent: Intent) -> Observation:
        """Run all stages and return the observation; may mutate ``intent.actions``."""
        try:
            page = session.page or await session.open()
        except PlaywrightError as e:
            self._transition(DriverState.FAILED)
            raise NavigationFailure(
                f"Could not start the browser: {e}", {"state": DriverState.IDLE.value},
            ) from e

        try:
            if requires_login(intent.context, self.config):
                await self._authenticate(page)
            else:
                logger.info("Context '%s' does not require login", intent.context)

            self._transition(DriverState.NAVIGATING)
            await self._navigate(page, self.config.route_for(intent.context))

            self._transition(DriverState.SECTION_ACTIVATING)
            await activate_section(page, intent)

            self._transition(DriverState.OBSERVING)
            observation = await self._observe(page, intent.context)
        except SynthesisError:
            self._transition(DriverState.FAILED)
            raise
        except PlaywrightError as e:
            diagnostics = await self._diagnostics(page)
            self._transition(DriverState.FAILED)
            raise NavigationFailure(f"Browser error while {diagnostics['state']}: {e}", diagnostics) from e
        return observation

    async def close(self, session: Session) -> None:
        await session.close()
        if self.state != DriverState.FAILED:
            self._transition(DriverState.CLOSED)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _authenticate(self, page: Page) -> None:
        self._transition(DriverState.AUTHENTICATING)
        result = await perform_login(page, self.config)
        if not result.success:
            diagnostics = await self._diagnostics(page)
            diagnostics["element_count"] = result.element_count
            raise AuthenticationFailure(result.error or "Login failed", diagnostics)

    async def _navigate(self, page: Page, target: str) -> None:
        if same_location(page.url, target):
            logger.info("Already at %s", target)
            return

        browser_cfg = self.config.browser
        last_error = None
        for attempt in range(browser_cfg.navigation_retries + 1):
            try:
                resp = await page.goto(target, wait_until="domcontentloaded",
                                       timeout=browser_cfg.navigation_timeout_ms)
                if resp and resp.status >= 400:
                    logger.warning("HTTP %d for %s", resp.status, target)
                try:
                    await page.wait_for_load_state("networkidle", timeout=browser_cfg.idle_timeout_ms)
                except Exception:
                    await page.wait_for_timeout(2000)
                logger.info("Navigated to %s", page.url)
                return
            except Exception as e:
                last_error = e
                if attempt < browser_cfg.navigation_retries:
                    logger.debug("Retry %d for %s: %s", attempt + 1, target, e)

        diagnostics = await self._diagnostics(page)
        diagnostics["target"] = target
        raise NavigationFailure(f"Could not load {target}: {last_error}", diagnostics)

    async def _observe(self, page: Page, context: str) -> Observation:
        start = time.time()
        elements, interactive, stable = await collect_inventory(page)
        if interactive == 0 and stable == 0:
            diagnostics = await self._diagnostics(page)
            raise ObservationInsufficient("Page has no addressable elements", diagnostics)

        observation = Observation(
            context=context,
            url=page.url,
            title=await self._title(page),
            elements=elements,
            accessibility_snapshot=await aria_snapshot(page),
            interactive_count=interactive,
        )
        logger.info("Observed %d stable elements (%d interactive) on %s in %.1fs",
                    stable, interactive, observation.url, time.time() - start)
        return observation

    @staticmethod
    async def _title(page: Page) -> str:
        try:
            return await page.title()
        except Exception:
            return ""

    async def _diagnostics(self, page: Page) -> dict:
        _, interactive, stable = await collect_inventory(page)
        return {
            "url": page.url,
            "title": await self._title(page),
            "state": self.state.value,
            "interactive_count": interactive,
            "stable_count": stable,
        }
