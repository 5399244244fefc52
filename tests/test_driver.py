"""Tests for the observation driver state machine."""

from unittest.mock import AsyncMock

import pytest
from playwright.async_api import Error as PlaywrightError

from specwright.errors import AuthenticationFailure, NavigationFailure, ObservationInsufficient
from specwright.models.config import BrowserConfig
from specwright.models.intent import Intent, OrderedAction
from specwright.observer.driver import DriverState, ObservationDriver
from specwright.observer.session import Session

PAST_ORDERS_CONTROL = {"text": "Past Orders", "testid": "past-orders-tab", "active": False}


@pytest.fixture
def session(mock_page) -> Session:
    s = Session(BrowserConfig())
    s.page = mock_page
    return s


def _logged_in(page, url="https://app.example.com/menu"):
    async def _wait_for_url(*args, **kwargs):
        page.url = url
    page.wait_for_url.side_effect = _wait_for_url


def _evaluate(inventory, control=None):
    """Inventory script takes no argument; the section lookup passes its aliases."""
    async def _run(script, *args):
        if args:
            return control
        return inventory
    return _run


class TestObservationDriver:

    @pytest.mark.asyncio
    async def test_home_happy_path(self, execution_config, session, mock_page, make_inventory):
        _logged_in(mock_page)
        mock_page.evaluate.side_effect = _evaluate(
            make_inventory(testids=["add-meal-btn", "order-again-section"], interactive=12)
        )
        mock_page.locator.return_value.aria_snapshot = AsyncMock(return_value='- button "Add meal"')
        driver = ObservationDriver(execution_config)

        observation = await driver.observe(session, Intent(context="home"))
        await driver.close(session)

        assert observation.stable_ids == ["add-meal-btn", "order-again-section"]
        assert observation.interactive_count == 12
        assert observation.title == "Example App"
        assert observation.accessibility_snapshot == '- button "Add meal"'
        assert observation.elements[0].locator_expression == "page.getByTestId('add-meal-btn')"
        assert driver.history == [
            DriverState.IDLE,
            DriverState.AUTHENTICATING,
            DriverState.NAVIGATING,
            DriverState.SECTION_ACTIVATING,
            DriverState.OBSERVING,
            DriverState.CLOSED,
        ]
        # Login already landed on /menu
        assert mock_page.goto.await_count == 1
        assert session.closed is True

    @pytest.mark.asyncio
    async def test_past_orders_activates_section(self, execution_config, session, mock_page, make_inventory):
        _logged_in(mock_page)
        mock_page.evaluate.side_effect = _evaluate(
            make_inventory(testids=["past-orders-tab", "load-more-button"], interactive=20),
            control=PAST_ORDERS_CONTROL,
        )
        intent = Intent(context="pastOrders", actions=[OrderedAction(element="loadMoreButton", order=1)])
        driver = ObservationDriver(execution_config)

        await driver.observe(session, intent)

        assert intent.actions[0].element == "pastOrdersTab"
        assert intent.actions[0].activation is True
        assert mock_page.goto.call_args_list[-1][0][0] == "https://app.example.com/orders"
        mock_page.click.assert_any_await('[data-testid="past-orders-tab"]')

    @pytest.mark.asyncio
    async def test_authentication_failure_carries_diagnostics(
        self, execution_config, session, mock_page, make_inventory,
    ):
        mock_page.wait_for_url.side_effect = TimeoutError("Timeout 100ms exceeded")
        mock_page.evaluate.side_effect = _evaluate(make_inventory(stable=0, interactive=3))
        driver = ObservationDriver(execution_config)

        with pytest.raises(AuthenticationFailure) as exc_info:
            await driver.observe(session, Intent(context="home"))

        diagnostics = exc_info.value.diagnostics
        assert diagnostics["url"] == "https://app.example.com/login"
        assert diagnostics["title"] == "Example App"
        assert diagnostics["state"] == "authenticating"
        assert diagnostics["interactive_count"] == 3
        assert driver.state == DriverState.FAILED
        assert DriverState.NAVIGATING not in driver.history

        await driver.close(session)
        assert driver.state == DriverState.FAILED

    @pytest.mark.asyncio
    async def test_navigation_retries_then_fails(self, execution_config, session, mock_page, make_inventory):
        mock_page.goto.side_effect = Exception("net::ERR_CONNECTION_REFUSED")
        mock_page.evaluate.side_effect = _evaluate(make_inventory())
        driver = ObservationDriver(execution_config)

        with pytest.raises(NavigationFailure) as exc_info:
            await driver.observe(session, Intent(context="signup"))

        assert mock_page.goto.await_count == execution_config.browser.navigation_retries + 1
        assert exc_info.value.diagnostics["target"] == "https://app.example.com/signup"
        assert DriverState.AUTHENTICATING not in driver.history

    @pytest.mark.asyncio
    async def test_empty_page_is_insufficient(self, execution_config, session, mock_page, make_inventory):
        mock_page.evaluate.side_effect = _evaluate(make_inventory(stable=0, interactive=0))
        driver = ObservationDriver(execution_config)

        with pytest.raises(ObservationInsufficient):
            await driver.observe(session, Intent(context="signup"))

        assert driver.history[-2:] == [DriverState.OBSERVING, DriverState.FAILED]

    def test_illegal_transition(self, execution_config):
        driver = ObservationDriver(execution_config)
        with pytest.raises(RuntimeError):
            driver._transition(DriverState.OBSERVING)

    @pytest.mark.asyncio
    async def test_browser_launch_failure_is_navigation_failure(self, execution_config):
        session = Session(BrowserConfig())
        session.open = AsyncMock(side_effect=PlaywrightError("Browser closed"))
        driver = ObservationDriver(execution_config)

        with pytest.raises(NavigationFailure) as exc_info:
            await driver.observe(session, Intent(context="home"))

        assert "Browser closed" in exc_info.value.message
        assert driver.history == [DriverState.IDLE, DriverState.FAILED]

    @pytest.mark.asyncio
    async def test_unexpected_browser_error_is_navigation_failure(
        self, execution_config, session, mock_page, make_inventory,
    ):
        _logged_in(mock_page)
        mock_page.evaluate.side_effect = _evaluate(make_inventory(stable=0, interactive=2))
        mock_page.wait_for_timeout.side_effect = PlaywrightError("Target page, context or browser has been closed")
        driver = ObservationDriver(execution_config)

        with pytest.raises(NavigationFailure) as exc_info:
            await driver.observe(session, Intent(context="home"))

        assert exc_info.value.diagnostics["state"] == "authenticating"
        assert exc_info.value.diagnostics["url"] == "https://app.example.com/menu"
        assert driver.state == DriverState.FAILED
