"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Optional
from unittest.mock import AsyncMock

import pytest
from playwright.async_api import Page

from specwright.errors import PublishFailure
from specwright.hosting.github_hosting import RepoFile
from specwright.miner.miner import static_knowledge_base
from specwright.models.config import (
    AIConfig,
    CredentialsConfig,
    ExecutionConfig,
    HostingConfig,
)
from specwright.models.intent import AcceptanceCriteria, Assertion, Intent, OrderedAction
from specwright.models.observation import KnowledgeBase, Observation, ObservedElement


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def credentials_config() -> CredentialsConfig:
    """Credentials with a short re-check so tests stay fast."""
    return CredentialsConfig(
        email="qa.user@example.com",
        password="s3cret",
        min_elements=5,
        recheck_delay_ms=10,
        redirect_timeout_ms=100,
    )


@pytest.fixture
def hosting_config() -> HostingConfig:
    return HostingConfig(
        token="ghp_test",
        repository="acme/e2e-tests",
        spec_dir="tests/specs",
        page_object_dir="tests/pages",
    )


@pytest.fixture
def execution_config(
    credentials_config: CredentialsConfig,
    hosting_config: HostingConfig,
    tmp_path: Path,
) -> ExecutionConfig:
    """Create a test execution configuration."""
    return ExecutionConfig(
        base_url="https://app.example.com",
        credentials=credentials_config,
        hosting=hosting_config,
        ai=AIConfig(enabled=False),
        run_deadline_seconds=60,
        deadline_margin_seconds=5,
        miner_timeout_seconds=0.5,
        output_dir=str(tmp_path / "runs"),
    )


# ============================================================================
# Browser Fixtures
# ============================================================================


@pytest.fixture
def mock_page() -> AsyncMock:
    """Create a mock Playwright page."""
    page = AsyncMock(spec=Page)
    page.url = "https://app.example.com/login"
    page.title.return_value = "Example App"
    page.goto.return_value = None
    return page


def _inventory(stable: int = 0, interactive: int = 0, testids: Optional[list[str]] = None) -> dict:
    ids = testids if testids is not None else [f"el-{i}" for i in range(stable)]
    return {
        "stable": [{"testid": t, "tag": "button", "text": t.replace("-", " ")} for t in ids],
        "interactive": interactive,
    }


@pytest.fixture
def make_inventory():
    """Factory for the raw result of the page inventory script."""
    return _inventory


# ============================================================================
# Intent / Observation Fixtures
# ============================================================================


@pytest.fixture
def load_more_criteria() -> AcceptanceCriteria:
    return AcceptanceCriteria(
        text="Given I am in the orders hub, when I click Load More in Past Orders, "
             "then I should see more orders",
        ticket_id="QA-101",
        ticket_title="Load more past orders",
    )


@pytest.fixture
def invoice_criteria() -> AcceptanceCriteria:
    return AcceptanceCriteria(
        text="When the user clicks the invoice icon on a past order, the invoice modal is shown",
        ticket_id="QA-202",
        ticket_title="Invoice icon on past order",
    )


@pytest.fixture
def invoice_intent() -> Intent:
    """Intent where the icon is listed before the record it belongs to."""
    return Intent(
        context="pastOrders",
        actions=[
            OrderedAction(type="click", element="invoiceIcon", description="Click the invoice icon", order=1),
            OrderedAction(type="click", element="pastOrderItem", description="Select a past order", order=2),
            OrderedAction(type="click", element="pastOrdersTab", order=0, activation=True),
        ],
        assertions=[
            Assertion(type="visibility", element="invoiceModal",
                      description="Invoice modal is displayed", expected="visible"),
        ],
    )


@pytest.fixture
def past_orders_observation() -> Observation:
    return Observation(
        context="pastOrders",
        url="https://app.example.com/orders",
        title="Orders",
        elements=[
            ObservedElement(stable_id="past-orders-tab", text="Past Orders",
                            locator_expression="page.getByTestId('past-orders-tab')"),
            ObservedElement(stable_id="load-more-button", text="Load More",
                            locator_expression="page.getByTestId('load-more-button')"),
            ObservedElement(stable_id="past-order-item", text="Order #1234",
                            locator_expression="page.getByTestId('past-order-item')"),
        ],
        accessibility_snapshot='- tablist:\n  - tab "Past Orders" [selected]\n- dialog "Invoice details"\n',
        interactive_count=24,
    )


@pytest.fixture
def fallback_knowledge() -> KnowledgeBase:
    return static_knowledge_base()


# ============================================================================
# Hosting Fixtures
# ============================================================================


class FakeHosting:
    """In-memory stand-in for the hosting collaborator.

    ``files`` is the base branch; a created branch starts as a copy of it
    and takes the writes made to that branch.
    """

    base_branch = "main"

    def __init__(self, files: Optional[dict[str, str]] = None, fail_on: Optional[str] = None):
        self.files: dict[str, str] = dict(files or {})
        self.branch_files: dict[str, dict[str, str]] = {}
        self.branches: list[str] = []
        self.writes: list[tuple[str, str, Optional[str]]] = []
        self.committed: dict[str, str] = {}
        self.pull_requests: list[dict] = []
        self.fail_on = fail_on

    def _maybe_fail(self, op: str) -> None:
        if self.fail_on == op:
            raise PublishFailure(f"{op} rejected", {"op": op})

    def _tree(self, ref: Optional[str]) -> dict[str, str]:
        if ref is None or ref == self.base_branch:
            return self.files
        return self.branch_files.get(ref, {})

    async def read_file(self, path: str, ref: Optional[str] = None) -> Optional[RepoFile]:
        tree = self._tree(ref)
        if path not in tree:
            return None
        return RepoFile(path=path, content=tree[path], sha=f"sha-{len(tree[path])}")

    async def list_directory(self, path: str, ref: Optional[str] = None) -> list[str]:
        prefix = path.rstrip("/") + "/"
        return [p for p in self._tree(ref) if p.startswith(prefix) and "/" not in p[len(prefix):]]

    async def create_branch(self, name: str, from_branch: Optional[str] = None) -> None:
        self._maybe_fail("create_branch")
        if name in self.branch_files:
            return
        self.branch_files[name] = dict(self._tree(from_branch))
        self.branches.append(name)

    async def create_or_update_file(self, path, content, message, branch, sha=None) -> str:
        self._maybe_fail("create_or_update_file")
        self.writes.append((path, branch, sha))
        self.committed[path] = content
        self.branch_files.setdefault(branch, {})[path] = content
        return "abc1234def"

    async def open_pull_request(self, title, body, head, base=None, draft=True) -> str:
        self._maybe_fail("open_pull_request")
        for pr in self.pull_requests:
            if pr["head"] == head:
                return pr["url"]
        url = f"https://github.com/acme/e2e-tests/pull/{7 + len(self.pull_requests)}"
        self.pull_requests.append({"title": title, "body": body, "head": head, "draft": draft, "url": url})
        return url


@pytest.fixture
def fake_hosting() -> FakeHosting:
    return FakeHosting()


@pytest.fixture
def hosting_factory():
    """Build a FakeHosting preloaded with files."""
    return FakeHosting
