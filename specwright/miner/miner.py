"""Knowledge mining: reads the page-object library to find reusable methods."""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import PurePosixPath
from typing import Optional, Protocol

from specwright.models.observation import KnowledgeBase, KnownMethod

logger = logging.getLogger(__name__)

# Only page objects whose file name mentions one of these are fetched
FILE_NAME_HINTS = ("home", "order", "cart")
MAX_FILES = 8
MAX_SELECTOR_SAMPLES = 50

_CLASS_RE = re.compile(r"export\s+(?:default\s+)?class\s+(\w+)")
_METHOD_RE = re.compile(
    r"^[ \t]*(?P<visibility>public\s+|private\s+|protected\s+)?async\s+(?P<name>\w+)\s*"
    r"\([^)]*\)\s*(?::\s*Promise<[^{]*?>)?\s*\{",
    re.MULTILINE,
)
_FIELD_RE = re.compile(
    r"^[ \t]*(?:(?:readonly|private|public|protected)\s+)*(?:this\.)?(?P<name>\w+)\s*(?::\s*\w+)?\s*=\s*(?P<rhs>[^;\n]+)",
    re.MULTILINE,
)
_TEST_ID_CALL_RE = re.compile(r"getByTestId\(\s*['\"`]([^'\"`]+)['\"`]\s*\)")
_TEST_ID_ATTR_RE = re.compile(r"\[data-testid\s*=\s*[\\]?['\"]?([^'\"\]\\]+)[\\]?['\"]?\s*\]")
_THIS_REF_RE = re.compile(r"this\.(\w+)")


class RepositoryReader(Protocol):
    async def read_file(self, path: str, ref: Optional[str] = None): ...

    async def list_directory(self, path: str, ref: Optional[str] = None) -> list[str]: ...


STATIC_FALLBACK: dict[str, tuple[tuple[str, tuple[str, ...]], ...]] = {
    "HomePage": (
        ("clickOnAddMealButton", ("add-meal-btn",)),
        ("clickOnOrdersHubNavItem", ("orders-hub-nav",)),
        ("scrollToOrderAgainSection", ("order-again-section",)),
        ("isOrderAgainSectionVisible", ("order-again-section",)),
        ("fillSearchInput", ("search-input",)),
        ("scrollToBottom", ()),
        ("forceScrollIntoView", ()),
    ),
    "OrdersHubPage": (
        ("clickOnPastOrdersTab", ("past-orders-tab",)),
        ("isEmptyPastOrdersStateVisible", ("empty-past-orders-state",)),
        ("isEmptyCartStateVisible", ("empty-cart-state",)),
        ("isUpcomingOrdersSectionVisible", ("upcoming-orders-section",)),
        ("isOrdersHubPageLoaded", ()),
        ("isPartialCartComponentVisible", ("partial-cart-component",)),
    ),
}

STATIC_SELECTOR_SAMPLES = (
    "search-input",
    "add-meal-btn",
    "orders-hub-nav",
    "past-orders-tab",
    "order-again-section",
    "partial-cart-component",
)


def static_knowledge_base() -> KnowledgeBase:
    """Built-in table used when the repository cannot be read in time."""
    return KnowledgeBase(
        methods_by_namespace={
            ns: [KnownMethod(name=name, test_ids=ids) for name, ids in methods]
            for ns, methods in STATIC_FALLBACK.items()
        },
        selector_samples=list(STATIC_SELECTOR_SAMPLES),
        source="fallback",
    )


def extract_test_ids(source: str) -> list[str]:
    """Stable identifiers referenced by getByTestId('x') or [data-testid="x"]."""
    found: list[str] = []
    for pattern in (_TEST_ID_CALL_RE, _TEST_ID_ATTR_RE):
        for m in pattern.finditer(source):
            value = m.group(1).strip()
            if value and value not in found:
                found.append(value)
    return found


def _body_from(source: str, open_brace: int) -> str:
    depth = 0
    for i in range(open_brace, len(source)):
        ch = source[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return source[open_brace + 1:i]
    return source[open_brace + 1:]


def parse_page_object(source: str, file_name: str = "") -> tuple[str, list[KnownMethod]]:
    """Return (namespace, public async methods with the test ids each touches)."""
    class_match = _CLASS_RE.search(source)
    if class_match:
        namespace = class_match.group(1)
    else:
        stem = PurePosixPath(file_name).name.split(".")[0]
        namespace = stem[:1].upper() + stem[1:]

    # Locator fields declared on the class, e.g. readonly cartButton = page.getByTestId('cart-btn')
    field_ids: dict[str, list[str]] = {}
    for m in _FIELD_RE.finditer(source):
        ids = extract_test_ids(m.group("rhs"))
        if ids:
            field_ids.setdefault(m.group("name"), []).extend(ids)

    methods: list[KnownMethod] = []
    seen: set[str] = set()
    for m in _METHOD_RE.finditer(source):
        name = m.group("name")
        if (m.group("visibility") or "").strip() in ("private", "protected"):
            continue
        if name in seen or name == "constructor":
            continue
        seen.add(name)
        body = _body_from(source, m.end() - 1)
        ids = extract_test_ids(body)
        for ref in _THIS_REF_RE.findall(body):
            for test_id in field_ids.get(ref, []):
                if test_id not in ids:
                    ids.append(test_id)
        methods.append(KnownMethod(name=name, test_ids=tuple(ids)))
    return namespace, methods


class KnowledgeMiner:
    """Mines method names and test ids from the reusable-action library. Read only."""

    def __init__(self, repository: Optional[RepositoryReader], page_object_dir: str, timeout: float = 10.0):
        self.repository = repository
        self.page_object_dir = page_object_dir.rstrip("/")
        self.timeout = timeout

    async def mine(self) -> KnowledgeBase:
        """Return the mined knowledge base, or the static table on timeout or error."""
        if self.repository is None:
            logger.info("No repository configured; using built-in page-object table")
            return static_knowledge_base()
        try:
            return await asyncio.wait_for(self._mine(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Knowledge mining timed out after %.1fs; using built-in table", self.timeout)
        except Exception as e:
            logger.warning("Knowledge mining failed: %s; using built-in table", e)
        return static_knowledge_base()

    async def _mine(self) -> KnowledgeBase:
        listing = await self.repository.list_directory(self.page_object_dir)
        candidates = [
            path for path in listing
            if path.endswith(".ts")
            and any(hint in PurePosixPath(path).name.lower() for hint in FILE_NAME_HINTS)
        ][:MAX_FILES]
        if not candidates:
            logger.warning("No page objects found under %s; using built-in table", self.page_object_dir)
            return static_knowledge_base()

        logger.info("Mining %d page-object files from %s", len(candidates), self.page_object_dir)
        files = await asyncio.gather(*(self.repository.read_file(p) for p in candidates))

        kb = KnowledgeBase(source="repository")
        for path, repo_file in zip(candidates, files):
            if repo_file is None:
                continue
            namespace, methods = parse_page_object(repo_file.content, path)
            existing = kb.methods_by_namespace.setdefault(namespace, [])
            existing.extend(m for m in methods if all(e.name != m.name for e in existing))
            for test_id in extract_test_ids(repo_file.content):
                if test_id not in kb.selector_samples and len(kb.selector_samples) < MAX_SELECTOR_SAMPLES:
                    kb.selector_samples.append(test_id)
            logger.debug("Mined %d methods from %s (%s)", len(methods), path, namespace)

        if not kb.methods_by_namespace:
            return static_knowledge_base()
        return kb
