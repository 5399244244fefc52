"""DOM inventory: catalogs visible addressable elements on the current page."""

from __future__ import annotations

import logging

from playwright.async_api import Page

from specwright.locator.resolver import resolve
from specwright.models.observation import ObservedElement

logger = logging.getLogger(__name__)

_INVENTORY_SCRIPT = """() => {
    const interactiveTags = new Set([
        'a', 'button', 'input', 'select', 'textarea', 'details', 'summary'
    ]);
    const interactiveRoles = new Set([
        'button', 'link', 'textbox', 'checkbox', 'radio', 'combobox',
        'listbox', 'menuitem', 'tab', 'switch', 'slider'
    ]);
    const hookAttrs = ['data-qa', 'data-cy', 'data-test'];

    function isVisible(el) {
        const rect = el.getBoundingClientRect();
        if (rect.width === 0 && rect.height === 0) return false;
        const style = window.getComputedStyle(el);
        return style.visibility !== 'hidden' && style.display !== 'none';
    }

    function labelFor(el) {
        if (!el.id) return '';
        const label = document.querySelector(`label[for="${CSS.escape(el.id)}"]`);
        return label ? (label.textContent || '').trim() : '';
    }

    function describe(el) {
        let hook = null;
        for (const name of hookAttrs) {
            if (el.getAttribute(name)) { hook = { name: name, value: el.getAttribute(name) }; break; }
        }
        return {
            testid: el.getAttribute('data-testid') || '',
            tag: el.tagName.toLowerCase(),
            role: el.getAttribute('role') || '',
            type: el.getAttribute('type') || '',
            aria_label: el.getAttribute('aria-label') || '',
            alt: el.getAttribute('alt') || '',
            text: (el.innerText || el.textContent || '').trim().substring(0, 200),
            title: el.getAttribute('title') || '',
            placeholder: el.getAttribute('placeholder') || '',
            id: el.id || '',
            href: el.getAttribute('href'),
            label: labelFor(el),
            test_hook: hook,
        };
    }

    const stable = [];
    let interactive = 0;
    for (const el of document.querySelectorAll('body *')) {
        if (!isVisible(el)) continue;
        const tag = el.tagName.toLowerCase();
        const role = el.getAttribute('role') || '';
        const hasTestId = el.hasAttribute('data-testid');
        const isInteractive = interactiveTags.has(tag) || interactiveRoles.has(role) ||
            el.getAttribute('onclick') || el.getAttribute('tabindex') === '0';
        if (isInteractive) interactive += 1;
        if (hasTestId) stable.push(describe(el));
    }
    return { stable: stable, interactive: interactive };
}"""


async def collect_inventory(page: Page) -> tuple[list[ObservedElement], int, int]:
    """Return (elements with a stable identifier, interactive count, stable count)."""
    try:
        raw = await page.evaluate(_INVENTORY_SCRIPT)
    except Exception as e:
        logger.error("Element inventory failed: %s", e)
        return [], 0, 0

    elements: list[ObservedElement] = []
    seen: set[str] = set()
    for desc in raw.get("stable", []):
        testid = desc.get("testid") or None
        if testid in seen:
            continue
        if testid:
            seen.add(testid)
        text = (desc.get("text") or "").strip() or None
        elements.append(ObservedElement(
            stable_id=testid,
            text=text[:100] if text else None,
            role=desc.get("role") or "",
            tag=desc.get("tag") or "",
            locator_expression=resolve(desc),
        ))
    interactive = int(raw.get("interactive", 0))
    logger.debug("Inventory: %d stable elements, %d interactive", len(elements), interactive)
    return elements, interactive, len(elements)


async def count_addressable(page: Page) -> int:
    """Interactive plus stable-identified elements, used to judge a logged-in page."""
    _, interactive, stable = await collect_inventory(page)
    return interactive + stable


async def aria_snapshot(page: Page) -> str | None:
    try:
        return await page.locator("body").aria_snapshot()
    except Exception as e:
        logger.debug("ARIA snapshot unavailable: %s", e)
        return None
