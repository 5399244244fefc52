"""Sub-section activation: opens tabs such as "Past Orders" before observing."""

from __future__ import annotations

import logging
from typing import Optional

from playwright.async_api import Page

from specwright.interpreter.keywords import SECTION_ALIASES
from specwright.models.intent import Intent, OrderedAction

logger = logging.getLogger(__name__)

_FIND_CONTROL_SCRIPT = r"""(aliases) => {
    // Tabs are checked before generic buttons and links
    const groups = [
        '[role="tab"]',
        '[role="button"], button, a, [data-testid]',
    ];
    const activeClass = /(^|[\s_-])(active|selected|current)([\s_-]|$)/i;
    const patterns = aliases.map((alias) => new RegExp(
        '(^|[^a-z0-9])' + alias.replace(/[.*+?^${}()|[\]\\]/g, '\\$&') + '([^a-z0-9]|$)'
    ));

    function visible(el) {
        const rect = el.getBoundingClientRect();
        return rect.width > 0 || rect.height > 0;
    }

    function activeState(el) {
        const selected = el.getAttribute('aria-selected');
        const current = el.getAttribute('aria-current');
        const pressed = el.getAttribute('aria-pressed');
        if (selected === 'true' || pressed === 'true') return true;
        if (current && current !== 'false') return true;
        const cls = typeof el.className === 'string' ? el.className : '';
        if (activeClass.test(cls)) return true;
        if (selected === 'false' || pressed === 'false' || current === 'false') return false;
        return null;
    }

    function describe(el) {
        return {
            text: (el.innerText || el.textContent || '').trim(),
            testid: el.getAttribute('data-testid') || '',
            role: el.getAttribute('role') || '',
            active: activeState(el),
        };
    }

    for (const selector of groups) {
        let wordMatch = null;
        for (const el of document.querySelectorAll(selector)) {
            if (!visible(el)) continue;
            const text = (el.innerText || el.textContent || '').trim().toLowerCase();
            if (!text || text.length > 60) continue;
            if (aliases.includes(text)) return describe(el);
            if (!wordMatch && patterns.some((p) => p.test(text))) wordMatch = el;
        }
        if (wordMatch) return describe(wordMatch);
    }
    return null;
}"""


class ActivationOutcome:
    """What the activation stage found and did."""

    def __init__(self, control: Optional[dict] = None, injected: bool = False, clicked: bool = False):
        self.control = control
        self.injected = injected
        self.clicked = clicked


async def find_section_control(page: Page, aliases: tuple[str, ...]) -> Optional[dict]:
    try:
        return await page.evaluate(_FIND_CONTROL_SCRIPT, list(aliases))
    except Exception as e:
        logger.debug("Section control lookup failed: %s", e)
        return None


def _control_selector(control: dict) -> str:
    if control.get("testid"):
        return f"[data-testid=\"{control['testid']}\"]"
    text = control["text"].replace("\\", "\\\\").replace('"', '\\"')
    return f'text="{text}"'


async def activate_section(page: Page, intent: Intent) -> ActivationOutcome:
    """Open the intent's sub-section and make sure the test does the same.

    An activation action is injected at the head of ``intent.actions`` only
    when the control is not already active (unknown counts as inactive) and
    the intent has no activation for it yet.
    """
    section = SECTION_ALIASES.get(intent.context)
    if section is None:
        return ActivationOutcome()

    element, aliases = section
    control = await find_section_control(page, aliases)
    if control is None:
        logger.warning("No visible control matches section '%s' (aliases: %s)",
                       intent.context, ", ".join(aliases))
        return ActivationOutcome()

    outcome = ActivationOutcome(control=control)
    if control.get("active") is True:
        logger.info("Section '%s' already active", control.get("text"))
        return outcome

    if not intent.has_activation_for(element):
        intent.actions.insert(0, OrderedAction(
            type="click",
            element=element,
            description=f"Click on {control.get('text') or aliases[0]} tab",
            intent=f"Navigate to {aliases[0]} section",
            order=0,
            activation=True,
        ))
        outcome.injected = True
        logger.info("Injected activation step for %s", element)

    try:
        await page.click(_control_selector(control))
        outcome.clicked = True
    except Exception as e:
        logger.debug("Activating section control failed: %s", e)
        return outcome
    try:
        await page.wait_for_load_state("networkidle", timeout=5000)
    except Exception:
        pass
    return outcome
