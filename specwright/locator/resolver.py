"""Locator resolution: turns an element description into a stable Playwright locator.

Priority order (first match wins):

1. ``data-testid`` attribute          -> page.getByTestId('...')
2. role + accessible name (< 100)     -> page.getByRole('...', { name: '...' })
3. associated <label> for a field id  -> page.getByLabel('...')
4. placeholder (< 100)                -> page.getByPlaceholder('...')
5. visible text (< 50)                -> page.getByText('...')
6. other test hook / DOM id          -> page.locator('[data-qa="..."]') / page.locator('#...')

Anything else resolves to the document root.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

logger = logging.getLogger(__name__)

DOCUMENT_ROOT = "page.locator('html')"

MAX_NAME_LENGTH = 100
MAX_TEXT_LENGTH = 50

# Versioned so tests can enumerate the chain
PRIORITY_CHAIN: tuple[str, ...] = (
    "test-id",
    "role",
    "label",
    "placeholder",
    "text",
    "structural",
)

_IMPLICIT_ROLES = {
    "button": "button",
    "select": "combobox",
    "textarea": "textbox",
    "img": "img",
    "nav": "navigation",
    "dialog": "dialog",
    "h1": "heading", "h2": "heading", "h3": "heading",
    "h4": "heading", "h5": "heading", "h6": "heading",
    "li": "listitem",
    "ul": "list",
    "ol": "list",
}

_INPUT_ROLES = {
    "checkbox": "checkbox",
    "radio": "radio",
    "submit": "button",
    "button": "button",
    "reset": "button",
    "range": "slider",
    "search": "searchbox",
}

_FORM_FIELD_TAGS = ("input", "select", "textarea")


def js_string(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return " ".join(str(value).split())


def implicit_role(element: Mapping[str, Any]) -> str:
    """Explicit role attribute, else the role implied by tag and type."""
    explicit = _clean(element.get("role"))
    if explicit:
        return explicit
    tag = _clean(element.get("tag")).lower()
    if tag == "a":
        return "link" if element.get("href") is not None else ""
    if tag == "input":
        input_type = _clean(element.get("type")).lower() or "text"
        return _INPUT_ROLES.get(input_type, "textbox")
    return _IMPLICIT_ROLES.get(tag, "")


def accessible_name(element: Mapping[str, Any]) -> str:
    """aria-label, alt, trimmed text, title, placeholder; first non-empty."""
    for key in ("aria_label", "alt", "text", "title", "placeholder"):
        value = _clean(element.get(key))
        if value:
            return value
    return ""


def resolve(element: Mapping[str, Any]) -> str:
    """Return the locator expression for ``element``. Never raises."""
    try:
        return _resolve(element)[1]
    except Exception as e:
        logger.debug("Locator resolution failed for %r: %s", element, e)
        return DOCUMENT_ROOT


def resolve_with_strategy(element: Mapping[str, Any]) -> tuple[str, str]:
    """Like :func:`resolve` but also returns the strategy name that matched."""
    try:
        return _resolve(element)
    except Exception as e:
        logger.debug("Locator resolution failed for %r: %s", element, e)
        return "document-root", DOCUMENT_ROOT


def _resolve(element: Mapping[str, Any]) -> tuple[str, str]:
    testid = _clean(element.get("testid"))
    if testid:
        return "test-id", f"page.getByTestId({js_string(testid)})"

    role = implicit_role(element)
    name = accessible_name(element)
    if role and name and len(name) < MAX_NAME_LENGTH:
        return "role", f"page.getByRole({js_string(role)}, {{ name: {js_string(name)} }})"

    tag = _clean(element.get("tag")).lower()
    label = _clean(element.get("label"))
    if tag in _FORM_FIELD_TAGS and _clean(element.get("id")) and label:
        return "label", f"page.getByLabel({js_string(label)})"

    placeholder = _clean(element.get("placeholder"))
    if placeholder and len(placeholder) < MAX_NAME_LENGTH:
        return "placeholder", f"page.getByPlaceholder({js_string(placeholder)})"

    text = _clean(element.get("text"))
    if text and len(text) < MAX_TEXT_LENGTH:
        return "text", f"page.getByText({js_string(text)})"

    # Other test hooks (data-qa, data-cy, data-test) seen as {"name": ..., "value": ...}
    hook = element.get("test_hook") or {}
    if hook.get("name") and hook.get("value"):
        selector = '[%s="%s"]' % (_clean(hook["name"]), _clean(hook["value"]))
        return "structural", f"page.locator({js_string(selector)})"
    dom_id = _clean(element.get("id"))
    if dom_id:
        return "structural", f"page.locator({js_string('#' + dom_id)})"

    return "document-root", DOCUMENT_ROOT
