"""Renders interactions as Playwright test source and page-object stubs."""

from __future__ import annotations

import re

from specwright.locator.resolver import DOCUMENT_ROOT, js_string
from specwright.models.synthesis import Interaction
from specwright.synthesizer.naming import camel, kebab, split_words
from specwright.synthesizer.tables import (
    CONTEXT_NAMESPACES,
    COUNT_EXPECTATIONS,
    COUNTED_ITEMS,
    DEFAULT_USERS_HELPER_METHOD,
    NAV_URL_FRAGMENTS,
    NON_LITERAL_EXPECTATIONS,
    NON_URL_WORDS,
    USERS_HELPER_METHODS,
)

INDENT = "  "

FILE_HEADER = """import { test, expect } from '@playwright/test';
import { siteMap } from '../pages/siteMap';
import { usersHelper } from '../helpers/usersHelper';
"""


def _literal_expected(expected: str | None) -> str | None:
    if expected is None or expected.strip().lower() in NON_LITERAL_EXPECTATIONS:
        return None
    return expected


def is_count_assertion(assertion) -> bool:
    """Assertions that expect more matches than before the actions ran."""
    return (getattr(assertion, "expected", None) or "").strip().lower() in COUNT_EXPECTATIONS


def url_fragment(token: str) -> str:
    """'cartPage' -> 'cart'; words that name the widget are dropped."""
    if token in NAV_URL_FRAGMENTS:
        return NAV_URL_FRAGMENTS[token]
    words = [w for w in split_words(token) if w not in NON_URL_WORDS]
    return "-".join(words) or kebab(token)


def _url_pattern(fragment: str) -> str:
    return "/" + re.sub(r"([.*+?^${}()|\[\]\\/])", r"\\\1", fragment) + "/"


def _count_variable(step: Interaction) -> str:
    return camel(COUNTED_ITEMS.get(step.step.element, step.step.element)) + "CountBefore"


def _count_expression(step: Interaction, var_name: str) -> str:
    if step.found_by in ("observed-locator", "accessibility-search") and step.locator_expression:
        return f"{step.locator_expression}.count()"
    return f"{var_name}.{step.method_name}()"


def render_count_capture(step: Interaction, var_name: str) -> str:
    return f"const {_count_variable(step)} = await {_count_expression(step, var_name)};"


def _inline(locator: str) -> str:
    if locator == DOCUMENT_ROOT:
        return locator
    return f"{locator}.first()"


def render_given(context: str) -> list[str]:
    class_name, var_name, entry = CONTEXT_NAMESPACES.get(context, CONTEXT_NAMESPACES["home"])
    helper = USERS_HELPER_METHODS.get(context, DEFAULT_USERS_HELPER_METHOD)
    lines = ["//GIVEN", f"const userEmail = await usersHelper.{helper}();"]
    if class_name == "SignupPage":
        lines.append(f"const {var_name} = await siteMap.signupPage(page);")
        return lines
    lines.append("const loginPage = await siteMap.loginPage(page);")
    lines.append(
        "const homePage = await loginPage.loginRetryingExpectingCoreUxWith("
        "userEmail, process.env.VALID_LOGIN_PASSWORD);"
    )
    if entry:
        lines.append(f"const {var_name} = await {entry};")
    return lines


def render_action(step: Interaction, var_name: str) -> str:
    action = step.step
    value = js_string(action.value or "test")
    if step.found_by in ("observed-locator", "accessibility-search") and step.locator_expression:
        target = _inline(step.locator_expression)
        match action.type:
            case "fill":
                return f"await {target}.fill({value});"
            case "tap":
                return f"await {target}.tap();"
            case "scroll":
                return f"await {target}.scrollIntoViewIfNeeded();"
            case _:
                return f"await {target}.click();"
    arg = value if action.type == "fill" else ""
    return f"await {var_name}.{step.method_name}({arg});"


def render_assertion(step: Interaction, var_name: str) -> str:
    assertion = step.step
    message = js_string(assertion.description or assertion.element)
    expected = _literal_expected(assertion.expected)

    if assertion.type == "url":
        fragment = (assertion.expected or "").strip() or url_fragment(assertion.element)
        return f"await expect(page).toHaveURL({_url_pattern(fragment)});"

    if is_count_assertion(assertion):
        return (
            f"await expect.poll(() => {_count_expression(step, var_name)}, {{ message: {message} }})"
            f".toBeGreaterThan({_count_variable(step)});"
        )

    if step.found_by in ("observed-locator", "accessibility-search") and step.locator_expression:
        target = f"expect.soft({_inline(step.locator_expression)}, {message})"
        match assertion.type:
            case "text":
                if expected:
                    return f"await {target}.toContainText({js_string(expected)});"
                return f"await {target}.not.toBeEmpty();"
            case "value":
                if expected:
                    return f"await {target}.toHaveValue({js_string(expected)});"
                return f"await {target}.not.toHaveValue('');"
            case "state":
                return f"await {target}.toBeEnabled();"
            case _:
                return f"await {target}.toBeVisible();"

    call = f"await {var_name}.{step.method_name}()"
    if assertion.type in ("text", "value") and expected:
        return f"expect.soft({call}, {message}).toContain({js_string(expected)});"
    return f"expect.soft({call}, {message}).toBeTruthy();"


def render_test(
    title: str,
    tags: tuple[str, ...],
    context: str,
    actions: list[Interaction],
    assertions: list[Interaction],
) -> str:
    _, var_name, _ = CONTEXT_NAMESPACES.get(context, CONTEXT_NAMESPACES["home"])
    tag_list = ", ".join(js_string(t) for t in tags)

    body = render_given(context)
    body.append("//WHEN")
    action_lines = [render_action(step, var_name) for step in actions]
    # Counts are taken once the sub-section is open, before the first real action
    head = 0
    while head < len(actions) and getattr(actions[head].step, "activation", False):
        head += 1
    captures = list(dict.fromkeys(
        render_count_capture(step, var_name) for step in assertions if is_count_assertion(step.step)
    ))
    body.extend(action_lines[:head] + captures + action_lines[head:])
    body.append("//THEN")
    body.extend(render_assertion(step, var_name) for step in assertions)

    lines = [f"test({js_string(title)}, {{ tag: [{tag_list}] }}, async ({{ page }}) => {{"]
    lines.extend(INDENT + line for line in body)
    lines.append("});")
    return "\n".join(lines) + "\n"


def _stub_body(step: Interaction) -> tuple[str, str]:
    element = step.step.element
    if step.kind == "assertion" and is_count_assertion(step.step):
        element = COUNTED_ITEMS.get(element, element)
    locator = step.locator_expression or f"page.getByTestId({js_string(kebab(element))})"
    locator = "this." + locator
    if step.kind == "action":
        verb = {"fill": "fill(value)", "tap": "tap()", "scroll": "scrollIntoViewIfNeeded()"}.get(
            step.step.type, "click()")
        signature = "(value: string)" if step.step.type == "fill" else "()"
        return f"{signature}: Promise<void>", f"await {locator}.{verb};"
    if is_count_assertion(step.step):
        return "(): Promise<number>", f"return await {locator}.count();"
    match step.step.type:
        case "text":
            return "(): Promise<string>", f"return (await {locator}.textContent()) ?? '';"
        case "value":
            return "(): Promise<string>", f"return await {locator}.inputValue();"
        case "state":
            return "(): Promise<boolean>", f"return await {locator}.isEnabled();"
        case _:
            return "(): Promise<boolean>", f"return await {locator}.isVisible();"


def render_stubs(class_name: str, interactions: list[Interaction]) -> str:
    """Methods the test calls that the page object does not have yet."""
    seen: set[str] = set()
    blocks: list[str] = []
    for step in interactions:
        if not step.needs_stub or step.method_name in seen:
            continue
        seen.add(step.method_name)
        signature, body = _stub_body(step)
        blocks.append(
            f"{INDENT}async {step.method_name}{signature} {{\n"
            f"{INDENT * 2}{body}\n"
            f"{INDENT}}}"
        )
    if not blocks:
        return ""
    return f"// Add to {class_name}\n" + "\n\n".join(blocks) + "\n"
