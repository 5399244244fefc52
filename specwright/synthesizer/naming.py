"""Deterministic page-object method naming."""

from __future__ import annotations

import re

_VERB_TEMPLATES = {
    "click": "clickOn{token}",
    "tap": "tapOn{token}",
    "fill": "fill{token}",
    "navigate": "navigateTo{token}",
    "scroll": "scrollTo{token}",
    "visibility": "is{token}Visible",
    "text": "get{token}Text",
    "value": "get{token}Value",
    "state": "is{token}Enabled",
    "count": "get{token}Count",
    "url": "isOn{token}",
}

_WORD_RE = re.compile(r"[A-Z]+(?=[A-Z][a-z]|\d|\b)|[A-Z]?[a-z]+|[A-Z]+|\d+")


def split_words(token: str) -> list[str]:
    """'pastOrdersTab' -> ['past', 'orders', 'tab']; also handles kebab and snake case."""
    words: list[str] = []
    for chunk in re.split(r"[^A-Za-z0-9]+", token):
        words.extend(w.lower() for w in _WORD_RE.findall(chunk))
    return words


def pascal(token: str) -> str:
    return "".join(w[:1].upper() + w[1:] for w in split_words(token))


def camel(token: str) -> str:
    p = pascal(token)
    return p[:1].lower() + p[1:]


def kebab(token: str) -> str:
    return "-".join(split_words(token))


def method_name(verb: str, token: str) -> str:
    """Map (verb, element token) to a method name, e.g. ('click', 'pastOrdersTab') -> 'clickOnPastOrdersTab'."""
    template = _VERB_TEMPLATES.get(verb, verb + "{token}")
    return template.format(token=pascal(token))


def is_query_method(name: str) -> bool:
    """Methods that read state rather than act on the page."""
    return bool(re.match(r"^(is|get|has)[A-Z]", name))
