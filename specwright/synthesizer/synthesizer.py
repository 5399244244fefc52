"""Test synthesis: resolves intent steps against known methods and the observed page."""

from __future__ import annotations

import logging
import re
from typing import Optional, Union

from specwright.interpreter.keywords import CONTEXT_LANDMARKS
from specwright.locator.resolver import js_string
from specwright.models.intent import AcceptanceCriteria, Assertion, Intent, OrderedAction
from specwright.models.observation import KnowledgeBase, KnownMethod, Observation, ObservedElement
from specwright.models.synthesis import GeneratedTest, Interaction
from specwright.synthesizer import renderer
from specwright.synthesizer.naming import is_query_method, kebab, method_name, split_words
from specwright.synthesizer.tables import (
    BASE_TAGS,
    CHILD_RESULT_WORDS,
    CHILD_TOPICS,
    CONTEXT_NAMESPACES,
    CONTEXT_TAGS,
    COUNTED_ITEMS,
    FILLER_WORDS,
    GENERIC_SUFFIXES,
    INTENT_SYNONYMS,
    LOAD_MORE_VERBS,
    NAV_URL_FRAGMENTS,
    RECORD_WORDS,
    RESULT_ELEMENTS,
    SYNONYMS,
)

logger = logging.getLogger(__name__)

_ARIA_LINE_RE = re.compile(r'^\s*-\s+(\w+)\s+"([^"]+)"', re.MULTILINE)

# Roles an action may target in the ARIA snapshot
INTERACTIVE_ROLES = frozenset({
    "button", "link", "tab", "menuitem", "checkbox", "radio", "switch",
    "textbox", "searchbox", "combobox", "option", "listitem", "row", "article",
})

# Query-method prefixes that can stand in for an assertion of each type
_QUERY_PREFIXES = {
    "visibility": ("is", "has"),
    "state": ("is", "has"),
    "text": ("get",),
    "value": ("get",),
    "count": ("get",),
}


def _fits_verb(name: str, verb: str) -> bool:
    prefixes = _QUERY_PREFIXES.get(verb)
    if prefixes is None:
        return True
    if verb == "count" and not name.endswith("Count"):
        return False
    return name.startswith(prefixes)


_LOAD_MORE_RE = re.compile(r"\b(?:%s)\s+more\b" % "|".join(LOAD_MORE_VERBS), re.IGNORECASE)


def is_load_more(action: OrderedAction) -> bool:
    """'loadMore', 'showMoreOrders' or a 'Click Load More' description."""
    if action.activation:
        return False
    words = split_words(action.element)
    if any(w in LOAD_MORE_VERBS and nxt == "more" for w, nxt in zip(words, words[1:])):
        return True
    return bool(_LOAD_MORE_RE.search(action.description))


def parent_record(element: str) -> Optional[str]:
    """Record token a child element (an icon or link on a record) belongs to."""
    words = split_words(element)
    if any(w in CHILD_RESULT_WORDS for w in words):
        return None
    for topic, parent in CHILD_TOPICS:
        if _contains_run(words, list(topic)):
            return parent
    return None


def is_record(element: str, record: str) -> bool:
    """True when ``element`` names one ``record`` (e.g. 'pastOrderRow' for 'pastOrderItem')."""
    if element == record or kebab(element) in candidate_ids(record):
        return True
    if parent_record(element) is not None:
        return False
    words = split_words(element)
    return any(_contains_run(words, list(run)) for run in RECORD_WORDS.get(record, ()))


def order_actions(actions: list[OrderedAction]) -> list[OrderedAction]:
    """Dependency-aware ordering; returns copies and leaves ``actions`` untouched.

    Activation steps lead. A child step (an icon on a record) follows a step
    on its record, which is added if missing. Load-more steps come right
    after the activation steps.
    """
    indexed = list(enumerate(a.model_copy() for a in actions))
    indexed.sort(key=lambda pair: (0 if pair[1].activation else 1, pair[1].order, pair[0]))
    ordered = [a for _, a in indexed]

    i = 0
    while i < len(ordered):
        child = ordered[i]
        parent = parent_record(child.element)
        if parent is None:
            i += 1
            continue
        parent_idx = next((j for j, a in enumerate(ordered) if is_record(a.element, parent)), None)
        if parent_idx is None:
            ordered.insert(i, OrderedAction(
                type="click",
                element=parent,
                description=f"Select a {' '.join(split_words(parent)[:-1]) or parent}",
                intent=f"Open the record that owns {child.element}",
            ))
            logger.debug("Added missing parent step %s before %s", parent, child.element)
            i += 2
        elif parent_idx > i:
            ordered.insert(parent_idx, ordered.pop(i))
            logger.debug("Moved %s after its parent %s", child.element, ordered[parent_idx - 1].element)
        else:
            i += 1

    load_more = [a for a in ordered if is_load_more(a)]
    if load_more:
        rest = [a for a in ordered if not is_load_more(a)]
        head = 0
        while head < len(rest) and rest[head].activation:
            head += 1
        ordered = rest[:head] + load_more + rest[head:]

    for position, action in enumerate(ordered, start=1):
        action.order = position
    return ordered


def candidate_ids(token: str) -> list[str]:
    """Test-id spellings an element token may appear under."""
    ids = [kebab(token)]
    for syn in SYNONYMS.get(token, ()):
        if syn not in ids:
            ids.append(syn)
    return ids


def claimed_ids(token: str) -> set[str]:
    """Exact test-id spellings of other known tokens that ``token`` must not take over."""
    claimed: set[str] = set()
    for other in SYNONYMS:
        if other != token:
            claimed.update(candidate_ids(other))
    return claimed - set(candidate_ids(token))


def _id_words(stable_id: str) -> list[str]:
    return [w for w in re.split(r"[^a-z0-9]+", stable_id.lower()) if w]


def _contains_run(words: list[str], needle: list[str]) -> bool:
    n = len(needle)
    return any(words[i:i + n] == needle for i in range(len(words) - n + 1))


def find_observed(observation: Optional[Observation], token: str) -> Optional[ObservedElement]:
    """Exact test id first, then an id containing a candidate as whole hyphen-separated words."""
    if observation is None:
        return None
    candidates = candidate_ids(token)
    for cand in candidates:
        el = observation.by_stable_id(cand)
        if el is not None:
            return el
    claimed = claimed_ids(token)
    for cand in candidates:
        needle = _id_words(cand)
        for el in observation.elements:
            if not el.stable_id or el.stable_id.lower() in claimed:
                continue
            if _contains_run(_id_words(el.stable_id), needle):
                return el
    return None


def normalize_phrase(text: str) -> str:
    words = re.findall(r"[a-z0-9]+", text.lower())
    return " ".join(w for w in words if w not in FILLER_WORDS)


def intent_method(step: OrderedAction) -> Optional[str]:
    """Canonical reusable method whose synonym phrases occur in the step's intent or description."""
    texts = [f" {normalize_phrase(t)} " for t in (step.intent, step.description) if t]
    if not texts:
        return None
    for name, phrases in INTENT_SYNONYMS.items():
        for phrase in phrases:
            needle = f" {normalize_phrase(phrase)} "
            if any(needle in text for text in texts):
                return name
    return None


def _topic_words(token: str) -> list[str]:
    words = split_words(token)
    topic = [w for w in words if w not in GENERIC_SUFFIXES]
    return topic or words


def search_accessibility(snapshot: Optional[str], token: str, interactive_only: bool = False) -> Optional[str]:
    """Find a role/name pair in an ARIA snapshot whose name mentions the token's words."""
    if not snapshot:
        return None
    words = [w.rstrip("s") for w in _topic_words(token)]
    for role, name in _ARIA_LINE_RE.findall(snapshot):
        if interactive_only and role not in INTERACTIVE_ROLES:
            continue
        lowered = name.lower()
        if len(name) < 100 and all(w in lowered for w in words):
            return f"page.getByRole({js_string(role)}, {{ name: {js_string(name)} }})"
    return None


def build_title(criteria: AcceptanceCriteria) -> str:
    summary = (criteria.ticket_title or "").strip()
    if not summary:
        first_line = next((ln.strip() for ln in criteria.text.splitlines() if ln.strip()), "")
        summary = first_line[:80]
    summary = summary or "Generated test"
    if criteria.ticket_id:
        return f"{criteria.ticket_id} - {summary}"
    return summary


class Synthesizer:
    """Builds a GeneratedTest from an intent, an observation and mined methods."""

    def __init__(self, knowledge: KnowledgeBase):
        self.knowledge = knowledge

    def synthesize(
        self,
        intent: Intent,
        observation: Optional[Observation],
        criteria: AcceptanceCriteria,
    ) -> GeneratedTest:
        class_name, var_name, _ = CONTEXT_NAMESPACES.get(intent.context, CONTEXT_NAMESPACES["home"])

        actions = order_actions(intent.actions)
        action_steps = [self.resolve_step(a, "action", class_name, observation) for a in actions]

        assertions = list(intent.assertions) or [self._derived_assertion(intent.context, action_steps)]
        assertion_steps = [self.resolve_step(a, "assertion", class_name, observation) for a in assertions]

        interactions = action_steps + assertion_steps
        tags = BASE_TAGS + (CONTEXT_TAGS.get(intent.context, "@home"),)
        title = build_title(criteria)

        code = renderer.render_test(title, tags, intent.context, action_steps, assertion_steps)
        stubs = renderer.render_stubs(class_name, interactions)

        counts: dict[str, int] = {}
        for step in interactions:
            counts[step.found_by] = counts.get(step.found_by, 0) + 1
        logger.info("Synthesized '%s': %d actions, %d assertions (%s)",
                    title, len(action_steps), len(assertion_steps),
                    ", ".join(f"{k}={v}" for k, v in sorted(counts.items())))

        return GeneratedTest(
            title=title,
            tags=tags,
            code=code,
            action_count=len(action_steps),
            assertion_count=len(assertion_steps),
            namespace=var_name,
            stubs=stubs,
            interactions=tuple(interactions),
        )

    def resolve_step(
        self,
        step: Union[OrderedAction, Assertion],
        kind: str,
        class_name: str,
        observation: Optional[Observation],
    ) -> Interaction:
        """Three tiers: reuse a known method, use the observed locator, or name a new method."""
        if kind == "assertion" and step.type == "url":
            return Interaction(
                step=step, kind=kind, found_by="observed-locator",
                method_name=method_name("url", step.element),
                locator_expression="page", visible=observation is not None,
            )

        token, verb = step.element, step.type
        if kind == "assertion" and renderer.is_count_assertion(step):
            token, verb = COUNTED_ITEMS.get(step.element, step.element), "count"
        generated = method_name(verb, token)
        observed = find_observed(observation, token)

        known = self._find_reusable(class_name, verb, token, observed, step if kind == "action" else None)
        if known is not None:
            return Interaction(
                step=step, kind=kind, found_by="reuse", method_name=known.name,
                locator_expression=observed.locator_expression if observed else None,
                visible=observed is not None,
            )

        if observed is not None:
            return Interaction(
                step=step, kind=kind, found_by="observed-locator", method_name=generated,
                locator_expression=observed.locator_expression, visible=True,
            )

        aria_locator = search_accessibility(
            observation.accessibility_snapshot if observation else None, token,
            interactive_only=(kind == "action"),
        )
        if aria_locator:
            return Interaction(
                step=step, kind=kind, found_by="accessibility-search", method_name=generated,
                locator_expression=aria_locator, visible=True,
            )

        logger.warning("Element '%s' not resolved; test will call new method %s.%s",
                       token, class_name, generated)
        return Interaction(
            step=step, kind=kind, found_by="not-found", method_name=generated,
            locator_expression=None, visible=False, needs_stub=True,
        )

    def _find_reusable(
        self,
        class_name: str,
        verb: str,
        token: str,
        observed: Optional[ObservedElement],
        action: Optional[OrderedAction] = None,
    ) -> Optional[KnownMethod]:
        """Known method by generated name, shared test id, or (actions only) intent phrase."""
        query = action is None
        methods = [
            m for m in self.knowledge.methods_by_namespace.get(class_name, [])
            if is_query_method(m.name) == query
        ]
        if not methods:
            return None
        by_name = {m.name: m for m in methods}

        names = [method_name(verb, token)] + [method_name(verb, syn) for syn in SYNONYMS.get(token, ())]
        for name in names:
            if name in by_name:
                return by_name[name]

        ids = set(candidate_ids(token))
        if observed is not None and observed.stable_id:
            ids.add(observed.stable_id)
        for m in methods:
            if ids.intersection(m.test_ids) and _fits_verb(m.name, verb):
                return m

        if action is not None:
            canonical = intent_method(action)
            if canonical in by_name:
                logger.debug("Reusing %s for '%s' by intent", canonical, action.intent or action.description)
                return by_name[canonical]
        return None

    @staticmethod
    def _derived_assertion(context: str, action_steps: list[Interaction]) -> Assertion:
        """One assertion pointing the way the last resolved action went.

        Navigation asserts the new location; anything else asserts what the
        action brings up, or the context's landmark.
        """
        resolved = [s for s in action_steps if s.found_by != "not-found"]
        source = (resolved or action_steps or [None])[-1]
        if source is not None:
            action = source.step
            if action.type == "navigate" or action.element in NAV_URL_FRAGMENTS:
                fragment = renderer.url_fragment(action.element)
                logger.info("No assertions interpreted; asserting the location contains '%s'", fragment)
                return Assertion(type="url", element=action.element,
                                 description=f"Location contains '{fragment}'", expected=fragment)
            element = RESULT_ELEMENTS.get(action.element, CONTEXT_LANDMARKS.get(context, "orderAgainSection"))
        else:
            element = CONTEXT_LANDMARKS.get(context, "orderAgainSection")
        readable = " ".join(split_words(element)).capitalize()
        logger.info("No assertions interpreted; asserting that %s is visible", element)
        return Assertion(type="visibility", element=element,
                         description=f"{readable} is visible", expected="visible")
