"""Intent interpretation: acceptance criteria text to a structured Intent."""

from __future__ import annotations

import logging
import re
from typing import Optional

from pydantic import ValidationError

from specwright.ai.client import AIClient
from specwright.ai.prompts.interpretation import (
    INTERPRETATION_SYSTEM_PROMPT,
    build_interpretation_prompt,
)
from specwright.errors import InterpretationFailure
from specwright.interpreter import keywords
from specwright.models.intent import Assertion, Intent, OrderedAction
from specwright.synthesizer.naming import split_words

logger = logging.getLogger(__name__)


class PrimaryInterpreter:
    """Language-model interpreter. Raises InterpretationFailure on any problem."""

    def __init__(self, ai_client: AIClient, max_tokens: int = 2000):
        self.ai_client = ai_client
        self.max_tokens = max_tokens

    def interpret(self, criteria: str, ticket_title: Optional[str] = None) -> Intent:
        try:
            data = self.ai_client.complete_json(
                system_prompt=INTERPRETATION_SYSTEM_PROMPT,
                user_message=build_interpretation_prompt(criteria, ticket_title),
                max_tokens=self.max_tokens,
            )
        except Exception as e:
            raise InterpretationFailure(f"Language model call failed: {e}") from e

        try:
            intent = Intent(
                context=str(data.get("context") or keywords.DEFAULT_CONTEXT),
                actions=[OrderedAction(**a) for a in data.get("actions", [])],
                assertions=[Assertion(**a) for a in data.get("assertions", [])],
                source="llm",
            )
        except (ValidationError, TypeError, AttributeError) as e:
            raise InterpretationFailure(f"Model output does not match the intent schema: {e}") from e

        if not intent.actions:
            raise InterpretationFailure("Model output contains no actions")
        return intent


class FallbackInterpreter:
    """Keyword-table interpreter. Never fails."""

    def interpret(self, criteria: str, ticket_title: Optional[str] = None) -> Intent:
        text = " ".join(filter(None, [ticket_title, criteria])).lower()
        context = self._detect_context(text)

        actions: list[OrderedAction] = []
        seen: set[str] = set()
        entry_elements = keywords.CONTEXT_ENTRY_ELEMENTS.get(context, ())
        for words, action_type, element, description, intent in keywords.ACTION_RULES:
            if element in seen or element in entry_elements:
                continue
            if all(w in text for w in words):
                seen.add(element)
                actions.append(OrderedAction(
                    type=action_type,
                    element=element,
                    description=description,
                    intent=intent,
                    order=len(actions) + 1,
                ))

        assertions: list[Assertion] = []
        for words, outcomes in keywords.ASSERTION_RULES:
            if any(w in text for w in words):
                for a_type, element, description, expected in outcomes:
                    if all(a.element != element for a in assertions):
                        assertions.append(Assertion(
                            type=a_type, element=element,
                            description=description, expected=expected,
                        ))
        if not assertions and any(w in text for w in keywords.GENERIC_VISIBILITY_KEYWORDS):
            landmark = keywords.CONTEXT_LANDMARKS.get(context)
            if landmark:
                assertions.append(Assertion(
                    type="visibility", element=landmark,
                    description=f"{landmark} is displayed", expected="visible",
                ))

        return Intent(context=context, actions=actions, assertions=assertions, source="keywords")

    @staticmethod
    def _detect_context(text: str) -> str:
        for words, context in keywords.CONTEXT_RULES:
            if all(w in text for w in words):
                return context
        return keywords.DEFAULT_CONTEXT


# Words that may follow a section name in a control's token ("pastOrdersTab")
_CONTROL_WORDS = frozenset({"tab", "button", "btn", "link", "nav", "item", "control"})
# Words dropped from a description before comparing it with a section name
_CLICK_WORDS = frozenset({"click", "tap", "on", "the", "open", "select", "go", "to", "tab", "section"})


def is_section_control(action: OrderedAction, element: str, aliases: tuple[str, ...]) -> bool:
    """True when ``action`` clicks the section's own control, whatever the model called it."""
    if action.element == element:
        return True
    if action.type not in ("click", "tap"):
        return False
    words = split_words(action.element)
    described = [w for w in re.findall(r"[a-z0-9]+", action.description.lower()) if w not in _CLICK_WORDS]
    for alias in aliases:
        alias_words = alias.split()
        rest = words[len(alias_words):]
        if words[:len(alias_words)] == alias_words and all(w in _CONTROL_WORDS for w in rest):
            return True
        if described == alias_words:
            return True
    return False


def ensure_section_activation(intent: Intent) -> Intent:
    """Mark or add the activation step for sub-section contexts and sort actions.

    A step that already clicks the section control is renamed to the
    canonical element and marked; further clicks on the same control are
    dropped, so there is never a second activation.
    """
    section = keywords.SECTION_ALIASES.get(intent.context)
    if section is not None:
        element, aliases = section
        controls = [a for a in intent.actions if is_section_control(a, element, aliases)]
        if controls:
            first = controls[0]
            if first.element != element:
                logger.debug("Treating '%s' as the %s control", first.element, element)
            first.element = element
            first.activation = True
            intent.actions = [a for a in intent.actions if a is first or all(a is not c for c in controls)]
        else:
            intent.actions.insert(0, OrderedAction(
                type="click",
                element=element,
                description=f"Click on {aliases[0].title()} tab",
                intent=f"Navigate to {aliases[0]} section",
                order=0,
                activation=True,
            ))
    intent.actions = intent.sorted_actions()
    return intent


class IntentInterpreter:
    """Single decision point between the model-backed and keyword interpreters."""

    def __init__(self, ai_client: Optional[AIClient] = None, max_tokens: int = 2000):
        self.primary = PrimaryInterpreter(ai_client, max_tokens) if ai_client else None
        self.fallback = FallbackInterpreter()

    def interpret(self, criteria: str, ticket_title: Optional[str] = None) -> Intent:
        """Return a well-formed Intent. Never raises."""
        intent: Optional[Intent] = None
        if self.primary is not None:
            try:
                intent = self.primary.interpret(criteria, ticket_title)
                logger.info("Interpreted criteria with language model: context=%s, %d actions",
                            intent.context, len(intent.actions))
            except InterpretationFailure as e:
                logger.warning("Primary interpretation failed: %s. Using keyword fallback.", e)
        if intent is None:
            intent = self.fallback.interpret(criteria, ticket_title)
            logger.info("Interpreted criteria with keyword tables v%s: context=%s, %d actions",
                        keywords.TABLES_VERSION, intent.context, len(intent.actions))
        return ensure_section_activation(intent)
