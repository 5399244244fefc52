"""Intent models: the structured reading of acceptance criteria."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

ActionType = Literal["click", "tap", "fill", "navigate", "scroll"]
AssertionType = Literal["visibility", "text", "state", "value", "url"]


class AcceptanceCriteria(BaseModel):
    model_config = {"frozen": True}

    text: str
    ticket_id: Optional[str] = None
    ticket_title: Optional[str] = None


class OrderedAction(BaseModel):
    type: ActionType = "click"
    element: str
    description: str = ""
    intent: str = ""
    order: int = 0
    value: Optional[str] = None
    # Set on actions that open a sub-section (tab, segmented control)
    activation: bool = False


class Assertion(BaseModel):
    type: AssertionType = "visibility"
    element: str
    description: str = ""
    expected: Optional[str] = None


class Intent(BaseModel):
    context: str = "home"
    actions: list[OrderedAction] = Field(default_factory=list)
    assertions: list[Assertion] = Field(default_factory=list)
    source: Literal["llm", "keywords"] = "keywords"

    def has_activation_for(self, element: str) -> bool:
        return any(a.activation and a.element == element for a in self.actions)

    def sorted_actions(self) -> list[OrderedAction]:
        """Activation actions first, then by order weight; ties keep list position."""
        indexed = list(enumerate(self.actions))
        indexed.sort(key=lambda pair: (0 if pair[1].activation else 1, pair[1].order, pair[0]))
        return [a for _, a in indexed]
