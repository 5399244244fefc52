"""Observation and knowledge-base models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class ObservedElement(BaseModel):
    stable_id: Optional[str] = None
    text: Optional[str] = None
    role: str = ""
    tag: str = ""
    locator_expression: str


class Observation(BaseModel):
    context: str
    url: str = ""
    title: str = ""
    elements: list[ObservedElement] = Field(default_factory=list)
    # ARIA snapshot (YAML text) of the page body
    accessibility_snapshot: Optional[str] = None
    interactive_count: int = 0
    captured_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def by_stable_id(self, stable_id: str) -> Optional[ObservedElement]:
        for el in self.elements:
            if el.stable_id == stable_id:
                return el
        return None

    @property
    def stable_ids(self) -> list[str]:
        return [el.stable_id for el in self.elements if el.stable_id]


class KnownMethod(BaseModel):
    model_config = {"frozen": True}

    name: str
    test_ids: tuple[str, ...] = ()


class KnowledgeBase(BaseModel):
    """Mined reusable-action library, keyed by page-object namespace."""

    methods_by_namespace: dict[str, list[KnownMethod]] = Field(default_factory=dict)
    selector_samples: list[str] = Field(default_factory=list)
    source: str = "repository"  # or "fallback"

    def methods_with_test_ids_by_namespace(self) -> dict[str, dict[str, list[str]]]:
        return {
            ns: {m.name: list(m.test_ids) for m in methods if m.test_ids}
            for ns, methods in self.methods_by_namespace.items()
        }

    def method_names(self, namespace: str) -> list[str]:
        return [m.name for m in self.methods_by_namespace.get(namespace, [])]

    def find_by_test_id(self, namespace: str, test_id: str) -> Optional[KnownMethod]:
        for m in self.methods_by_namespace.get(namespace, []):
            if test_id in m.test_ids:
                return m
        return None
