"""Synthesis and publishing result models."""

from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

from specwright.models.intent import Assertion, OrderedAction

FoundBy = Literal["reuse", "observed-locator", "accessibility-search", "not-found"]


class Interaction(BaseModel):
    step: Union[OrderedAction, Assertion]
    kind: Literal["action", "assertion"] = "action"
    found_by: FoundBy
    method_name: str
    locator_expression: Optional[str] = None
    visible: bool = False
    # True when the page object has no such method yet and a stub must be added
    needs_stub: bool = False


class GeneratedTest(BaseModel):
    model_config = {"frozen": True}

    title: str
    tags: tuple[str, ...] = ()
    code: str
    action_count: int
    assertion_count: int
    namespace: str = "homePage"
    stubs: str = ""
    interactions: tuple[Interaction, ...] = ()


class PublishResult(BaseModel):
    status: Literal["created", "appended", "skipped", "failed", "dry-run"]
    file_path: str
    mode: Optional[Literal["create", "append"]] = None
    branch: Optional[str] = None
    pull_request_url: Optional[str] = None
    reason: Optional[str] = None
    manual_commands: list[str] = Field(default_factory=list)
