"""Configuration models for test synthesis runs."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _resolve_env(v):
    if isinstance(v, str) and v.startswith("env:"):
        env_var = v[4:]
        resolved = os.environ.get(env_var)
        if resolved is None:
            raise ValueError(f"Environment variable '{env_var}' not set")
        return resolved
    return v


class ViewportConfig(BaseModel):
    width: int = 1280
    height: int = 720


class BrowserConfig(BaseModel):
    headless: bool = True
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    user_agent: Optional[str] = None
    navigation_timeout_ms: int = 30000
    idle_timeout_ms: int = 10000
    navigation_retries: int = 2


class CredentialsConfig(BaseModel):
    login_path: str = "/login"
    email: str = ""
    password: str = ""
    email_selector: str = "input[name='email'], input[type='email']"
    password_selector: str = "input[name='password'], input[type='password']"
    submit_selector: str = (
        "button[type='submit'], button:has-text('Login'), button:has-text('Sign in')"
    )
    # A logged-in page with fewer addressable elements than this is re-checked once
    min_elements: int = 5
    recheck_delay_ms: int = 3000
    redirect_timeout_ms: int = 15000

    @field_validator("email", "password", mode="before")
    @classmethod
    def resolve_env_secret(cls, v: str) -> str:
        return _resolve_env(v)


class HostingConfig(BaseModel):
    token: str = ""
    repository: str = ""
    base_branch: str = "main"
    spec_dir: str = "tests/specs"
    page_object_dir: str = "tests/frontend/desktop/subscription/coreUx"
    workflow_path: str = ".github/workflows/auto-generated-test.yml"
    draft: bool = True
    request_timeout_seconds: float = 15.0

    @field_validator("token", mode="before")
    @classmethod
    def resolve_env_token(cls, v: str) -> str:
        return _resolve_env(v)


class AIConfig(BaseModel):
    enabled: bool = True
    model: str = "claude-sonnet-4-20250514"
    fallback_models: list[str] = Field(
        default_factory=lambda: ["claude-3-7-sonnet-20250219", "claude-3-5-haiku-20241022"]
    )
    max_tokens: int = 2000
    timeout_seconds: float = 30.0


class ExecutionConfig(BaseModel):
    # Target
    base_url: str

    # Context -> path on the application under test
    context_routes: dict[str, str] = Field(
        default_factory=lambda: {
            "home": "/menu",
            "menu": "/menu",
            "search": "/menu",
            "cart": "/menu",
            "ordersHub": "/orders",
            "pastOrders": "/orders",
            "signup": "/signup",
        }
    )
    # Contexts observed without logging in
    no_auth_contexts: list[str] = Field(default_factory=lambda: ["signup"])

    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)
    hosting: HostingConfig = Field(default_factory=HostingConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    ai: AIConfig = Field(default_factory=AIConfig)

    # Budgets
    run_deadline_seconds: float = 300.0
    deadline_margin_seconds: float = 10.0
    miner_timeout_seconds: float = 10.0

    # Output
    output_dir: str = "./specwright-runs"

    @property
    def login_url(self) -> str:
        return self.base_url.rstrip("/") + self.credentials.login_path

    def route_for(self, context: str) -> str:
        path = self.context_routes.get(context, self.context_routes.get("home", "/"))
        return self.base_url.rstrip("/") + path

    @classmethod
    def load(cls, path: str | Path) -> "ExecutionConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
