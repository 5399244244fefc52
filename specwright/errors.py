"""Error taxonomy for synthesis runs.

Terminal errors carry a ``diagnostics`` dict (last known url, page title,
element counts, driver state) so a failed run can be explained without
re-running it.
"""

from __future__ import annotations

from typing import Any, Optional


class SynthesisError(Exception):
    """Base class for all pipeline errors."""

    kind = "synthesis_error"

    def __init__(self, message: str, diagnostics: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.diagnostics = diagnostics or {}

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "diagnostics": self.diagnostics}


class InterpretationFailure(SynthesisError):
    """Primary interpreter could not produce an intent. Always recovered."""

    kind = "interpretation_failure"


class AuthenticationFailure(SynthesisError):
    kind = "authentication_failure"


class NavigationFailure(SynthesisError):
    kind = "navigation_failure"


class ObservationInsufficient(SynthesisError):
    kind = "observation_insufficient"


class PublishFailure(SynthesisError):
    """Hosting collaborator rejected a write. Recovered with manual commands."""

    kind = "publish_failure"


class PipelineTimeout(SynthesisError):
    kind = "timeout"
