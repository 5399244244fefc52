"""Claude API client wrapper used by the intent interpreter."""

from __future__ import annotations

import json
import logging
import os
import re
import time
from pathlib import Path
from typing import Any, Optional

import anthropic

logger = logging.getLogger(__name__)

# Configurable debug directory, set by orchestrator at startup
_debug_dir: Path | None = None


def set_debug_dir(path: Path) -> None:
    """Set the directory for dumping AI exchanges and parse failures."""
    global _debug_dir
    _debug_dir = path
    _debug_dir.mkdir(parents=True, exist_ok=True)


def _get_debug_dir() -> Path:
    """Get or create the debug directory."""
    global _debug_dir
    if _debug_dir is None:
        _debug_dir = Path("./specwright-runs") / "debug"
    _debug_dir.mkdir(parents=True, exist_ok=True)
    return _debug_dir


class AIClient:
    """Wrapper around the Anthropic Claude API.

    When the configured model is reported missing, the next entry of
    ``fallback_models`` is tried and kept for the rest of the client's life.
    """

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 2000,
        fallback_models: Optional[list[str]] = None,
        timeout: float = 30.0,
    ):
        api_key = os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise EnvironmentError(
                "ANTHROPIC_API_KEY environment variable is not set. "
                "Interpretation will use keyword matching only."
            )
        self.client = anthropic.Anthropic(api_key=api_key, timeout=timeout)
        self.model = model
        self.fallback_models = list(fallback_models or [])
        self.max_tokens = max_tokens
        self._call_count = 0

    @property
    def call_count(self) -> int:
        return self._call_count

    def complete(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: Optional[int] = None,
        temperature: float = 0.1,
    ) -> str:
        """Send a completion request to Claude and return the text response."""
        self._call_count += 1
        tokens = max_tokens or self.max_tokens
        candidates = [self.model] + [m for m in self.fallback_models if m != self.model]

        for idx, model in enumerate(candidates):
            logger.info(
                "Calling AI (call #%d, model=%s, max_tokens=%d)...",
                self._call_count, model, tokens,
            )
            try:
                call_start = time.time()
                response = self.client.messages.create(
                    model=model,
                    max_tokens=tokens,
                    temperature=temperature,
                    system=system_prompt,
                    messages=[{"role": "user", "content": user_message}],
                )
            except anthropic.NotFoundError as e:
                if idx + 1 < len(candidates):
                    logger.warning("Model %s not available (%s), trying %s",
                                   model, e, candidates[idx + 1])
                    continue
                self._save_exchange_log(self._call_count, system_prompt, user_message, "", str(e))
                raise
            except anthropic.APIError as e:
                logger.error("Claude API error: %s", e)
                self._save_exchange_log(self._call_count, system_prompt, user_message, "", str(e))
                raise

            if model != self.model:
                logger.info("Switching to fallback model %s for subsequent calls", model)
                self.model = model

            text = response.content[0].text
            logger.info("AI response received in %.1fs (%d chars)",
                        time.time() - call_start, len(text))
            if response.stop_reason == "max_tokens":
                logger.warning("AI response was truncated at max_tokens=%d", tokens)

            self._save_exchange_log(self._call_count, system_prompt, user_message, text, None)
            return text

        # The loop always returns or raises
        raise RuntimeError("No model candidates configured")

    def complete_json(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: Optional[int] = None,
        temperature: float = 0.1,
    ) -> dict[str, Any]:
        """Send a completion request and parse the response as JSON."""
        text = self.complete(system_prompt, user_message, max_tokens, temperature)
        return self._parse_json_response(text)

    # ------------------------------------------------------------------
    # JSON parsing with LLM quirk handling
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_json_response(text: str) -> dict[str, Any]:
        """Parse AI response as JSON, handling common LLM output quirks."""
        original_text = text
        text = text.strip()

        fence_pattern = re.compile(
            r'^```(?:json|javascript|)?\s*\n(.*?)\n```\s*$',
            re.DOTALL | re.MULTILINE
        )
        match = fence_pattern.search(text)
        if match:
            text = match.group(1).strip()
            logger.debug("Stripped markdown code fences from AI response")

        # Attempt 1: as-is
        try:
            parsed = json.loads(text, strict=False)
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass

        # Attempt 2: drop trailing commas and cut out the outermost object
        cleaned = re.sub(r',\s*([}\]])', r'\1', text)
        first_brace = cleaned.find('{')
        last_brace = cleaned.rfind('}')
        if first_brace != -1 and last_brace > first_brace:
            cleaned = cleaned[first_brace:last_brace + 1]

        try:
            parsed = json.loads(cleaned, strict=False)
        except json.JSONDecodeError as e:
            logger.error("Failed to parse AI response as JSON: %s", e)
            AIClient._save_parse_failure(original_text, str(e), cleaned)
            raise ValueError(f"AI returned invalid JSON: {e}") from e
        if not isinstance(parsed, dict):
            raise ValueError("AI returned JSON that is not an object")
        return parsed

    # ------------------------------------------------------------------
    # Debug logging
    # ------------------------------------------------------------------

    @staticmethod
    def _save_exchange_log(
        call_number: int,
        system_prompt: str,
        user_message: str,
        response_text: str,
        error: str | None,
    ) -> None:
        """Save the full AI exchange (prompt + response) to a log file."""
        try:
            debug_dir = _get_debug_dir()
            ts = time.strftime("%Y%m%d_%H%M%S")
            log_file = debug_dir / f"ai_call_{ts}_{call_number:03d}.log"

            with open(log_file, "w", encoding="utf-8") as f:
                f.write(f"=== AI CALL #{call_number} at {time.strftime('%Y-%m-%d %H:%M:%S')} ===\n\n")
                f.write(f"=== SYSTEM PROMPT ({len(system_prompt)} chars) ===\n")
                f.write(system_prompt)
                f.write(f"\n\n=== USER MESSAGE ({len(user_message)} chars) ===\n")
                f.write(user_message)
                f.write(f"\n\n=== RESPONSE ({len(response_text)} chars) ===\n")
                f.write(response_text if response_text else "(empty)")
                if error:
                    f.write(f"\n\n=== ERROR ===\n{error}\n")

            logger.debug("AI exchange logged to %s", log_file)
        except Exception as log_err:
            logger.debug("Failed to save AI exchange log: %s", log_err)

    @staticmethod
    def _save_parse_failure(raw_response: str, error: str, cleaned_response: str) -> None:
        """Save parse failure details for debugging."""
        try:
            debug_dir = _get_debug_dir()
            ts = time.strftime("%Y%m%d_%H%M%S")
            fail_file = debug_dir / f"parse_failure_{ts}.log"
            with open(fail_file, "w", encoding="utf-8") as f:
                f.write(f"=== JSON PARSE FAILURE ===\n\nError: {error}\n\n")
                f.write(f"=== CLEANED TEXT ({len(cleaned_response)} chars) ===\n")
                f.write(cleaned_response)
                f.write(f"\n\n=== FULL RAW RESPONSE ({len(raw_response)} chars) ===\n")
                f.write(raw_response)
            logger.error("JSON parse failure details saved to %s", fail_file)
        except Exception as log_err:
            logger.error("Failed to save parse failure log: %s", log_err)
            logger.error("Raw response (first 2000 chars):\n%s", raw_response[:2000])
