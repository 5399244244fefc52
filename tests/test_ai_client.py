"""Tests for AI client."""

import os
from pathlib import Path
from unittest.mock import Mock, patch

import anthropic
import pytest

from specwright.ai.client import AIClient, _get_debug_dir, set_debug_dir


def _response(text: str, stop_reason: str = "end_turn") -> Mock:
    content = Mock()
    content.text = text
    response = Mock()
    response.content = [content]
    response.stop_reason = stop_reason
    return response


def _not_found(model: str) -> anthropic.NotFoundError:
    return anthropic.NotFoundError(
        f"model: {model}",
        response=Mock(status_code=404, headers={}, request=Mock()),
        body=None,
    )


@pytest.fixture(autouse=True)
def debug_dir(tmp_path: Path):
    set_debug_dir(tmp_path / "debug")
    return tmp_path / "debug"


class TestAIClient:
    """Tests for AIClient class."""

    def test_init_requires_api_key(self):
        """Test AIClient raises error when API key is missing."""
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(EnvironmentError, match="ANTHROPIC_API_KEY"):
                AIClient()

    @patch("anthropic.Anthropic")
    def test_init_with_api_key(self, mock_anthropic):
        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            client = AIClient(timeout=12)
            assert client.model == "claude-sonnet-4-20250514"
            assert client.max_tokens == 2000
            assert client.call_count == 0
            mock_anthropic.assert_called_once_with(api_key="test-key", timeout=12)

    @patch("anthropic.Anthropic")
    def test_complete_success(self, mock_anthropic_class):
        mock_client = Mock()
        mock_client.messages.create.return_value = _response("AI response text")
        mock_anthropic_class.return_value = mock_client

        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            client = AIClient()
            response = client.complete(system_prompt="system", user_message="Hello")

        assert response == "AI response text"
        assert client.call_count == 1
        kwargs = mock_client.messages.create.call_args.kwargs
        assert kwargs["temperature"] == 0.1
        assert kwargs["messages"] == [{"role": "user", "content": "Hello"}]

    @patch("anthropic.Anthropic")
    def test_exchange_is_logged(self, mock_anthropic_class, debug_dir):
        mock_client = Mock()
        mock_client.messages.create.return_value = _response("{}")
        mock_anthropic_class.return_value = mock_client

        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            AIClient().complete("system", "user")

        assert list(debug_dir.glob("ai_call_*.log"))

    @patch("specwright.ai.client.logger")
    @patch("anthropic.Anthropic")
    def test_complete_warns_on_truncation(self, mock_anthropic_class, mock_logger):
        mock_client = Mock()
        mock_client.messages.create.return_value = _response("partial", stop_reason="max_tokens")
        mock_anthropic_class.return_value = mock_client

        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            AIClient(max_tokens=50).complete("system", "user")

        mock_logger.warning.assert_called_once()


class TestModelFallback:
    """A missing model moves on to the next configured one."""

    @patch("anthropic.Anthropic")
    def test_falls_back_and_sticks(self, mock_anthropic_class):
        mock_client = Mock()
        mock_client.messages.create.side_effect = [
            _not_found("primary"),
            _response("from fallback"),
            _response("again"),
        ]
        mock_anthropic_class.return_value = mock_client

        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            client = AIClient(model="primary", fallback_models=["secondary"])
            assert client.complete("s", "u") == "from fallback"
            assert client.model == "secondary"
            client.complete("s", "u")

        models = [c.kwargs["model"] for c in mock_client.messages.create.call_args_list]
        assert models == ["primary", "secondary", "secondary"]

    @patch("anthropic.Anthropic")
    def test_last_candidate_missing_raises(self, mock_anthropic_class):
        mock_client = Mock()
        mock_client.messages.create.side_effect = _not_found("only")
        mock_anthropic_class.return_value = mock_client

        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            client = AIClient(model="only")
            with pytest.raises(anthropic.NotFoundError):
                client.complete("s", "u")

    @patch("anthropic.Anthropic")
    def test_timeout_error_propagates(self, mock_anthropic_class):
        mock_client = Mock()
        mock_client.messages.create.side_effect = anthropic.APITimeoutError(request=Mock())
        mock_anthropic_class.return_value = mock_client

        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            client = AIClient(fallback_models=["other"])
            with pytest.raises(anthropic.APITimeoutError):
                client.complete("s", "u")
        assert mock_client.messages.create.call_count == 1


class TestJSONParsing:
    """Tests for LLM output clean-up."""

    def test_plain_object(self):
        assert AIClient._parse_json_response('{"context": "home"}') == {"context": "home"}

    def test_markdown_fences(self):
        text = '```json\n{"context": "cart", "actions": []}\n```'
        assert AIClient._parse_json_response(text)["context"] == "cart"

    def test_trailing_commas_and_prose(self):
        text = 'Here is the intent:\n{"context": "menu", "actions": [1, 2,],}\nHope this helps.'
        assert AIClient._parse_json_response(text) == {"context": "menu", "actions": [1, 2]}

    def test_invalid_json_raises_and_is_saved(self, debug_dir):
        with pytest.raises(ValueError, match="invalid JSON"):
            AIClient._parse_json_response("not json at all")
        assert list(debug_dir.glob("parse_failure_*.log"))

    def test_non_object_rejected(self):
        with pytest.raises(ValueError, match="not an object"):
            AIClient._parse_json_response("[1, 2, 3]")


class TestDebugDir:

    def test_set_debug_dir_creates_directory(self, tmp_path: Path):
        target = tmp_path / "nested" / "debug"
        set_debug_dir(target)
        assert target.is_dir()
        assert _get_debug_dir() == target
