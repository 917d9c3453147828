"""Tests for the summary provider registry and the SDK adapters."""

from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from talent_alerts.summaries.llm import (
    SUMMARY_SYSTEM_PROMPT,
    available_providers,
    clean_completion,
    get_provider,
)
from talent_alerts.summaries.llm.base import SUMMARY_MAX_TOKENS, LLMProvider

# name, default model, key variable, modules to hide, expected install hint
PROVIDERS = [
    ("anthropic", "claude-sonnet-4-20250514", "ANTHROPIC_API_KEY", ["anthropic"], "talent-alerts[anthropic]"),
    ("openai", "gpt-4o-mini", "OPENAI_API_KEY", ["openai"], "talent-alerts[openai]"),
    ("gemini", "gemini-2.5-flash", "GOOGLE_API_KEY", ["google", "google.genai"], "talent-alerts[gemini]"),
    ("ollama", "llama3", None, ["openai"], "talent-alerts[openai]"),
]


def _openai_module(content: str | None = "ok") -> MagicMock:
    module = MagicMock()
    module.OpenAI.return_value.chat.completions.create.return_value.choices[0].message.content = content
    return module


def _sdk_env(name: str, module: MagicMock) -> dict[str, Any]:
    if name == "anthropic":
        return {"anthropic": module}
    if name == "gemini":
        google = MagicMock()
        google.genai = module
        return {"google": google, "google.genai": module}
    return {"openai": module}


class TestRegistry:
    @pytest.mark.parametrize(("name", "model", "env_var", "hidden", "hint"), PROVIDERS)
    def test_metadata(self, name: str, model: str, env_var: str | None, hidden: list[str], hint: str) -> None:
        provider = get_provider(name)
        assert isinstance(provider, LLMProvider)
        assert provider.provider_id == name
        assert provider.default_model == model
        assert provider.env_var == env_var

    def test_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown LLM provider 'gpt5'. Available: anthropic, gemini"):
            get_provider("gpt5")

    def test_listing(self) -> None:
        assert available_providers() == ["anthropic", "gemini", "ollama", "openai"]


class TestPreconditions:
    @pytest.mark.parametrize(("name", "model", "env_var", "hidden", "hint"), [p for p in PROVIDERS if p[2]])
    def test_missing_key(self, name: str, model: str, env_var: str, hidden: list[str], hint: str) -> None:
        with (
            patch.dict("os.environ", {}, clear=True),
            pytest.raises(ValueError, match=f"{env_var} environment variable is required"),
        ):
            get_provider(name).complete("candidate details")

    @pytest.mark.parametrize(("name", "model", "env_var", "hidden", "hint"), PROVIDERS)
    def test_missing_sdk(self, name: str, model: str, env_var: str | None, hidden: list[str], hint: str) -> None:
        env = {env_var: "key"} if env_var else {}
        with (
            patch.dict("os.environ", env),
            patch.dict("sys.modules", dict.fromkeys(hidden)),
            pytest.raises(ImportError) as excinfo,
        ):
            get_provider(name).complete("candidate details")
        assert hint in str(excinfo.value)

    def test_ollama_needs_no_key(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            assert get_provider("ollama").api_key() is None


class TestAnthropic:
    def _module(self, *blocks: Any) -> MagicMock:
        module = MagicMock()
        module.Anthropic.return_value.messages.create.return_value.content = list(blocks)
        return module

    def _complete(self, module: MagicMock, **kwargs: Any) -> str:
        with (
            patch.dict("os.environ", {"ANTHROPIC_API_KEY": "key"}),
            patch.dict("sys.modules", {"anthropic": module}),
        ):
            return get_provider("anthropic").complete("Name: Ada", **kwargs)

    def test_request(self) -> None:
        module = self._module(MagicMock(text="ok"))
        assert self._complete(module) == "ok"

        module.Anthropic.assert_called_once_with(api_key="key")
        kwargs = module.Anthropic.return_value.messages.create.call_args.kwargs
        assert kwargs["system"] == SUMMARY_SYSTEM_PROMPT
        assert kwargs["max_tokens"] == SUMMARY_MAX_TOKENS
        assert kwargs["messages"] == [{"role": "user", "content": "Name: Ada"}]

    def test_system_and_model_override(self) -> None:
        module = self._module(MagicMock(text="ok"))
        self._complete(module, model="claude-haiku", system="be brief")

        kwargs = module.Anthropic.return_value.messages.create.call_args.kwargs
        assert kwargs["system"] == "be brief"
        assert kwargs["model"] == "claude-haiku"

    def test_joins_text_blocks_only(self) -> None:
        module = self._module(MagicMock(spec=[]), MagicMock(text="Seasoned "), MagicMock(text="engineer."))
        assert self._complete(module) == "Seasoned engineer."


class TestOpenAICompatible:
    @pytest.mark.parametrize("name", ["openai", "ollama"])
    def test_chat_messages(self, name: str) -> None:
        module = _openai_module()
        with (
            patch.dict("os.environ", {"OPENAI_API_KEY": "key"}),
            patch.dict("sys.modules", _sdk_env(name, module)),
        ):
            assert get_provider(name).complete("Name: Ada", system="be brief") == "ok"

        kwargs = module.OpenAI.return_value.chat.completions.create.call_args.kwargs
        assert kwargs["messages"] == [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "Name: Ada"},
        ]
        assert kwargs["max_tokens"] == SUMMARY_MAX_TOKENS

    def test_no_choices_is_empty(self) -> None:
        module = _openai_module()
        module.OpenAI.return_value.chat.completions.create.return_value.choices = []
        with (
            patch.dict("os.environ", {"OPENAI_API_KEY": "key"}),
            patch.dict("sys.modules", {"openai": module}),
        ):
            assert get_provider("openai").complete("text") == ""

    def test_null_content_is_empty(self) -> None:
        with (
            patch.dict("os.environ", {"OPENAI_API_KEY": "key"}),
            patch.dict("sys.modules", {"openai": _openai_module(None)}),
        ):
            assert get_provider("openai").complete("text") == ""

    def test_ollama_base_url(self) -> None:
        module = _openai_module()
        with (
            patch.dict("os.environ", {"OLLAMA_BASE_URL": "http://gpu-box:11434/v1"}),
            patch.dict("sys.modules", {"openai": module}),
        ):
            get_provider("ollama").complete("text")

        assert module.OpenAI.call_args.kwargs == {"base_url": "http://gpu-box:11434/v1", "api_key": "ollama"}


class TestGemini:
    def test_request(self) -> None:
        module = MagicMock()
        module.Client.return_value.models.generate_content.return_value.text = "ok"
        with (
            patch.dict("os.environ", {"GOOGLE_API_KEY": "key"}),
            patch.dict("sys.modules", _sdk_env("gemini", module)),
        ):
            assert get_provider("gemini").complete("Name: Ada") == "ok"

        module.Client.assert_called_once_with(api_key="key")
        module.types.GenerateContentConfig.assert_called_once_with(
            system_instruction=SUMMARY_SYSTEM_PROMPT,
            max_output_tokens=SUMMARY_MAX_TOKENS,
        )
        call = module.Client.return_value.models.generate_content.call_args.kwargs
        assert call["model"] == "gemini-2.5-flash"
        assert call["contents"] == "Name: Ada"


class TestCleanCompletion:
    @pytest.mark.parametrize(("raw", "expected"), [
        ("  A seasoned engineer.  ", "A seasoned engineer."),
        ("```text\nA seasoned engineer.\n```", "A seasoned engineer."),
        ('"A seasoned engineer."', "A seasoned engineer."),
        ("'A seasoned engineer.'", "A seasoned engineer."),
        ('"', '"'),
        ("", ""),
    ])
    def test_clean(self, raw: str, expected: str) -> None:
        assert clean_completion(raw) == expected
