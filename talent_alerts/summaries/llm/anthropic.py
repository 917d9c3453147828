"""Anthropic (Claude) summaries."""

from typing import Any

from talent_alerts.summaries.llm.base import SUMMARY_MAX_TOKENS, LLMProvider, sdk_missing


class AnthropicProvider(LLMProvider):
    provider_id = "anthropic"
    default_model = "claude-sonnet-4-20250514"
    env_var = "ANTHROPIC_API_KEY"

    def _connect(self, api_key: str | None) -> Any:
        try:
            import anthropic
        except ImportError:
            raise sdk_missing("anthropic", "anthropic") from None
        return anthropic.Anthropic(api_key=api_key)

    def _generate(self, client: Any, prompt: str, model: str, system: str) -> str | None:
        message = client.messages.create(
            model=model,
            max_tokens=SUMMARY_MAX_TOKENS,
            system=system,
            messages=[{"role": "user", "content": prompt}],
        )
        # text blocks only; tool or thinking blocks carry no summary
        parts = [getattr(block, "text", None) for block in message.content]
        return "".join(part for part in parts if isinstance(part, str))
