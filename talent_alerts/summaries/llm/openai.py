"""OpenAI chat-completions summaries.

``OpenAICompatibleProvider`` is shared with any backend that speaks the same
wire protocol (see ``ollama``).
"""

from typing import Any

from talent_alerts.summaries.llm.base import SUMMARY_MAX_TOKENS, LLMProvider, sdk_missing


class OpenAICompatibleProvider(LLMProvider):
    temperature: float = 0.7
    sdk_purpose: str = "AI summaries"

    def _openai_client(self, **client_kwargs: Any) -> Any:
        try:
            import openai
        except ImportError:
            raise sdk_missing("openai", "openai", self.sdk_purpose) from None
        return openai.OpenAI(**client_kwargs)

    def _generate(self, client: Any, prompt: str, model: str, system: str) -> str | None:
        response = client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            temperature=self.temperature,
            max_tokens=SUMMARY_MAX_TOKENS,
        )
        if not response.choices:
            return None
        return response.choices[0].message.content  # type: ignore[no-any-return]


class OpenAIProvider(OpenAICompatibleProvider):
    provider_id = "openai"
    default_model = "gpt-4o-mini"
    env_var = "OPENAI_API_KEY"

    def _connect(self, api_key: str | None) -> Any:
        return self._openai_client(api_key=api_key)
