"""Google Gemini summaries (google-genai SDK)."""

from typing import Any

from talent_alerts.summaries.llm.base import SUMMARY_MAX_TOKENS, LLMProvider, sdk_missing


class GeminiProvider(LLMProvider):
    provider_id = "gemini"
    default_model = "gemini-2.5-flash"
    env_var = "GOOGLE_API_KEY"

    def _connect(self, api_key: str | None) -> Any:
        try:
            from google import genai
        except ImportError:
            raise sdk_missing("google-genai", "gemini") from None
        return genai.Client(api_key=api_key)

    def _generate(self, client: Any, prompt: str, model: str, system: str) -> str | None:
        from google.genai import types as genai_types

        response = client.models.generate_content(
            model=model,
            contents=prompt,
            config=genai_types.GenerateContentConfig(
                system_instruction=system,
                max_output_tokens=SUMMARY_MAX_TOKENS,
            ),
        )
        return response.text  # type: ignore[no-any-return]
