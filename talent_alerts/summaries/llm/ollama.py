"""Local Ollama summaries through its OpenAI-compatible endpoint."""

import os
from typing import Any

from talent_alerts.summaries.llm.openai import OpenAICompatibleProvider

DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434/v1"


class OllamaProvider(OpenAICompatibleProvider):
    provider_id = "ollama"
    default_model = "llama3"
    env_var = None
    sdk_purpose = "Ollama (OpenAI-compatible API)"

    def _connect(self, api_key: str | None) -> Any:
        base_url = os.environ.get("OLLAMA_BASE_URL", DEFAULT_OLLAMA_BASE_URL)
        # the server ignores the key but the SDK insists on one
        return self._openai_client(base_url=base_url, api_key="ollama")
