"""Pluggable text-generation backends for candidate summaries.

Provider modules import their SDK only when used, so the registry can list
every backend without any optional extra installed::

    provider = get_provider(settings.summaries.provider)
    text = provider.complete(prompt)
"""

import importlib

from talent_alerts.summaries.llm.base import SUMMARY_SYSTEM_PROMPT, LLMProvider, clean_completion

__all__ = [
    "SUMMARY_SYSTEM_PROMPT",
    "LLMProvider",
    "available_providers",
    "clean_completion",
    "get_provider",
]

_PROVIDERS: dict[str, str] = {
    "anthropic": "talent_alerts.summaries.llm.anthropic:AnthropicProvider",
    "gemini": "talent_alerts.summaries.llm.gemini:GeminiProvider",
    "ollama": "talent_alerts.summaries.llm.ollama:OllamaProvider",
    "openai": "talent_alerts.summaries.llm.openai:OpenAIProvider",
}


def get_provider(name: str) -> LLMProvider:
    """Instantiate the provider registered as ``name``.

    Raises:
        ValueError: If the provider name is unknown.
    """
    target = _PROVIDERS.get(name)
    if target is None:
        msg = f"Unknown LLM provider '{name}'. Available: {', '.join(available_providers())}"
        raise ValueError(msg)
    module_path, class_name = target.split(":")
    provider_cls = getattr(importlib.import_module(module_path), class_name)
    return provider_cls()  # type: ignore[no-any-return]


def available_providers() -> list[str]:
    return sorted(_PROVIDERS)
