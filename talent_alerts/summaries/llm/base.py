"""Provider interface for AI candidate summaries.

A provider turns one prompt into one completion with a blocking SDK call. The
base class owns the shared steps (API key lookup, model and system prompt
defaults); subclasses only build their SDK client and issue the request.
"""

import logging
import os
import re
from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = (
    "You write short candidate blurbs for a recruitment agency's client-facing "
    "email.\n\n"
    "Given details about one candidate, write a compelling 2-3 sentence "
    "professional summary:\n"
    "- third person\n"
    "- focus on expertise, value proposition and key strengths\n"
    "- concise and engaging, professional tone\n"
    "- no salutation, no markdown, no quotes around the text\n\n"
    "Return ONLY the summary text."
)

# Completions are a few sentences long
SUMMARY_MAX_TOKENS = 300


def clean_completion(raw_text: str) -> str:
    """Strip code fences and wrapping quotes from a model completion."""
    cleaned = re.sub(r"^```[a-z]*\s*\n?", "", (raw_text or "").strip())
    cleaned = re.sub(r"\n?```\s*$", "", cleaned).strip()
    if len(cleaned) >= 2 and cleaned[0] == cleaned[-1] and cleaned[0] in "\"'":
        cleaned = cleaned[1:-1].strip()
    return cleaned


def sdk_missing(package: str, extra: str, purpose: str = "AI summaries") -> ImportError:
    return ImportError(
        f"{package} is required for {purpose}. "
        f"Install with: pip install 'talent-alerts[{extra}]'"
    )


class LLMProvider(ABC):
    """One text-generation backend.

    Subclasses set ``provider_id``, ``default_model`` and ``env_var`` (None
    when no key is needed) and implement ``_connect`` and ``_generate``.
    """

    provider_id: str = ""
    default_model: str = ""
    env_var: str | None = None

    def api_key(self) -> str | None:
        if self.env_var is None:
            return None
        key = os.environ.get(self.env_var)
        if not key:
            msg = f"{self.env_var} environment variable is required"
            raise ValueError(msg)
        return key

    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str | None = None,
    ) -> str:
        """Send a prompt to the model and return the raw completion text.

        Args:
            prompt: User message.
            model: Override the provider's default model. None uses default.
            system: Override the system prompt. None falls back to SUMMARY_SYSTEM_PROMPT.

        Raises:
            ValueError: If the provider's API key variable is unset.
            ImportError: If the provider's SDK is not installed.
        """
        client = self._connect(self.api_key())
        use_model = model or self.default_model
        logger.debug("Requesting completion from %s (%s)", self.provider_id, use_model)
        text = self._generate(
            client,
            prompt,
            use_model,
            system if system is not None else SUMMARY_SYSTEM_PROMPT,
        )
        return text or ""

    @abstractmethod
    def _connect(self, api_key: str | None) -> Any:
        """Import the SDK lazily and return a configured client."""

    @abstractmethod
    def _generate(self, client: Any, prompt: str, model: str, system: str) -> str | None:
        """Issue one completion request."""
