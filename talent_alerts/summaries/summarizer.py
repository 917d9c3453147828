"""Candidate blurbs for the digest email.

``LLMSummarizer`` asks a configured provider for a short professional summary
and drops back to ``FallbackSummarizer`` whenever the provider is missing,
errors, or returns nothing. The fallback is deterministic so digest generation
never depends on the external call.
"""

import asyncio
import logging
from typing import Protocol

from talent_alerts.core.config import SummaryConfig
from talent_alerts.core.schemas import Candidate
from talent_alerts.formatting.candidates import current_title, years_of_experience
from talent_alerts.summaries.llm import LLMProvider, clean_completion, get_provider

logger = logging.getLogger(__name__)

BIO_SUMMARY_CHARS = 250


class Summarizer(Protocol):
    async def summarize(self, candidate: Candidate) -> str: ...


class FallbackSummarizer:
    """Truncated bio, or a sentence built from title and top skills."""

    def __init__(self, max_chars: int = BIO_SUMMARY_CHARS) -> None:
        self._max_chars = max_chars

    async def summarize(self, candidate: Candidate) -> str:
        return self.summarize_sync(candidate)

    def summarize_sync(self, candidate: Candidate) -> str:
        bio = (candidate.summary or "").strip()
        if bio:
            if len(bio) > self._max_chars:
                return bio[: self._max_chars] + "..."
            return bio

        title = current_title(candidate)
        skills = candidate.skill_tags[:3]
        if skills:
            return f"Experienced {title} with expertise in {', '.join(skills)}."
        return f"Experienced {title} with a proven track record."


class LLMSummarizer:
    """AI-written summaries with a deterministic fallback."""

    def __init__(
        self,
        provider: LLMProvider,
        *,
        model: str | None = None,
        max_bio_chars: int = 300,
        fallback: FallbackSummarizer | None = None,
    ) -> None:
        self._provider = provider
        self._model = model
        self._max_bio_chars = max_bio_chars
        self._fallback = fallback or FallbackSummarizer()

    async def summarize(self, candidate: Candidate) -> str:
        prompt = build_prompt(candidate, max_bio_chars=self._max_bio_chars)
        try:
            raw = await asyncio.to_thread(self._provider.complete, prompt, self._model)
        except Exception as e:
            logger.warning(
                "AI summary failed for candidate %s (%s): %s",
                candidate.candidate_id, self._provider.provider_id, e,
            )
            return self._fallback.summarize_sync(candidate)

        text = clean_completion(raw or "")
        if not text:
            logger.warning("Empty AI summary for candidate %s, using fallback", candidate.candidate_id)
            return self._fallback.summarize_sync(candidate)
        return text


def build_prompt(candidate: Candidate, *, max_bio_chars: int = 300) -> str:
    """Plain-text context block describing one candidate."""
    employment = candidate.employment
    lines = [f"Name: {candidate.name or 'Unknown'}"]
    lines.append(f"Current role: {current_title(candidate)}")
    if employment.current and employment.current.employer:
        lines.append(f"Company: {employment.current.employer}")
    lines.append(f"Years of experience: {years_of_experience(candidate)}")

    recent = [
        f"{record.position} at {record.employer}" if record.employer else record.position
        for record in employment.history[:3]
        if record.position
    ]
    if recent:
        lines.append(f"Recent experience: {'; '.join(recent)}")
    if candidate.skill_tags:
        lines.append(f"Skills: {', '.join(candidate.skill_tags[:10])}")
    bio = (candidate.summary or "").strip()
    if bio:
        lines.append(f"Bio: {bio[:max_bio_chars]}")
    if employment.ideal and employment.ideal.position:
        lines.append(f"Seeking: {employment.ideal.position}")
    return "\n".join(lines)


async def summarize_all(summarizer: Summarizer, candidates: list[Candidate]) -> list[str]:
    return list(await asyncio.gather(*(summarizer.summarize(c) for c in candidates)))


def build_summarizer(config: SummaryConfig) -> Summarizer:
    """LLM summaries when enabled, the deterministic fallback otherwise."""
    if not config.enabled:
        return FallbackSummarizer()
    provider = get_provider(config.provider)
    logger.info("AI summaries enabled (%s)", provider.provider_id)
    return LLMSummarizer(provider, model=config.model, max_bio_chars=config.max_bio_chars)
