"""Candidate digest: a handful of recently interviewed candidates, sampled at random."""

import logging
import random
from typing import Any

from talent_alerts.campaigns.state_machine import CampaignStateMachine, MailSender
from talent_alerts.core.config import DigestConfig
from talent_alerts.core.errors import NoMaterialError
from talent_alerts.core.schemas import CampaignState
from talent_alerts.core.state_store import StateRepository
from talent_alerts.discovery.engine import CandidateDiscovery, select_random
from talent_alerts.formatting.candidates import format_candidate
from talent_alerts.summaries.summarizer import Summarizer, summarize_all

logger = logging.getLogger(__name__)


class CandidateDigestCampaign(CampaignStateMachine):
    label = "candidate digest"

    def __init__(
        self,
        repository: StateRepository,
        mail: MailSender,
        discovery: CandidateDiscovery,
        summarizer: Summarizer,
        *,
        digest: DigestConfig,
        profile_url_template: str,
        template_id: int | None,
        test_email: str | None,
        reset_delay_s: float = 2.0,
        rng: random.Random | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            repository, mail,
            template_id=template_id,
            test_email=test_email,
            reset_delay_s=reset_delay_s,
            **kwargs,
        )
        self._discovery = discovery
        self._summarizer = summarizer
        self._digest = digest
        self._profile_url_template = profile_url_template
        self._rng = rng

    async def _build_payload(self) -> tuple[dict[str, Any], int]:
        pool = await self._discovery.discover_recently_interviewed()
        if not pool:
            msg = "No candidates found with interviews in the discovery window"
            raise NoMaterialError(msg)

        selected = select_random(pool, self._digest.size, self._rng)
        logger.info("Selected %d of %d candidates", len(selected), len(pool))
        summaries = await summarize_all(self._summarizer, selected)

        formatted = [
            format_candidate(
                candidate, number, summary,
                profile_url_template=self._profile_url_template,
                illustration_urls=self._digest.illustration_urls,
            ).model_dump(by_alias=True)
            for number, (candidate, summary) in enumerate(zip(selected, summaries), start=1)
        ]
        return {"candidates": formatted}, len(pool)

    def _email_params(self, state: CampaignState) -> dict[str, Any]:
        return {"candidates": state.payload.get("candidates", [])}
