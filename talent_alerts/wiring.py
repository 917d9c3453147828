"""Builds the object graph shared by the HTTP app, the scheduler and the CLI."""

import logging
from dataclasses import dataclass
from pathlib import Path

from talent_alerts.campaigns.candidate_digest import CandidateDigestCampaign
from talent_alerts.campaigns.job_roundup import JobRoundup
from talent_alerts.campaigns.newsletter import NewsletterCampaign
from talent_alerts.campaigns.state_machine import CampaignStateMachine
from talent_alerts.clients.brevo import BrevoClient
from talent_alerts.clients.jobadder import JobAdderClient
from talent_alerts.clients.wordpress import WordpressClient
from talent_alerts.core.config import Settings
from talent_alerts.core.state_store import JsonFileStateRepository
from talent_alerts.core.token_store import TokenStore
from talent_alerts.discovery.engine import CandidateDiscovery
from talent_alerts.preview.renderer import PreviewService
from talent_alerts.summaries.summarizer import build_summarizer

logger = logging.getLogger(__name__)

CANDIDATE_DIGEST = "candidate-digest"
NEWSLETTER = "newsletter"


@dataclass
class Services:
    settings: Settings
    ats: JobAdderClient
    mail: BrevoClient
    content: WordpressClient
    discovery: CandidateDiscovery
    digest: CandidateDigestCampaign
    newsletter: NewsletterCampaign
    roundup: JobRoundup
    previews: PreviewService

    def campaign(self, name: str) -> CampaignStateMachine | None:
        return {CANDIDATE_DIGEST: self.digest, NEWSLETTER: self.newsletter}.get(name)

    async def aclose(self) -> None:
        await self.digest.aclose()
        await self.newsletter.aclose()
        for client in (self.ats, self.mail, self.content):
            client.close()


def build_services(settings: Settings) -> Services:
    jobadder = settings.jobadder
    brevo = settings.brevo
    state_dir = Path(settings.campaigns.state_dir)

    ats = JobAdderClient(jobadder, TokenStore(jobadder.token_path))
    mail = BrevoClient(brevo)
    content = WordpressClient(settings.wordpress)
    discovery = CandidateDiscovery(ats, settings.discovery)

    digest = CandidateDigestCampaign(
        JsonFileStateRepository(state_dir / f"{CANDIDATE_DIGEST}.json"),
        mail,
        discovery,
        build_summarizer(settings.summaries),
        digest=settings.digest,
        profile_url_template=jobadder.candidate_profile_url_template,
        template_id=brevo.candidate_digest_template_id,
        test_email=brevo.test_email,
        reset_delay_s=settings.campaigns.reset_delay_s,
    )
    newsletter = NewsletterCampaign(
        JsonFileStateRepository(state_dir / f"{NEWSLETTER}.json"),
        mail,
        content,
        ats,
        template_id=brevo.newsletter_template_id,
        single_article_template_id=brevo.single_article_template_id,
        test_email=brevo.test_email,
        latest_count=settings.wordpress.latest_count,
        jobs_count=settings.campaigns.newsletter_jobs,
        apply_url_template=jobadder.apply_url_template,
        reset_delay_s=settings.campaigns.reset_delay_s,
    )
    roundup = JobRoundup(
        ats,
        mail,
        roundup_size=settings.campaigns.roundup_size,
        daily_template_id=brevo.daily_roundup_template_id,
        single_template_id=brevo.single_job_template_id,
        apply_url_template=jobadder.apply_url_template,
    )
    previews = PreviewService(
        digest,
        newsletter,
        content,
        ats,
        config=settings.preview,
        apply_url_template=jobadder.apply_url_template,
    )
    logger.debug("Services built (state dir %s)", state_dir)
    return Services(
        settings=settings,
        ats=ats,
        mail=mail,
        content=content,
        discovery=discovery,
        digest=digest,
        newsletter=newsletter,
        roundup=roundup,
        previews=previews,
    )
