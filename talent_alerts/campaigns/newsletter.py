"""Content newsletter: latest articles plus a few live jobs.

The stateful workflow goes through the usual generate/test/send cycle. Single
article sends are stateless and go straight to the opt-in list (or to the
test address for the test variant).
"""

import logging
from typing import Any

from talent_alerts.campaigns.state_machine import CampaignStateMachine, MailSender
from talent_alerts.clients.jobadder import JobAdderClient
from talent_alerts.clients.wordpress import WordpressClient
from talent_alerts.core.errors import AlertsError, ConfigError, NoMaterialError, NoRecipientsError
from talent_alerts.core.schemas import ActionResult, ArticleSummary, CampaignState, Recipient
from talent_alerts.core.state_store import StateRepository
from talent_alerts.formatting.jobs import format_job

logger = logging.getLogger(__name__)


class NewsletterCampaign(CampaignStateMachine):
    label = "newsletter"

    def __init__(
        self,
        repository: StateRepository,
        mail: MailSender,
        content: WordpressClient,
        ats: JobAdderClient,
        *,
        template_id: int | None,
        single_article_template_id: int | None,
        test_email: str | None,
        latest_count: int = 5,
        jobs_count: int = 5,
        apply_url_template: str,
        reset_delay_s: float = 2.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            repository, mail,
            template_id=template_id,
            test_email=test_email,
            reset_delay_s=reset_delay_s,
            **kwargs,
        )
        self._content = content
        self._ats = ats
        self._single_article_template_id = single_article_template_id
        self._latest_count = latest_count
        self._jobs_count = jobs_count
        self._apply_url_template = apply_url_template

    async def _build_payload(self) -> tuple[dict[str, Any], int]:
        articles = await self._content.get_latest_articles(self._latest_count)
        if not articles:
            msg = "No articles found in the last fetch"
            raise NoMaterialError(msg)

        jobs = await self._ats.get_live_jobs() if self._jobs_count else []
        formatted_jobs = [
            format_job(job, apply_url_template=self._apply_url_template).model_dump()
            for job in jobs[: self._jobs_count]
        ]
        dumped = [article.model_dump(by_alias=True) for article in articles]
        payload = {
            "featuredArticle": dumped[0],
            "recentArticles": dumped[1:],
            "jobs": formatted_jobs,
        }
        return payload, len(articles)

    def _email_params(self, state: CampaignState) -> dict[str, Any]:
        return dict(state.payload)

    # ------------------------------------------------------------------
    # Single article
    # ------------------------------------------------------------------

    async def list_articles(self) -> list[ArticleSummary]:
        return await self._content.get_all_articles()

    async def send_single_article(self, article_id: int, *, test: bool = False) -> ActionResult:
        """Send one article to every opt-in recipient, or only to the test address."""
        try:
            article = await self._content.get_article(article_id)
            if article is None:
                msg = f"Article {article_id} not found"
                raise NoMaterialError(msg)

            if test:
                if not self._test_email:
                    msg = "No test email address configured (brevo.test_email)"
                    raise ConfigError(msg)
                recipients = [Recipient(email=self._test_email, name="Test User")]
            else:
                recipients = await self._mail.get_opt_in_recipients()
                if not recipients:
                    msg = "No opt-in recipients found"
                    raise NoRecipientsError(msg)

            sent = await self._mail.send_template(
                recipients,
                self._single_article_template_id,
                {"article": article.model_dump(by_alias=True)},
            )
        except AlertsError as e:
            return self._failure("send_single_article", e)

        logger.info("Article %s sent to %d recipients", article_id, sent)
        return ActionResult(
            success=True,
            message=f"Article sent to {sent} recipients",
            data={"articleId": article_id, "recipients": sent},
        )
