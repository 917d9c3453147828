"""Stateless job emails: the daily roundup and single-listing alerts.

Each call is one pipeline: fetch -> format -> recipients -> one template send.
Upstream errors propagate to the caller; nothing is retried.
"""

import logging
from typing import Any

from talent_alerts.campaigns.state_machine import MailSender
from talent_alerts.clients.jobadder import JobAdderClient
from talent_alerts.core.errors import WebhookPayloadError
from talent_alerts.core.schemas import ActionResult, JobListing
from talent_alerts.formatting.jobs import format_job

logger = logging.getLogger(__name__)


class JobRoundup:
    def __init__(
        self,
        ats: JobAdderClient,
        mail: MailSender,
        *,
        roundup_size: int = 5,
        daily_template_id: int | None,
        single_template_id: int | None,
        apply_url_template: str,
    ) -> None:
        self._ats = ats
        self._mail = mail
        self._roundup_size = roundup_size
        self._daily_template_id = daily_template_id
        self._single_template_id = single_template_id
        self._apply_url_template = apply_url_template

    async def send_daily_roundup(self) -> ActionResult:
        """Email the most recent live jobs to every opt-in recipient."""
        logger.info("Starting daily job roundup")
        live_jobs = await self._ats.get_live_jobs()
        if not live_jobs:
            logger.info("No live jobs found, skipping email send")
            return ActionResult(success=True, message="No live jobs to send")

        # the API lists most recent first
        recent = live_jobs[: self._roundup_size]
        logger.info("Using %d most recent jobs (of %d live)", len(recent), len(live_jobs))
        jobs_data = [format_job(job, apply_url_template=self._apply_url_template).model_dump() for job in recent]

        recipients = await self._mail.get_opt_in_recipients()
        if not recipients:
            logger.warning("No opt-in recipients found, skipping email send")
            return ActionResult(success=True, message="No recipients found")

        sent = await self._mail.send_template(
            recipients,
            self._daily_template_id,
            {"jobs": jobs_data, "job_count": len(jobs_data)},
        )
        logger.info("Daily roundup sent to %d recipients", sent)
        return ActionResult(
            success=True,
            message=f"Sent {len(recent)} most recent jobs to {sent} recipients",
            data={"jobs": len(recent), "recipients": sent},
        )

    async def send_single_job_alert(self, ad_id: int) -> ActionResult:
        """Alert for one live job ad, found by its ad id."""
        logger.info("Sending single job alert for ad %s", ad_id)
        job = await self._ats.find_live_job_by_ad_id(ad_id)
        if job is None:
            logger.warning("Job ad %s not found among live jobs", ad_id)
            return ActionResult(success=False, message=f"Job ad {ad_id} not found", error="NoMaterialError")
        return await self._send_single(job)

    async def handle_job_posted(self, payload: Any) -> ActionResult:
        """Webhook entry point: a new job was posted in the ATS.

        Raises:
            WebhookPayloadError: If the payload carries no job id.
        """
        job_id = webhook_job_id(payload)
        logger.info("Webhook: new job posted (%s)", job_id)
        job = await self._ats.get_job(job_id)
        return await self._send_single(job)

    async def _send_single(self, job: JobListing) -> ActionResult:
        formatted = format_job(job, apply_url_template=self._apply_url_template).model_dump()
        recipients = await self._mail.get_opt_in_recipients()
        if not recipients:
            logger.warning("No opt-in recipients found, skipping job alert")
            return ActionResult(success=True, message="No recipients found")
        sent = await self._mail.send_template(recipients, self._single_template_id, formatted)
        logger.info("Job alert for '%s' sent to %d recipients", formatted["job_title"], sent)
        return ActionResult(
            success=True,
            message=f"Job alert sent to {sent} recipients",
            data={"job": formatted, "recipients": sent},
        )


def webhook_job_id(payload: Any) -> int | str:
    """Job id from ``job.jobId`` or a top-level ``jobId``."""
    if not isinstance(payload, dict):
        msg = "Webhook payload must be a JSON object"
        raise WebhookPayloadError(msg)
    job = payload.get("job")
    job_id = job.get("jobId") if isinstance(job, dict) else None
    if job_id in (None, ""):
        job_id = payload.get("jobId")
    if job_id in (None, "") or isinstance(job_id, bool | dict | list):
        msg = "No job ID in webhook payload"
        raise WebhookPayloadError(msg)
    return job_id
