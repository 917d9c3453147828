"""Job listing projection for roundup, single-alert and newsletter emails."""

from talent_alerts.core.schemas import FormattedJob, JobListing
from talent_alerts.formatting.text import truncate_description


def format_job(job: JobListing, *, apply_url_template: str) -> FormattedJob:
    return FormattedJob(
        job_title=job.title or "Untitled Position",
        location=job.location or "Location TBD",
        job_type=job.work_type or "Not specified",
        job_description=truncate_description(
            job.summary or job.description or "No description available",
        ),
        apply_url=job.apply_url or apply_url_template.format(job_id=job.job_id or job.ad_id or ""),
    )
