"""Derived candidate attributes and the digest email projection."""

import logging
import math
from datetime import date, datetime

from talent_alerts.core.schemas import Candidate, EmploymentRecord, FormattedCandidate

logger = logging.getLogger(__name__)

DEFAULT_YEARS_OF_EXPERIENCE = 5
DEFAULT_TITLE = "Professional"
DAYS_PER_MONTH = 30


def parse_date(value: str | None) -> date | None:
    """Parse ``YYYY-MM-DD``, ``YYYY-MM`` or an ISO timestamp. None if unparsable."""
    if not value:
        return None
    text = value.strip()
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    try:
        return datetime.strptime(text, "%Y-%m").date()
    except ValueError:
        logger.debug("Unparsable employment date: %r", value)
        return None


def _months(record: EmploymentRecord, today: date) -> float:
    start = parse_date(record.start)
    if start is None:
        return 0.0
    if record.end:
        end = parse_date(record.end)
        if end is None:
            return 0.0
    else:
        end = today
    return max(0.0, (end - start).days / DAYS_PER_MONTH)


def years_of_experience(candidate: Candidate, today: date | None = None) -> int:
    """Sum of employment-history spans in whole years; 5 when there is no history.

    Open-ended positions run until ``today``. Malformed dates count as zero.
    """
    history = candidate.employment.history
    if not history:
        return DEFAULT_YEARS_OF_EXPERIENCE
    today = today or date.today()
    total_months = sum(_months(record, today) for record in history)
    # half-up, not banker's rounding
    return int(math.floor(total_months / 12 + 0.5))


def current_title(candidate: Candidate) -> str:
    """Current position, then ideal position, then most recent history entry."""
    employment = candidate.employment
    if employment.current and employment.current.position:
        return employment.current.position
    if employment.ideal and employment.ideal.position:
        return employment.ideal.position
    if employment.history:
        return employment.history[0].position or DEFAULT_TITLE
    return DEFAULT_TITLE


def experience_label(years: int) -> str:
    return f"{years} {'Year' if years == 1 else 'Years'}"


def format_candidate(
    candidate: Candidate,
    number: int,
    summary: str,
    *,
    profile_url_template: str,
    illustration_urls: list[str] | None = None,
    today: date | None = None,
) -> FormattedCandidate:
    """Project a candidate into the digest email item numbered ``number`` (1-based)."""
    illustrations = illustration_urls or []
    if 0 < number <= len(illustrations):
        image_url: str | None = illustrations[number - 1]
    else:
        image_url = illustrations[0] if illustrations else None

    return FormattedCandidate(
        number=number,
        name=candidate.name,
        title=current_title(candidate),
        experience=experience_label(years_of_experience(candidate, today)),
        summary=summary,
        profile_url=profile_url_template.format(candidate_id=candidate.candidate_id),
        avatar_url=candidate.photo_url,
        image_url=image_url,
        candidateId=candidate.candidate_id,
    )
