"""Tests for experience, title, text and job formatting helpers."""

from datetime import date
from typing import Any

from talent_alerts.core.schemas import Candidate, JobListing
from talent_alerts.formatting.candidates import (
    DEFAULT_TITLE,
    current_title,
    experience_label,
    format_candidate,
    parse_date,
    years_of_experience,
)
from talent_alerts.formatting.jobs import format_job
from talent_alerts.formatting.text import strip_tags, truncate_description

TODAY = date(2024, 6, 1)
PROFILE_URL = "https://app.jobadder.com/candidates/{candidate_id}"


def _candidate(**overrides: Any) -> Candidate:
    payload: dict[str, Any] = {"candidateId": 1, "firstName": "Ada", "lastName": "Lovelace"}
    payload.update(overrides)
    return Candidate.model_validate(payload)


class TestParseDate:
    def test_formats(self) -> None:
        assert parse_date("2022-06") == date(2022, 6, 1)
        assert parse_date("2022-06-15") == date(2022, 6, 15)
        assert parse_date("2022-06-15T10:00:00") == date(2022, 6, 15)

    def test_garbage(self) -> None:
        assert parse_date("sometime in 2019") is None
        assert parse_date("") is None
        assert parse_date(None) is None


class TestYearsOfExperience:
    def test_history_with_open_end(self) -> None:
        c = _candidate(employment={"history": [
            {"position": "Dev", "start": "2020-01", "end": "2022-01"},
            {"position": "Lead", "start": "2022-06", "end": None},
        ]})
        assert years_of_experience(c, today=TODAY) == 4

    def test_empty_history_defaults_to_five(self) -> None:
        assert years_of_experience(_candidate(), today=TODAY) == 5

    def test_malformed_dates_count_as_zero(self) -> None:
        c = _candidate(employment={"history": [
            {"position": "Dev", "start": "not a date", "end": "2022-01"},
            {"position": "Dev", "start": "2021-06", "end": "??"},
            {"position": "Dev", "start": "2023-06-01", "end": "2024-06-01"},
        ]})
        assert years_of_experience(c, today=TODAY) == 1

    def test_rounds_half_up(self) -> None:
        # 18 months -> 1.5 years -> 2
        c = _candidate(employment={"history": [
            {"position": "Dev", "start": "2020-01-01", "end": "2021-06-25"},
        ]})
        assert years_of_experience(c, today=TODAY) == 2

    def test_dated_wrappers(self) -> None:
        c = _candidate(employment={"history": [
            {"position": "Dev", "start": {"date": "2014-06-01"}, "end": {"date": "2024-06-01"}},
        ]})
        assert years_of_experience(c, today=TODAY) == 10


class TestCurrentTitle:
    def test_current_first(self) -> None:
        c = _candidate(employment={
            "current": {"position": "CTO"},
            "ideal": {"position": "CEO"},
            "history": [{"position": "Dev"}],
        })
        assert current_title(c) == "CTO"

    def test_ideal_second(self) -> None:
        c = _candidate(employment={"ideal": {"position": "CEO"}, "history": [{"position": "Dev"}]})
        assert current_title(c) == "CEO"

    def test_history_third(self) -> None:
        c = _candidate(employment={"current": {"position": ""}, "history": [{"position": "Dev"}]})
        assert current_title(c) == "Dev"

    def test_fallback(self) -> None:
        assert current_title(_candidate()) == DEFAULT_TITLE


class TestExperienceLabel:
    def test_singular(self) -> None:
        assert experience_label(1) == "1 Year"

    def test_plural(self) -> None:
        assert experience_label(0) == "0 Years"
        assert experience_label(7) == "7 Years"


class TestFormatCandidate:
    def test_projection(self) -> None:
        c = _candidate(
            employment={"current": {"position": "Engineer"}},
            links={"photo": "https://img/ada.png"},
        )
        fc = format_candidate(
            c, 2, "Great engineer.",
            profile_url_template=PROFILE_URL,
            illustration_urls=["https://img/1.png", "https://img/2.png"],
            today=TODAY,
        )
        assert fc.number == 2
        assert fc.name == "Ada Lovelace"
        assert fc.title == "Engineer"
        assert fc.experience == "5 Years"
        assert fc.profile_url == "https://app.jobadder.com/candidates/1"
        assert fc.avatar_url == "https://img/ada.png"
        assert fc.image_url == "https://img/2.png"
        assert fc.candidate_id == 1

    def test_illustration_falls_back_to_first(self) -> None:
        fc = format_candidate(
            _candidate(), 4, "S",
            profile_url_template=PROFILE_URL,
            illustration_urls=["https://img/1.png"],
        )
        assert fc.image_url == "https://img/1.png"

    def test_no_illustrations(self) -> None:
        fc = format_candidate(_candidate(), 1, "S", profile_url_template=PROFILE_URL)
        assert fc.image_url is None


class TestText:
    def test_strip_tags(self) -> None:
        assert strip_tags("<p>Hello <b>world</b></p>") == "Hello world"
        assert strip_tags(None) == ""

    def test_short_description_unchanged(self) -> None:
        text = "x" * 100
        assert truncate_description(text) == text

    def test_long_html_description_truncated(self) -> None:
        html = "<p>" + ("word " * 80) + "</p>"  # 400 visible characters
        result = truncate_description(html)
        assert "<" not in result
        assert result.endswith("...")
        assert len(result) <= 303

    def test_exactly_limit_not_truncated(self) -> None:
        assert truncate_description("y" * 300) == "y" * 300


class TestFormatJob:
    def test_full_job(self) -> None:
        job = JobListing.model_validate({
            "adId": 5, "jobId": 50, "title": "Analyst",
            "location": {"name": "Melbourne"}, "workType": {"name": "Contract"},
            "summary": "<p>Crunch numbers</p>",
            "applyUrl": "https://apply/5",
        })
        fj = format_job(job, apply_url_template="https://jobs/{job_id}")
        assert fj.job_title == "Analyst"
        assert fj.location == "Melbourne"
        assert fj.job_type == "Contract"
        assert fj.job_description == "Crunch numbers"
        assert fj.apply_url == "https://apply/5"

    def test_defaults(self) -> None:
        fj = format_job(JobListing(job_id=9), apply_url_template="https://jobs/{job_id}")
        assert fj.job_title == "Untitled Position"
        assert fj.location == "Location TBD"
        assert fj.job_type == "Not specified"
        assert fj.job_description == "No description available"
        assert fj.apply_url == "https://jobs/9"

    def test_description_used_when_no_summary(self) -> None:
        job = JobListing(job_id=1, description="<div>Long form</div>")
        fj = format_job(job, apply_url_template="https://jobs/{job_id}")
        assert fj.job_description == "Long form"
