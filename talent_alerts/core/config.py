"""Configuration models and YAML loader for the talent alerts service."""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from talent_alerts.core.errors import ConfigError

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

FALLBACK_STRATEGIES = {"activities", "all_notes"}


def read_secret(env_var: str) -> str:
    """Return the value of a secret environment variable or raise ConfigError."""
    value = os.environ.get(env_var)
    if not value:
        msg = f"{env_var} environment variable is required"
        raise ConfigError(msg)
    return value


class JobAdderConfig(BaseModel):
    """ATS (JobAdder) API and OAuth settings."""

    client_id: str = ""
    client_secret_env: str = "JOBADDER_CLIENT_SECRET"
    redirect_uri: str = "http://localhost:3000/auth/callback"
    base_url: str = "https://api.jobadder.com/v2"
    auth_url: str = "https://id.jobadder.com/connect/authorize"
    token_url: str = "https://id.jobadder.com/connect/token"
    scope: str = "read offline_access"
    token_path: str = "data/jobadder-tokens.json"
    timeout_s: float = Field(default=30.0, gt=0)
    job_board_id: int | None = None
    jobs_limit: int = Field(default=100, ge=1, le=500)
    apply_url_template: str = "https://app.jobadder.com/jobs/{job_id}"
    candidate_profile_url_template: str = "https://app.jobadder.com/candidates/{candidate_id}"


class BrevoConfig(BaseModel):
    """Mail platform (Brevo) settings."""

    base_url: str = "https://api.brevo.com/v3"
    api_key_env: str = "BREVO_API_KEY"
    sender_email: str | None = None
    sender_name: str | None = None
    opt_in_attribute: str = "JOB_ALERTS"
    opt_in_value: str = "Yes"
    test_email: str | None = None
    test_mode: bool = False
    batch_size: int = Field(default=1000, ge=1, le=1000)
    contacts_page_size: int = Field(default=500, ge=1, le=1000)
    timeout_s: float = Field(default=30.0, gt=0)
    daily_roundup_template_id: int | None = None
    single_job_template_id: int | None = None
    candidate_digest_template_id: int | None = None
    newsletter_template_id: int | None = None
    single_article_template_id: int | None = None


class WordpressConfig(BaseModel):
    """Content platform (WordPress REST) settings."""

    api_url: str = "https://example.com/wp-json/wp/v2"
    category_id: int = 6
    latest_count: int = Field(default=5, ge=1, le=100)
    timeout_s: float = Field(default=30.0, gt=0)


class DiscoveryConfig(BaseModel):
    """Candidate discovery heuristic settings."""

    window_days: int = Field(default=21, ge=1)
    note_types: list[str] = Field(
        default_factory=lambda: ["Internal interview", "Candidate interview", "Phone Screen"],
    )
    page_limit: int = Field(default=500, ge=1, le=500)
    hydration_batch_size: int = Field(default=10, ge=1)
    hydration_pause_s: float = Field(default=1.0, ge=0.0)
    fetch_note_details: bool = True
    note_batch_size: int = Field(default=20, ge=1)
    note_pause_s: float = Field(default=0.5, ge=0.0)
    fallbacks: list[str] = Field(default_factory=list)
    fallback_keywords: list[str] = Field(default_factory=lambda: ["interview", "screen"])

    @field_validator("note_types")
    @classmethod
    def note_types_not_blank(cls, v: list[str]) -> list[str]:
        if not any(t.strip() for t in v):
            msg = "at least one note type must be configured"
            raise ValueError(msg)
        # exact match upstream, so only surrounding blanks are dropped
        return [t for t in v if t.strip()]

    @field_validator("fallbacks")
    @classmethod
    def fallbacks_known(cls, v: list[str]) -> list[str]:
        unknown = [name for name in v if name not in FALLBACK_STRATEGIES]
        if unknown:
            msg = f"unknown discovery fallback(s): {unknown}; valid: {sorted(FALLBACK_STRATEGIES)}"
            raise ValueError(msg)
        return v


class DigestConfig(BaseModel):
    """Candidate digest content settings."""

    size: int = Field(default=5, ge=1)
    illustration_urls: list[str] = Field(default_factory=list)


class SummaryConfig(BaseModel):
    """AI candidate summary settings."""

    enabled: bool = False
    provider: str = "openai"
    model: str | None = None
    max_bio_chars: int = Field(default=300, ge=0)


class CampaignConfig(BaseModel):
    """Campaign state and content sizes."""

    state_dir: str = "data/state"
    reset_delay_s: float = Field(default=2.0, ge=0.0)
    newsletter_jobs: int = Field(default=5, ge=0)
    roundup_size: int = Field(default=5, ge=1)


class ScheduleConfig(BaseModel):
    """Daily job roundup trigger."""

    enabled: bool = True
    time: str = "14:00"
    timezone: str = "Australia/Sydney"

    @field_validator("time")
    @classmethod
    def time_is_hh_mm(cls, v: str) -> str:
        if not _TIME_RE.match(v.strip()):
            msg = f"schedule time must be HH:MM, got '{v}'"
            raise ValueError(msg)
        return v.strip()


class PreviewConfig(BaseModel):
    """Browser preview rendering settings."""

    contact_email: str = "preview@example.com"
    placeholder_image_url: str = "https://via.placeholder.com/650x300"


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    jobadder: JobAdderConfig = Field(default_factory=JobAdderConfig)
    brevo: BrevoConfig = Field(default_factory=BrevoConfig)
    wordpress: WordpressConfig = Field(default_factory=WordpressConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    digest: DigestConfig = Field(default_factory=DigestConfig)
    summaries: SummaryConfig = Field(default_factory=SummaryConfig)
    campaigns: CampaignConfig = Field(default_factory=CampaignConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    preview: PreviewConfig = Field(default_factory=PreviewConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
