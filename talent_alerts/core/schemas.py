"""Core data models: upstream entities, email projections and campaign state.

Upstream records (ATS candidates and jobs) are parsed leniently: unknown keys
are ignored and nested wrappers such as ``{"date": ...}`` or
``{"name": ...}`` are unwrapped so the formatting helpers see plain values.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class EmploymentRecord(BaseModel):
    """One position held (or wanted) by a candidate."""

    model_config = ConfigDict(extra="ignore")

    position: str | None = None
    employer: str | None = Field(
        default=None, validation_alias=AliasChoices("employer", "company"),
    )
    start: str | None = None
    end: str | None = None

    @field_validator("start", "end", mode="before")
    @classmethod
    def unwrap_date(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return v.get("date")
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @field_validator("employer", mode="before")
    @classmethod
    def unwrap_employer(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return v.get("name")
        return v


class Employment(BaseModel):
    model_config = ConfigDict(extra="ignore")

    current: EmploymentRecord | None = None
    ideal: EmploymentRecord | None = None
    history: list[EmploymentRecord] = Field(default_factory=list)

    @field_validator("history", mode="before")
    @classmethod
    def none_is_empty(cls, v: Any) -> Any:
        return v or []


class Candidate(BaseModel):
    """A candidate record as returned by the ATS candidate endpoint."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    candidate_id: int
    first_name: str = ""
    last_name: str = ""
    employment: Employment = Field(default_factory=Employment)
    skill_tags: list[str] = Field(default_factory=list)
    summary: str | None = None
    links: dict[str, Any] = Field(default_factory=dict)

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def none_is_blank(cls, v: Any) -> Any:
        return v or ""

    @field_validator("employment", mode="before")
    @classmethod
    def none_is_default(cls, v: Any) -> Any:
        return v or {}

    @field_validator("skill_tags", mode="before")
    @classmethod
    def keep_string_tags(cls, v: Any) -> Any:
        if not v:
            return []
        return [tag for tag in v if isinstance(tag, str) and tag.strip()]

    @field_validator("links", mode="before")
    @classmethod
    def none_is_empty(cls, v: Any) -> Any:
        return v or {}

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def photo_url(self) -> str | None:
        photo = self.links.get("photo")
        return photo if isinstance(photo, str) and photo else None


class JobListing(BaseModel):
    """A live job or job-board ad."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    job_id: int | None = None
    ad_id: int | None = None
    title: str | None = None
    reference: str | None = None
    location: str | None = None
    work_type: str | None = None
    summary: str | None = None
    description: str | None = None
    apply_url: str | None = None

    @field_validator("location", "work_type", mode="before")
    @classmethod
    def unwrap_name(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return v.get("name")
        return v


class Article(BaseModel):
    """A normalized content-platform article."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    title: str = ""
    excerpt: str = ""
    link: str = ""
    date: str | None = None
    featured_image: str | None = Field(default=None, alias="featuredImage")


class ArticleSummary(BaseModel):
    """Id and title only, for article pickers."""

    id: int
    title: str = ""


class Recipient(BaseModel):
    """An email recipient handed to the mail platform."""

    email: str
    name: str | None = None


class FormattedCandidate(BaseModel):
    """Display projection of a candidate for the digest email."""

    model_config = ConfigDict(populate_by_name=True)

    number: int
    name: str
    title: str
    experience: str
    summary: str
    profile_url: str
    avatar_url: str | None = None
    image_url: str | None = None
    candidate_id: int = Field(alias="candidateId")


class FormattedJob(BaseModel):
    """Display projection of a job for roundup, alert and newsletter emails."""

    job_title: str
    location: str
    job_type: str
    job_description: str
    apply_url: str


class CampaignStatus(str, Enum):
    EMPTY = "EMPTY"
    GENERATED = "GENERATED"
    TESTED = "TESTED"
    SENT = "SENT"


class CampaignState(BaseModel):
    """Persisted snapshot of one campaign's lifecycle."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    state: CampaignStatus = CampaignStatus.EMPTY
    generated_at: datetime | None = None
    test_sent_at: datetime | None = None
    sent_at: datetime | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    pool_size: int = 0

    @classmethod
    def empty(cls) -> "CampaignState":
        return cls()

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ActionResult(BaseModel):
    """Outcome of a campaign action, rendered as-is by the HTTP layer."""

    success: bool
    message: str
    error: str | None = None
    data: dict[str, Any] | None = None
