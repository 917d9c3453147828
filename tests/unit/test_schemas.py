"""Tests for upstream record parsing and campaign state models."""

from datetime import datetime, timezone

from talent_alerts.core.schemas import (
    ActionResult,
    Article,
    CampaignState,
    CampaignStatus,
    Candidate,
    FormattedCandidate,
    JobListing,
)


def _candidate_payload(**overrides: object) -> dict:
    payload: dict = {
        "candidateId": 101,
        "firstName": "Ada",
        "lastName": "Lovelace",
        "employment": {
            "current": {"position": "Engineer", "employer": {"name": "Analytical Co"}},
            "history": [
                {"position": "Engineer", "company": "Analytical Co", "start": {"date": "2020-01"}},
            ],
        },
        "skillTags": ["Python", "", None, "Math"],
        "summary": "Pioneer.",
        "links": {"photo": "https://img.example.com/ada.png"},
    }
    payload.update(overrides)
    return payload


class TestCandidate:
    def test_parses_camel_case(self) -> None:
        c = Candidate.model_validate(_candidate_payload())
        assert c.candidate_id == 101
        assert c.name == "Ada Lovelace"
        assert c.skill_tags == ["Python", "Math"]
        assert c.photo_url == "https://img.example.com/ada.png"

    def test_unwraps_nested_values(self) -> None:
        c = Candidate.model_validate(_candidate_payload())
        assert c.employment.current is not None
        assert c.employment.current.employer == "Analytical Co"
        assert c.employment.history[0].employer == "Analytical Co"
        assert c.employment.history[0].start == "2020-01"

    def test_nulls_become_defaults(self) -> None:
        c = Candidate.model_validate(
            _candidate_payload(firstName=None, employment=None, skillTags=None, links=None),
        )
        assert c.first_name == ""
        assert c.name == "Lovelace"
        assert c.employment.history == []
        assert c.skill_tags == []
        assert c.photo_url is None

    def test_unknown_keys_ignored(self) -> None:
        c = Candidate.model_validate(_candidate_payload(somethingElse={"x": 1}))
        assert c.candidate_id == 101


class TestJobListing:
    def test_unwraps_location_and_work_type(self) -> None:
        job = JobListing.model_validate({
            "adId": 7,
            "title": "Data Engineer",
            "location": {"name": "Sydney"},
            "workType": {"name": "Permanent"},
        })
        assert job.ad_id == 7
        assert job.location == "Sydney"
        assert job.work_type == "Permanent"

    def test_plain_strings_kept(self) -> None:
        job = JobListing.model_validate({"jobId": 3, "location": "Remote"})
        assert job.location == "Remote"


class TestArticle:
    def test_featured_image_alias(self) -> None:
        a = Article(id=1, title="Hello", featuredImage="https://img/1.png")
        assert a.featured_image == "https://img/1.png"
        assert a.model_dump(by_alias=True)["featuredImage"] == "https://img/1.png"


class TestFormattedCandidate:
    def test_dump_uses_candidate_id_alias(self) -> None:
        fc = FormattedCandidate(
            number=1, name="A", title="T", experience="5 Years", summary="S",
            profile_url="https://p/1", candidateId=1,
        )
        dumped = fc.model_dump(by_alias=True)
        assert dumped["candidateId"] == 1
        assert dumped["profile_url"] == "https://p/1"


class TestCampaignState:
    def test_empty(self) -> None:
        state = CampaignState.empty()
        assert state.state is CampaignStatus.EMPTY
        assert state.generated_at is None
        assert state.payload == {}

    def test_json_dict_uses_camel_case(self) -> None:
        ts = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
        state = CampaignState(state=CampaignStatus.SENT, sent_at=ts, pool_size=9)
        data = state.to_json_dict()
        assert data["state"] == "SENT"
        assert data["sentAt"].startswith("2024-06-01T12:00:00")
        assert data["poolSize"] == 9
        assert data["testSentAt"] is None

    def test_round_trip_through_json_dict(self) -> None:
        ts = datetime(2024, 6, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)
        state = CampaignState(state=CampaignStatus.SENT, sent_at=ts, payload={"candidates": []})
        restored = CampaignState.model_validate(state.to_json_dict())
        assert restored == state


class TestActionResult:
    def test_defaults(self) -> None:
        r = ActionResult(success=True, message="ok")
        assert r.error is None
        assert r.data is None
