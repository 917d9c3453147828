"""Integration test: HTTP routes over a stubbed service graph."""

from collections.abc import Iterator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from talent_alerts.api.app import create_app, status_for
from talent_alerts.api.scheduler import DailyScheduler
from talent_alerts.campaigns.job_roundup import JobRoundup
from talent_alerts.core.config import ScheduleConfig
from talent_alerts.core.errors import NoMaterialError, UpstreamError
from talent_alerts.core.schemas import (
    ActionResult,
    ArticleSummary,
    CampaignState,
    CampaignStatus,
    JobListing,
    Recipient,
)


def _services(*, authorized: bool = True) -> MagicMock:
    services = MagicMock()
    services.ats.is_authorized = MagicMock(return_value=authorized)
    services.ats.authorization_url = MagicMock(return_value="https://id.example.com/connect/authorize?x=1")
    services.ats.exchange_code = AsyncMock()
    services.ats.get_live_jobs = AsyncMock(return_value=[
        JobListing(job_id=1, ad_id=11, title="Analyst", reference="R-1"),
    ])
    services.ats.get_job = AsyncMock(return_value=JobListing(job_id=5, title="Designer"))
    services.mail.test_mode = True
    services.mail.get_opt_in_recipients = AsyncMock(return_value=[Recipient(email="a@x.com")])
    services.mail.send_template = AsyncMock(return_value=1)
    services.aclose = AsyncMock()
    services.roundup = JobRoundup(
        services.ats, services.mail,
        daily_template_id=158,
        single_template_id=159,
        apply_url_template="https://jobs/{job_id}",
    )

    machine = MagicMock()
    machine.get_state = MagicMock(return_value=CampaignState(state=CampaignStatus.GENERATED, pool_size=4))
    machine.generate = AsyncMock(return_value=ActionResult(success=True, message="Generated"))
    machine.send_test = AsyncMock(return_value=ActionResult(success=True, message="Test email sent"))
    machine.send_to_all = AsyncMock(return_value=ActionResult(
        success=False, message="Must send a test email first", error="InvalidStateError",
    ))
    machine.reset = AsyncMock(return_value=ActionResult(success=True, message="State reset successfully"))
    services.campaign = MagicMock(side_effect=lambda name: machine if name == "candidate-digest" else None)
    services.machine = machine

    services.newsletter.list_articles = AsyncMock(return_value=[ArticleSummary(id=3, title="Post")])
    services.newsletter.send_single_article = AsyncMock(return_value=ActionResult(
        success=False, message="No opt-in recipients found", error="NoRecipientsError",
    ))
    services.previews.candidate_digest = MagicMock(return_value="<html>digest</html>")
    services.previews.newsletter = MagicMock(side_effect=NoMaterialError("No newsletter generated yet"))
    services.previews.article = AsyncMock(return_value="<html>article</html>")
    services.previews.job = AsyncMock(side_effect=UpstreamError("JobAdder GET /jobs/9 failed", status=500))
    return services


def _client(services: MagicMock) -> TestClient:
    scheduler = DailyScheduler(ScheduleConfig(enabled=False), AsyncMock(), is_authorized=lambda: True)
    return TestClient(create_app(services, scheduler=scheduler))


@pytest.fixture
def services() -> MagicMock:
    return _services()


@pytest.fixture
def client(services: MagicMock) -> Iterator[TestClient]:
    with _client(services) as test_client:
        yield test_client


# ---------------------------------------------------------------------------
# Health and OAuth
# ---------------------------------------------------------------------------
class TestPublicRoutes:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/")
        assert response.status_code == 200
        assert response.json() == {
            "status": "ok", "service": "talent-alerts", "authorized": True, "testMode": True,
        }

    def test_auth_redirect(self, client: TestClient) -> None:
        response = client.get("/auth/jobadder", follow_redirects=False)
        assert response.status_code in (302, 307)
        assert response.headers["location"].startswith("https://id.example.com/connect/authorize")

    def test_callback_exchanges_code(self, client: TestClient, services: MagicMock) -> None:
        response = client.get("/auth/callback", params={"code": "abc"})
        assert response.status_code == 200
        services.ats.exchange_code.assert_awaited_once_with("abc")

    def test_callback_error(self, client: TestClient, services: MagicMock) -> None:
        response = client.get("/auth/callback", params={"error": "access_denied"})
        assert response.status_code == 400
        services.ats.exchange_code.assert_not_awaited()

    def test_callback_without_code(self, client: TestClient) -> None:
        assert client.get("/auth/callback").status_code == 400


# ---------------------------------------------------------------------------
# Authorization guard
# ---------------------------------------------------------------------------
class TestUnauthorized:
    @pytest.mark.parametrize(("method", "path"), [
        ("get", "/api/jobs"),
        ("get", "/api/campaigns/candidate-digest/state"),
        ("post", "/api/campaigns/candidate-digest/generate"),
        ("post", "/trigger/daily-roundup"),
        ("post", "/trigger/single-job/11"),
        ("post", "/webhook/jobadder"),
        ("get", "/api/articles"),
    ])
    def test_returns_401(self, method: str, path: str) -> None:
        services = _services(authorized=False)
        with _client(services) as client:
            response = getattr(client, method)(path)
        assert response.status_code == 401
        services.machine.generate.assert_not_awaited()
        services.mail.send_template.assert_not_awaited()

    def test_previews_are_open(self) -> None:
        with _client(_services(authorized=False)) as client:
            response = client.get("/api/preview/candidate-digest")
        assert response.status_code == 200


# ---------------------------------------------------------------------------
# Campaign actions
# ---------------------------------------------------------------------------
class TestCampaignRoutes:
    def test_state(self, client: TestClient) -> None:
        response = client.get("/api/campaigns/candidate-digest/state")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["state"]["state"] == "GENERATED"
        assert body["state"]["poolSize"] == 4

    def test_generate(self, client: TestClient) -> None:
        response = client.post("/api/campaigns/candidate-digest/generate")
        assert response.status_code == 200
        assert response.json()["message"] == "Generated"

    def test_invalid_state_is_409(self, client: TestClient) -> None:
        response = client.post("/api/campaigns/candidate-digest/send")
        assert response.status_code == 409
        assert response.json()["error"] == "InvalidStateError"

    def test_unknown_campaign(self, client: TestClient) -> None:
        assert client.post("/api/campaigns/nope/generate").status_code == 404

    def test_no_recipients_is_404(self, client: TestClient) -> None:
        response = client.post("/api/articles/3/send")
        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_list_articles(self, client: TestClient) -> None:
        response = client.get("/api/articles")
        assert response.json() == {"success": True, "articles": [{"id": 3, "title": "Post"}]}

    def test_list_jobs(self, client: TestClient) -> None:
        response = client.get("/api/jobs")
        assert response.json()["jobs"] == [{"adId": 11, "jobId": 1, "title": "Analyst", "reference": "R-1"}]


# ---------------------------------------------------------------------------
# Job triggers and webhook
# ---------------------------------------------------------------------------
class TestJobRoutes:
    def test_daily_roundup(self, client: TestClient, services: MagicMock) -> None:
        response = client.post("/trigger/daily-roundup")
        assert response.status_code == 200
        assert response.json()["success"] is True
        services.mail.send_template.assert_awaited_once()

    def test_single_job_not_found(self, client: TestClient, services: MagicMock) -> None:
        services.ats.find_live_job_by_ad_id = AsyncMock(return_value=None)
        response = client.post("/trigger/single-job/999")
        assert response.status_code == 404

    def test_webhook(self, client: TestClient, services: MagicMock) -> None:
        response = client.post("/webhook/jobadder", json={"job": {"jobId": 5}})
        assert response.status_code == 200
        services.ats.get_job.assert_awaited_once_with(5)

    def test_webhook_without_job_id(self, client: TestClient) -> None:
        response = client.post("/webhook/jobadder", json={"event": "job_posted"})
        assert response.status_code == 400
        assert response.json()["error"] == "WebhookPayloadError"

    def test_webhook_invalid_json(self, client: TestClient) -> None:
        response = client.post(
            "/webhook/jobadder", content=b"not json", headers={"content-type": "application/json"},
        )
        assert response.status_code == 400

    def test_upstream_failure_is_502(self, client: TestClient, services: MagicMock) -> None:
        services.ats.get_live_jobs = AsyncMock(side_effect=UpstreamError("down", status=503))
        response = client.post("/trigger/daily-roundup")
        assert response.status_code == 502
        assert response.json() == {"success": False, "message": "down", "error": "UpstreamError"}


# ---------------------------------------------------------------------------
# Previews
# ---------------------------------------------------------------------------
class TestPreviews:
    def test_html(self, client: TestClient) -> None:
        response = client.get("/api/preview/candidate-digest")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert response.text == "<html>digest</html>"

    def test_article(self, client: TestClient, services: MagicMock) -> None:
        assert client.get("/api/preview/article/3").text == "<html>article</html>"
        services.previews.article.assert_awaited_once_with(3)

    def test_nothing_generated(self, client: TestClient) -> None:
        response = client.get("/api/preview/newsletter")
        assert response.status_code == 404
        assert response.json()["error"] == "NoMaterialError"

    def test_upstream_error(self, client: TestClient) -> None:
        assert client.get("/api/preview/job/9").status_code == 502


class TestStatusFor:
    @pytest.mark.parametrize(("error", "status"), [
        (None, 500),
        ("InvalidStateError", 409),
        ("NoMaterialError", 404),
        ("ConfigError", 400),
        ("Surprise", 500),
    ])
    def test_failures(self, error: str | None, status: int) -> None:
        assert status_for(ActionResult(success=False, message="x", error=error)) == status

    def test_success(self) -> None:
        assert status_for(ActionResult(success=True, message="ok")) == 200
