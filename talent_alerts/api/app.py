"""HTTP surface: OAuth, webhook, campaign actions, previews and triggers.

Every route except the health check, the OAuth pair and the previews needs an
authorized ATS integration and answers 401 otherwise. Campaign actions return
their ``ActionResult`` as JSON, with the status code taken from the error code
of a failed result.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from talent_alerts.api.scheduler import DailyScheduler
from talent_alerts.campaigns.state_machine import CampaignStateMachine
from talent_alerts.core.errors import AlertsError, WebhookPayloadError
from talent_alerts.core.schemas import ActionResult
from talent_alerts.wiring import Services

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[str, int] = {
    "InvalidStateError": 409,
    "NoMaterialError": 404,
    "NoRecipientsError": 404,
    "ConfigError": 400,
    "AuthError": 401,
    "UpstreamError": 502,
    "WebhookPayloadError": 400,
    "PersistenceError": 500,
}


def status_for(result: ActionResult) -> int:
    if result.success:
        return 200
    return STATUS_BY_ERROR.get(result.error or "", 500)


def respond(result: ActionResult) -> JSONResponse:
    return JSONResponse(status_code=status_for(result), content=result.model_dump(mode="json"))


def create_app(services: Services, *, scheduler: DailyScheduler | None = None) -> FastAPI:
    """Build the FastAPI app around an already wired ``Services`` graph."""
    if scheduler is None:
        scheduler = DailyScheduler(
            services.settings.schedule,
            services.roundup.send_daily_roundup,
            is_authorized=services.ats.is_authorized,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        scheduler.start()
        try:
            yield
        finally:
            await scheduler.stop()
            await services.aclose()
            logger.info("Shutdown complete")

    app = FastAPI(
        title="Talent Alerts",
        description="Job roundups, candidate digests and newsletters from JobAdder, Brevo and WordPress",
        lifespan=lifespan,
    )
    app.state.services = services
    app.state.scheduler = scheduler

    @app.exception_handler(AlertsError)
    async def alerts_error_handler(request: Request, exc: AlertsError) -> JSONResponse:
        status = STATUS_BY_ERROR.get(exc.code, 500)
        logger.warning("%s %s -> %d [%s]: %s", request.method, request.url.path, status, exc.code, exc)
        return JSONResponse(
            status_code=status,
            content={"success": False, "message": str(exc), "error": exc.code},
        )

    def require_authorized() -> None:
        if not services.ats.is_authorized():
            raise HTTPException(
                status_code=401,
                detail="JobAdder is not authorized. Visit /auth/jobadder first.",
            )

    def campaign_for(campaign: str) -> CampaignStateMachine:
        machine = services.campaign(campaign)
        if machine is None:
            raise HTTPException(status_code=404, detail=f"Unknown campaign '{campaign}'")
        return machine

    # ------------------------------------------------------------------
    # Health and OAuth
    # ------------------------------------------------------------------

    @app.get("/")
    async def root() -> dict[str, Any]:
        return {
            "status": "ok",
            "service": "talent-alerts",
            "authorized": services.ats.is_authorized(),
            "testMode": services.mail.test_mode,
        }

    @app.get("/auth/jobadder")
    async def auth_start() -> RedirectResponse:
        return RedirectResponse(services.ats.authorization_url())

    @app.get("/auth/callback")
    async def auth_callback(code: str | None = None, error: str | None = None) -> dict[str, Any]:
        if error or not code:
            raise HTTPException(status_code=400, detail=f"Authorization failed: {error or 'no code returned'}")
        await services.ats.exchange_code(code)
        logger.info("JobAdder authorization completed")
        return {"success": True, "message": "JobAdder authorized"}

    # ------------------------------------------------------------------
    # Authorized routes
    # ------------------------------------------------------------------

    api = APIRouter(dependencies=[Depends(require_authorized)])

    @api.post("/webhook/jobadder")
    async def webhook_job_posted(request: Request) -> JSONResponse:
        try:
            payload = await request.json()
        except ValueError as e:
            msg = "Webhook body is not valid JSON"
            raise WebhookPayloadError(msg) from e
        return respond(await services.roundup.handle_job_posted(payload))

    @api.get("/api/jobs")
    async def list_jobs() -> dict[str, Any]:
        jobs = await services.ats.get_live_jobs()
        return {
            "success": True,
            "jobs": [
                {"adId": job.ad_id, "jobId": job.job_id, "title": job.title, "reference": job.reference}
                for job in jobs
            ],
        }

    @api.get("/api/campaigns/{campaign}/state")
    async def campaign_state(campaign: str) -> dict[str, Any]:
        state = campaign_for(campaign).get_state()
        return {"success": True, "state": state.to_json_dict()}

    @api.post("/api/campaigns/{campaign}/generate")
    async def campaign_generate(campaign: str) -> JSONResponse:
        return respond(await campaign_for(campaign).generate())

    @api.post("/api/campaigns/{campaign}/send-test")
    async def campaign_send_test(campaign: str) -> JSONResponse:
        return respond(await campaign_for(campaign).send_test())

    @api.post("/api/campaigns/{campaign}/send")
    async def campaign_send(campaign: str) -> JSONResponse:
        return respond(await campaign_for(campaign).send_to_all())

    @api.post("/api/campaigns/{campaign}/reset")
    async def campaign_reset(campaign: str) -> JSONResponse:
        return respond(await campaign_for(campaign).reset())

    @api.get("/api/articles")
    async def list_articles() -> dict[str, Any]:
        articles = await services.newsletter.list_articles()
        return {"success": True, "articles": [a.model_dump() for a in articles]}

    @api.post("/api/articles/{article_id}/send")
    async def send_article(article_id: int) -> JSONResponse:
        return respond(await services.newsletter.send_single_article(article_id))

    @api.post("/api/articles/{article_id}/send-test")
    async def send_article_test(article_id: int) -> JSONResponse:
        return respond(await services.newsletter.send_single_article(article_id, test=True))

    @api.post("/trigger/daily-roundup")
    async def trigger_daily_roundup() -> JSONResponse:
        return respond(await services.roundup.send_daily_roundup())

    @api.post("/trigger/single-job/{ad_id}")
    async def trigger_single_job(ad_id: int) -> JSONResponse:
        return respond(await services.roundup.send_single_job_alert(ad_id))

    app.include_router(api)

    # ------------------------------------------------------------------
    # Previews
    # ------------------------------------------------------------------

    @app.get("/api/preview/candidate-digest", response_class=HTMLResponse)
    async def preview_candidate_digest() -> str:
        return services.previews.candidate_digest()

    @app.get("/api/preview/newsletter", response_class=HTMLResponse)
    async def preview_newsletter() -> str:
        return services.previews.newsletter()

    @app.get("/api/preview/article/{article_id}", response_class=HTMLResponse)
    async def preview_article(article_id: int) -> str:
        return await services.previews.article(article_id)

    @app.get("/api/preview/job/{job_id}", response_class=HTMLResponse)
    async def preview_job(job_id: int) -> str:
        return await services.previews.job(job_id)

    return app
