"""JobAdder (ATS) REST client with transparent OAuth token refresh."""

import asyncio
import logging
from datetime import date
from typing import Any
from urllib.parse import urlencode

import requests
from pydantic import ValidationError

from talent_alerts.clients.base import HttpClient
from talent_alerts.core.config import JobAdderConfig, read_secret
from talent_alerts.core.errors import AuthError, UpstreamError
from talent_alerts.core.schemas import Candidate, JobListing
from talent_alerts.core.token_store import OAuthTokens, TokenStore, now_ms

logger = logging.getLogger(__name__)


class JobAdderClient(HttpClient):
    """Jobs, notes, activities, applications and candidates.

    Usage::

        client = JobAdderClient(config, TokenStore(config.token_path))
        if client.is_authorized():
            jobs = await client.get_live_jobs()
    """

    def __init__(
        self,
        config: JobAdderConfig,
        token_store: TokenStore,
        *,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(config.base_url, timeout_s=config.timeout_s, session=session)
        self._config = config
        self._token_store = token_store
        self._tokens = token_store.load()
        self._refresh_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # OAuth
    # ------------------------------------------------------------------

    def is_authorized(self) -> bool:
        return bool(
            self._tokens and self._tokens.access_token and self._tokens.refresh_token
        )

    def authorization_url(self, state: str | None = None) -> str:
        params = {
            "client_id": self._config.client_id,
            "redirect_uri": self._config.redirect_uri,
            "response_type": "code",
            "scope": self._config.scope,
        }
        if state:
            params["state"] = state
        return f"{self._config.auth_url}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> OAuthTokens:
        """Trade an authorization code for a token pair and persist it."""
        data = {
            "grant_type": "authorization_code",
            "client_id": self._config.client_id,
            "client_secret": read_secret(self._config.client_secret_env),
            "redirect_uri": self._config.redirect_uri,
            "code": code,
        }
        try:
            body = await self._request("POST", self._config.token_url, data=data)
        except UpstreamError as e:
            msg = f"Authorization code exchange failed: {e}"
            raise AuthError(msg) from e
        tokens = self._tokens_from_response(body, previous_refresh=None)
        self._store(tokens)
        logger.info("JobAdder authorization successful")
        return tokens

    async def access_token(self) -> str:
        """Return a valid access token, refreshing it when close to expiry."""
        if self._tokens is None:
            msg = "JobAdder is not authorized; complete the OAuth flow first"
            raise AuthError(msg)
        if not self._tokens.needs_refresh():
            return self._tokens.access_token

        async with self._refresh_lock:
            # another caller may have refreshed while we waited
            if self._tokens is not None and not self._tokens.needs_refresh():
                return self._tokens.access_token
            logger.info("Access token expired or expiring, refreshing")
            return (await self._refresh()).access_token

    async def _refresh(self) -> OAuthTokens:
        if self._tokens is None or not self._tokens.refresh_token:
            msg = "No refresh token available; authorize the application first"
            raise AuthError(msg)
        data = {
            "grant_type": "refresh_token",
            "client_id": self._config.client_id,
            "client_secret": read_secret(self._config.client_secret_env),
            "refresh_token": self._tokens.refresh_token,
        }
        try:
            body = await self._request("POST", self._config.token_url, data=data)
        except UpstreamError as e:
            msg = f"Token refresh failed: {e}"
            raise AuthError(msg) from e
        tokens = self._tokens_from_response(body, previous_refresh=self._tokens.refresh_token)
        self._store(tokens)
        return tokens

    @staticmethod
    def _tokens_from_response(body: Any, previous_refresh: str | None) -> OAuthTokens:
        if not isinstance(body, dict) or not body.get("access_token"):
            msg = "Token endpoint response did not include an access_token"
            raise AuthError(msg)
        refresh = body.get("refresh_token") or previous_refresh
        if not refresh:
            msg = "Token endpoint response did not include a refresh_token"
            raise AuthError(msg)
        expires_in = int(body.get("expires_in") or 3600)
        return OAuthTokens(
            access_token=body["access_token"],
            refresh_token=refresh,
            expires_at=now_ms() + expires_in * 1000,
        )

    def _store(self, tokens: OAuthTokens) -> None:
        self._tokens = tokens
        self._token_store.save(tokens)

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        token = await self.access_token()
        return await self._request(
            "GET", path, params=params, headers={"Authorization": f"Bearer {token}"},
        )

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    async def get_live_jobs(self) -> list[JobListing]:
        """Return live jobs, most recent first as the API orders them.

        The source is chosen by ``job_board_id``: that board's ads when set,
        otherwise the open-jobs endpoint.
        """
        board_id = self._config.job_board_id
        if board_id is not None:
            body = await self._get(f"/jobboards/{board_id}/ads", {"limit": self._config.jobs_limit})
        else:
            body = await self._get("/jobs", {"status": "Open", "limit": self._config.jobs_limit})
        jobs: list[JobListing] = []
        for item in _items(body):
            try:
                jobs.append(JobListing.model_validate(item))
            except ValidationError as e:
                logger.warning("Skipping malformed job %s: %s", item.get("jobId") or item.get("adId"), e)
        logger.info("Retrieved %d live jobs from JobAdder", len(jobs))
        return jobs

    async def get_job(self, job_id: int | str) -> JobListing:
        body = await self._get(f"/jobs/{job_id}")
        try:
            return JobListing.model_validate(body or {})
        except ValidationError as e:
            msg = f"Job {job_id} has an unexpected shape: {e}"
            raise UpstreamError(msg, body=body) from e

    async def find_live_job_by_ad_id(self, ad_id: int) -> JobListing | None:
        for job in await self.get_live_jobs():
            if job.ad_id == ad_id:
                return job
        return None

    # ------------------------------------------------------------------
    # Interview evidence
    # ------------------------------------------------------------------

    async def search_notes(
        self,
        created_after: date,
        *,
        note_type: str | None = None,
        limit: int = 500,
    ) -> list[dict[str, Any]]:
        """Notes created after ``created_after``; ``note_type`` must match exactly."""
        params: dict[str, Any] = {"createdAt": f">{created_after.isoformat()}", "limit": limit}
        if note_type is not None:
            params["type"] = note_type
        return _items(await self._get("/notes", params))

    async def get_note(self, note_id: int | str) -> dict[str, Any]:
        return _as_dict(await self._get(f"/notes/{note_id}"))

    async def search_activities(self, created_after: date, *, limit: int = 500) -> list[dict[str, Any]]:
        params = {"createdAt": f">{created_after.isoformat()}", "limit": limit}
        return _items(await self._get("/activities", params))

    async def get_application(self, application_id: int | str) -> dict[str, Any]:
        return _as_dict(await self._get(f"/applications/{application_id}"))

    # ------------------------------------------------------------------
    # Candidates
    # ------------------------------------------------------------------

    async def get_candidate(self, candidate_id: int) -> Candidate:
        body = await self._get(f"/candidates/{candidate_id}")
        try:
            return Candidate.model_validate(body or {})
        except ValidationError as e:
            msg = f"Candidate {candidate_id} has an unexpected shape: {e}"
            raise UpstreamError(msg, body=body) from e


def _items(body: Any) -> list[dict[str, Any]]:
    if isinstance(body, dict):
        items = body.get("items") or []
    elif isinstance(body, list):
        items = body
    else:
        items = []
    return [item for item in items if isinstance(item, dict)]


def _as_dict(body: Any) -> dict[str, Any]:
    return body if isinstance(body, dict) else {}
