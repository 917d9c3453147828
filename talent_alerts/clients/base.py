"""Shared HTTP plumbing for the outbound API clients.

Calls run off the event loop via ``asyncio.to_thread`` so every client method
is a coroutine. ``requests.Session`` is not thread-safe, so each worker thread
gets its own session unless one is injected.
"""

import asyncio
import logging
import threading
from typing import Any

import requests

from talent_alerts.core.errors import UpstreamError

logger = logging.getLogger(__name__)


class HttpClient:
    """Base class for API clients that speak JSON over HTTP."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._shared_session = session
        self._local = threading.local()
        self._sessions: list[requests.Session] = []
        self._sessions_lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        """The injected session, or the calling thread's own one."""
        if self._shared_session is not None:
            return self._shared_session
        session: requests.Session | None = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    @property
    def base_url(self) -> str:
        return self._base_url

    def url(self, path: str) -> str:
        """Resolve a path against the base URL; absolute URLs pass through."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self._base_url}/{path.lstrip('/')}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body (None when empty).

        Raises UpstreamError for transport failures and non-2xx responses.
        """
        url = self.url(path)
        return await asyncio.to_thread(
            self._send, method, url, params=params, json=json, data=data, headers=headers,
        )

    def _send(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None,
        json: Any,
        data: dict[str, Any] | None,
        headers: dict[str, str] | None,
    ) -> Any:
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                data=data,
                headers=headers,
                timeout=self._timeout_s,
            )
        except requests.RequestException as e:
            msg = f"{method} {url} failed: {e}"
            raise UpstreamError(msg) from e

        if not 200 <= response.status_code < 300:
            body = _safe_body(response)
            logger.debug("%s %s -> %d: %s", method, url, response.status_code, body)
            msg = f"{method} {url} returned {response.status_code}"
            raise UpstreamError(msg, status=response.status_code, body=body)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            msg = f"{method} {url} returned a non-JSON body"
            raise UpstreamError(msg, status=response.status_code, body=response.text) from e

    def close(self) -> None:
        if self._shared_session is not None:
            self._shared_session.close()
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()
        self._local = threading.local()


def _safe_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text
