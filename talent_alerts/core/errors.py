"""Error taxonomy shared by the clients, discovery engine and campaigns."""

from typing import Any


class AlertsError(Exception):
    """Base class for every error this package raises on purpose."""

    @property
    def code(self) -> str:
        return type(self).__name__


class ConfigError(AlertsError):
    """A required setting (API key, test recipient, template id) is missing."""


class AuthError(AlertsError):
    """The ATS integration is not authorized or the token refresh failed."""


class InvalidStateError(AlertsError):
    """A campaign transition was attempted from a state that does not allow it."""


class NoMaterialError(AlertsError):
    """The source pool for a campaign was empty at generate time."""


class NoRecipientsError(AlertsError):
    """No opt-in recipients were found at send time."""


class PersistenceError(AlertsError):
    """Campaign state or tokens could not be written."""


class WebhookPayloadError(AlertsError):
    """An inbound webhook payload did not carry what we need."""


class UpstreamError(AlertsError):
    """Wrapped failure of an outbound API call."""

    def __init__(self, message: str, *, status: int | None = None, body: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class PartialFetchError(AlertsError):
    """Some items of a best-effort batch failed. Logged, never raised past the engine."""

    def __init__(self, message: str, failed: list[Any]) -> None:
        super().__init__(message)
        self.failed = failed
