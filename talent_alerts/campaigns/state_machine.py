"""Guarded lifecycle shared by the stateful campaigns.

States run ``EMPTY -> GENERATED -> TESTED -> SENT -> EMPTY``:

  generate     any state; builds the payload or fails with NoMaterialError
  send_test    GENERATED or TESTED; one email to the configured test address
  send_to_all  TESTED only; every opt-in recipient, then a deferred reset
  reset        any state; always succeeds

Every transition runs under the machine's lock, so at most one is in flight
per campaign. Each one persists the full snapshot before returning. A failed
save after an email has gone out is logged and the send still reports
success. The deferred reset remembers the ``sent_at`` it was scheduled for
and does nothing if the stored state has moved on since.
"""

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, Protocol

from talent_alerts.core.errors import (
    AlertsError,
    ConfigError,
    InvalidStateError,
    NoRecipientsError,
    PersistenceError,
)
from talent_alerts.core.schemas import ActionResult, CampaignState, CampaignStatus, Recipient
from talent_alerts.core.state_store import StateRepository

logger = logging.getLogger(__name__)


class MailSender(Protocol):
    async def get_opt_in_recipients(self) -> list[Recipient]: ...

    async def send_template(
        self, recipients: list[Recipient], template_id: int | None, params: dict[str, Any],
    ) -> int: ...


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CampaignStateMachine(ABC):
    """Base class: subclasses supply the payload and the email params."""

    label = "campaign"

    def __init__(
        self,
        repository: StateRepository,
        mail: MailSender,
        *,
        template_id: int | None,
        test_email: str | None,
        reset_delay_s: float = 2.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._repository = repository
        self._mail = mail
        self._template_id = template_id
        self._test_email = test_email
        self._reset_delay_s = reset_delay_s
        self._clock = clock
        self._lock = asyncio.Lock()
        self._reset_task: asyncio.Task[None] | None = None

    @abstractmethod
    async def _build_payload(self) -> tuple[dict[str, Any], int]:
        """Return ``(payload, pool_size)``; raise NoMaterialError when empty."""

    @abstractmethod
    def _email_params(self, state: CampaignState) -> dict[str, Any]:
        """Template params sent with both the test and the bulk email."""

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def get_state(self) -> CampaignState:
        return self._repository.load()

    async def generate(self) -> ActionResult:
        async with self._lock:
            logger.info("Generating %s", self.label)
            try:
                payload, pool_size = await self._build_payload()
                state = CampaignState(
                    state=CampaignStatus.GENERATED,
                    generated_at=self._clock(),
                    payload=payload,
                    pool_size=pool_size,
                )
                self._repository.save(state)
            except AlertsError as e:
                return self._failure("generate", e)

            self.cancel_pending_reset()
            logger.info("%s generated (pool of %d)", self.label, pool_size)
            return ActionResult(
                success=True,
                message=f"Generated {self.label} from a pool of {pool_size}",
                data=state.to_json_dict(),
            )

    async def send_test(self) -> ActionResult:
        async with self._lock:
            state = self._repository.load()
            try:
                if state.state not in (CampaignStatus.GENERATED, CampaignStatus.TESTED):
                    msg = f"No {self.label} generated (state is {state.state.value}). Please generate first."
                    raise InvalidStateError(msg)
                if not self._test_email:
                    msg = "No test email address configured (brevo.test_email)"
                    raise ConfigError(msg)
                recipient = Recipient(email=self._test_email, name="Test User")
                await self._mail.send_template([recipient], self._template_id, self._email_params(state))
            except AlertsError as e:
                return self._failure("send_test", e)

            state.state = CampaignStatus.TESTED
            state.test_sent_at = self._clock()
            self._save_after_send(state)
            logger.info("%s test email sent to %s", self.label, self._test_email)
            return ActionResult(
                success=True,
                message=f"Test email sent to {self._test_email}",
                data=state.to_json_dict(),
            )

    async def send_to_all(self) -> ActionResult:
        async with self._lock:
            state = self._repository.load()
            try:
                if state.state is not CampaignStatus.TESTED:
                    msg = (
                        f"Must send a test email before sending {self.label} to all recipients "
                        f"(state is {state.state.value})"
                    )
                    raise InvalidStateError(msg)
                recipients = await self._mail.get_opt_in_recipients()
                if not recipients:
                    msg = "No opt-in recipients found"
                    raise NoRecipientsError(msg)
                sent = await self._mail.send_template(
                    recipients, self._template_id, self._email_params(state),
                )
            except AlertsError as e:
                return self._failure("send_to_all", e)

            state.state = CampaignStatus.SENT
            state.sent_at = self._clock()
            self._save_after_send(state)
            self._schedule_reset(state.sent_at)
            logger.info("%s sent to %d recipients", self.label, sent)
            return ActionResult(
                success=True,
                message=f"{self.label.capitalize()} sent to {sent} recipients",
                data={**state.to_json_dict(), "recipients": sent},
            )

    async def reset(self) -> ActionResult:
        async with self._lock:
            self.cancel_pending_reset()
            state = CampaignState.empty()
            try:
                self._repository.save(state)
            except PersistenceError as e:
                logger.error("Could not persist %s reset: %s", self.label, e)
            logger.info("%s state reset", self.label)
            return ActionResult(success=True, message="State reset successfully", data=state.to_json_dict())

    # ------------------------------------------------------------------
    # Deferred reset
    # ------------------------------------------------------------------

    @property
    def pending_reset(self) -> bool:
        return self._reset_task is not None and not self._reset_task.done()

    def cancel_pending_reset(self) -> None:
        if self._reset_task is not None and not self._reset_task.done():
            self._reset_task.cancel()
        self._reset_task = None

    async def aclose(self) -> None:
        """Cancel a pending reset and wait for it to finish."""
        task = self._reset_task
        self._reset_task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    def _schedule_reset(self, sent_at: datetime | None) -> None:
        self.cancel_pending_reset()
        self._reset_task = asyncio.create_task(self._deferred_reset(sent_at))

    async def _deferred_reset(self, sent_at: datetime | None) -> None:
        await asyncio.sleep(self._reset_delay_s)
        async with self._lock:
            current = self._repository.load()
            if current.state is not CampaignStatus.SENT or current.sent_at != sent_at:
                logger.info(
                    "Skipping deferred %s reset: state moved on to %s", self.label, current.state.value,
                )
                return
            try:
                self._repository.save(CampaignState.empty())
            except PersistenceError as e:
                logger.error("Deferred %s reset could not be persisted: %s", self.label, e)
                return
            logger.info("%s reset to EMPTY after send", self.label)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _save_after_send(self, state: CampaignState) -> None:
        try:
            self._repository.save(state)
        except PersistenceError as e:
            # the email is already out, so the send still counts
            logger.error("%s was sent but its state could not be saved: %s", self.label, e)

    def _failure(self, action: str, error: AlertsError) -> ActionResult:
        logger.warning("%s %s failed [%s]: %s", self.label, action, error.code, error)
        return ActionResult(success=False, message=str(error), error=error.code)
