"""Brevo (mail platform) client: opt-in contact lookup and template sends."""

import asyncio
import logging
from typing import Any

import requests

from talent_alerts.clients.base import HttpClient
from talent_alerts.core.batching import chunked
from talent_alerts.core.config import BrevoConfig, read_secret
from talent_alerts.core.errors import ConfigError
from talent_alerts.core.schemas import Recipient

logger = logging.getLogger(__name__)

BATCH_PAUSE_S = 1.0

_TRUTHY = {"yes", "true", "1"}


class BrevoClient(HttpClient):
    """Contacts filtered by a custom attribute, batched transactional sends."""

    def __init__(self, config: BrevoConfig, *, session: requests.Session | None = None) -> None:
        super().__init__(config.base_url, timeout_s=config.timeout_s, session=session)
        self._config = config

    @property
    def test_mode(self) -> bool:
        return self._config.test_mode

    def _headers(self) -> dict[str, str]:
        return {
            "api-key": read_secret(self._config.api_key_env),
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def get_opt_in_recipients(self) -> list[Recipient]:
        """Contacts opted in to alerts; only the test address in test mode."""
        if self._config.test_mode:
            if not self._config.test_email:
                msg = "brevo.test_mode is on but brevo.test_email is not set"
                raise ConfigError(msg)
            logger.info("Test mode: using test recipient %s", self._config.test_email)
            return [Recipient(email=self._config.test_email, name="Test User")]
        return await self.get_contacts_with_attribute(
            self._config.opt_in_attribute, self._config.opt_in_value,
        )

    async def get_contacts_with_attribute(self, attribute: str, value: str) -> list[Recipient]:
        """Page through all contacts and keep those whose attribute equals ``value``."""
        page_size = self._config.contacts_page_size
        offset = 0
        total = 0
        recipients: list[Recipient] = []

        while True:
            body = await self._request(
                "GET",
                "/contacts",
                params={"limit": page_size, "offset": offset},
                headers=self._headers(),
            )
            contacts = (body or {}).get("contacts") or []
            total += len(contacts)
            for contact in contacts:
                attributes = contact.get("attributes") or {}
                if contact.get("email") and _attribute_matches(attributes.get(attribute), value):
                    recipients.append(_recipient(contact))
            if len(contacts) < page_size:
                break
            offset += page_size

        logger.info(
            "Found %d contacts with %s = %s (out of %d total)",
            len(recipients), attribute, value, total,
        )
        return recipients

    async def send_template(
        self,
        recipients: list[Recipient],
        template_id: int | None,
        params: dict[str, Any],
    ) -> int:
        """Send ``template_id`` to every recipient with the same params.

        Recipients are split into chunks of ``batch_size`` with a short pause
        between chunks. Returns the number of recipients sent to.
        """
        if template_id is None:
            msg = "No Brevo template id configured for this email"
            raise ConfigError(msg)
        if not recipients:
            logger.warning("No recipients to send template %s to", template_id)
            return 0

        batches = chunked(recipients, self._config.batch_size)
        logger.info(
            "Sending template %s to %d recipients in %d batch(es)",
            template_id, len(recipients), len(batches),
        )
        headers = self._headers()
        for index, batch in enumerate(batches):
            payload: dict[str, Any] = {
                "templateId": int(template_id),
                "messageVersions": [
                    {"to": [r.model_dump(exclude_none=True)], "params": params} for r in batch
                ],
            }
            if self._config.sender_email:
                payload["sender"] = {"email": self._config.sender_email}
                if self._config.sender_name:
                    payload["sender"]["name"] = self._config.sender_name

            await self._request("POST", "/smtp/email", json=payload, headers=headers)
            logger.info("Batch %d/%d sent (%d recipients)", index + 1, len(batches), len(batch))

            if index < len(batches) - 1:
                await asyncio.sleep(BATCH_PAUSE_S)

        return len(recipients)


def _attribute_matches(actual: Any, expected: str) -> bool:
    if isinstance(actual, bool):
        return actual == (expected.strip().lower() in _TRUTHY)
    if actual is None:
        return False
    return str(actual).strip().lower() == expected.strip().lower()


def _recipient(contact: dict[str, Any]) -> Recipient:
    attributes = contact.get("attributes") or {}
    name = f"{attributes.get('FIRSTNAME') or ''} {attributes.get('LASTNAME') or ''}".strip()
    return Recipient(email=contact["email"], name=name or contact["email"])
