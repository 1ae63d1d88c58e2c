"""Notification publishers: hand study plans to an external reminder scheduler."""

import logging

import httpx

from mneme.domain.constants import WEBHOOK_TIMEOUT
from mneme.domain.ports import NotificationPublisher
from mneme.domain.schedule.models import NotificationPlan


class LoggingNotificationPublisher(NotificationPublisher):
    """Writes the plan to the log. Used when no webhook is configured."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    async def publish(self, plan: NotificationPlan) -> bool:
        self.logger.info(
            f"Study reminders for owner={plan.owner_id} at {plan.times} "
            f"({len(plan.batches)} batches)"
        )
        return True


class WebhookNotificationPublisher(NotificationPublisher):
    """POSTs the plan as JSON to a reminder service."""

    def __init__(self, url: str, client: httpx.AsyncClient | None = None):
        # An injected client belongs to the caller and is left open
        self.url = url
        self.logger = logging.getLogger(__name__)
        self._client = client

    async def publish(self, plan: NotificationPlan) -> bool:
        if not plan.times:
            self.logger.debug(f"No reminder times for owner={plan.owner_id}, skipping webhook")
            return True

        try:
            if self._client is not None:
                resp = await self._client.post(self.url, json=plan.to_payload())
            else:
                async with httpx.AsyncClient(timeout=WEBHOOK_TIMEOUT) as client:
                    resp = await client.post(self.url, json=plan.to_payload())
            resp.raise_for_status()
            return True
        except httpx.HTTPError as e:
            self.logger.warning(f"Failed to publish reminders to {self.url}: {e}")
            return False
