"""Owner-facing notifications for review events.

Two collaborators: a ``NotificationSender`` for outbound event delivery
(webhook, or just a log line when no webhook is configured) and an
``InAppNotifier`` that stores notifications shown in the product.
``NotificationService`` composes both and never lets a delivery failure
escape; by the time it is called the state change is already committed.
"""

import logging
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any

from launchpad.core.database.repository import CampaignRepository
from launchpad.core.schemas import CampaignSnapshot, LaunchResult, RejectionRequest
from launchpad.core.webhook_delivery import WebhookDelivery, deliver_webhook_with_retry

logger = logging.getLogger(__name__)

CAMPAIGN_ALERT = "CAMPAIGN_ALERT"

EVENT_SUBMITTED = "campaign.submitted"
EVENT_APPROVED = "campaign.approved"
EVENT_REJECTED = "campaign.rejected"


class NotificationSender(ABC):
    @abstractmethod
    def send(self, event_type: str, recipient: str, data: dict[str, Any]) -> bool:
        """Deliver one event to the recipient. Returns whether it was delivered."""
        pass


class InAppNotifier(ABC):
    @abstractmethod
    def create_in_app(
        self, user_id: str, notification_type: str, title: str, message: str, data: dict[str, Any] | None = None
    ) -> None:
        pass


class LoggingNotificationSender(NotificationSender):
    """Used when no webhook is configured."""

    def send(self, event_type: str, recipient: str, data: dict[str, Any]) -> bool:
        logger.info(f"Notification {event_type} for {recipient}: {data.get('subject', '')}")
        return True


class WebhookNotificationSender(NotificationSender):
    """POSTs each event as JSON to a webhook, retrying server and network errors."""

    def __init__(self, webhook_url: str, max_retries: int = 3, timeout: int = 10):
        self.webhook_url = webhook_url
        self.max_retries = max_retries
        self.timeout = timeout

    def send(self, event_type: str, recipient: str, data: dict[str, Any]) -> bool:
        payload = {
            "event": event_type,
            "recipient": recipient,
            "timestamp": datetime.now(UTC).isoformat(),
            "data": data,
        }
        success, result = deliver_webhook_with_retry(
            WebhookDelivery(
                webhook_url=self.webhook_url,
                payload=payload,
                max_retries=self.max_retries,
                timeout=self.timeout,
                event_type=event_type,
            )
        )
        if not success:
            logger.warning(f"Webhook notification {event_type} for {recipient} not delivered: {result.get('error')}")
        return success


class DatabaseInAppNotifier(InAppNotifier):
    def __init__(self, repository: CampaignRepository):
        self.repository = repository

    def create_in_app(
        self, user_id: str, notification_type: str, title: str, message: str, data: dict[str, Any] | None = None
    ) -> None:
        self.repository.add_notification(user_id, notification_type, title, message, data)


class NotificationService:
    """Best-effort notifications for submit, approve and reject."""

    def __init__(self, sender: NotificationSender, in_app: InAppNotifier, frontend_url: str = ""):
        self.sender = sender
        self.in_app = in_app
        self.frontend_url = frontend_url.rstrip("/")

    def _deliver(self, campaign: CampaignSnapshot, event_type: str, title: str, message: str, data: dict[str, Any]):
        try:
            self.sender.send(event_type, campaign.owner_id, {"subject": f"{title} - {campaign.name}", **data})
        except Exception as e:
            logger.warning(f"Failed to send {event_type} notification for campaign {campaign.id}: {e}")

        try:
            self.in_app.create_in_app(campaign.owner_id, CAMPAIGN_ALERT, title, message, data)
        except Exception as e:
            logger.warning(f"Failed to create in-app notification for campaign {campaign.id}: {e}")

    def campaign_submitted(self, campaign: CampaignSnapshot, approval_id: str, review_window: str):
        self._deliver(
            campaign,
            EVENT_SUBMITTED,
            "Campaign Submitted for Review",
            f'Your campaign "{campaign.name}" has been submitted for review. '
            "We'll notify you once it's approved.",
            {"campaign_id": campaign.id, "approval_id": approval_id, "estimated_review_window": review_window},
        )

    def campaign_approved(self, campaign: CampaignSnapshot, approval_id: str, launch_result: LaunchResult):
        if launch_result.overall_success:
            message = f'Your campaign "{campaign.name}" is now live and generating leads!'
        else:
            message = (
                f'Your campaign "{campaign.name}" was approved but had some platform issues. Please contact support.'
            )
        self._deliver(
            campaign,
            EVENT_APPROVED,
            "Campaign Approved & Launched!",
            message,
            {
                "campaign_id": campaign.id,
                "approval_id": approval_id,
                "platform_results": launch_result.model_dump(mode="json"),
                "dashboard_url": f"{self.frontend_url}/dashboard",
            },
        )

    def campaign_rejected(self, campaign: CampaignSnapshot, approval_id: str, rejection: RejectionRequest):
        if rejection.needs_changes:
            title = "Campaign Needs Changes"
            message = (
                f'Your campaign "{campaign.name}" needs some changes before approval. '
                "Please review our feedback and resubmit."
            )
        else:
            title = "Campaign Rejected"
            message = (
                f'Your campaign "{campaign.name}" was not approved. '
                "Please review our feedback and create a new campaign."
            )
        self._deliver(
            campaign,
            EVENT_REJECTED,
            title,
            message,
            {
                "campaign_id": campaign.id,
                "approval_id": approval_id,
                "feedback": rejection.feedback,
                "reasons": list(rejection.reasons),
                "needs_changes": rejection.needs_changes,
                "dashboard_url": f"{self.frontend_url}/dashboard",
            },
        )
