"""Startup configuration and wiring for the campaign launch workflow."""

import logging
from collections.abc import Mapping

from launchpad.adapters import PlatformAdapter, build_adapters
from launchpad.core.config import AppConfig, get_config, validate_configuration
from launchpad.core.database.repository import CampaignRepository
from launchpad.core.logging_config import setup_structured_logging
from launchpad.core.schemas import Channel
from launchpad.services.approval_workflow import ApprovalWorkflow
from launchpad.services.campaign_lifecycle import CampaignLifecycle
from launchpad.services.launch_orchestrator import LaunchOrchestrator
from launchpad.services.notifications import (
    DatabaseInAppNotifier,
    LoggingNotificationSender,
    NotificationSender,
    NotificationService,
    WebhookNotificationSender,
)
from launchpad.services.owner_profile import DatabaseOwnerProfileProvider

logger = logging.getLogger(__name__)


def initialize_application() -> None:
    """Initialize the application with configuration validation and setup.

    Raises:
        SystemExit: If configuration validation fails
    """
    try:
        # Logging first so production gets JSON from the very first line
        setup_structured_logging()
        logger.info("Initializing campaign launch workflow...")

        validate_configuration()
        logger.info("Configuration validation passed")

    except Exception as e:
        logger.error(f"Application initialization failed: {str(e)}")
        raise SystemExit(1) from e


def _notification_sender(config: AppConfig) -> NotificationSender:
    if config.notifications.webhook_url:
        return WebhookNotificationSender(
            config.notifications.webhook_url,
            max_retries=config.notifications.max_retries,
            timeout=config.notifications.timeout_seconds,
        )
    return LoggingNotificationSender()


def build_approval_workflow(
    config: AppConfig | None = None,
    adapters: Mapping[Channel, PlatformAdapter] | None = None,
    repository: CampaignRepository | None = None,
) -> ApprovalWorkflow:
    """Compose the workflow from configuration. Adapters are built once here unless given."""
    config = config or get_config()
    adapters = adapters if adapters is not None else build_adapters(config)
    repository = repository or CampaignRepository()

    orchestrator = LaunchOrchestrator(
        adapters,
        channel_timeout_seconds=config.launch.channel_timeout_seconds,
        frontend_url=config.launch.frontend_url,
        default_cta=config.launch.default_cta,
    )
    notifications = NotificationService(
        _notification_sender(config), DatabaseInAppNotifier(repository), frontend_url=config.launch.frontend_url
    )
    return ApprovalWorkflow(
        repository,
        orchestrator,
        DatabaseOwnerProfileProvider(),
        notifications,
        estimated_review_window=config.launch.estimated_review_window,
    )


def build_campaign_lifecycle(
    config: AppConfig | None = None,
    adapters: Mapping[Channel, PlatformAdapter] | None = None,
    repository: CampaignRepository | None = None,
) -> CampaignLifecycle:
    config = config or get_config()
    adapters = adapters if adapters is not None else build_adapters(config)
    return CampaignLifecycle(repository or CampaignRepository(), adapters)
