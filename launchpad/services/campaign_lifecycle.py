"""Pause, resume and metrics for campaigns that have been launched."""

import logging
from collections.abc import Callable, Mapping

from launchpad.adapters.base import PlatformAdapter
from launchpad.core.audit_logger import get_audit_logger
from launchpad.core.database.repository import CampaignRepository
from launchpad.core.exceptions import ChannelError, ChannelFailureClass, StateConflictError
from launchpad.core.schemas import (
    VALID_CHANNELS,
    CampaignStatus,
    CampaignUpdate,
    Channel,
    ChannelMetricsOutcome,
    ChannelOutcome,
    LifecycleResult,
)

logger = logging.getLogger(__name__)


class CampaignLifecycle:
    """ACTIVE <-> PAUSED outside the review gate.

    Platform calls are best-effort per channel; the campaign status changes
    even if a channel could not be reached, and the per-channel outcome is
    returned so the caller can follow up.
    """

    def __init__(self, repository: CampaignRepository, adapters: Mapping[Channel, PlatformAdapter]):
        self.repository = repository
        self.adapters = dict(adapters)
        self.audit_logger = get_audit_logger("campaign_lifecycle")

    def pause(self, campaign_id: str, actor_id: str) -> LifecycleResult:
        return self._transition(
            campaign_id,
            actor_id,
            CampaignStatus.ACTIVE,
            CampaignStatus.PAUSED,
            lambda adapter, external_id: adapter.pause(external_id),
        )

    def resume(self, campaign_id: str, actor_id: str) -> LifecycleResult:
        return self._transition(
            campaign_id,
            actor_id,
            CampaignStatus.PAUSED,
            CampaignStatus.ACTIVE,
            lambda adapter, external_id: adapter.update(external_id, CampaignUpdate(status=CampaignStatus.ACTIVE)),
        )

    def _transition(
        self,
        campaign_id: str,
        actor_id: str,
        expected: CampaignStatus,
        new: CampaignStatus,
        action: Callable[[PlatformAdapter, str], None],
    ) -> LifecycleResult:
        campaign = self.repository.get_snapshot(campaign_id)
        if campaign.status != expected:
            raise StateConflictError(campaign_id, expected.value, campaign.status.value)

        outcomes = {}
        for channel_value, external_id in campaign.external_references.items():
            outcomes[channel_value] = self._apply(channel_value, external_id, action)

        updated = self.repository.transition_status(campaign_id, expected, new)
        logger.info(f"Campaign {campaign_id} {expected.value} -> {new.value} by {actor_id}")
        self.audit_logger.log_operation(
            operation=new.value.lower(),
            campaign_id=campaign_id,
            details={
                "actor": actor_id,
                "failed_channels": [channel for channel, outcome in outcomes.items() if not outcome.success],
            },
        )
        return LifecycleResult(campaign=updated, channel_results=outcomes)

    def _adapter_for(self, channel_value: str) -> PlatformAdapter | None:
        if channel_value not in VALID_CHANNELS:
            return None
        return self.adapters.get(Channel(channel_value))

    def _apply(
        self, channel_value: str, external_id: str, action: Callable[[PlatformAdapter, str], None]
    ) -> ChannelOutcome:
        adapter = self._adapter_for(channel_value)
        if adapter is None:
            return ChannelOutcome(
                success=False,
                external_id=external_id,
                error=f"No adapter for channel {channel_value}",
                failure_class=ChannelFailureClass.NOT_CONFIGURED,
            )

        try:
            action(adapter, external_id)
        except ChannelError as e:
            logger.warning(f"{adapter.display_name} call failed for campaign {external_id}: {e}")
            return ChannelOutcome(success=False, external_id=external_id, error=str(e), failure_class=e.failure_class)
        except Exception as e:
            logger.exception(f"Unexpected {adapter.display_name} error for campaign {external_id}")
            return ChannelOutcome(
                success=False, external_id=external_id, error=str(e), failure_class=ChannelFailureClass.UNKNOWN
            )
        return ChannelOutcome(success=True, external_id=external_id)

    def get_channel_metrics(self, campaign_id: str) -> dict[str, ChannelMetricsOutcome]:
        """Current platform metrics for every channel the campaign was launched on."""
        campaign = self.repository.get_snapshot(campaign_id)
        results: dict[str, ChannelMetricsOutcome] = {}

        for channel_value, external_id in campaign.external_references.items():
            adapter = self._adapter_for(channel_value)
            if adapter is None:
                results[channel_value] = ChannelMetricsOutcome(
                    success=False, error=f"No adapter for channel {channel_value}"
                )
                continue
            try:
                results[channel_value] = ChannelMetricsOutcome(success=True, metrics=adapter.get_metrics(external_id))
            except ChannelError as e:
                logger.warning(f"Failed to get {adapter.display_name} metrics for campaign {campaign_id}: {e}")
                results[channel_value] = ChannelMetricsOutcome(success=False, error=str(e))

        return results
