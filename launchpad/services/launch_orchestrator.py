"""Fan-out of an approved campaign to its advertising channels.

Each selected channel gets its own creation request and its own failure
boundary. Calls run in parallel and are joined under one shared deadline; a
channel that misses the deadline is recorded as a transient failure while the
others' outcomes are kept. Channels that succeed are never rolled back when a
sibling fails: the platform campaign stays paused for manual reconciliation.
"""

import logging
import time
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from decimal import ROUND_HALF_UP, Decimal

from launchpad.adapters.base import PlatformAdapter
from launchpad.core.exceptions import ChannelError, ChannelFailureClass
from launchpad.core.schemas import (
    VALID_CHANNELS,
    CampaignSnapshot,
    Channel,
    ChannelLaunchRequest,
    ChannelOutcome,
    CreativeCopy,
    LaunchOptions,
    LaunchResult,
    LaunchVariant,
    Objective,
    OwnerEnrichment,
)

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL_TIMEOUT_SECONDS = 60.0
DEFAULT_FRONTEND_URL = "http://localhost:3000"
DEFAULT_CALL_TO_ACTION = "Learn More"
DEFAULT_LANDING_PAGE_SLUG = "default"
BUDGET_DAYS = 30


def idempotency_token(campaign_id: str, approval_id: str, channel: Channel) -> str:
    return f"{campaign_id}:{approval_id}:{channel.value}"


def _variant_for(channel: Channel, options: LaunchOptions) -> LaunchVariant:
    if channel == Channel.META and options.use_lead_capture:
        return LaunchVariant.LEAD_CAPTURE
    if channel == Channel.GOOGLE and options.use_intent_targeting:
        return LaunchVariant.INTENT
    return LaunchVariant.STANDARD


def _default_copy(campaign: CampaignSnapshot, enrichment: OwnerEnrichment, call_to_action: str) -> CreativeCopy:
    if enrichment.service_type and enrichment.city:
        description = f"{enrichment.service_type} in {enrichment.city}. {campaign.target_audience}".strip()
    else:
        description = campaign.target_audience or campaign.name
    return CreativeCopy(headline=campaign.name, description=description, call_to_action=call_to_action)


def build_channel_request(
    channel: Channel,
    campaign: CampaignSnapshot,
    enrichment: OwnerEnrichment,
    options: LaunchOptions,
    idempotency_token: str,
    frontend_url: str = DEFAULT_FRONTEND_URL,
    default_cta: str = DEFAULT_CALL_TO_ACTION,
) -> ChannelLaunchRequest:
    """Build the creation request for one channel. Pure; missing optional fields are defaulted."""
    variant = _variant_for(channel, options)

    if variant == LaunchVariant.LEAD_CAPTURE:
        objective = Objective.LEADS.value
    else:
        objective = campaign.objectives[0] if campaign.objectives else Objective.AWARENESS.value

    creatives = [
        CreativeCopy(
            headline=creative.headline,
            description=creative.description,
            call_to_action=creative.call_to_action or default_cta,
            image_url=creative.image_url,
            source_creative_id=creative.id,
        )
        for creative in campaign.creatives
    ] or [_default_copy(campaign, enrichment, default_cta)]

    slug = enrichment.landing_page_slug or DEFAULT_LANDING_PAGE_SLUG
    daily_budget = (campaign.budget / BUDGET_DAYS).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    return ChannelLaunchRequest(
        channel=channel,
        campaign_id=campaign.id,
        name=campaign.name,
        objective=objective,
        total_budget=campaign.budget,
        daily_budget=daily_budget,
        target_audience=campaign.target_audience,
        variant=variant,
        creatives=creatives,
        landing_page_url=f"{frontend_url.rstrip('/')}/lp/{slug}",
        service_type=enrichment.service_type,
        city=enrichment.city,
        idempotency_token=idempotency_token,
    )


class LaunchOrchestrator:
    """Creates an approved campaign on every selected channel, independently."""

    def __init__(
        self,
        adapters: Mapping[Channel, PlatformAdapter],
        channel_timeout_seconds: float = DEFAULT_CHANNEL_TIMEOUT_SECONDS,
        frontend_url: str = DEFAULT_FRONTEND_URL,
        default_cta: str = DEFAULT_CALL_TO_ACTION,
    ):
        self.adapters = dict(adapters)
        self.channel_timeout_seconds = channel_timeout_seconds
        self.frontend_url = frontend_url
        self.default_cta = default_cta

    def launch(
        self,
        campaign: CampaignSnapshot,
        enrichment: OwnerEnrichment,
        options: LaunchOptions,
        approval_id: str,
    ) -> LaunchResult:
        """Attempt creation on each selected channel and collect every outcome.

        Never raises for a channel failure; inspect ``overall_success`` and the
        per-channel results instead. Channels that already have an external
        reference are not created again and are reported as reused.
        """
        outcomes: dict[str, ChannelOutcome] = {}
        order: list[str] = []
        pending: list[tuple[Channel, PlatformAdapter, ChannelLaunchRequest]] = []

        for value in campaign.channel_selection:
            if value in order:
                continue
            order.append(value)

            if value not in VALID_CHANNELS:
                outcomes[value] = ChannelOutcome(
                    success=False,
                    error=f"Unsupported advertising channel: {value}",
                    failure_class=ChannelFailureClass.VALIDATION_REJECTED,
                )
                continue

            channel = Channel(value)
            existing = campaign.external_references.get(value)
            if existing:
                logger.info(f"Campaign {campaign.id} already has {channel.display_name} campaign {existing}; reusing it")
                outcomes[value] = ChannelOutcome(success=True, external_id=existing, reused=True)
                continue

            adapter = self.adapters.get(channel)
            if adapter is None:
                outcomes[value] = ChannelOutcome(
                    success=False,
                    error=f"{channel.display_name} API not configured",
                    failure_class=ChannelFailureClass.NOT_CONFIGURED,
                )
                continue

            request = build_channel_request(
                channel,
                campaign,
                enrichment,
                options,
                idempotency_token(campaign.id, approval_id, channel),
                frontend_url=self.frontend_url,
                default_cta=self.default_cta,
            )
            pending.append((channel, adapter, request))

        if pending:
            outcomes.update(self._dispatch(campaign.id, pending))

        result = LaunchResult(channel_results={value: outcomes[value] for value in order})
        logger.info(
            f"Launch of campaign {campaign.id} finished: "
            + ", ".join(f"{value}={'ok' if outcome.success else 'failed'}" for value, outcome in result.channel_results.items())
        )
        return result

    def _dispatch(
        self, campaign_id: str, pending: list[tuple[Channel, PlatformAdapter, ChannelLaunchRequest]]
    ) -> dict[str, ChannelOutcome]:
        outcomes: dict[str, ChannelOutcome] = {}
        executor = ThreadPoolExecutor(max_workers=len(pending), thread_name_prefix=f"launch-{campaign_id}")
        try:
            futures = {
                channel: executor.submit(self._create_on_channel, channel, adapter, request)
                for channel, adapter, request in pending
            }
            deadline = time.monotonic() + self.channel_timeout_seconds

            for channel, future in futures.items():
                try:
                    outcomes[channel.value] = future.result(timeout=max(0.0, deadline - time.monotonic()))
                except FuturesTimeoutError:
                    # The call keeps running; if it later succeeds the platform campaign is orphaned
                    logger.error(
                        f"{channel.display_name} did not respond within {self.channel_timeout_seconds}s "
                        f"for campaign {campaign_id}; any campaign it creates needs manual reconciliation"
                    )
                    outcomes[channel.value] = ChannelOutcome(
                        success=False,
                        error=f"{channel.display_name} did not respond within {self.channel_timeout_seconds:g} seconds",
                        failure_class=ChannelFailureClass.TRANSIENT,
                    )
        finally:
            # In-flight adapter calls can't be cancelled; don't wait for them
            executor.shutdown(wait=False)
        return outcomes

    def _create_on_channel(
        self, channel: Channel, adapter: PlatformAdapter, request: ChannelLaunchRequest
    ) -> ChannelOutcome:
        try:
            adapter.ensure_configured()
            created = adapter.create_campaign(request)
        except ChannelError as e:
            logger.warning(f"{channel.display_name} launch failed for campaign {request.campaign_id}: {e}")
            return ChannelOutcome(
                success=False, error=str(e), failure_class=e.failure_class, resource_ids=dict(e.resource_ids)
            )
        except Exception as e:
            logger.exception(f"Unexpected {channel.display_name} error for campaign {request.campaign_id}")
            return ChannelOutcome(
                success=False, error=str(e) or e.__class__.__name__, failure_class=ChannelFailureClass.UNKNOWN
            )

        return ChannelOutcome(success=True, external_id=created.external_id, resource_ids=created.resource_ids)
