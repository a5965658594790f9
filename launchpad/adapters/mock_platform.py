import threading
import time
from itertools import count
from typing import Any

from launchpad.adapters.base import PlatformAdapter
from launchpad.core.exceptions import ChannelError, ChannelFailureClass
from launchpad.core.schemas import (
    CampaignStatus,
    CampaignUpdate,
    Channel,
    ChannelCampaign,
    ChannelLaunchRequest,
    ChannelMetrics,
)


class MockPlatformAdapter(PlatformAdapter):
    """
    An in-memory advertising platform for development and tests.

    Campaign ids are deterministic (``<prefix>-1``, ``<prefix>-2``, ...) unless
    scripted with ``queue_external_id``. Failures and latency can be scripted
    per call. Requests carrying an idempotency token that was already served
    return the campaign created the first time.
    """

    adapter_name = "mock"

    def __init__(
        self,
        channel: Channel,
        configured: bool = True,
        dry_run: bool = False,
        delay_seconds: float = 0.0,
        id_prefix: str | None = None,
    ):
        self.channel = channel
        self.adapter_name = f"mock_{channel.value.lower()}"
        super().__init__(config={"channel": channel.value}, dry_run=dry_run)
        self.configured = configured
        self.delay_seconds = delay_seconds
        self.id_prefix = id_prefix or f"{channel.value.lower()}-ext"

        self.campaigns: dict[str, dict[str, Any]] = {}
        self.create_calls: list[ChannelLaunchRequest] = []
        self.update_calls: list[tuple[str, CampaignUpdate]] = []
        self.metrics: dict[str, ChannelMetrics] = {}
        self._served_tokens: dict[str, ChannelCampaign] = {}
        self._scripted_errors: list[Exception] = []
        self._scripted_ids: list[str] = []
        self._sequence = count(1)
        self._lock = threading.Lock()

    # Scripting

    def fail_next(self, error: Exception | None = None, times: int = 1):
        """Make the next ``times`` create_campaign calls raise ``error``."""
        error = error or ChannelError(
            self.channel.value, f"{self.display_name} rejected the campaign", ChannelFailureClass.VALIDATION_REJECTED
        )
        with self._lock:
            self._scripted_errors.extend([error] * times)

    def queue_external_id(self, *external_ids: str):
        with self._lock:
            self._scripted_ids.extend(external_ids)

    # PlatformAdapter

    def is_configured(self) -> bool:
        return self.configured

    def create_campaign(self, request: ChannelLaunchRequest) -> ChannelCampaign:
        self.ensure_configured()

        with self._lock:
            self.create_calls.append(request)
            served = self._served_tokens.get(request.idempotency_token)
            error = self._scripted_errors.pop(0) if served is None and self._scripted_errors else None

        if served is not None:
            self.log(f"Mock.create_campaign: token {request.idempotency_token} already served")
            return served

        if self.delay_seconds:
            time.sleep(self.delay_seconds)

        if error is not None:
            self.audit_logger.log_operation(
                operation="create_campaign",
                campaign_id=request.campaign_id,
                success=False,
                error=str(error),
                details={"idempotency_token": request.idempotency_token},
            )
            raise error

        with self._lock:
            external_id = self._scripted_ids.pop(0) if self._scripted_ids else f"{self.id_prefix}-{next(self._sequence)}"
            campaign = ChannelCampaign(
                external_id=external_id,
                resource_ids={"campaign_id": external_id, "ads": len(request.creatives)},
            )
            self.campaigns[external_id] = {"name": request.name, "status": "PAUSED", "budget": request.total_budget}
            self._served_tokens[request.idempotency_token] = campaign

        self.log(f"Mock.create_campaign: created {external_id} for '{request.name}'")
        self.audit_logger.log_operation(
            operation="create_campaign",
            campaign_id=request.campaign_id,
            external_id=external_id,
            success=True,
            details={"idempotency_token": request.idempotency_token, "variant": request.variant.value},
        )
        return campaign

    def _get(self, external_id: str) -> dict[str, Any]:
        campaign = self.campaigns.get(external_id)
        if campaign is None:
            raise ChannelError(
                self.channel.value,
                f"{self.display_name} campaign {external_id} not found",
                ChannelFailureClass.VALIDATION_REJECTED,
                status_code=404,
            )
        return campaign

    def pause(self, external_id: str) -> None:
        self.update(external_id, CampaignUpdate(status=CampaignStatus.PAUSED))

    def update(self, external_id: str, fields: CampaignUpdate) -> None:
        self.ensure_configured()
        with self._lock:
            campaign = self._get(external_id)
            self.update_calls.append((external_id, fields))
            if fields.name:
                campaign["name"] = fields.name
            if fields.status:
                campaign["status"] = "ACTIVE" if fields.status == CampaignStatus.ACTIVE else "PAUSED"
            if fields.budget is not None:
                campaign["budget"] = fields.budget

    def get_metrics(self, external_id: str) -> ChannelMetrics:
        self.ensure_configured()
        self._get(external_id)
        return self.metrics.get(external_id, ChannelMetrics())
