"""Pydantic models for the values that cross the workflow's seams.

Campaign snapshots are read from persistence and handed to the validator and
the orchestrator; launch requests and outcomes travel between the orchestrator
and the platform adapters; the result models are what callers of the workflow
get back.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

from launchpad.core.exceptions import ChannelFailureClass


class Channel(str, Enum):
    META = "META"
    GOOGLE = "GOOGLE"

    @property
    def display_name(self) -> str:
        return {"META": "Meta Ads", "GOOGLE": "Google Ads"}[self.value]


VALID_CHANNELS = {channel.value for channel in Channel}


class CampaignStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING_REVIEW = "PENDING_REVIEW"
    # Held while channel campaigns are being created for an approved review cycle
    LAUNCHING = "LAUNCHING"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    REJECTED = "REJECTED"


class ApprovalStatus(str, Enum):
    PENDING_REVIEW = "PENDING_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    NEEDS_CHANGES = "NEEDS_CHANGES"


class Objective(str, Enum):
    AWARENESS = "awareness"
    TRAFFIC = "traffic"
    LEADS = "leads"
    CONVERSIONS = "conversions"
    ENGAGEMENT = "engagement"
    VIDEO_VIEWS = "video_views"


class LaunchVariant(str, Enum):
    STANDARD = "standard"
    LEAD_CAPTURE = "lead_capture"
    INTENT = "intent"


class CreativeSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    headline: str = ""
    description: str = ""
    call_to_action: str | None = None
    image_url: str | None = None


class ReviewSnapshot(BaseModel):
    """Copy of the reviewable campaign fields taken at submission time."""

    budget: Decimal
    channel_selection: list[str]
    creative_count: int
    target_audience: str
    objectives: list[str]


class CampaignSnapshot(BaseModel):
    """Read-only view of a campaign as stored."""

    model_config = ConfigDict(frozen=True)

    id: str
    owner_id: str
    name: str = ""
    budget: Decimal = Decimal("0")
    target_audience: str = ""
    objectives: list[str] = Field(default_factory=list)
    channel_selection: list[str] = Field(default_factory=list)
    creatives: list[CreativeSnapshot] = Field(default_factory=list)
    status: CampaignStatus = CampaignStatus.DRAFT
    external_references: dict[str, str] = Field(default_factory=dict)

    def review_snapshot(self) -> ReviewSnapshot:
        return ReviewSnapshot(
            budget=self.budget,
            channel_selection=list(self.channel_selection),
            creative_count=len(self.creatives),
            target_audience=self.target_audience,
            objectives=list(self.objectives),
        )


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def ok(self) -> bool:
        return not self.errors


class OwnerEnrichment(BaseModel):
    """Owner-profile context used to tailor channel campaigns."""

    service_type: str | None = None
    city: str | None = None
    landing_page_slug: str | None = None
    average_ticket: Decimal | None = None


class LaunchOptions(BaseModel):
    use_lead_capture: bool = False
    use_intent_targeting: bool = False
    notes: str | None = None


class CreativeCopy(BaseModel):
    headline: str
    description: str
    call_to_action: str
    image_url: str | None = None
    source_creative_id: str | None = None


class ChannelLaunchRequest(BaseModel):
    """Everything an adapter needs to create one channel campaign.

    Built fresh for every launch attempt; it never carries a prior external id.
    """

    channel: Channel
    campaign_id: str
    name: str
    objective: str
    total_budget: Decimal
    daily_budget: Decimal
    target_audience: str
    variant: LaunchVariant = LaunchVariant.STANDARD
    creatives: list[CreativeCopy] = Field(default_factory=list)
    landing_page_url: str
    service_type: str | None = None
    city: str | None = None
    idempotency_token: str


class ChannelCampaign(BaseModel):
    """What a channel returns after creating a campaign."""

    external_id: str
    resource_ids: dict[str, Any] = Field(default_factory=dict)


class CampaignUpdate(BaseModel):
    name: str | None = None
    status: CampaignStatus | None = None
    budget: Decimal | None = None


class ChannelMetrics(BaseModel):
    impressions: int = 0
    clicks: int = 0
    conversions: float = 0.0
    cost: float = 0.0
    ctr: float = 0.0
    cpc: float = 0.0
    cpl: float = 0.0


class ChannelOutcome(BaseModel):
    success: bool
    external_id: str | None = None
    error: str | None = None
    failure_class: ChannelFailureClass | None = None
    reused: bool = False
    resource_ids: dict[str, Any] = Field(default_factory=dict)


class LaunchResult(BaseModel):
    channel_results: dict[str, ChannelOutcome] = Field(default_factory=dict)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def overall_success(self) -> bool:
        return all(outcome.success for outcome in self.channel_results.values())

    @property
    def errors(self) -> list[str]:
        return [
            f"{Channel(channel).display_name if channel in VALID_CHANNELS else channel}: {outcome.error}"
            for channel, outcome in self.channel_results.items()
            if not outcome.success
        ]

    def created_references(self) -> dict[str, str]:
        """Channel -> external id for every channel that now has a campaign."""
        return {
            channel: outcome.external_id
            for channel, outcome in self.channel_results.items()
            if outcome.success and outcome.external_id
        }


class ApprovalRecord(BaseModel):
    id: str
    campaign_id: str
    cycle_number: int
    status: ApprovalStatus
    submitted_by: str | None = None
    submitted_at: datetime
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    review_notes: str | None = None
    rejection_reasons: list[str] = Field(default_factory=list)
    review_snapshot: ReviewSnapshot | None = None
    launch_result: LaunchResult | None = None


class RejectionRequest(BaseModel):
    feedback: str = ""
    reasons: list[str] = Field(default_factory=list)
    needs_changes: bool = False


class SubmissionResult(BaseModel):
    ok: bool
    approval_id: str | None = None
    estimated_review_window: str | None = None
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ApprovalResult(BaseModel):
    campaign: CampaignSnapshot
    approval_id: str
    launch_result: LaunchResult
    message: str

    @property
    def overall_success(self) -> bool:
        return self.launch_result.overall_success

    @property
    def channel_results(self) -> dict[str, ChannelOutcome]:
        return self.launch_result.channel_results


class RejectionResult(BaseModel):
    campaign: CampaignSnapshot
    approval_id: str
    feedback: str
    needs_changes: bool


class ApprovalHistory(BaseModel):
    campaign_id: str
    approvals: list[ApprovalRecord] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def current_status(self) -> ApprovalStatus | None:
        """Status of the latest review cycle, or None if never submitted."""
        return self.approvals[0].status if self.approvals else None


class LifecycleResult(BaseModel):
    """Outcome of pausing or resuming a launched campaign."""

    campaign: CampaignSnapshot
    channel_results: dict[str, ChannelOutcome] = Field(default_factory=dict)


class ChannelMetricsOutcome(BaseModel):
    success: bool
    metrics: ChannelMetrics | None = None
    error: str | None = None
