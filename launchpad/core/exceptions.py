"""Error taxonomy for the campaign review and launch workflow."""

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from launchpad.core.schemas import LaunchResult


class CampaignWorkflowError(Exception):
    """Base class for all workflow errors."""


class CampaignNotFoundError(CampaignWorkflowError):
    def __init__(self, campaign_id: str):
        self.campaign_id = campaign_id
        super().__init__(f"Campaign not found: {campaign_id}")


class ValidationError(CampaignWorkflowError):
    """Reviewer or submitter input failed validation. Nothing was mutated."""

    def __init__(self, errors: list[str], warnings: list[str] | None = None):
        self.errors = list(errors)
        self.warnings = list(warnings or [])
        super().__init__("; ".join(self.errors) or "Validation failed")


class StateConflictError(CampaignWorkflowError):
    """The campaign was not in the status the operation requires.

    Also raised to the loser of a compare-and-set race on the campaign status.
    """

    def __init__(self, campaign_id: str, expected: str | list[str], actual: str | None = None):
        self.campaign_id = campaign_id
        self.expected = expected
        self.actual = actual
        expected_text = " or ".join(expected) if isinstance(expected, list) else expected
        message = f"Campaign {campaign_id} must be in status {expected_text}"
        if actual:
            message += f" (current status: {actual})"
        super().__init__(message)


class ChannelFailureClass(str, Enum):
    """How a per-channel launch failure should be treated by a later retry policy."""

    NOT_CONFIGURED = "not_configured"  # needs operator action
    VALIDATION_REJECTED = "validation_rejected"  # needs campaign edits
    TRANSIENT = "transient"  # safe to retry
    UNKNOWN = "unknown"


class ChannelError(CampaignWorkflowError):
    """A single advertising channel refused or failed an operation."""

    def __init__(
        self,
        channel: str,
        message: str,
        failure_class: ChannelFailureClass = ChannelFailureClass.UNKNOWN,
        status_code: int | None = None,
        resource_ids: dict[str, Any] | None = None,
    ):
        self.channel = channel
        self.failure_class = failure_class
        self.status_code = status_code
        # Platform resources created before the failure, for reconciliation
        self.resource_ids = dict(resource_ids or {})
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        return self.failure_class == ChannelFailureClass.TRANSIENT


class ChannelNotConfiguredError(ChannelError):
    def __init__(self, channel: str, message: str | None = None):
        super().__init__(
            channel,
            message or f"{channel} channel is not configured (missing credentials)",
            ChannelFailureClass.NOT_CONFIGURED,
        )


class PersistenceError(CampaignWorkflowError):
    """An atomic status + approval record write could not be committed."""


class LaunchReconciliationError(PersistenceError):
    """Channel campaigns were created but the outcome could not be stored.

    The campaign is left in LAUNCHING status. ``launch_result`` carries the
    per-channel outcome so an operator can record the external references by hand.
    """

    def __init__(self, campaign_id: str, launch_result: "LaunchResult", cause: Exception | None = None):
        self.campaign_id = campaign_id
        self.launch_result = launch_result
        created = {
            channel: outcome.external_id
            for channel, outcome in launch_result.channel_results.items()
            if outcome.success and outcome.external_id
        }
        message = (
            f"Launch outcome for campaign {campaign_id} could not be saved; "
            f"channel campaigns may need manual reconciliation: {created or 'none created'}"
        )
        if cause is not None:
            message += f" ({cause})"
        super().__init__(message)
