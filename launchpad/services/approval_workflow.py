"""Review gate for advertising campaigns.

DRAFT --submit--> PENDING_REVIEW --approve--> LAUNCHING --> ACTIVE | DRAFT
                                 --reject---> DRAFT (needs changes) | REJECTED

Every status change is a compare-and-set in the repository, so of two
concurrent approve/reject calls on the same campaign exactly one wins and the
other gets StateConflictError. Approve claims the campaign (LAUNCHING) before
any channel is contacted; the launch outcome, the final status and the
approval record are then written in one transaction.

Notifications are sent only after the state change has committed and never
fail the operation.
"""

import logging

from launchpad.core.audit_logger import get_audit_logger
from launchpad.core.database.repository import CampaignRepository
from launchpad.core.exceptions import (
    CampaignWorkflowError,
    LaunchReconciliationError,
    StateConflictError,
    ValidationError,
)
from launchpad.core.schemas import (
    ApprovalHistory,
    ApprovalResult,
    CampaignStatus,
    LaunchOptions,
    OwnerEnrichment,
    RejectionRequest,
    RejectionResult,
    SubmissionResult,
)
from launchpad.core.validation import validate_campaign
from launchpad.services.launch_orchestrator import LaunchOrchestrator
from launchpad.services.notifications import NotificationService
from launchpad.services.owner_profile import OwnerProfileProvider

logger = logging.getLogger(__name__)

MIN_FEEDBACK_LENGTH = 10
DEFAULT_REVIEW_WINDOW = "2-4 business hours"
DEFAULT_APPROVAL_NOTES = "Campaign approved and launched successfully"


class ApprovalWorkflow:
    """Submit, approve, reject, and history for campaigns."""

    def __init__(
        self,
        repository: CampaignRepository,
        orchestrator: LaunchOrchestrator,
        profiles: OwnerProfileProvider,
        notifications: NotificationService,
        estimated_review_window: str = DEFAULT_REVIEW_WINDOW,
    ):
        self.repository = repository
        self.orchestrator = orchestrator
        self.profiles = profiles
        self.notifications = notifications
        self.estimated_review_window = estimated_review_window
        self.audit_logger = get_audit_logger("approval_workflow")

    def submit(self, campaign_id: str, submitter_id: str) -> SubmissionResult:
        """Send a DRAFT campaign to review.

        Content problems come back as ``ok=False`` with the validator's errors and
        leave the campaign untouched.

        Raises:
            CampaignNotFoundError: unknown campaign
            StateConflictError: campaign is not in DRAFT
        """
        campaign = self.repository.get_snapshot(campaign_id)
        if campaign.status != CampaignStatus.DRAFT:
            raise StateConflictError(campaign_id, CampaignStatus.DRAFT.value, campaign.status.value)

        validation = validate_campaign(campaign)
        if not validation.ok:
            logger.info(f"Campaign {campaign_id} failed submission checks: {'; '.join(validation.errors)}")
            return SubmissionResult(ok=False, errors=validation.errors, warnings=validation.warnings)

        record = self.repository.submit_for_review(campaign_id, submitter_id, campaign.review_snapshot())
        logger.info(f"Campaign submitted for approval: {campaign_id} (cycle {record.cycle_number})")
        self.audit_logger.log_operation(
            operation="submit",
            campaign_id=campaign_id,
            details={"approval_id": record.id, "submitted_by": submitter_id, "warnings": validation.warnings},
        )

        self.notifications.campaign_submitted(campaign, record.id, self.estimated_review_window)

        return SubmissionResult(
            ok=True,
            approval_id=record.id,
            estimated_review_window=self.estimated_review_window,
            warnings=validation.warnings,
        )

    def approve(
        self,
        campaign_id: str,
        reviewer_id: str,
        options: LaunchOptions | None = None,
        review_notes: str | None = None,
    ) -> ApprovalResult:
        """Approve a campaign under review and launch it on its channels.

        Succeeds at the call level even when some channels failed; check
        ``overall_success`` and ``channel_results`` on the result.

        Raises:
            CampaignNotFoundError: unknown campaign
            StateConflictError: campaign is not PENDING_REVIEW, or another
                reviewer decided first
            LaunchReconciliationError: channels were contacted but the outcome
                could not be saved; the campaign stays LAUNCHING
        """
        options = options or LaunchOptions()
        campaign, record = self.repository.claim_for_launch(campaign_id)
        logger.info(f"Campaign {campaign_id} claimed for launch by {reviewer_id} (approval {record.id})")

        try:
            enrichment = self._enrichment_for(campaign.owner_id)
            launch_result = self.orchestrator.launch(campaign, enrichment, options, approval_id=record.id)
        except Exception:
            logger.exception(f"Launch of campaign {campaign_id} could not run; returning it to review")
            self._release(campaign_id)
            raise

        notes = review_notes or options.notes or DEFAULT_APPROVAL_NOTES
        try:
            updated = self.repository.complete_launch(campaign_id, record.id, reviewer_id, notes, launch_result)
        except CampaignWorkflowError as e:
            logger.critical(
                f"Launch outcome for campaign {campaign_id} was not saved; "
                f"created channel campaigns: {launch_result.created_references()}"
            )
            self.audit_logger.log_operation(
                operation="approve",
                campaign_id=campaign_id,
                success=False,
                error=str(e),
                details={"approval_id": record.id, "launch_result": launch_result.model_dump(mode="json")},
            )
            raise LaunchReconciliationError(campaign_id, launch_result, cause=e) from e

        self.audit_logger.log_operation(
            operation="approve",
            campaign_id=campaign_id,
            success=True,
            details={
                "approval_id": record.id,
                "reviewed_by": reviewer_id,
                "status": updated.status.value,
                "external_references": updated.external_references,
                "errors": launch_result.errors,
            },
        )

        if launch_result.overall_success:
            logger.info(f"Campaign approved and launched: {campaign_id}")
            message = "Campaign approved and launched successfully"
        else:
            logger.warning(f"Campaign {campaign_id} approved with platform errors: {'; '.join(launch_result.errors)}")
            message = "Campaign approved with some platform errors"

        self.notifications.campaign_approved(updated, record.id, launch_result)

        return ApprovalResult(campaign=updated, approval_id=record.id, launch_result=launch_result, message=message)

    def reject(self, campaign_id: str, reviewer_id: str, rejection: RejectionRequest) -> RejectionResult:
        """Send a campaign back for changes, or reject it for good.

        Raises:
            ValidationError: feedback shorter than 10 characters
            CampaignNotFoundError: unknown campaign
            StateConflictError: campaign is not PENDING_REVIEW
        """
        feedback = (rejection.feedback or "").strip()
        if len(feedback) < MIN_FEEDBACK_LENGTH:
            raise ValidationError([f"Review feedback must be at least {MIN_FEEDBACK_LENGTH} characters"])

        rejection = rejection.model_copy(update={"feedback": feedback})
        campaign, record = self.repository.record_rejection(campaign_id, reviewer_id, rejection)

        outcome = "needs changes" if rejection.needs_changes else "rejected"
        logger.info(f"Campaign {outcome}: {campaign_id}")
        self.audit_logger.log_operation(
            operation="reject",
            campaign_id=campaign_id,
            details={
                "approval_id": record.id,
                "reviewed_by": reviewer_id,
                "needs_changes": rejection.needs_changes,
                "reasons": rejection.reasons,
            },
        )

        self.notifications.campaign_rejected(campaign, record.id, rejection)

        return RejectionResult(
            campaign=campaign, approval_id=record.id, feedback=feedback, needs_changes=rejection.needs_changes
        )

    def get_history(self, campaign_id: str) -> ApprovalHistory:
        """Every review cycle of the campaign, most recent first."""
        self.repository.get_snapshot(campaign_id)
        return ApprovalHistory(campaign_id=campaign_id, approvals=self.repository.list_approvals(campaign_id))

    def _enrichment_for(self, owner_id: str) -> OwnerEnrichment:
        try:
            return self.profiles.get_enrichment(owner_id)
        except Exception as e:
            logger.warning(f"Owner profile lookup failed for {owner_id}, launching without enrichment: {e}")
            return OwnerEnrichment()

    def _release(self, campaign_id: str):
        try:
            self.repository.release_claim(campaign_id)
        except CampaignWorkflowError as e:
            logger.error(f"Could not return campaign {campaign_id} to review after a failed launch: {e}")
