"""Persistence for campaigns and their review cycles.

Every public method runs in exactly one transaction. Status changes are a
compare-and-set: a single ``UPDATE ... WHERE campaign_id = :id AND status =
:expected`` whose row count decides whether the caller won. The approval
record write for the same operation happens in that same transaction, so a
status change is never visible without its record.
"""

import logging
import uuid
from collections.abc import Callable, Generator
from contextlib import AbstractContextManager, contextmanager
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from launchpad.core.database.database_session import get_db_session
from launchpad.core.database.models import Campaign, CampaignApproval, Notification
from launchpad.core.exceptions import CampaignNotFoundError, PersistenceError, StateConflictError
from launchpad.core.schemas import (
    ApprovalRecord,
    ApprovalStatus,
    CampaignSnapshot,
    CampaignStatus,
    CreativeSnapshot,
    LaunchResult,
    RejectionRequest,
    ReviewSnapshot,
)

logger = logging.getLogger(__name__)

SessionScope = Callable[[], AbstractContextManager[Session]]


def _now() -> datetime:
    return datetime.now(UTC)


def _new_approval_id() -> str:
    return f"apr_{uuid.uuid4().hex[:12]}"


def to_snapshot(campaign: Campaign) -> CampaignSnapshot:
    return CampaignSnapshot(
        id=campaign.campaign_id,
        owner_id=campaign.owner_id,
        name=campaign.name,
        budget=Decimal(str(campaign.budget)),
        target_audience=campaign.target_audience or "",
        objectives=list(campaign.objectives or []),
        channel_selection=list(campaign.channel_selection or []),
        creatives=[
            CreativeSnapshot(
                id=creative.creative_id,
                headline=creative.headline or "",
                description=creative.description or "",
                call_to_action=creative.call_to_action,
                image_url=creative.image_url,
            )
            for creative in campaign.creatives
        ],
        status=CampaignStatus(campaign.status),
        external_references=dict(campaign.external_references or {}),
    )


def to_record(approval: CampaignApproval) -> ApprovalRecord:
    return ApprovalRecord(
        id=approval.approval_id,
        campaign_id=approval.campaign_id,
        cycle_number=approval.cycle_number,
        status=ApprovalStatus(approval.status),
        submitted_by=approval.submitted_by,
        submitted_at=approval.submitted_at,
        reviewed_by=approval.reviewed_by,
        reviewed_at=approval.reviewed_at,
        review_notes=approval.review_notes,
        rejection_reasons=list(approval.rejection_reasons or []),
        review_snapshot=ReviewSnapshot.model_validate(approval.review_snapshot) if approval.review_snapshot else None,
        launch_result=LaunchResult.model_validate(approval.launch_result) if approval.launch_result else None,
    )


class CampaignRepository:
    """Atomic reads and writes of campaign status and approval records."""

    def __init__(self, session_scope: SessionScope | None = None):
        self._session_scope = session_scope or get_db_session

    @contextmanager
    def _transaction(self) -> Generator[Session, None, None]:
        try:
            with self._session_scope() as session:
                yield session
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Campaign transaction failed: {e}")
            raise PersistenceError(f"Database write failed: {e}") from e

    def _compare_and_set_status(
        self,
        session: Session,
        campaign_id: str,
        expected: CampaignStatus,
        new: CampaignStatus,
        **values: Any,
    ) -> None:
        result = session.execute(
            update(Campaign)
            .where(Campaign.campaign_id == campaign_id, Campaign.status == expected.value)
            .values(status=new.value, updated_at=func.now(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return

        current = session.scalar(select(Campaign.status).where(Campaign.campaign_id == campaign_id))
        if current is None:
            raise CampaignNotFoundError(campaign_id)
        raise StateConflictError(campaign_id, expected.value, current)

    def _open_cycle(self, session: Session, campaign_id: str) -> CampaignApproval:
        """The latest approval record, which must still be awaiting review."""
        approval = session.scalars(
            select(CampaignApproval)
            .where(CampaignApproval.campaign_id == campaign_id)
            .order_by(CampaignApproval.cycle_number.desc())
            .limit(1)
        ).first()
        if approval is None or approval.status != ApprovalStatus.PENDING_REVIEW.value:
            raise PersistenceError(f"Campaign {campaign_id} is under review but has no open approval record")
        return approval

    def get_snapshot(self, campaign_id: str) -> CampaignSnapshot:
        with self._transaction() as session:
            campaign = session.get(Campaign, campaign_id)
            if campaign is None:
                raise CampaignNotFoundError(campaign_id)
            return to_snapshot(campaign)

    def submit_for_review(self, campaign_id: str, submitter_id: str, review_snapshot: ReviewSnapshot) -> ApprovalRecord:
        """DRAFT -> PENDING_REVIEW and open a new review cycle."""
        with self._transaction() as session:
            self._compare_and_set_status(session, campaign_id, CampaignStatus.DRAFT, CampaignStatus.PENDING_REVIEW)

            last_cycle = session.scalar(
                select(func.max(CampaignApproval.cycle_number)).where(CampaignApproval.campaign_id == campaign_id)
            )
            approval = CampaignApproval(
                approval_id=_new_approval_id(),
                campaign_id=campaign_id,
                cycle_number=(last_cycle or 0) + 1,
                status=ApprovalStatus.PENDING_REVIEW.value,
                submitted_by=submitter_id,
                submitted_at=_now(),
                rejection_reasons=[],
                review_snapshot=review_snapshot.model_dump(mode="json"),
            )
            session.add(approval)
            session.flush()
            return to_record(approval)

    def claim_for_launch(self, campaign_id: str) -> tuple[CampaignSnapshot, ApprovalRecord]:
        """PENDING_REVIEW -> LAUNCHING. Only one caller can win this for a review cycle."""
        with self._transaction() as session:
            self._compare_and_set_status(session, campaign_id, CampaignStatus.PENDING_REVIEW, CampaignStatus.LAUNCHING)
            approval = self._open_cycle(session, campaign_id)
            campaign = session.get(Campaign, campaign_id)
            return to_snapshot(campaign), to_record(approval)

    def release_claim(self, campaign_id: str) -> None:
        """LAUNCHING -> PENDING_REVIEW, used when a launch could not even start."""
        with self._transaction() as session:
            self._compare_and_set_status(session, campaign_id, CampaignStatus.LAUNCHING, CampaignStatus.PENDING_REVIEW)

    def complete_launch(
        self,
        campaign_id: str,
        approval_id: str,
        reviewer_id: str,
        review_notes: str,
        launch_result: LaunchResult,
    ) -> CampaignSnapshot:
        """Store the launch outcome and close the review cycle as APPROVED.

        New external references are merged in; existing ones are never removed
        or replaced. The campaign goes ACTIVE only if every channel succeeded.
        """
        with self._transaction() as session:
            campaign = session.get(Campaign, campaign_id)
            if campaign is None:
                raise CampaignNotFoundError(campaign_id)

            references = dict(campaign.external_references or {})
            for channel, external_id in launch_result.created_references().items():
                references.setdefault(channel, external_id)

            new_status = CampaignStatus.ACTIVE if launch_result.overall_success else CampaignStatus.DRAFT
            self._compare_and_set_status(
                session, campaign_id, CampaignStatus.LAUNCHING, new_status, external_references=references
            )

            approval = session.get(CampaignApproval, approval_id)
            if approval is None or approval.status != ApprovalStatus.PENDING_REVIEW.value:
                raise PersistenceError(f"Approval record {approval_id} is not open for review")
            approval.status = ApprovalStatus.APPROVED.value
            approval.reviewed_by = reviewer_id
            approval.reviewed_at = _now()
            approval.review_notes = review_notes
            approval.launch_result = launch_result.model_dump(mode="json")
            session.flush()

            session.refresh(campaign)
            return to_snapshot(campaign)

    def record_rejection(
        self, campaign_id: str, reviewer_id: str, rejection: RejectionRequest
    ) -> tuple[CampaignSnapshot, ApprovalRecord]:
        """PENDING_REVIEW -> DRAFT (needs changes) or REJECTED, closing the review cycle."""
        if rejection.needs_changes:
            new_status, approval_status = CampaignStatus.DRAFT, ApprovalStatus.NEEDS_CHANGES
        else:
            new_status, approval_status = CampaignStatus.REJECTED, ApprovalStatus.REJECTED

        with self._transaction() as session:
            self._compare_and_set_status(session, campaign_id, CampaignStatus.PENDING_REVIEW, new_status)

            approval = self._open_cycle(session, campaign_id)
            approval.status = approval_status.value
            approval.reviewed_by = reviewer_id
            approval.reviewed_at = _now()
            approval.review_notes = rejection.feedback
            approval.rejection_reasons = list(rejection.reasons)
            session.flush()

            campaign = session.get(Campaign, campaign_id)
            return to_snapshot(campaign), to_record(approval)

    def transition_status(self, campaign_id: str, expected: CampaignStatus, new: CampaignStatus) -> CampaignSnapshot:
        """Status-only compare-and-set for lifecycle actions outside the review gate."""
        with self._transaction() as session:
            self._compare_and_set_status(session, campaign_id, expected, new)
            campaign = session.get(Campaign, campaign_id)
            return to_snapshot(campaign)

    def list_approvals(self, campaign_id: str) -> list[ApprovalRecord]:
        """All review cycles of a campaign, most recent first."""
        with self._transaction() as session:
            approvals = session.scalars(
                select(CampaignApproval)
                .where(CampaignApproval.campaign_id == campaign_id)
                .order_by(CampaignApproval.cycle_number.desc())
            ).all()
            return [to_record(approval) for approval in approvals]

    def add_notification(
        self, user_id: str, notification_type: str, title: str, message: str, data: dict[str, Any] | None = None
    ) -> int:
        with self._transaction() as session:
            notification = Notification(
                user_id=user_id, type=notification_type, title=title, message=message, data=data or {}
            )
            session.add(notification)
            session.flush()
            return notification.notification_id
