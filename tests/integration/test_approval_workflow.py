"""End-to-end review gate tests against a real database and in-memory platforms."""

import threading
from datetime import datetime

import pytest
from freezegun import freeze_time
from sqlalchemy import select

from launchpad.core.database.models import CampaignApproval, Notification
from launchpad.core.exceptions import (
    CampaignNotFoundError,
    ChannelError,
    ChannelFailureClass,
    LaunchReconciliationError,
    PersistenceError,
    StateConflictError,
    ValidationError,
)
from launchpad.core.schemas import (
    ApprovalStatus,
    CampaignStatus,
    Channel,
    LaunchOptions,
    LaunchVariant,
    OwnerEnrichment,
    RejectionRequest,
)
from launchpad.services.approval_workflow import ApprovalWorkflow
from launchpad.services.launch_orchestrator import LaunchOrchestrator
from launchpad.services.notifications import DatabaseInAppNotifier, NotificationService
from launchpad.services.owner_profile import StaticOwnerProfileProvider
from tests.fixtures import CampaignFactory, OwnerProfileFactory

pytestmark = pytest.mark.integration

GOOGLE_DOWN = ChannelError("GOOGLE", "Google Ads campaign create failed: HTTP 503", ChannelFailureClass.TRANSIENT)


@pytest.fixture
def campaign_id(db_session):
    return CampaignFactory.persist(db_session, campaign_id="camp_1")


@pytest.fixture
def pending_campaign(workflow, campaign_id):
    workflow.submit(campaign_id, "owner_1")
    return campaign_id


class TestSubmit:
    @freeze_time("2026-03-02 09:30:00")
    def test_valid_campaign_goes_to_review(self, workflow, repository, campaign_id, sender):
        result = workflow.submit(campaign_id, "owner_1")

        assert result.ok
        assert result.approval_id.startswith("apr_")
        assert result.estimated_review_window == "2-4 business hours"
        assert repository.get_snapshot(campaign_id).status == CampaignStatus.PENDING_REVIEW

        [record] = repository.list_approvals(campaign_id)
        assert record.id == result.approval_id
        assert record.cycle_number == 1
        assert record.status == ApprovalStatus.PENDING_REVIEW
        assert record.submitted_by == "owner_1"
        assert record.submitted_at.replace(tzinfo=None) == datetime(2026, 3, 2, 9, 30)
        assert record.review_snapshot.budget == 3000
        assert record.review_snapshot.creative_count == 2
        assert record.review_snapshot.channel_selection == ["META", "GOOGLE"]

        assert sender.sent[0][0] == "campaign.submitted"

    def test_in_app_notification_is_stored(self, workflow, campaign_id, db_session):
        workflow.submit(campaign_id, "owner_1")

        [notification] = db_session.scalars(select(Notification)).all()
        assert notification.user_id == "owner_1"
        assert notification.type == "CAMPAIGN_ALERT"
        assert notification.title == "Campaign Submitted for Review"
        assert notification.data["campaign_id"] == campaign_id
        assert not notification.is_read

    def test_invalid_campaign_is_left_untouched(self, workflow, repository, db_session, sender):
        campaign_id = CampaignFactory.persist(db_session, budget="50", name="No")

        result = workflow.submit(campaign_id, "owner_1")

        assert not result.ok
        assert result.approval_id is None
        assert "Campaign name must be at least 3 characters long" in result.errors
        assert repository.get_snapshot(campaign_id).status == CampaignStatus.DRAFT
        assert repository.list_approvals(campaign_id) == []
        assert sender.sent == []

    def test_prohibited_content_blocks_submission(self, workflow, repository, db_session):
        campaign_id = CampaignFactory.persist(db_session, name="Guaranteed Results Therapy")

        result = workflow.submit(campaign_id, "owner_1")

        assert not result.ok
        assert "guaranteed results" in result.errors[0]
        assert repository.get_snapshot(campaign_id).status == CampaignStatus.DRAFT

    def test_warnings_are_returned_with_success(self, workflow, db_session):
        campaign_id = CampaignFactory.persist(db_session, budget="80000", creatives=[])

        result = workflow.submit(campaign_id, "owner_1")

        assert result.ok
        assert len(result.warnings) == 2

    def test_only_drafts_can_be_submitted(self, workflow, repository, pending_campaign, sender):
        with pytest.raises(StateConflictError):
            workflow.submit(pending_campaign, "owner_1")

        assert len(repository.list_approvals(pending_campaign)) == 1
        assert len(sender.sent) == 1

    def test_rejected_campaign_cannot_be_resubmitted(self, workflow, repository, pending_campaign):
        workflow.reject(pending_campaign, "reviewer_1", RejectionRequest(feedback="Not a fit for this platform"))

        with pytest.raises(StateConflictError):
            workflow.submit(pending_campaign, "owner_1")

        [record] = repository.list_approvals(pending_campaign)
        assert record.status == ApprovalStatus.REJECTED

    def test_active_campaign_cannot_be_resubmitted(self, workflow, repository, pending_campaign):
        workflow.approve(pending_campaign, "reviewer_1")

        with pytest.raises(StateConflictError):
            workflow.submit(pending_campaign, "owner_1")

        [record] = repository.list_approvals(pending_campaign)
        assert record.status == ApprovalStatus.APPROVED
        assert repository.get_snapshot(pending_campaign).status == CampaignStatus.ACTIVE

    def test_unknown_campaign(self, workflow, sqlite_db):
        with pytest.raises(CampaignNotFoundError):
            workflow.submit("camp_missing", "owner_1")


class TestApprove:
    def test_all_channels_launch(self, workflow, repository, adapters, pending_campaign, sender):
        result = workflow.approve(pending_campaign, "reviewer_1")

        assert result.overall_success
        assert result.message == "Campaign approved and launched successfully"
        assert result.campaign.status == CampaignStatus.ACTIVE
        assert result.campaign.external_references == {"META": "meta-ext-1", "GOOGLE": "google-ext-1"}

        stored = repository.get_snapshot(pending_campaign)
        assert stored.status == CampaignStatus.ACTIVE
        assert stored.external_references == {"META": "meta-ext-1", "GOOGLE": "google-ext-1"}

        [record] = repository.list_approvals(pending_campaign)
        assert record.status == ApprovalStatus.APPROVED
        assert record.reviewed_by == "reviewer_1"
        assert record.review_notes == "Campaign approved and launched successfully"
        assert record.launch_result.overall_success
        assert record.launch_result.channel_results["META"].external_id == "meta-ext-1"

        assert [event for event, _, _ in sender.sent] == ["campaign.submitted", "campaign.approved"]

    def test_partial_failure_returns_campaign_to_draft_with_successful_reference(
        self, workflow, repository, adapters, pending_campaign
    ):
        adapters[Channel.GOOGLE].fail_next(GOOGLE_DOWN)

        result = workflow.approve(pending_campaign, "reviewer_1", review_notes="Looks good")

        assert not result.overall_success
        assert result.message == "Campaign approved with some platform errors"
        assert result.channel_results["GOOGLE"].failure_class == ChannelFailureClass.TRANSIENT

        stored = repository.get_snapshot(pending_campaign)
        assert stored.status == CampaignStatus.DRAFT
        assert stored.external_references == {"META": "meta-ext-1"}

        [record] = repository.list_approvals(pending_campaign)
        assert record.status == ApprovalStatus.APPROVED
        assert record.review_notes == "Looks good"
        assert record.launch_result.errors == ["Google Ads: Google Ads campaign create failed: HTTP 503"]

    def test_incomplete_channel_campaign_is_kept_on_the_approval_record(
        self, workflow, repository, adapters, pending_campaign
    ):
        adapters[Channel.GOOGLE].fail_next(
            ChannelError(
                "GOOGLE",
                "Google Ads ad group create failed: HTTP 503",
                ChannelFailureClass.TRANSIENT,
                resource_ids={"budget_id": "555", "campaign_id": "777"},
            )
        )

        workflow.approve(pending_campaign, "reviewer_1")

        [record] = repository.list_approvals(pending_campaign)
        assert record.launch_result.channel_results["GOOGLE"].resource_ids == {"budget_id": "555", "campaign_id": "777"}
        assert repository.get_snapshot(pending_campaign).external_references == {"META": "meta-ext-1"}

    def test_unconfigured_channel_does_not_block_the_other(self, workflow, repository, adapters, pending_campaign):
        adapters[Channel.META].configured = False

        result = workflow.approve(pending_campaign, "reviewer_1")

        assert result.channel_results["META"].failure_class == ChannelFailureClass.NOT_CONFIGURED
        assert repository.get_snapshot(pending_campaign).external_references == {"GOOGLE": "google-ext-1"}

    def test_resubmission_only_launches_missing_channels(self, workflow, repository, adapters, pending_campaign):
        adapters[Channel.GOOGLE].fail_next(GOOGLE_DOWN)
        workflow.approve(pending_campaign, "reviewer_1")

        workflow.submit(pending_campaign, "owner_1")
        result = workflow.approve(pending_campaign, "reviewer_1")

        assert result.overall_success
        assert result.channel_results["META"].reused
        assert len(adapters[Channel.META].create_calls) == 1
        assert len(adapters[Channel.GOOGLE].create_calls) == 2
        assert repository.get_snapshot(pending_campaign).external_references == {
            "META": "meta-ext-1",
            "GOOGLE": "google-ext-1",
        }
        assert [record.cycle_number for record in repository.list_approvals(pending_campaign)] == [2, 1]

    def test_owner_profile_tailors_the_launch(self, workflow, adapters, pending_campaign, db_session):
        OwnerProfileFactory.persist(db_session, owner_id="owner_1", landing_page_slug="calm-minds-austin")

        workflow.approve(pending_campaign, "reviewer_1", LaunchOptions(use_lead_capture=True, use_intent_targeting=True))

        meta_request = adapters[Channel.META].create_calls[0]
        google_request = adapters[Channel.GOOGLE].create_calls[0]
        assert meta_request.variant == LaunchVariant.LEAD_CAPTURE
        assert google_request.variant == LaunchVariant.INTENT
        assert meta_request.landing_page_url == "https://app.example.com/lp/calm-minds-austin"
        assert google_request.city == "Austin"

    def test_profiles_can_come_from_a_static_provider(self, repository, adapters, sender, pending_campaign):
        workflow = ApprovalWorkflow(
            repository,
            LaunchOrchestrator(adapters, channel_timeout_seconds=5, frontend_url="https://app.example.com"),
            StaticOwnerProfileProvider(
                {"owner_1": OwnerEnrichment(service_type="Counseling", city="Denver", landing_page_slug="denver-care")}
            ),
            NotificationService(sender, DatabaseInAppNotifier(repository)),
        )

        workflow.approve(pending_campaign, "reviewer_1", LaunchOptions(use_intent_targeting=True))

        google_request = adapters[Channel.GOOGLE].create_calls[0]
        assert google_request.landing_page_url == "https://app.example.com/lp/denver-care"
        assert (google_request.service_type, google_request.city) == ("Counseling", "Denver")

    def test_channel_requests_carry_the_approval_in_their_token(self, workflow, adapters, pending_campaign):
        result = workflow.approve(pending_campaign, "reviewer_1")

        token = adapters[Channel.META].create_calls[0].idempotency_token
        assert token == f"{pending_campaign}:{result.approval_id}:META"

    def test_draft_cannot_be_approved(self, workflow, adapters, campaign_id):
        with pytest.raises(StateConflictError):
            workflow.approve(campaign_id, "reviewer_1")

        assert adapters[Channel.META].create_calls == []

    def test_second_approval_conflicts(self, workflow, adapters, pending_campaign):
        workflow.approve(pending_campaign, "reviewer_1")

        with pytest.raises(StateConflictError):
            workflow.approve(pending_campaign, "reviewer_2")

        assert len(adapters[Channel.META].create_calls) == 1

    def test_concurrent_approvals_launch_once(self, workflow, repository, adapters, pending_campaign):
        barrier = threading.Barrier(2)
        outcomes = []

        def approve(reviewer_id):
            barrier.wait()
            try:
                outcomes.append(workflow.approve(pending_campaign, reviewer_id))
            except StateConflictError as e:
                outcomes.append(e)

        threads = [threading.Thread(target=approve, args=(f"reviewer_{n}",)) for n in (1, 2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        conflicts = [outcome for outcome in outcomes if isinstance(outcome, StateConflictError)]
        approvals = [outcome for outcome in outcomes if not isinstance(outcome, StateConflictError)]
        assert len(conflicts) == 1
        assert len(approvals) == 1
        assert len(adapters[Channel.META].create_calls) == 1
        assert len(adapters[Channel.GOOGLE].create_calls) == 1
        assert repository.get_snapshot(pending_campaign).status == CampaignStatus.ACTIVE
        assert len(repository.list_approvals(pending_campaign)) == 1

    def test_unsaved_outcome_raises_reconciliation_error(self, workflow, repository, pending_campaign, mocker):
        mocker.patch.object(repository, "complete_launch", side_effect=PersistenceError("disk I/O error"))

        with pytest.raises(LaunchReconciliationError) as exc_info:
            workflow.approve(pending_campaign, "reviewer_1")

        error = exc_info.value
        assert error.launch_result.created_references() == {"META": "meta-ext-1", "GOOGLE": "google-ext-1"}
        assert "meta-ext-1" in str(error)
        assert repository.get_snapshot(pending_campaign).status == CampaignStatus.LAUNCHING

    def test_launch_crash_returns_campaign_to_review(self, workflow, repository, pending_campaign, mocker):
        mocker.patch.object(workflow.orchestrator, "launch", side_effect=RuntimeError("executor unavailable"))

        with pytest.raises(RuntimeError):
            workflow.approve(pending_campaign, "reviewer_1")

        assert repository.get_snapshot(pending_campaign).status == CampaignStatus.PENDING_REVIEW
        [record] = repository.list_approvals(pending_campaign)
        assert record.status == ApprovalStatus.PENDING_REVIEW

    def test_profile_lookup_failure_launches_without_enrichment(self, workflow, adapters, pending_campaign, mocker):
        mocker.patch.object(workflow.profiles, "get_enrichment", side_effect=RuntimeError("profile service down"))

        result = workflow.approve(pending_campaign, "reviewer_1")

        assert result.overall_success
        assert adapters[Channel.META].create_calls[0].landing_page_url == "https://app.example.com/lp/default"

    def test_notification_failure_does_not_fail_approval(self, workflow, repository, pending_campaign, mocker):
        mocker.patch.object(workflow.notifications.sender, "send", side_effect=ConnectionError("webhook down"))
        mocker.patch.object(workflow.notifications.in_app, "create_in_app", side_effect=RuntimeError("locked"))

        result = workflow.approve(pending_campaign, "reviewer_1")

        assert result.overall_success
        assert repository.get_snapshot(pending_campaign).status == CampaignStatus.ACTIVE


class TestReject:
    @pytest.mark.parametrize("feedback", ["", "too short", "   bad     "])
    def test_short_feedback_is_refused_without_changes(self, workflow, repository, pending_campaign, feedback):
        with pytest.raises(ValidationError) as exc_info:
            workflow.reject(pending_campaign, "reviewer_1", RejectionRequest(feedback=feedback))

        assert exc_info.value.errors == ["Review feedback must be at least 10 characters"]
        assert repository.get_snapshot(pending_campaign).status == CampaignStatus.PENDING_REVIEW

    def test_needs_changes_returns_to_draft(self, workflow, repository, pending_campaign, sender):
        result = workflow.reject(
            pending_campaign,
            "reviewer_1",
            RejectionRequest(
                feedback="  Please soften the pricing claim.  ", reasons=["pricing"], needs_changes=True
            ),
        )

        assert result.needs_changes
        assert result.feedback == "Please soften the pricing claim."
        assert result.campaign.status == CampaignStatus.DRAFT

        [record] = repository.list_approvals(pending_campaign)
        assert record.status == ApprovalStatus.NEEDS_CHANGES
        assert record.review_notes == "Please soften the pricing claim."
        assert record.rejection_reasons == ["pricing"]
        assert sender.sent[-1][0] == "campaign.rejected"

    def test_final_rejection(self, workflow, repository, pending_campaign):
        workflow.reject(pending_campaign, "reviewer_1", RejectionRequest(feedback="Not a fit for this platform"))

        assert repository.get_snapshot(pending_campaign).status == CampaignStatus.REJECTED
        with pytest.raises(StateConflictError):
            workflow.submit(pending_campaign, "owner_1")

    def test_rejecting_a_launched_campaign_conflicts(self, workflow, pending_campaign):
        workflow.approve(pending_campaign, "reviewer_1")

        with pytest.raises(StateConflictError):
            workflow.reject(pending_campaign, "reviewer_2", RejectionRequest(feedback="Changed my mind about this"))

    def test_unknown_campaign(self, workflow, sqlite_db):
        with pytest.raises(CampaignNotFoundError):
            workflow.reject("camp_missing", "reviewer_1", RejectionRequest(feedback="Long enough feedback"))


class TestHistory:
    def test_cycles_are_listed_most_recent_first(self, workflow, pending_campaign):
        workflow.reject(
            pending_campaign, "reviewer_1", RejectionRequest(feedback="Please add a clearer offer", needs_changes=True)
        )
        workflow.submit(pending_campaign, "owner_1")
        workflow.approve(pending_campaign, "reviewer_2")

        history = workflow.get_history(pending_campaign)

        assert [record.cycle_number for record in history.approvals] == [2, 1]
        assert [record.status for record in history.approvals] == [
            ApprovalStatus.APPROVED,
            ApprovalStatus.NEEDS_CHANGES,
        ]
        assert history.current_status == ApprovalStatus.APPROVED

    def test_campaign_without_reviews(self, workflow, campaign_id):
        history = workflow.get_history(campaign_id)

        assert history.approvals == []
        assert history.current_status is None

    def test_unknown_campaign(self, workflow, sqlite_db):
        with pytest.raises(CampaignNotFoundError):
            workflow.get_history("camp_missing")

    def test_each_cycle_keeps_one_record(self, workflow, pending_campaign, db_session):
        workflow.approve(pending_campaign, "reviewer_1")

        approvals = db_session.scalars(
            select(CampaignApproval).where(CampaignApproval.campaign_id == pending_campaign)
        ).all()
        assert len(approvals) == 1
