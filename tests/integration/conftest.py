"""
Integration test fixtures.

Each test gets a fresh SQLite database and a workflow wired to in-memory
platform adapters.
"""

import pytest

from launchpad.adapters import MockPlatformAdapter
from launchpad.core.database.repository import CampaignRepository
from launchpad.core.schemas import Channel
from launchpad.services.approval_workflow import ApprovalWorkflow
from launchpad.services.campaign_lifecycle import CampaignLifecycle
from launchpad.services.launch_orchestrator import LaunchOrchestrator
from launchpad.services.notifications import DatabaseInAppNotifier, NotificationSender, NotificationService
from launchpad.services.owner_profile import DatabaseOwnerProfileProvider


class RecordingSender(NotificationSender):
    def __init__(self):
        self.sent = []

    def send(self, event_type, recipient, data):
        self.sent.append((event_type, recipient, data))
        return True


@pytest.fixture
def adapters():
    return {
        Channel.META: MockPlatformAdapter(Channel.META),
        Channel.GOOGLE: MockPlatformAdapter(Channel.GOOGLE),
    }


@pytest.fixture
def repository(sqlite_db):
    return CampaignRepository()


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def workflow(repository, adapters, sender):
    return ApprovalWorkflow(
        repository,
        LaunchOrchestrator(adapters, channel_timeout_seconds=5, frontend_url="https://app.example.com"),
        DatabaseOwnerProfileProvider(),
        NotificationService(sender, DatabaseInAppNotifier(repository), frontend_url="https://app.example.com"),
    )


@pytest.fixture
def lifecycle(repository, adapters):
    return CampaignLifecycle(repository, adapters)
