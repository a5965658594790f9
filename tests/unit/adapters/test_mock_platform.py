from decimal import Decimal

import pytest

from launchpad.adapters import ADAPTER_REGISTRY, GoogleAdsAdapter, MetaAdsAdapter, MockPlatformAdapter, build_adapters, get_adapter_class
from launchpad.core.config import get_config
from launchpad.core.exceptions import ChannelError, ChannelFailureClass, ChannelNotConfiguredError
from launchpad.core.schemas import CampaignStatus, CampaignUpdate, Channel, ChannelMetrics
from tests.fixtures import LaunchRequestFactory

pytestmark = pytest.mark.unit


def test_sequential_ids():
    adapter = MockPlatformAdapter(Channel.META)

    first = adapter.create_campaign(LaunchRequestFactory.create(idempotency_token="a"))
    second = adapter.create_campaign(LaunchRequestFactory.create(idempotency_token="b"))

    assert (first.external_id, second.external_id) == ("meta-ext-1", "meta-ext-2")
    assert adapter.campaigns["meta-ext-1"]["status"] == "PAUSED"


def test_repeated_token_returns_the_first_campaign():
    adapter = MockPlatformAdapter(Channel.GOOGLE)
    request = LaunchRequestFactory.create(Channel.GOOGLE)

    first = adapter.create_campaign(request)
    adapter.fail_next()
    again = adapter.create_campaign(request)

    assert again == first
    assert len(adapter.campaigns) == 1


def test_scripted_failures_are_consumed_in_order():
    adapter = MockPlatformAdapter(Channel.META)
    adapter.fail_next(times=2)

    for token in ("t1", "t2"):
        with pytest.raises(ChannelError) as exc_info:
            adapter.create_campaign(LaunchRequestFactory.create(idempotency_token=token))
        assert exc_info.value.failure_class == ChannelFailureClass.VALIDATION_REJECTED

    assert adapter.create_campaign(LaunchRequestFactory.create(idempotency_token="t3")).external_id == "meta-ext-1"


def test_unconfigured_mock_refuses_unless_dry_run():
    with pytest.raises(ChannelNotConfiguredError):
        MockPlatformAdapter(Channel.META, configured=False).create_campaign(LaunchRequestFactory.create())

    dry = MockPlatformAdapter(Channel.META, configured=False, dry_run=True)
    assert dry.create_campaign(LaunchRequestFactory.create()).external_id == "meta-ext-1"


def test_update_pause_and_metrics():
    adapter = MockPlatformAdapter(Channel.META, id_prefix="fb")
    external_id = adapter.create_campaign(LaunchRequestFactory.create()).external_id
    adapter.metrics[external_id] = ChannelMetrics(impressions=100, clicks=7)

    adapter.update(external_id, CampaignUpdate(status=CampaignStatus.ACTIVE, budget=Decimal("4500")))
    assert adapter.campaigns[external_id]["status"] == "ACTIVE"
    assert adapter.campaigns[external_id]["budget"] == Decimal("4500")

    adapter.pause(external_id)
    assert adapter.campaigns[external_id]["status"] == "PAUSED"
    assert external_id == "fb-1"
    assert adapter.get_metrics(external_id).clicks == 7
    assert len(adapter.update_calls) == 2


def test_unknown_campaign_is_rejected():
    adapter = MockPlatformAdapter(Channel.GOOGLE)

    with pytest.raises(ChannelError) as exc_info:
        adapter.pause("nope")

    assert exc_info.value.status_code == 404
    assert exc_info.value.failure_class == ChannelFailureClass.VALIDATION_REJECTED


def test_registry_lookup():
    assert get_adapter_class("Meta") is MetaAdsAdapter
    assert get_adapter_class("google_ads") is GoogleAdsAdapter
    assert ADAPTER_REGISTRY["mock"] is MockPlatformAdapter

    with pytest.raises(ValueError, match="Unknown adapter type: tiktok"):
        get_adapter_class("tiktok")


def test_build_adapters_without_credentials():
    adapters = build_adapters(get_config())

    assert isinstance(adapters[Channel.META], MetaAdsAdapter)
    assert isinstance(adapters[Channel.GOOGLE], GoogleAdsAdapter)
    assert not adapters[Channel.META].is_configured()
    assert not adapters[Channel.GOOGLE].is_configured()
