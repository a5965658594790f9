"""Tests for campaign submission checks and the compliance scan."""

from decimal import Decimal

import pytest

from launchpad.core.validation import PROHIBITED_TERMS, find_prohibited_terms, validate_campaign
from tests.fixtures import CampaignFactory, CreativeFactory

pytestmark = pytest.mark.unit


def test_valid_campaign_passes():
    result = validate_campaign(CampaignFactory.snapshot())

    assert result.ok
    assert result.errors == []
    assert result.warnings == []


def test_budget_below_minimum_is_an_error():
    result = validate_campaign(CampaignFactory.snapshot(budget="50"))

    assert not result.ok
    assert any("Minimum budget" in error for error in result.errors)


def test_budget_at_minimum_is_accepted():
    assert validate_campaign(CampaignFactory.snapshot(budget="100")).ok


def test_high_budget_is_only_a_warning():
    result = validate_campaign(CampaignFactory.snapshot(budget="75000"))

    assert result.ok
    assert result.warnings == ["High budget campaigns require additional review time"]


@pytest.mark.parametrize(
    "overrides, expected",
    [
        ({"name": "ab"}, "Campaign name must be at least 3 characters long"),
        ({"target_audience": "adults"}, "Target audience description must be at least 10 characters"),
        ({"objectives": []}, "At least one campaign objective is required"),
        ({"channel_selection": []}, "At least one advertising channel must be selected"),
    ],
)
def test_required_fields(overrides, expected):
    result = validate_campaign(CampaignFactory.snapshot(**overrides))

    assert not result.ok
    assert expected in result.errors


def test_unknown_channel_is_rejected():
    result = validate_campaign(CampaignFactory.snapshot(channel_selection=["META", "TIKTOK"]))

    assert not result.ok
    assert any("TIKTOK" in error for error in result.errors)


def test_no_creatives_is_only_a_warning():
    result = validate_campaign(CampaignFactory.snapshot(creatives=[]))

    assert result.ok
    assert result.warnings == ["No creatives found - campaign will use default text only"]


def test_each_bad_creative_is_reported_with_its_position():
    creatives = [
        CreativeFactory.create(),
        CreativeFactory.create(headline="Hey", description="Too short"),
    ]

    result = validate_campaign(CampaignFactory.snapshot(creatives=creatives))

    assert not result.ok
    assert "Creative 2: Headline must be at least 5 characters" in result.errors
    assert "Creative 2: Description must be at least 10 characters" in result.errors
    assert not any(error.startswith("Creative 1") for error in result.errors)


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": "Guaranteed Results Therapy"},
        {"target_audience": "People who want the CHEAPEST therapy in town"},
        {"objectives": ["leads", "diagnose anxiety"]},
        {"creatives": [CreativeFactory.create(call_to_action="Get medical advice now")]},
        {"creatives": [CreativeFactory.create(description="A miracle treatment for stress and burnout")]},
    ],
)
def test_prohibited_terms_block_submission_wherever_they_appear(overrides):
    result = validate_campaign(CampaignFactory.snapshot(**overrides))

    assert not result.ok
    assert any(error.startswith("Campaign contains prohibited content") for error in result.errors)


def test_find_prohibited_terms_lists_every_match():
    campaign = CampaignFactory.snapshot(
        name="Instant Results Counseling",
        creatives=[CreativeFactory.create(headline="The only solution for you")],
    )

    assert find_prohibited_terms(campaign) == ["instant results", "only solution"]


def test_denylist_is_lowercase():
    assert all(term == term.lower() for term in PROHIBITED_TERMS)


def test_validation_is_deterministic():
    campaign = CampaignFactory.snapshot(budget=Decimal("60000"), name="ab")

    assert validate_campaign(campaign) == validate_campaign(campaign)


def test_terms_are_not_matched_across_field_boundaries():
    campaign = CampaignFactory.snapshot(
        name="Austin's Best",
        target_audience="therapist seekers with busy schedules",
    )

    assert find_prohibited_terms(campaign) == []
    assert validate_campaign(campaign).ok


def test_creative_lengths_count_surrounding_whitespace():
    creatives = [CreativeFactory.create(headline="  Hi ", description="   Calm    ")]

    result = validate_campaign(CampaignFactory.snapshot(name="  ab  ", creatives=creatives))

    assert "Campaign name must be at least 3 characters long" in result.errors
    assert not any(error.startswith("Creative 1") for error in result.errors)
