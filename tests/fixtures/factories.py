"""
Factory classes for generating test objects.

These factories provide consistent, customizable test data generation.
"""

import uuid
from decimal import Decimal
from typing import Any

from launchpad.core.database.models import Campaign, CampaignCreative, OwnerProfile
from launchpad.core.schemas import (
    CampaignSnapshot,
    Channel,
    ChannelLaunchRequest,
    CreativeCopy,
    CreativeSnapshot,
    LaunchVariant,
)


class CreativeFactory:
    """Factory for creating test creatives."""

    @staticmethod
    def create(creative_id: str | None = None, **kwargs) -> dict[str, Any]:
        return {
            "id": creative_id or f"cr_{uuid.uuid4().hex[:8]}",
            "headline": kwargs.get("headline", "Feel Like Yourself Again"),
            "description": kwargs.get("description", "Compassionate counseling for anxiety and stress."),
            "call_to_action": kwargs.get("call_to_action", "Book a session"),
            "image_url": kwargs.get("image_url"),
        }

    @staticmethod
    def create_batch(count: int = 2, **kwargs) -> list[dict[str, Any]]:
        return [
            CreativeFactory.create(headline=f"Feel Like Yourself Again {i + 1}", **kwargs) for i in range(count)
        ]


class CampaignFactory:
    """Factory for creating test campaigns."""

    @staticmethod
    def create(campaign_id: str | None = None, **kwargs) -> dict[str, Any]:
        """Campaign fields that pass every submission check unless overridden."""
        return {
            "id": campaign_id or f"camp_{uuid.uuid4().hex[:8]}",
            "owner_id": kwargs.get("owner_id", "owner_1"),
            "name": kwargs.get("name", "Spring Wellness Push"),
            "budget": Decimal(str(kwargs.get("budget", "3000"))),
            "target_audience": kwargs.get("target_audience", "Adults 25-45 dealing with anxiety in Austin"),
            "objectives": kwargs.get("objectives", ["leads"]),
            "channel_selection": kwargs.get("channel_selection", ["META", "GOOGLE"]),
            "creatives": kwargs.get("creatives", CreativeFactory.create_batch(2)),
            "status": kwargs.get("status", "DRAFT"),
            "external_references": kwargs.get("external_references", {}),
        }

    @staticmethod
    def snapshot(**kwargs) -> CampaignSnapshot:
        data = CampaignFactory.create(**kwargs)
        data["creatives"] = [CreativeSnapshot(**creative) for creative in data["creatives"]]
        return CampaignSnapshot(**data)

    @staticmethod
    def persist(session, **kwargs) -> str:
        """Insert a campaign (and its creatives) and return its id."""
        data = CampaignFactory.create(**kwargs)
        campaign = Campaign(
            campaign_id=data["id"],
            owner_id=data["owner_id"],
            name=data["name"],
            budget=data["budget"],
            target_audience=data["target_audience"],
            objectives=data["objectives"],
            channel_selection=data["channel_selection"],
            status=data["status"],
            external_references=data["external_references"],
        )
        campaign.creatives = [
            CampaignCreative(
                creative_id=creative["id"],
                position=position,
                headline=creative["headline"],
                description=creative["description"],
                call_to_action=creative["call_to_action"],
                image_url=creative["image_url"],
            )
            for position, creative in enumerate(data["creatives"])
        ]
        session.add(campaign)
        session.commit()
        return data["id"]


class OwnerProfileFactory:
    """Factory for creating owner profiles."""

    @staticmethod
    def persist(session, owner_id: str = "owner_1", **kwargs) -> OwnerProfile:
        profile = OwnerProfile(
            owner_id=owner_id,
            service_type=kwargs.get("service_type", "Therapy"),
            city=kwargs.get("city", "Austin"),
            landing_page_slug=kwargs.get("landing_page_slug", "calm-minds-austin"),
            average_ticket=Decimal(str(kwargs.get("average_ticket", "150"))),
        )
        session.add(profile)
        session.commit()
        return profile


class LaunchRequestFactory:
    """Factory for channel launch requests."""

    @staticmethod
    def create(channel: Channel = Channel.META, **kwargs) -> ChannelLaunchRequest:
        creatives = kwargs.pop(
            "creatives",
            [
                CreativeCopy(
                    headline="Feel Like Yourself Again",
                    description="Compassionate counseling for anxiety and stress.",
                    call_to_action="Book a session",
                    source_creative_id="cr_1",
                )
            ],
        )
        defaults: dict[str, Any] = {
            "channel": channel,
            "campaign_id": "camp_1",
            "name": "Spring Wellness Push",
            "objective": "leads",
            "total_budget": Decimal("3000"),
            "daily_budget": Decimal("100.00"),
            "target_audience": "Adults 25-45 dealing with anxiety in Austin",
            "variant": LaunchVariant.STANDARD,
            "creatives": creatives,
            "landing_page_url": "https://app.example.com/lp/calm-minds-austin",
            "service_type": "Therapy",
            "city": "Austin",
            "idempotency_token": f"camp_1:apr_1:{channel.value}",
        }
        defaults.update(kwargs)
        return ChannelLaunchRequest(**defaults)
