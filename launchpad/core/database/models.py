"""SQLAlchemy models for database schema."""

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    DECIMAL,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from launchpad.core.database.json_type import JSONType

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models using SQLAlchemy 2.0 declarative style."""

    pass


class Campaign(Base):
    __tablename__ = "campaigns"

    campaign_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    budget: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    target_audience: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # List of objective values (awareness, leads, ...)
    objectives: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    # Subset of {"META", "GOOGLE"}
    channel_selection: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="DRAFT")
    # Channel -> platform campaign ID. Keys are only ever added.
    external_references: Mapped[dict[str, str]] = mapped_column(JSONType, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    creatives = relationship(
        "CampaignCreative",
        back_populates="campaign",
        order_by="CampaignCreative.position",
        cascade="all, delete-orphan",
    )
    approvals = relationship("CampaignApproval", back_populates="campaign", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("budget > 0", name="ck_campaigns_budget_positive"),
        Index("idx_campaigns_owner", "owner_id"),
        Index("idx_campaigns_status", "status"),
    )


class CampaignCreative(Base):
    __tablename__ = "campaign_creatives"

    creative_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    campaign_id: Mapped[str] = mapped_column(
        String(50), ForeignKey("campaigns.campaign_id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    headline: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    call_to_action: Mapped[str | None] = mapped_column(String(100), nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    campaign = relationship("Campaign", back_populates="creatives")

    __table_args__ = (Index("idx_campaign_creatives_campaign", "campaign_id"),)


class CampaignApproval(Base):
    """One submission/review cycle of a campaign.

    A row is inserted on every (re)submission. Only the row of the open cycle is
    ever updated, once, when the reviewer decides.
    """

    __tablename__ = "campaign_approvals"

    approval_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    campaign_id: Mapped[str] = mapped_column(
        String(50), ForeignKey("campaigns.campaign_id", ondelete="CASCADE"), nullable=False
    )
    cycle_number: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING_REVIEW")
    submitted_by: Mapped[str | None] = mapped_column(String(50), nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    reviewed_by: Mapped[str | None] = mapped_column(String(50), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    rejection_reasons: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    # budget / channel_selection / creative_count / target_audience / objectives at submission
    review_snapshot: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    # Per-channel launch outcome, set when approved
    launch_result: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    campaign = relationship("Campaign", back_populates="approvals")

    __table_args__ = (
        UniqueConstraint("campaign_id", "cycle_number", name="uq_campaign_approvals_cycle"),
        Index("idx_campaign_approvals_campaign", "campaign_id"),
        Index("idx_campaign_approvals_status", "status"),
        CheckConstraint(
            "status IN ('PENDING_REVIEW', 'APPROVED', 'REJECTED', 'NEEDS_CHANGES')",
            name="ck_campaign_approvals_status_values",
        ),
    )


class Notification(Base):
    """In-app notification shown to a campaign owner."""

    __tablename__ = "notifications"

    notification_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(50), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (Index("idx_notifications_user", "user_id"),)


class OwnerProfile(Base):
    """Business profile captured during owner onboarding. Read-only here."""

    __tablename__ = "owner_profiles"

    owner_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    service_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    landing_page_slug: Mapped[str | None] = mapped_column(String(200), nullable=True)
    average_ticket: Mapped[Decimal | None] = mapped_column(DECIMAL(15, 2), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())
