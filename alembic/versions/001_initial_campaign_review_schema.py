"""Initial campaign review and launch schema

Revision ID: 001_initial_campaign_review_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""

import sqlalchemy as sa

from alembic import op
from launchpad.core.database.json_type import JSONType

# revision identifiers
revision = "001_initial_campaign_review_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create campaign, creative, approval, notification and owner profile tables."""
    op.create_table(
        "campaigns",
        sa.Column("campaign_id", sa.String(50), nullable=False),
        sa.Column("owner_id", sa.String(50), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("budget", sa.DECIMAL(15, 2), nullable=False),
        sa.Column("target_audience", sa.Text(), nullable=False, server_default=""),
        sa.Column("objectives", JSONType(), nullable=False),
        sa.Column("channel_selection", JSONType(), nullable=False),  # subset of META, GOOGLE
        sa.Column("status", sa.String(20), nullable=False, server_default="DRAFT"),
        sa.Column("external_references", JSONType(), nullable=False),  # channel -> platform campaign id
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("campaign_id"),
        sa.CheckConstraint("budget > 0", name="ck_campaigns_budget_positive"),
    )
    op.create_index("idx_campaigns_owner", "campaigns", ["owner_id"])
    op.create_index("idx_campaigns_status", "campaigns", ["status"])

    op.create_table(
        "campaign_creatives",
        sa.Column("creative_id", sa.String(50), nullable=False),
        sa.Column("campaign_id", sa.String(50), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("headline", sa.String(255), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("call_to_action", sa.String(100), nullable=True),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("creative_id"),
        sa.ForeignKeyConstraint(["campaign_id"], ["campaigns.campaign_id"], ondelete="CASCADE"),
    )
    op.create_index("idx_campaign_creatives_campaign", "campaign_creatives", ["campaign_id"])

    op.create_table(
        "campaign_approvals",
        sa.Column("approval_id", sa.String(50), nullable=False),
        sa.Column("campaign_id", sa.String(50), nullable=False),
        sa.Column("cycle_number", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING_REVIEW"),
        sa.Column("submitted_by", sa.String(50), nullable=True),
        sa.Column("submitted_at", sa.DateTime(), nullable=False),
        sa.Column("reviewed_by", sa.String(50), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(), nullable=True),
        sa.Column("review_notes", sa.Text(), nullable=True),
        sa.Column("rejection_reasons", JSONType(), nullable=False),
        sa.Column("review_snapshot", JSONType(), nullable=False),
        sa.Column("launch_result", JSONType(), nullable=True),  # per-channel outcome, set on approval
        sa.PrimaryKeyConstraint("approval_id"),
        sa.ForeignKeyConstraint(["campaign_id"], ["campaigns.campaign_id"], ondelete="CASCADE"),
        sa.UniqueConstraint("campaign_id", "cycle_number", name="uq_campaign_approvals_cycle"),
        sa.CheckConstraint(
            "status IN ('PENDING_REVIEW', 'APPROVED', 'REJECTED', 'NEEDS_CHANGES')",
            name="ck_campaign_approvals_status_values",
        ),
    )
    op.create_index("idx_campaign_approvals_campaign", "campaign_approvals", ["campaign_id"])
    op.create_index("idx_campaign_approvals_status", "campaign_approvals", ["status"])

    op.create_table(
        "notifications",
        sa.Column("notification_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(50), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("data", JSONType(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("notification_id"),
    )
    op.create_index("idx_notifications_user", "notifications", ["user_id"])

    op.create_table(
        "owner_profiles",
        sa.Column("owner_id", sa.String(50), nullable=False),
        sa.Column("service_type", sa.String(100), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("landing_page_slug", sa.String(200), nullable=True),
        sa.Column("average_ticket", sa.DECIMAL(15, 2), nullable=True),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("owner_id"),
    )


def downgrade():
    """Drop all campaign review tables."""
    op.drop_table("owner_profiles")
    op.drop_index("idx_notifications_user", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("idx_campaign_approvals_status", table_name="campaign_approvals")
    op.drop_index("idx_campaign_approvals_campaign", table_name="campaign_approvals")
    op.drop_table("campaign_approvals")
    op.drop_index("idx_campaign_creatives_campaign", table_name="campaign_creatives")
    op.drop_table("campaign_creatives")
    op.drop_index("idx_campaigns_status", table_name="campaigns")
    op.drop_index("idx_campaigns_owner", table_name="campaigns")
    op.drop_table("campaigns")
