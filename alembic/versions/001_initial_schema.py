"""Creators, members, connections and the connection ledger.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Creators table (read model)
    op.create_table(
        "creators",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("gender", sa.String(20), nullable=True),
        sa.Column("orientation", sa.String(20), nullable=True),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("body_type", sa.String(30), nullable=True),
        sa.Column("ethnicity", sa.String(30), nullable=True),
        sa.Column("interests", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False),
        sa.Column("show_in_browse", sa.Boolean(), nullable=False),
        sa.Column("auto_connect_enabled", sa.Boolean(), nullable=False),
        sa.Column("last_active_at", sa.DateTime(), nullable=True),
        sa.Column("last_content_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
    )
    op.create_index(
        "idx_creators_browse", "creators", ["is_active", "is_verified", "show_in_browse"]
    )
    op.create_index("idx_creators_last_active", "creators", ["last_active_at"])

    # Members table (read model)
    op.create_table(
        "members",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("gender", sa.String(20), nullable=True),
        sa.Column("orientation", sa.String(20), nullable=True),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("interests", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
    )

    # Connections table
    op.create_table(
        "connections",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("creator_id", sa.Uuid(), nullable=False),
        sa.Column("member_id", sa.Uuid(), nullable=False),
        sa.Column("source", sa.String(20), nullable=True),
        # Status
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("connected_at", sa.DateTime(), nullable=True),
        sa.Column("disconnected_at", sa.DateTime(), nullable=True),
        sa.Column("blocked_at", sa.DateTime(), nullable=True),
        # Swipes
        sa.Column("member_swipe_direction", sa.String(10), nullable=True),
        sa.Column("member_swiped_at", sa.DateTime(), nullable=True),
        sa.Column("member_super_like", sa.Boolean(), nullable=True),
        sa.Column("member_session_seconds", sa.Float(), nullable=True),
        sa.Column("member_viewed_photos", sa.Integer(), nullable=True),
        sa.Column("member_read_bio", sa.Boolean(), nullable=True),
        sa.Column("creator_swipe_direction", sa.String(10), nullable=True),
        sa.Column("creator_swiped_at", sa.DateTime(), nullable=True),
        sa.Column("creator_auto_connected", sa.Boolean(), nullable=True),
        sa.Column("browse_context", sa.JSON(), nullable=True),
        # Engagement
        sa.Column("messages_from_member", sa.Integer(), nullable=True),
        sa.Column("messages_from_creator", sa.Integer(), nullable=True),
        sa.Column("first_message_by", sa.String(10), nullable=True),
        sa.Column("first_message_at", sa.DateTime(), nullable=True),
        sa.Column("last_message_at", sa.DateTime(), nullable=True),
        sa.Column("last_active_at", sa.DateTime(), nullable=True),
        sa.Column("awaiting_reply_since", sa.DateTime(), nullable=True),
        sa.Column("unlock_count", sa.Integer(), nullable=True),
        sa.Column("unlock_spend", sa.Float(), nullable=True),
        sa.Column("first_unlock_at", sa.DateTime(), nullable=True),
        sa.Column("last_unlock_at", sa.DateTime(), nullable=True),
        sa.Column("dm_purchase_count", sa.Integer(), nullable=True),
        sa.Column("dm_purchase_spend", sa.Float(), nullable=True),
        sa.Column("dm_purchase_avg_price", sa.Float(), nullable=True),
        sa.Column("tip_count", sa.Integer(), nullable=True),
        sa.Column("tip_total", sa.Float(), nullable=True),
        sa.Column("tip_largest", sa.Float(), nullable=True),
        # Relationship scores
        sa.Column("engagement_level", sa.Float(), nullable=True),
        sa.Column("spending_tier", sa.String(10), nullable=True),
        sa.Column("loyalty_score", sa.Float(), nullable=True),
        sa.Column("response_rate", sa.Float(), nullable=True),
        sa.Column("avg_response_minutes", sa.Float(), nullable=True),
        sa.Column("creator_responses", sa.Integer(), nullable=True),
        sa.Column("compatibility_score", sa.Integer(), nullable=True),
        sa.Column("compatibility_factors", sa.JSON(), nullable=True),
        sa.Column("health_status", sa.String(10), nullable=True),
        sa.Column("churn_risk", sa.Integer(), nullable=True),
        sa.Column("days_since_last_interaction", sa.Integer(), nullable=True),
        sa.Column("health_computed_at", sa.DateTime(), nullable=True),
        # Monetization
        sa.Column("total_revenue", sa.Float(), nullable=True),
        sa.Column("refunded_total", sa.Float(), nullable=True),
        sa.Column("transaction_count", sa.Integer(), nullable=True),
        sa.Column("avg_transaction_value", sa.Float(), nullable=True),
        sa.Column("first_purchase_at", sa.DateTime(), nullable=True),
        sa.Column("last_purchase_at", sa.DateTime(), nullable=True),
        sa.Column("purchase_frequency", sa.String(10), nullable=True),
        # Notifications and flags
        sa.Column("member_preferences", sa.JSON(), nullable=True),
        sa.Column("creator_preferences", sa.JSON(), nullable=True),
        sa.Column("flag_inappropriate", sa.Boolean(), nullable=True),
        sa.Column("flag_reported", sa.Boolean(), nullable=True),
        sa.Column("flag_verified", sa.Boolean(), nullable=True),
        sa.Column("flag_vip", sa.Boolean(), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["creator_id"], ["creators.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["member_id"], ["members.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("creator_id", "member_id", name="uq_connection_pair"),
    )
    op.create_index("idx_connections_member", "connections", ["member_id"])
    op.create_index(
        "idx_connections_status_connected", "connections", ["status", "connected_at"]
    )
    op.create_index("idx_connections_health", "connections", ["health_status"])
    op.create_index("idx_connections_revenue", "connections", ["creator_id", "total_revenue"])
    op.create_index("idx_connections_last_active", "connections", ["last_active_at"])
    op.create_index("idx_connections_churn", "connections", ["creator_id", "churn_risk"])

    # Connection ledger
    op.create_table(
        "connection_transactions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("connection_id", sa.Uuid(), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=True),
        sa.Column("content_id", sa.Uuid(), nullable=True),
        sa.Column("message_id", sa.Uuid(), nullable=True),
        sa.Column("content_type", sa.String(20), nullable=True),
        sa.Column("external_ref", sa.String(100), nullable=True),
        sa.Column("refunded_transaction_id", sa.Uuid(), nullable=True),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.Column("occurred_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["connection_id"], ["connections.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["refunded_transaction_id"], ["connection_transactions.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("connection_id", "external_ref", name="uq_transaction_ref"),
    )
    op.create_index(
        "idx_transactions_connection",
        "connection_transactions",
        ["connection_id", "occurred_at"],
    )


def downgrade() -> None:
    op.drop_table("connection_transactions")
    op.drop_table("connections")
    op.drop_table("members")
    op.drop_table("creators")
