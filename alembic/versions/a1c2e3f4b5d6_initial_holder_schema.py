"""Initial schema: monitored tokens, holder snapshots, distribution metrics, exclusions.

Revision ID: a1c2e3f4b5d6
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "a1c2e3f4b5d6"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "monitored_tokens",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("mint_address", sa.String(64), nullable=False, unique=True),
        sa.Column("last_stats_update", sa.DateTime(), nullable=False),
        sa.Column("last_metrics_update", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    # Due-mint scans filter and order by these
    op.create_index("idx_monitored_stats_update", "monitored_tokens", ["last_stats_update"])
    op.create_index("idx_monitored_metrics_update", "monitored_tokens", ["last_metrics_update"])

    op.create_table(
        "holder_snapshots",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("mint_address", sa.String(64), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("supply", sa.Float(), nullable=False),
        sa.Column("market_cap", sa.Float(), nullable=False),
        sa.Column("decimals", sa.Integer(), nullable=False),
        sa.Column("total_holders", sa.Integer(), nullable=False),
        sa.Column("organic_holders", sa.Integer(), nullable=False),
        sa.Column("holder_thresholds", sa.JSON(), nullable=False),
        sa.Column("concentration_metrics", sa.JSON(), nullable=False),
        sa.Column("excluded_owners", sa.JSON(), nullable=False),
        sa.Column("hhi", sa.Float(), nullable=False),
        sa.Column("distribution_score", sa.Float(), nullable=True),
    )
    op.create_index(
        "idx_holder_snapshots_mint_time", "holder_snapshots", ["mint_address", "timestamp"]
    )

    op.create_table(
        "distribution_metrics",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("mint_address", sa.String(64), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("organic_holders", sa.Integer(), nullable=False),
        sa.Column("hhi", sa.Float(), nullable=False),
        sa.Column("distribution_score", sa.Float(), nullable=False),
    )
    op.create_index(
        "idx_distribution_metrics_mint_time",
        "distribution_metrics",
        ["mint_address", "timestamp"],
    )

    op.create_table(
        "excluded_accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("mint_address", sa.String(64), nullable=False),
        sa.Column("owner_address", sa.String(64), nullable=False),
        sa.Column("category", sa.String(32), nullable=False),
        sa.Column("reason", sa.String(255), nullable=False),
        sa.Column("share_pct", sa.Float(), nullable=False),
        sa.Column("first_seen_at", sa.DateTime(), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("mint_address", "owner_address", name="uq_excluded_mint_owner"),
    )


def downgrade() -> None:
    op.drop_table("excluded_accounts")
    op.drop_index("idx_distribution_metrics_mint_time", table_name="distribution_metrics")
    op.drop_table("distribution_metrics")
    op.drop_index("idx_holder_snapshots_mint_time", table_name="holder_snapshots")
    op.drop_table("holder_snapshots")
    op.drop_index("idx_monitored_metrics_update", table_name="monitored_tokens")
    op.drop_index("idx_monitored_stats_update", table_name="monitored_tokens")
    op.drop_table("monitored_tokens")
