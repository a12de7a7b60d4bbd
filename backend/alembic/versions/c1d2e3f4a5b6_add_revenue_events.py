"""add_revenue_events

Revision ID: c1d2e3f4a5b6
Revises:
Create Date: 2026-10-18

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "c1d2e3f4a5b6"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "revenue_events",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("channel", sa.String(length=64), nullable=False),
        sa.Column("cta_id", sa.String(length=128), nullable=False, server_default=""),
        sa.Column("amount", sa.DECIMAL(precision=14, scale=2), nullable=False),
        sa.Column("transaction_id", sa.String(length=64), nullable=False),
        sa.Column("page", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("utm_source", sa.String(length=255), nullable=True),
        sa.Column("utm_medium", sa.String(length=255), nullable=True),
        sa.Column("utm_campaign", sa.String(length=255), nullable=True),
        sa.Column("utm_content", sa.String(length=255), nullable=True),
        sa.Column("utm_term", sa.String(length=255), nullable=True),
        sa.Column("timestamp_ms", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.CheckConstraint("channel <> ''", name="ck_revenue_events_channel_nonempty"),
        sa.CheckConstraint("amount >= 0", name="ck_revenue_events_amount_nonnegative"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_revenue_events_timestamp_ms", "revenue_events", ["timestamp_ms"], unique=False)
    op.create_index("idx_revenue_events_utm_campaign", "revenue_events", ["utm_campaign"], unique=False)


def downgrade() -> None:
    op.drop_index("idx_revenue_events_utm_campaign", table_name="revenue_events")
    op.drop_index("idx_revenue_events_timestamp_ms", table_name="revenue_events")
    op.drop_table("revenue_events")
