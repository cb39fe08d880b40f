"""Initial schema for users, contracts, contract dates and date alerts."""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    date_type_enum = sa.Enum(
        "start_date",
        "end_date",
        "renewal_date",
        "termination_notice",
        "payment_due",
        "review_date",
        "warranty_expiry",
        "other",
        name="date_type",
    )

    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "contracts",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("contract_type", sa.String(length=100), nullable=False),
        sa.Column("contract_text", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "contract_dates",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("contract_id", sa.String(length=36), sa.ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date_type", date_type_enum, nullable=False, server_default="other"),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("source_clause", sa.Text(), nullable=False, server_default=""),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("idx_contract_dates_date_active", "contract_dates", ["date", "is_active"])

    op.create_table(
        "date_alerts",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("contract_id", sa.String(length=36), sa.ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("contract_date_id", sa.String(length=36), sa.ForeignKey("contract_dates.id", ondelete="CASCADE"), nullable=False),
        sa.Column("offset_days", sa.Integer(), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("dispatched", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("dispatched_at", sa.DateTime(), nullable=True),
        sa.Column("claim_token", sa.String(length=36), nullable=True),
        sa.Column("claimed_at", sa.DateTime(), nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("contract_date_id", "offset_days", name="uq_date_alerts_date_offset"),
    )
    op.create_index("idx_date_alerts_due", "date_alerts", ["scheduled_at", "is_active", "dispatched"])


def downgrade() -> None:
    op.drop_index("idx_date_alerts_due", table_name="date_alerts")
    op.drop_table("date_alerts")
    op.drop_index("idx_contract_dates_date_active", table_name="contract_dates")
    op.drop_table("contract_dates")
    op.drop_table("contracts")
    op.drop_table("users")
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP TYPE IF EXISTS date_type")
