"""add price quote tables

Revision ID: 20261017_0001_add_price_quotes
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261017_0001_add_price_quotes"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "price_quotes",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("deal_id", sa.String(length=64), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="draft"),
        sa.Column("base_minimum_price_mp", sa.Float(), nullable=True),
        sa.Column("target_markup_percentage", sa.Float(), nullable=True),
        sa.Column("final_offer_price_fop", sa.Float(), nullable=True),
        sa.Column("overall_discount_percentage", sa.Float(), nullable=True),
        sa.Column("upfront_payment_percentage", sa.Float(), nullable=True),
        sa.Column("upfront_payment_due_days", sa.Integer(), nullable=True),
        sa.Column("subsequent_installments_count", sa.Integer(), nullable=True),
        sa.Column("subsequent_installments_interval_days", sa.Integer(), nullable=True),
        sa.Column("calculated_total_direct_cost", sa.Float(), nullable=False),
        sa.Column("calculated_target_price_tp", sa.Float(), nullable=False),
        sa.Column("calculated_full_target_price_ftp", sa.Float(), nullable=False),
        sa.Column("calculated_discounted_offer_price", sa.Float(), nullable=False),
        sa.Column("calculated_effective_markup_fop_over_mp", sa.Float(), nullable=False),
        sa.Column("escalation_status", sa.String(length=64), nullable=False),
        sa.Column("escalation_details", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_price_quotes_deal_id", "price_quotes", ["deal_id"])
    op.create_index("ix_price_quotes_user_id", "price_quotes", ["user_id"])
    op.create_index("ix_price_quotes_escalation_status", "price_quotes", ["escalation_status"])
    op.create_index("ix_price_quotes_created_at", "price_quotes", ["created_at"])

    op.create_table(
        "quote_additional_costs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "price_quote_id",
            sa.String(length=36),
            sa.ForeignKey("price_quotes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "ix_quote_additional_costs_price_quote_id", "quote_additional_costs", ["price_quote_id"]
    )

    op.create_table(
        "quote_invoice_schedule_entries",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "price_quote_id",
            sa.String(length=36),
            sa.ForeignKey("price_quotes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("entry_type", sa.String(length=32), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("amount_due", sa.Float(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_quote_invoice_schedule_entries_price_quote_id",
        "quote_invoice_schedule_entries",
        ["price_quote_id"],
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("action", sa.String(length=128), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=True),
        sa.Column("subject_id", sa.String(length=64), nullable=True),
        sa.Column("payload_json", sa.Text(), nullable=True),
        sa.Column("request_id", sa.String(length=64), nullable=True),
        sa.Column("idempotency_key", sa.String(length=128), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_subject_id", "audit_logs", ["subject_id"])
    op.create_index("ix_audit_logs_request_id", "audit_logs", ["request_id"])
    op.create_index(
        "ix_audit_logs_idempotency_key", "audit_logs", ["idempotency_key"], unique=True
    )


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("quote_invoice_schedule_entries")
    op.drop_table("quote_additional_costs")
    op.drop_table("price_quotes")
