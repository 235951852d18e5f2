"""initial ledger schema

Revision ID: 202510200900
Revises:
Create Date: 2025-10-20 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202510200900"
down_revision = None
branch_labels = None
depends_on = None

KIND = sa.Enum("income", "expense", name="transactionkind")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def _category_fk():
    return sa.Column(
        "category_id",
        sa.Integer(),
        sa.ForeignKey("categories.id", ondelete="SET NULL"),
    )


def upgrade():
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("kind", KIND, nullable=False),
        sa.Column("color", sa.String(length=7)),
        sa.Column("description", sa.Text()),
        *_timestamps(),
        sa.UniqueConstraint("kind", "name", name="uq_category_kind_name"),
    )

    op.create_table(
        "variable_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("kind", KIND, nullable=False),
        sa.Column("description", sa.String(length=200), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("occurred_at", sa.DateTime(), nullable=False),
        _category_fk(),
        *_timestamps(),
        sa.CheckConstraint("amount_cents > 0", name="ck_variable_amount_positive"),
    )
    op.create_index(
        "ix_variable_transactions_occurred_at",
        "variable_transactions",
        ["occurred_at"],
    )

    op.create_table(
        "fixed_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("kind", KIND, nullable=False),
        sa.Column("description", sa.String(length=200), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("day", sa.Integer(), nullable=False),
        sa.Column("start_at", sa.DateTime(), nullable=False),
        sa.Column("end_at", sa.DateTime()),
        _category_fk(),
        *_timestamps(),
        sa.CheckConstraint("amount_cents > 0", name="ck_fixed_amount_positive"),
        sa.CheckConstraint("day BETWEEN 1 AND 31", name="ck_fixed_day_range"),
        sa.CheckConstraint(
            "end_at IS NULL OR end_at >= start_at", name="ck_fixed_end_after_start"
        ),
    )

    op.create_table(
        "monthly_variations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "fixed_item_id",
            sa.Integer(),
            sa.ForeignKey("fixed_items.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("kind", KIND, nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
            "fixed_item_id",
            "kind",
            "year",
            "month",
            name="uq_variation_item_kind_month",
        ),
        sa.CheckConstraint("month BETWEEN 0 AND 11", name="ck_variation_month_range"),
        sa.CheckConstraint("amount_cents >= 0", name="ck_variation_amount_positive"),
    )

    op.create_table(
        "installment_purchases",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("description", sa.String(length=200), nullable=False),
        sa.Column("total_cents", sa.Integer(), nullable=False),
        sa.Column("anchor_at", sa.DateTime(), nullable=False),
        sa.Column("installment_count", sa.Integer(), nullable=False),
        _category_fk(),
        *_timestamps(),
        sa.CheckConstraint("total_cents > 0", name="ck_purchase_total_positive"),
        sa.CheckConstraint(
            "installment_count >= 1", name="ck_purchase_count_positive"
        ),
    )

    op.create_table(
        "installments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "purchase_id",
            sa.Integer(),
            sa.ForeignKey("installment_purchases.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("due_at", sa.DateTime(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("purchase_id", "number", name="uq_installment_number"),
        sa.CheckConstraint(
            "amount_cents >= 0", name="ck_installment_amount_positive"
        ),
    )
    op.create_index("ix_installments_due_at", "installments", ["due_at"])


def downgrade():
    op.drop_index("ix_installments_due_at", table_name="installments")
    op.drop_table("installments")
    op.drop_table("installment_purchases")
    op.drop_table("monthly_variations")
    op.drop_table("fixed_items")
    op.drop_index(
        "ix_variable_transactions_occurred_at", table_name="variable_transactions"
    )
    op.drop_table("variable_transactions")
    op.drop_table("categories")
    KIND.drop(op.get_bind(), checkfirst=True)
