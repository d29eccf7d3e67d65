"""Billing schema — profiles, customers, subscriptions, promo codes, usage ledger, commissions.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- user_profiles ---
    op.create_table(
        "user_profiles",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("role", sa.String(32), server_default="client", nullable=False),
        sa.Column("reseller_id", sa.String(64), nullable=True),
        sa.Column("promo_code_id", sa.String(64), nullable=True),
        sa.Column("source", sa.String(32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["reseller_id"], ["user_profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_profiles_reseller_id", "user_profiles", ["reseller_id"])

    # --- reseller_promo_codes ---
    op.create_table(
        "reseller_promo_codes",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("reseller_id", sa.String(64), nullable=False),
        sa.Column("promo_code_stripe_id", sa.String(64), nullable=False),
        sa.Column("promo_code_text", sa.String(64), nullable=False),
        sa.Column("coupon_id", sa.String(64), nullable=True),
        sa.Column("discount_percent", sa.Numeric(5, 2), nullable=True),
        sa.Column("commission_rate", sa.Numeric(5, 2), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["reseller_id"], ["user_profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("promo_code_stripe_id"),
    )
    op.create_index("ix_reseller_promo_codes_reseller_id", "reseller_promo_codes", ["reseller_id"])
    # Batch mode: SQLite recreates the table, Postgres issues a plain ALTER
    with op.batch_alter_table("user_profiles") as batch_op:
        batch_op.create_foreign_key(
            "fk_user_profiles_promo_code_id", "reseller_promo_codes", ["promo_code_id"], ["id"]
        )

    # --- stripe_customers ---
    op.create_table(
        "stripe_customers",
        sa.Column("customer_id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["user_profiles.id"]),
        sa.PrimaryKeyConstraint("customer_id"),
        sa.UniqueConstraint("user_id"),
    )

    # --- stripe_subscriptions ---
    op.create_table(
        "stripe_subscriptions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("customer_id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("subscription_id", sa.String(64), nullable=True),
        sa.Column("price_id", sa.String(64), nullable=True),
        sa.Column("status", sa.String(32), server_default="not_started", nullable=False),
        sa.Column("current_period_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancel_at_period_end", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("payment_method_brand", sa.String(32), nullable=True),
        sa.Column("payment_method_last4", sa.String(4), nullable=True),
        sa.Column("promo_code_id", sa.String(64), nullable=True),
        sa.Column("discount_amount", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["customer_id"], ["stripe_customers.customer_id"]),
        sa.ForeignKeyConstraint(["user_id"], ["user_profiles.id"]),
        sa.ForeignKeyConstraint(["promo_code_id"], ["reseller_promo_codes.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("customer_id"),
    )
    op.create_index("ix_stripe_subscriptions_user_id", "stripe_subscriptions", ["user_id"])
    op.create_index("ix_stripe_subscriptions_subscription_id", "stripe_subscriptions", ["subscription_id"])

    # --- promo_code_usage ---
    op.create_table(
        "promo_code_usage",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("checkout_session_id", sa.String(128), nullable=False),
        sa.Column("customer_id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("promo_code_id", sa.String(64), nullable=True),
        sa.Column("promo_code_stripe_id", sa.String(64), nullable=False),
        sa.Column("discount_amount", sa.Integer(), server_default="0", nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("applied_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["user_profiles.id"]),
        sa.ForeignKeyConstraint(["promo_code_id"], ["reseller_promo_codes.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("checkout_session_id"),
    )
    op.create_index("ix_promo_code_usage_customer_id", "promo_code_usage", ["customer_id"])

    # --- reseller_commissions ---
    op.create_table(
        "reseller_commissions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("reseller_id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("subscription_id", sa.String(64), nullable=False),
        sa.Column("promo_code_id", sa.String(64), nullable=True),
        sa.Column("commission_amount", sa.Integer(), nullable=False),
        sa.Column("commission_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("status", sa.String(16), server_default="pending", nullable=False),
        sa.Column("period_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("period_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["reseller_id"], ["user_profiles.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["user_profiles.id"]),
        sa.ForeignKeyConstraint(["promo_code_id"], ["reseller_promo_codes.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("subscription_id"),
    )
    op.create_index("ix_reseller_commissions_reseller_id", "reseller_commissions", ["reseller_id"])

    # --- reseller_clients ---
    op.create_table(
        "reseller_clients",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("reseller_id", sa.String(64), nullable=False),
        sa.Column("client_id", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["reseller_id"], ["user_profiles.id"]),
        sa.ForeignKeyConstraint(["client_id"], ["user_profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("reseller_id", "client_id"),
    )
    op.create_index("ix_reseller_clients_reseller_id", "reseller_clients", ["reseller_id"])


def downgrade() -> None:
    op.drop_table("reseller_clients")
    op.drop_table("reseller_commissions")
    op.drop_table("promo_code_usage")
    op.drop_table("stripe_subscriptions")
    op.drop_table("stripe_customers")
    with op.batch_alter_table("user_profiles") as batch_op:
        batch_op.drop_constraint("fk_user_profiles_promo_code_id", type_="foreignkey")
    op.drop_table("reseller_promo_codes")
    op.drop_table("user_profiles")
