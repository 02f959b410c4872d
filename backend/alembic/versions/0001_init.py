"""init

Revision ID: 0001_init
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


TIMESTAMP_DEFAULT = sa.text("(CURRENT_TIMESTAMP)")

# table -> [(index name, columns, unique)]
INDEXES: dict[str, list[tuple[str, list[str], bool]]] = {
    "users": [
        ("ix_users_id", ["id"], False),
        ("ix_users_username", ["username"], True),
        ("ix_users_email", ["email"], True),
        ("ix_users_billing_customer_id", ["billing_customer_id"], False),
    ],
    "subscription_plans": [
        ("ix_subscription_plans_id", ["id"], False),
        ("ix_subscription_plans_name", ["name"], True),
    ],
    "user_subscriptions": [
        ("ix_user_subscriptions_id", ["id"], False),
        ("ix_user_subscriptions_user_id", ["user_id"], True),
        ("ix_user_subscriptions_plan_id", ["plan_id"], False),
        ("ix_user_subscriptions_status", ["status"], False),
        ("ix_user_subscriptions_provider_subscription_id", ["provider_subscription_id"], False),
    ],
    "payment_transactions": [
        ("ix_payment_transactions_id", ["id"], False),
        ("ix_payment_transactions_user_id", ["user_id"], False),
        ("ix_payment_transactions_plan_id", ["plan_id"], False),
        ("ix_payment_transactions_provider_reference", ["provider_reference"], True),
        ("ix_payment_transactions_status", ["status"], False),
    ],
    "user_projects": [
        ("ix_user_projects_id", ["id"], False),
        ("ix_user_projects_user_id", ["user_id"], False),
    ],
    "ai_usage": [
        ("ix_ai_usage_id", ["id"], False),
        ("ix_ai_usage_user_id", ["user_id"], False),
        ("ix_ai_usage_feature_type", ["feature_type"], False),
        ("ix_ai_usage_month", ["month"], False),
        ("ix_ai_usage_year", ["year"], False),
    ],
}


def _inspector():
    from sqlalchemy import inspect as sa_inspect
    return sa_inspect(op.get_bind())


def upgrade() -> None:
    # Alembic creates alembic_version with version_num VARCHAR(32) by default; widen it early.
    if op.get_bind().dialect.name == "postgresql":
        op.execute(sa.text("ALTER TABLE alembic_version ALTER COLUMN version_num TYPE VARCHAR(64)"))

    inspector = _inspector()
    existing_tables = set(inspector.get_table_names())

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("username", sa.String(), nullable=False),
            sa.Column("email", sa.String(), nullable=True),
            sa.Column("password", sa.String(), nullable=False),
            sa.Column("first_name", sa.String(), nullable=True),
            sa.Column("last_name", sa.String(), nullable=True),
            sa.Column("profile_image_url", sa.String(), nullable=True),
            sa.Column("billing_customer_id", sa.String(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=TIMESTAMP_DEFAULT),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=TIMESTAMP_DEFAULT),
        )

    if "subscription_plans" not in existing_tables:
        op.create_table(
            "subscription_plans",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("monthly_price", sa.Numeric(10, 2), nullable=True),
            sa.Column("yearly_price", sa.Numeric(10, 2), nullable=True),
            sa.Column("lifetime_price", sa.Numeric(10, 2), nullable=True),
            sa.Column("features", sa.JSON(), nullable=False),
            sa.Column("ai_credits_per_month", sa.Integer(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=TIMESTAMP_DEFAULT),
        )

    if "user_subscriptions" not in existing_tables:
        op.create_table(
            "user_subscriptions",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("plan_id", sa.String(), sa.ForeignKey("subscription_plans.id"), nullable=False),
            sa.Column("status", sa.String(), nullable=False),
            sa.Column("billing_cycle", sa.String(), nullable=True),
            sa.Column("provider_subscription_id", sa.String(), nullable=True),
            sa.Column("current_period_start", sa.DateTime(timezone=True), nullable=True),
            sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=True),
            sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=TIMESTAMP_DEFAULT),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=TIMESTAMP_DEFAULT),
        )

    if "payment_transactions" not in existing_tables:
        op.create_table(
            "payment_transactions",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("plan_id", sa.String(), sa.ForeignKey("subscription_plans.id"), nullable=False),
            sa.Column("subscription_id", sa.String(), sa.ForeignKey("user_subscriptions.id"), nullable=True),
            sa.Column("provider_reference", sa.String(), nullable=False),
            sa.Column("amount", sa.Numeric(10, 2), nullable=False),
            sa.Column("currency", sa.String(), nullable=False, server_default="USD"),
            sa.Column("status", sa.String(), nullable=False),
            sa.Column("payment_method", sa.String(), nullable=True),
            sa.Column("billing_cycle", sa.String(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=TIMESTAMP_DEFAULT),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=TIMESTAMP_DEFAULT),
        )

    if "user_projects" not in existing_tables:
        op.create_table(
            "user_projects",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("thumbnail_url", sa.String(), nullable=True),
            sa.Column("project_data", sa.JSON(), nullable=True),
            sa.Column("last_modified", sa.DateTime(timezone=True), server_default=TIMESTAMP_DEFAULT),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=TIMESTAMP_DEFAULT),
        )

    if "ai_usage" not in existing_tables:
        op.create_table(
            "ai_usage",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("subscription_id", sa.String(), sa.ForeignKey("user_subscriptions.id"), nullable=True),
            sa.Column("feature_type", sa.String(), nullable=False),
            sa.Column("credits_used", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("month", sa.Integer(), nullable=False),
            sa.Column("year", sa.Integer(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=TIMESTAMP_DEFAULT),
        )

    inspector = _inspector()
    for table, indexes in INDEXES.items():
        existing = {idx["name"] for idx in inspector.get_indexes(table)}
        for name, columns, unique in indexes:
            if name not in existing:
                op.create_index(name, table, columns, unique=unique)


def downgrade() -> None:
    for table in reversed(list(INDEXES.keys())):
        for name, _columns, _unique in reversed(INDEXES[table]):
            op.drop_index(name, table_name=table)
        op.drop_table(table)
