"""plans provider product and price ids

Revision ID: 0002_plans_provider_prices
Revises: 0001_init
Create Date: 2026-10-20
"""

from alembic import op
import sqlalchemy as sa


revision = "0002_plans_provider_prices"
down_revision = "0001_init"
branch_labels = None
depends_on = None


COLUMNS = [
    "provider_product_id",
    "provider_monthly_price_id",
    "provider_yearly_price_id",
    "provider_lifetime_price_id",
]


def upgrade() -> None:
    from sqlalchemy import inspect as sa_inspect
    inspector = sa_inspect(op.get_bind())
    existing_cols = {col["name"] for col in inspector.get_columns("subscription_plans")}

    with op.batch_alter_table("subscription_plans") as batch_op:
        for name in COLUMNS:
            if name not in existing_cols:
                batch_op.add_column(sa.Column(name, sa.String(), nullable=True))


def downgrade() -> None:
    with op.batch_alter_table("subscription_plans") as batch_op:
        for name in reversed(COLUMNS):
            batch_op.drop_column(name)
