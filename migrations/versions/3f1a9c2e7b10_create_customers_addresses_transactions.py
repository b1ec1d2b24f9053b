"""create customers, addresses and transactions

Revision ID: 3f1a9c2e7b10
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = "3f1a9c2e7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    insp = inspect(bind)
    existing_tables = set(insp.get_table_names())

    def _has_index(table: str, name: str) -> bool:
        return any(ix.get("name") == name for ix in inspect(op.get_bind()).get_indexes(table))

    # Tables may already exist when the app ran create_all before the first migration.
    if "customers" not in existing_tables:
        op.create_table(
            "customers",
            sa.Column("id", sa.String(36), primary_key=True, nullable=False),
            sa.Column("first_name", sa.Text(), nullable=False),
            sa.Column("last_name", sa.Text(), nullable=False),
            sa.Column("phone", sa.Text(), nullable=False),
            sa.Column("city", sa.Text(), nullable=True),
            sa.Column("state", sa.Text(), nullable=True),
            sa.Column("pincode", sa.Text(), nullable=True),
            sa.Column("email", sa.Text(), nullable=True),
            sa.Column("account_type", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
            sa.Column("updated_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
            sa.UniqueConstraint("email", name="uq_customers_email"),
        )

    for idx_name, cols in (
        ("idx_customers_city", ["city"]),
        ("idx_customers_state", ["state"]),
        ("idx_customers_pincode", ["pincode"]),
        ("idx_customers_created_at", ["created_at"]),
    ):
        if not _has_index("customers", idx_name):
            op.create_index(idx_name, "customers", cols)

    if "addresses" not in existing_tables:
        op.create_table(
            "addresses",
            sa.Column("id", sa.String(36), primary_key=True, nullable=False),
            sa.Column("customer_id", sa.String(36), nullable=False),
            sa.Column("line1", sa.Text(), nullable=False),
            sa.Column("line2", sa.Text(), nullable=True),
            sa.Column("city", sa.Text(), nullable=True),
            sa.Column("state", sa.Text(), nullable=True),
            sa.Column("pincode", sa.Text(), nullable=True),
            sa.Column("country", sa.Text(), nullable=True),
            sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
            sa.Column("updated_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
            sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="CASCADE"),
        )

    if not _has_index("addresses", "idx_addresses_customer_id"):
        op.create_index("idx_addresses_customer_id", "addresses", ["customer_id", "is_primary"])

    if "transactions" not in existing_tables:
        op.create_table(
            "transactions",
            sa.Column("id", sa.String(36), primary_key=True, nullable=False),
            sa.Column("customer_id", sa.String(36), nullable=False),
            sa.Column("detail", sa.Text(), nullable=True),
            sa.Column("amount", sa.Float(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
            sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        )

    if not _has_index("transactions", "idx_transactions_customer_id"):
        op.create_index("idx_transactions_customer_id", "transactions", ["customer_id", "created_at"])


def downgrade() -> None:
    op.drop_index("idx_transactions_customer_id", table_name="transactions")
    op.drop_table("transactions")

    op.drop_index("idx_addresses_customer_id", table_name="addresses")
    op.drop_table("addresses")

    op.drop_index("idx_customers_created_at", table_name="customers")
    op.drop_index("idx_customers_pincode", table_name="customers")
    op.drop_index("idx_customers_state", table_name="customers")
    op.drop_index("idx_customers_city", table_name="customers")
    op.drop_table("customers")
