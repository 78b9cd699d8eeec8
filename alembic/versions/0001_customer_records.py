from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


revision = "0001_customer_records"
down_revision = None
branch_labels = None
depends_on = None


def _has_index(inspector, table_name: str, index_name: str) -> bool:
    return any(idx["name"] == index_name for idx in inspector.get_indexes(table_name))


def upgrade() -> None:
    bind = op.get_bind()
    inspector = inspect(bind)

    if "city_table" not in inspector.get_table_names():
        op.create_table(
            "city_table",
            sa.Column("city_id", sa.Integer(), primary_key=True),
            sa.Column("city_name", sa.String(length=100), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        )
        op.create_index("ix_city_table_city_name", "city_table", ["city_name"], unique=False)

    inspector = inspect(bind)
    if "customers" not in inspector.get_table_names():
        op.create_table(
            "customers",
            sa.Column("customer_id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(length=120), nullable=False),
            sa.Column("email", sa.String(length=150), nullable=True),
            sa.Column("phone", sa.String(length=20), nullable=False),
            sa.Column("phone2", sa.String(length=20), nullable=True),
            sa.Column("status", sa.String(length=10), nullable=False, server_default="Active"),
            sa.Column("address_line1", sa.String(length=255), nullable=False),
            sa.Column("address_line2", sa.String(length=255), nullable=True),
            sa.Column("city_id", sa.Integer(), sa.ForeignKey("city_table.city_id"), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        )
        op.create_index("ix_customers_email", "customers", ["email"], unique=False)
        op.create_index("ix_customers_phone", "customers", ["phone"], unique=False)
        op.create_index("ix_customers_phone2", "customers", ["phone2"], unique=False)
        op.create_index("ix_customers_city_id", "customers", ["city_id"], unique=False)

    inspector = inspect(bind)
    if "user_logs" not in inspector.get_table_names():
        op.create_table(
            "user_logs",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("action_type", sa.String(length=50), nullable=False),
            sa.Column("inquiry_id", sa.Integer(), nullable=True),
            sa.Column("details", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_user_logs_id", "user_logs", ["id"], unique=False)
        op.create_index("ix_user_logs_user_id", "user_logs", ["user_id"], unique=False)
        op.create_index("ix_user_logs_inquiry_id", "user_logs", ["inquiry_id"], unique=False)


def downgrade() -> None:
    bind = op.get_bind()
    inspector = inspect(bind)

    if "user_logs" in inspector.get_table_names():
        for index_name in ["ix_user_logs_inquiry_id", "ix_user_logs_user_id", "ix_user_logs_id"]:
            if _has_index(inspector, "user_logs", index_name):
                op.drop_index(index_name, table_name="user_logs")
        op.drop_table("user_logs")

    inspector = inspect(bind)
    if "customers" in inspector.get_table_names():
        for index_name in ["ix_customers_city_id", "ix_customers_phone2", "ix_customers_phone", "ix_customers_email"]:
            if _has_index(inspector, "customers", index_name):
                op.drop_index(index_name, table_name="customers")
        op.drop_table("customers")

    inspector = inspect(bind)
    if "city_table" in inspector.get_table_names():
        if _has_index(inspector, "city_table", "ix_city_table_city_name"):
            op.drop_index("ix_city_table_city_name", table_name="city_table")
        op.drop_table("city_table")
