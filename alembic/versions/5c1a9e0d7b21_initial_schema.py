"""initial schema — users, prices, settings, calculations, shares

Revision ID: 5c1a9e0d7b21
Revises:
Create Date: 2026-10-12 09:41:03.118274

Tables are created only when missing: databases bootstrapped by
Base.metadata.create_all() are stamped at this revision instead.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '5c1a9e0d7b21'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _table_exists(table_name):
    """Check if a table exists."""
    bind = op.get_bind()
    insp = inspect(bind)
    return table_name in insp.get_table_names()


def upgrade() -> None:
    if not _table_exists("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("email", sa.String(), nullable=False),
            sa.Column("password_hash", sa.String(), nullable=False),
            sa.Column("full_name", sa.String(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("email"),
        )
        op.create_index("ix_users_id", "users", ["id"])

    if not _table_exists("auth_tokens"):
        op.create_table(
            "auth_tokens",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("token_hash", sa.String(), nullable=False),
            sa.Column("token_type", sa.String(), nullable=True),
            sa.Column("expires_at", sa.DateTime(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_auth_tokens_id", "auth_tokens", ["id"])

    if not _table_exists("material_prices"):
        op.create_table(
            "material_prices",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("material_key", sa.String(), nullable=False),
            sa.Column("composition_index", sa.Integer(), nullable=False),
            sa.Column("composition_name", sa.String(), nullable=False),
            sa.Column("unit", sa.String(), nullable=False),
            sa.Column("unit_price", sa.Float(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("material_key", "composition_index", "user_id", name="uq_material_price_user"),
        )
        op.create_index("ix_material_prices_id", "material_prices", ["id"])
        op.create_index("ix_material_prices_user_id", "material_prices", ["user_id"])

    if not _table_exists("user_settings"):
        op.create_table(
            "user_settings",
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("theme", sa.String(), nullable=True),
            sa.Column("email_notifications", sa.Boolean(), nullable=True),
            sa.Column("default_margin", sa.Float(), nullable=True),
            sa.Column("auto_save_calculations", sa.Boolean(), nullable=True),
            sa.Column("decimal_places", sa.Integer(), nullable=True),
            sa.Column("bdi_percent", sa.Float(), nullable=True),
            sa.Column("social_charges_percent", sa.Float(), nullable=True),
            sa.Column("technical_hour_rate", sa.Float(), nullable=True),
            sa.Column("material_waste_percent", sa.Float(), nullable=True),
            sa.Column("language", sa.String(), nullable=True),
            sa.Column("unit_preference", sa.String(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
            sa.PrimaryKeyConstraint("user_id"),
        )

    if not _table_exists("calculations"):
        op.create_table(
            "calculations",
            sa.Column("id", sa.String(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("calculator_type", sa.String(), nullable=False),
            sa.Column("name", sa.String(), nullable=True),
            sa.Column("input_data", sa.JSON(), nullable=True),
            sa.Column("result", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_calculations_user_id", "calculations", ["user_id"])

    if not _table_exists("shared_calculations"):
        op.create_table(
            "shared_calculations",
            sa.Column("id", sa.String(), nullable=False),
            sa.Column("calculation_id", sa.String(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("share_token", sa.String(), nullable=False),
            sa.Column("expires_at", sa.DateTime(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False),
            sa.Column("view_count", sa.Integer(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["calculation_id"], ["calculations.id"]),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("share_token"),
        )
        op.create_index("ix_shared_calculations_user_id", "shared_calculations", ["user_id"])


def downgrade() -> None:
    for table_name in ["shared_calculations", "calculations", "user_settings",
                       "material_prices", "auth_tokens", "users"]:
        if _table_exists(table_name):
            op.drop_table(table_name)
