"""add projects and calculations.project_id

Revision ID: 8e2f4b6a1c37
Revises: 5c1a9e0d7b21
Create Date: 2026-10-19 14:02:51.407716

Projects group saved calculations. calculations.project_id is added only
when missing, so databases built by Base.metadata.create_all() upgrade cleanly.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '8e2f4b6a1c37'
down_revision: Union[str, None] = '5c1a9e0d7b21'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _column_exists(table_name, column_name):
    """Check if a column already exists in the table."""
    bind = op.get_bind()
    insp = inspect(bind)
    columns = [c["name"] for c in insp.get_columns(table_name)]
    return column_name in columns


def _table_exists(table_name):
    bind = op.get_bind()
    insp = inspect(bind)
    return table_name in insp.get_table_names()


def upgrade() -> None:
    if not _table_exists("projects"):
        op.create_table(
            "projects",
            sa.Column("id", sa.String(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("client_name", sa.String(), nullable=True),
            sa.Column("address", sa.String(), nullable=True),
            sa.Column("status", sa.String(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_projects_user_id", "projects", ["user_id"])

    # No FK constraint here: SQLite cannot add one to an existing table
    if _table_exists("calculations") and not _column_exists("calculations", "project_id"):
        op.add_column("calculations", sa.Column("project_id", sa.String(), nullable=True))
        op.create_index("ix_calculations_project_id", "calculations", ["project_id"])


def downgrade() -> None:
    if _table_exists("calculations") and _column_exists("calculations", "project_id"):
        op.drop_index("ix_calculations_project_id", table_name="calculations")
        with op.batch_alter_table("calculations") as batch_op:
            batch_op.drop_column("project_id")
    if _table_exists("projects"):
        op.drop_table("projects")
