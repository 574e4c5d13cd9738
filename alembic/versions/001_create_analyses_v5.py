"""create analyses_v5 table

Revision ID: 001_analyses_v5
Revises:
Create Date: 2025-09-10

One row per company hostname. Timestamps are ISO-8601 strings.
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_analyses_v5"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "analyses_v5",
        sa.Column("hostname", sa.String(length=255), nullable=False),
        sa.Column("company_domain", sa.String(length=255), nullable=False),
        sa.Column("company_name", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column("profile_image_url", sa.String(length=2048), nullable=False),
        sa.Column("created_at", sa.String(length=32), nullable=False),
        sa.Column("updated_at", sa.String(length=32), nullable=False),
        sa.Column("visits", sa.Integer(), nullable=False),
        sa.Column("result", sa.Text(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("category", sa.Text(), nullable=True),
        sa.Column("business_description", sa.Text(), nullable=True),
        sa.Column("industry_sector", sa.Text(), nullable=True),
        sa.Column("keywords", sa.Text(), nullable=True),
        sa.CheckConstraint("status IN ('pending', 'done')", name="ck_analyses_status"),
        sa.PrimaryKeyConstraint("hostname"),
    )
    op.create_index("ix_analyses_v5_username", "analyses_v5", ["username"])


def downgrade() -> None:
    op.drop_index("ix_analyses_v5_username", table_name="analyses_v5")
    op.drop_table("analyses_v5")
