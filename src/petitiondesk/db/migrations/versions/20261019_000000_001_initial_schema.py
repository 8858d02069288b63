"""Initial schema: users and petitions.

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000+00:00

Creates:
- user_role, petition_status and petition_category enum types
- users table (citizen and admin accounts)
- petitions table with its lookup indexes
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# Revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

user_role = sa.Enum("CITIZEN", "ADMIN", name="user_role")
petition_status = sa.Enum("PENDING", "REVIEW", "RESOLVED", "REJECTED", name="petition_status")
petition_category = sa.Enum(
    "ROAD", "WATER", "HEALTH", "EDUCATION", "ELECTRICITY", "OTHER", name="petition_category"
)


def upgrade() -> None:
    """Apply migration: create users and petitions."""
    op.create_table(
        "users",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("role", user_role, nullable=False),
        sa.PrimaryKeyConstraint("user_id", name=op.f("pk_users")),
        sa.UniqueConstraint("email", name=op.f("uq_users_email")),
    )

    op.create_table(
        "petitions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("petition_code", sa.String(20), nullable=True),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(1000), nullable=False),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("pincode", sa.String(12), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("category", petition_category, nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("attachment", sa.String(500), nullable=True),
        sa.Column("status", petition_status, nullable=False),
        sa.Column("remarks", sa.Text(), nullable=False, server_default=""),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.user_id"],
            name=op.f("fk_petitions_user_id_users"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_petitions")),
        sa.UniqueConstraint("petition_code", name=op.f("uq_petitions_petition_code")),
    )
    op.create_index("ix_petitions_phone", "petitions", ["phone"])
    op.create_index("ix_petitions_status", "petitions", ["status"])
    op.create_index("ix_petitions_category", "petitions", ["category"])
    op.create_index("ix_petitions_created_at", "petitions", ["created_at"])


def downgrade() -> None:
    """Revert migration: drop petitions and users."""
    op.drop_index("ix_petitions_created_at", table_name="petitions")
    op.drop_index("ix_petitions_category", table_name="petitions")
    op.drop_index("ix_petitions_status", table_name="petitions")
    op.drop_index("ix_petitions_phone", table_name="petitions")
    op.drop_table("petitions")
    op.drop_table("users")
    petition_category.drop(op.get_bind(), checkfirst=True)
    petition_status.drop(op.get_bind(), checkfirst=True)
    user_role.drop(op.get_bind(), checkfirst=True)
