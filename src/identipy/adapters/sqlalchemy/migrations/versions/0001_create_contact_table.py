"""Create contact table.

Revision ID: 0001_create_contact_table
Revises:
Create Date: 2026-10-19 00:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_create_contact_table"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "contact",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone_number", sa.String(), nullable=True),
        sa.Column("linked_id", sa.Integer(), nullable=True),
        sa.Column(
            "link_precedence",
            sa.Enum("primary", "secondary", name="linkprecedence", native_enum=False, length=16),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_contact"),
    )
    op.create_index("ix_contact_email", "contact", ["email"])
    op.create_index("ix_contact_phone_number", "contact", ["phone_number"])
    op.create_index("ix_contact_linked_id", "contact", ["linked_id"])


def downgrade() -> None:
    op.drop_index("ix_contact_linked_id", table_name="contact")
    op.drop_index("ix_contact_phone_number", table_name="contact")
    op.drop_index("ix_contact_email", table_name="contact")
    op.drop_table("contact")
