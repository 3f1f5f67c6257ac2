# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Triplinks Contributors

"""Create the entity_links table with its indexes and constraints.

Revision ID: 001
Revises:
Create Date: 2026-10-16
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: tuple[str, ...] | None = None
depends_on: tuple[str, ...] | None = None

_ENTITY_TYPES = (
    "'LOCATION', 'ACTIVITY', 'LODGING', 'TRANSPORTATION', "
    "'PHOTO', 'PHOTO_ALBUM', 'JOURNAL_ENTRY'"
)


def upgrade() -> None:
    op.create_table(
        "entity_links",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("trip_id", sa.Integer(), nullable=False),
        sa.Column("source_type", sa.String(32), nullable=False),
        sa.Column("source_id", sa.Integer(), nullable=False),
        sa.Column("target_type", sa.String(32), nullable=False),
        sa.Column("target_id", sa.Integer(), nullable=False),
        sa.Column(
            "relationship",
            sa.String(32),
            nullable=False,
            server_default="RELATED",
        ),
        sa.Column("sort_order", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.CheckConstraint(
            f"source_type IN ({_ENTITY_TYPES})",
            name="ck_entity_links_source_type",
        ),
        sa.CheckConstraint(
            f"target_type IN ({_ENTITY_TYPES})",
            name="ck_entity_links_target_type",
        ),
    )
    op.create_index(
        "uq_entity_links_edge",
        "entity_links",
        ["trip_id", "source_type", "source_id", "target_type", "target_id"],
        unique=True,
    )
    op.create_index(
        "idx_entity_links_source",
        "entity_links",
        ["trip_id", "source_type", "source_id"],
    )
    op.create_index(
        "idx_entity_links_target",
        "entity_links",
        ["trip_id", "target_type", "target_id"],
    )


def downgrade() -> None:
    op.drop_index("idx_entity_links_target", table_name="entity_links")
    op.drop_index("idx_entity_links_source", table_name="entity_links")
    op.drop_index("uq_entity_links_edge", table_name="entity_links")
    op.drop_table("entity_links")
