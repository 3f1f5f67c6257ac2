# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Triplinks Contributors

from __future__ import annotations

import enum

from sqlalchemy import CheckConstraint, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from triplinks.models.base import Base, IntIDMixin, TimestampMixin


class EntityType(str, enum.Enum):
    LOCATION = "LOCATION"
    ACTIVITY = "ACTIVITY"
    LODGING = "LODGING"
    TRANSPORTATION = "TRANSPORTATION"
    PHOTO = "PHOTO"
    PHOTO_ALBUM = "PHOTO_ALBUM"
    JOURNAL_ENTRY = "JOURNAL_ENTRY"


class LinkRelationship(str, enum.Enum):
    RELATED = "RELATED"
    TAKEN_AT = "TAKEN_AT"
    OCCURRED_AT = "OCCURRED_AT"
    PART_OF = "PART_OF"
    DOCUMENTS = "DOCUMENTS"
    FEATURED_IN = "FEATURED_IN"


class LinkDirection(str, enum.Enum):
    OUTGOING = "outgoing"
    INCOMING = "incoming"


def default_relationship(
    source_type: EntityType, target_type: EntityType
) -> LinkRelationship:
    """Infer the relationship label for a link created without one."""
    if source_type is EntityType.PHOTO and target_type is EntityType.LOCATION:
        return LinkRelationship.TAKEN_AT
    if source_type is EntityType.PHOTO and target_type in (
        EntityType.PHOTO_ALBUM,
        EntityType.JOURNAL_ENTRY,
    ):
        return LinkRelationship.FEATURED_IN
    if (
        source_type in (EntityType.ACTIVITY, EntityType.LODGING)
        and target_type is EntityType.LOCATION
    ):
        return LinkRelationship.OCCURRED_AT
    if source_type is EntityType.JOURNAL_ENTRY:
        return LinkRelationship.DOCUMENTS
    return LinkRelationship.RELATED


def entity_key(entity_type: EntityType | str, entity_id: int) -> str:
    """Composite string key used by summaries, e.g. ``"LOCATION:1"``."""
    value = entity_type.value if isinstance(entity_type, EntityType) else entity_type
    return f"{value}:{entity_id}"


_ENTITY_TYPE_VALUES = ", ".join(f"'{t.value}'" for t in EntityType)


class EntityLink(IntIDMixin, TimestampMixin, Base):
    """Directed edge between two trip entities.

    Endpoints are polymorphic ``(type, id)`` pairs rather than foreign keys
    because the referenced table depends on the type tag.
    """

    __tablename__ = "entity_links"

    trip_id: Mapped[int] = mapped_column(Integer, nullable=False)
    source_type: Mapped[str] = mapped_column(String(32), nullable=False)
    source_id: Mapped[int] = mapped_column(Integer, nullable=False)
    target_type: Mapped[str] = mapped_column(String(32), nullable=False)
    target_id: Mapped[int] = mapped_column(Integer, nullable=False)
    relationship: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=LinkRelationship.RELATED.value,
        server_default=LinkRelationship.RELATED.value,
    )
    sort_order: Mapped[int | None] = mapped_column(Integer, default=None)
    notes: Mapped[str | None] = mapped_column(Text, default=None)

    __table_args__ = (
        CheckConstraint(
            f"source_type IN ({_ENTITY_TYPE_VALUES})",
            name="ck_entity_links_source_type",
        ),
        CheckConstraint(
            f"target_type IN ({_ENTITY_TYPE_VALUES})",
            name="ck_entity_links_target_type",
        ),
        Index(
            "uq_entity_links_edge",
            "trip_id", "source_type", "source_id", "target_type", "target_id",
            unique=True,
        ),
        Index("idx_entity_links_source", "trip_id", "source_type", "source_id"),
        Index("idx_entity_links_target", "trip_id", "target_type", "target_id"),
    )
