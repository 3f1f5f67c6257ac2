# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Triplinks Contributors

from triplinks.models.base import Base, IntIDMixin, TimestampMixin
from triplinks.models.entity_link import (
    EntityLink,
    EntityType,
    LinkDirection,
    LinkRelationship,
    default_relationship,
    entity_key,
)
from triplinks.models.trip_entity import (
    Activity,
    JournalEntry,
    Location,
    Lodging,
    Photo,
    PhotoAlbum,
    Transportation,
    entity_model,
)

__all__ = [
    "Activity",
    "Base",
    "EntityLink",
    "EntityType",
    "IntIDMixin",
    "JournalEntry",
    "LinkDirection",
    "LinkRelationship",
    "Location",
    "Lodging",
    "Photo",
    "PhotoAlbum",
    "TimestampMixin",
    "Transportation",
    "default_relationship",
    "entity_key",
    "entity_model",
]
