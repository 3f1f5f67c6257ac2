# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Triplinks Contributors

"""Collaborators that look at the entity tables behind link endpoints.

The link core never owns trip entities. It asks an ``EntityResolver``
whether endpoints exist in a trip and how to describe them, and a
``PhotoStore`` to turn photo ids into photo records. The SQL
implementations below read the tables mapped in ``models.trip_entity``.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol, assert_never

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from triplinks.errors import EntityNotInTrip
from triplinks.models.entity_link import EntityType
from triplinks.models.trip_entity import (
    Activity,
    JournalEntry,
    Location,
    Lodging,
    Photo,
    PhotoAlbum,
    Transportation,
    TripEntity,
    entity_model,
)

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EntityRef:
    entity_type: EntityType
    entity_id: int


@dataclass(frozen=True, slots=True)
class EntityDetails:
    """Short description of a link endpoint for display."""

    id: int
    name: str | None = None
    title: str | None = None
    caption: str | None = None
    thumbnail_path: str | None = None
    date: str | None = None


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


class EntityResolver(Protocol):
    async def existing_ids(
        self, trip_id: int, entity_type: EntityType, entity_ids: Iterable[int]
    ) -> set[int]:
        """Return the subset of ``entity_ids`` that exist in the trip."""
        ...

    async def describe(
        self, trip_id: int, entity_type: EntityType, entity_ids: Iterable[int]
    ) -> dict[int, EntityDetails]:
        """Return display details keyed by id; ids not in the trip are omitted."""
        ...


class PhotoStore(Protocol):
    async def get_photos(self, trip_id: int, photo_ids: Sequence[int]) -> list[Photo]:
        """Return photos for ``photo_ids`` in the given order, skipping unknown ids."""
        ...


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def group_ids_by_type(refs: Iterable[EntityRef]) -> dict[EntityType, list[int]]:
    """Group entity ids by type, dropping repeats but keeping first-seen order."""
    grouped: dict[EntityType, list[int]] = defaultdict(list)
    seen: set[EntityRef] = set()
    for ref in refs:
        if ref in seen:
            continue
        seen.add(ref)
        grouped[ref.entity_type].append(ref.entity_id)
    return dict(grouped)


async def verify_entities_in_trip(
    resolver: EntityResolver, trip_id: int, refs: Iterable[EntityRef]
) -> None:
    """Raise ``EntityNotInTrip`` unless every referenced entity is in the trip.

    Runs one lookup per entity type.
    """
    for entity_type, ids in group_ids_by_type(refs).items():
        found = await resolver.existing_ids(trip_id, entity_type, ids)
        missing = [i for i in ids if i not in found]
        if missing:
            raise EntityNotInTrip(entity_type.value, missing, trip_id)


def _details(entity: TripEntity) -> EntityDetails:
    match entity:
        case Photo():
            return EntityDetails(
                id=entity.id,
                caption=entity.caption,
                thumbnail_path=entity.thumbnail_path,
            )
        case Transportation():
            name = entity.type
            if entity.company:
                name = f"{entity.type} - {entity.company}"
            return EntityDetails(id=entity.id, name=name)
        case JournalEntry():
            return EntityDetails(
                id=entity.id,
                title=entity.title,
                date=entity.date.isoformat() if entity.date else None,
            )
        case Location() | Activity() | Lodging() | PhotoAlbum():
            return EntityDetails(id=entity.id, name=entity.name)
        case _:
            assert_never(entity)


# ---------------------------------------------------------------------------
# SQL implementations
# ---------------------------------------------------------------------------


class SqlEntityResolver:
    """Resolves endpoints against the trip entity tables in the same database."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def existing_ids(
        self, trip_id: int, entity_type: EntityType, entity_ids: Iterable[int]
    ) -> set[int]:
        ids = list(set(entity_ids))
        if not ids:
            return set()
        model = entity_model(entity_type)
        result = await self.session.execute(
            select(model.id).where(model.id.in_(ids), model.trip_id == trip_id)
        )
        return set(result.scalars().all())

    async def describe(
        self, trip_id: int, entity_type: EntityType, entity_ids: Iterable[int]
    ) -> dict[int, EntityDetails]:
        ids = list(set(entity_ids))
        if not ids:
            return {}
        model = entity_model(entity_type)
        result = await self.session.execute(
            select(model).where(model.id.in_(ids), model.trip_id == trip_id)
        )
        return {entity.id: _details(entity) for entity in result.scalars().all()}


class SqlPhotoStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_photos(self, trip_id: int, photo_ids: Sequence[int]) -> list[Photo]:
        if not photo_ids:
            return []
        result = await self.session.execute(
            select(Photo).where(Photo.id.in_(list(photo_ids)), Photo.trip_id == trip_id)
        )
        by_id = {photo.id: photo for photo in result.scalars().all()}
        return [by_id[i] for i in photo_ids if i in by_id]
