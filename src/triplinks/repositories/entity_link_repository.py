# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Triplinks Contributors

from __future__ import annotations

from collections.abc import Iterable, Sequence

from sqlalchemy import Row, Select, and_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from triplinks.errors import DuplicateLink
from triplinks.models.entity_link import EntityLink, EntityType
from triplinks.repositories.base import BaseRepository


def _ordered(stmt: Select[tuple[EntityLink]]) -> Select[tuple[EntityLink]]:
    return stmt.order_by(
        EntityLink.sort_order.asc().nulls_last(),
        EntityLink.created_at.asc(),
        EntityLink.id.asc(),
    )


class EntityLinkRepository(BaseRepository[EntityLink]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, EntityLink)

    async def get_in_trip(self, trip_id: int, link_id: int) -> EntityLink | None:
        link = await self.get_by_id(link_id)
        if link is None or link.trip_id != trip_id:
            return None
        return link

    async def find_edge(
        self,
        trip_id: int,
        source_type: EntityType,
        source_id: int,
        target_type: EntityType,
        target_id: int,
    ) -> EntityLink | None:
        result = await self.session.execute(
            select(EntityLink).where(
                EntityLink.trip_id == trip_id,
                EntityLink.source_type == source_type.value,
                EntityLink.source_id == source_id,
                EntityLink.target_type == target_type.value,
                EntityLink.target_id == target_id,
            )
        )
        return result.scalar_one_or_none()

    async def create_unique(self, link: EntityLink) -> EntityLink:
        """Insert ``link`` inside a savepoint.

        A unique-index collision rolls back only the savepoint and surfaces
        as ``DuplicateLink``; the surrounding transaction stays usable.
        """
        try:
            async with self.session.begin_nested():
                await self.create(link)
        except IntegrityError as exc:
            raise DuplicateLink() from exc
        return link

    async def add_many(self, links: Sequence[EntityLink]) -> None:
        self.session.add_all(links)
        await self.session.flush()

    async def list_from(
        self,
        trip_id: int,
        source_type: EntityType,
        source_id: int,
        target_type: EntityType | None = None,
    ) -> list[EntityLink]:
        stmt = select(EntityLink).where(
            EntityLink.trip_id == trip_id,
            EntityLink.source_type == source_type.value,
            EntityLink.source_id == source_id,
        )
        if target_type is not None:
            stmt = stmt.where(EntityLink.target_type == target_type.value)
        result = await self.session.execute(_ordered(stmt))
        return list(result.scalars().all())

    async def list_to(
        self,
        trip_id: int,
        target_type: EntityType,
        target_id: int,
        source_type: EntityType | None = None,
    ) -> list[EntityLink]:
        stmt = select(EntityLink).where(
            EntityLink.trip_id == trip_id,
            EntityLink.target_type == target_type.value,
            EntityLink.target_id == target_id,
        )
        if source_type is not None:
            stmt = stmt.where(EntityLink.source_type == source_type.value)
        result = await self.session.execute(_ordered(stmt))
        return list(result.scalars().all())

    async def list_by_target_type(
        self, trip_id: int, target_type: EntityType
    ) -> list[EntityLink]:
        result = await self.session.execute(
            _ordered(
                select(EntityLink).where(
                    EntityLink.trip_id == trip_id,
                    EntityLink.target_type == target_type.value,
                )
            )
        )
        return list(result.scalars().all())

    async def list_touching(
        self, trip_id: int, entity_type: EntityType, entity_id: int
    ) -> list[EntityLink]:
        """Links where the entity is either the source or the target."""
        result = await self.session.execute(
            select(EntityLink).where(
                EntityLink.trip_id == trip_id,
                or_(
                    and_(
                        EntityLink.source_type == entity_type.value,
                        EntityLink.source_id == entity_id,
                    ),
                    and_(
                        EntityLink.target_type == entity_type.value,
                        EntityLink.target_id == entity_id,
                    ),
                ),
            )
        )
        return list(result.scalars().all())

    async def list_photo_links(
        self, trip_id: int, entity_type: EntityType, entity_id: int
    ) -> list[EntityLink]:
        """Links joining the entity to a photo, in either direction."""
        photo = EntityType.PHOTO.value
        stmt = select(EntityLink).where(
            EntityLink.trip_id == trip_id,
            or_(
                and_(
                    EntityLink.source_type == photo,
                    EntityLink.target_type == entity_type.value,
                    EntityLink.target_id == entity_id,
                ),
                and_(
                    EntityLink.source_type == entity_type.value,
                    EntityLink.source_id == entity_id,
                    EntityLink.target_type == photo,
                ),
            ),
        )
        result = await self.session.execute(_ordered(stmt))
        return list(result.scalars().all())

    async def existing_targets(
        self,
        trip_id: int,
        source_type: EntityType,
        source_id: int,
        target_types: Iterable[EntityType],
    ) -> set[tuple[str, int]]:
        """``(target_type, target_id)`` pairs already linked from the source."""
        result = await self.session.execute(
            select(EntityLink.target_type, EntityLink.target_id).where(
                EntityLink.trip_id == trip_id,
                EntityLink.source_type == source_type.value,
                EntityLink.source_id == source_id,
                EntityLink.target_type.in_([t.value for t in target_types]),
            )
        )
        return {(row.target_type, row.target_id) for row in result.all()}

    async def existing_photo_sources(
        self,
        trip_id: int,
        photo_ids: Sequence[int],
        target_type: EntityType,
        target_id: int,
    ) -> set[int]:
        """Photo ids among ``photo_ids`` already linked to the target."""
        if not photo_ids:
            return set()
        result = await self.session.execute(
            select(EntityLink.source_id).where(
                EntityLink.trip_id == trip_id,
                EntityLink.source_type == EntityType.PHOTO.value,
                EntityLink.source_id.in_(list(photo_ids)),
                EntityLink.target_type == target_type.value,
                EntityLink.target_id == target_id,
            )
        )
        return set(result.scalars().all())

    async def endpoint_rows(
        self, trip_id: int, *, limit: int | None = None
    ) -> Sequence[Row[tuple[int, str, int, str, int]]]:
        """Identity columns of every link in the trip, oldest first."""
        stmt = (
            select(
                EntityLink.id,
                EntityLink.source_type,
                EntityLink.source_id,
                EntityLink.target_type,
                EntityLink.target_id,
            )
            .where(EntityLink.trip_id == trip_id)
            .order_by(EntityLink.id.asc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return result.all()

    async def list_by_ids(self, trip_id: int, link_ids: Sequence[int]) -> list[EntityLink]:
        if not link_ids:
            return []
        result = await self.session.execute(
            select(EntityLink).where(
                EntityLink.trip_id == trip_id,
                EntityLink.id.in_(list(link_ids)),
            )
        )
        return list(result.scalars().all())

    async def delete_many(self, links: Sequence[EntityLink]) -> int:
        for link in links:
            await self.session.delete(link)
        await self.session.flush()
        return len(links)
