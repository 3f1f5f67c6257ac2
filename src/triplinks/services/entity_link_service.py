# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Triplinks Contributors

"""Entity link service: the API that entity managers and routes call.

Trip access is checked before this service is reached; every operation
here is scoped to the ``trip_id`` it is given and never sees links from
another trip.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from triplinks.errors import DuplicateLink, LinkNotFound, LinkValidationError
from triplinks.models.entity_link import EntityLink, EntityType, LinkDirection, LinkRelationship
from triplinks.models.trip_entity import Photo
from triplinks.repositories.entity_link_repository import EntityLinkRepository
from triplinks.services.bulk_linker import (
    BatchImportResult,
    BulkCreateResult,
    BulkLinker,
    LinkTarget,
)
from triplinks.services.entity_resolver import (
    EntityDetails,
    EntityRef,
    EntityResolver,
    PhotoStore,
    SqlEntityResolver,
    SqlPhotoStore,
    group_ids_by_type,
    verify_entities_in_trip,
)
from triplinks.services.link_summary import (
    EntityLinkSummary,
    build_trip_link_summary,
    summarize_entity,
)
from triplinks.services.validation import (
    check_not_self,
    check_notes,
    parse_entity_type,
    parse_relationship,
    require_id,
)

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = frozenset({"relationship", "notes", "sort_order"})


@dataclass(frozen=True, slots=True)
class LinkView:
    """A link seen from one of its endpoints."""

    link: EntityLink
    direction: LinkDirection
    # Details of the endpoint at the other end, when it could be resolved.
    entity: EntityDetails | None = None


@dataclass(frozen=True, slots=True)
class EntityLinks:
    links_from: list[LinkView]
    links_to: list[LinkView]
    summary: EntityLinkSummary


class EntityLinkService:
    def __init__(
        self,
        session: AsyncSession,
        *,
        resolver: EntityResolver | None = None,
        photo_store: PhotoStore | None = None,
        verify_membership: bool = False,
        max_bulk_targets: int = 500,
        photo_link_batch_size: int = 50,
        summary_safety_limit: int = 10000,
    ) -> None:
        self.session = session
        self.repo = EntityLinkRepository(session)
        self.resolver = resolver or SqlEntityResolver(session)
        self.photo_store = photo_store or SqlPhotoStore(session)
        self.verify_membership = verify_membership
        self.summary_safety_limit = summary_safety_limit
        self.bulk = BulkLinker(
            session,
            resolver=self.resolver,
            verify_membership=verify_membership,
            max_targets=max_bulk_targets,
            batch_size=photo_link_batch_size,
        )

    # -- writes ------------------------------------------------------------------

    async def create_link(
        self,
        trip_id: int,
        source_type: EntityType | str,
        source_id: int,
        target_type: EntityType | str,
        target_id: int,
        relationship: LinkRelationship | str | None = None,
        notes: str | None = None,
        sort_order: int | None = None,
    ) -> EntityLink:
        """Create one directed link.

        Raises ``DuplicateLink`` if the edge already exists in the trip,
        whatever its relationship.
        """
        require_id("trip_id", trip_id)
        source = parse_entity_type(source_type)
        target = parse_entity_type(target_type)
        require_id("source_id", source_id)
        require_id("target_id", target_id)
        check_not_self(source, source_id, target, target_id)
        rel = parse_relationship(relationship, source, target)
        check_notes(notes)

        if self.verify_membership:
            await verify_entities_in_trip(
                self.resolver,
                trip_id,
                [EntityRef(source, source_id), EntityRef(target, target_id)],
            )

        if await self.repo.find_edge(trip_id, source, source_id, target, target_id):
            raise DuplicateLink()

        link = EntityLink(
            trip_id=trip_id,
            source_type=source.value,
            source_id=source_id,
            target_type=target.value,
            target_id=target_id,
            relationship=rel.value,
            notes=notes,
            sort_order=sort_order,
        )
        return await self.repo.create_unique(link)

    async def bulk_create_links(
        self,
        trip_id: int,
        source_type: EntityType | str,
        source_id: int,
        targets: Sequence[LinkTarget],
        relationship: LinkRelationship | str | None = None,
    ) -> BulkCreateResult:
        return await self.bulk.bulk_create_links(
            trip_id, source_type, source_id, targets, relationship
        )

    async def bulk_link_photos(
        self,
        trip_id: int,
        photo_ids: Sequence[int],
        target_type: EntityType | str,
        target_id: int,
        relationship: LinkRelationship | str | None = None,
    ) -> BulkCreateResult:
        return await self.bulk.bulk_link_photos(
            trip_id, photo_ids, target_type, target_id, relationship
        )

    async def import_photo_links(
        self,
        trip_id: int,
        photo_ids: Sequence[int],
        target_type: EntityType | str,
        target_id: int,
        relationship: LinkRelationship | str | None = None,
        batch_size: int | None = None,
    ) -> BatchImportResult:
        return await self.bulk.import_photo_links(
            trip_id, photo_ids, target_type, target_id, relationship, batch_size
        )

    async def update_link(
        self, trip_id: int, link_id: int, changes: Mapping[str, Any]
    ) -> EntityLink:
        """Update ``relationship``, ``notes`` or ``sort_order`` of a link.

        The endpoints of a link are immutable; moving an edge means deleting
        it and creating a new one.
        """
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise LinkValidationError(
                f"Cannot update link fields: {', '.join(sorted(unknown))}"
            )
        link = await self.repo.get_in_trip(trip_id, link_id)
        if link is None:
            raise LinkNotFound(link_id)

        if "relationship" in changes:
            if changes["relationship"] is None:
                raise LinkValidationError("relationship cannot be cleared")
            link.relationship = parse_relationship(
                changes["relationship"],
                EntityType(link.source_type),
                EntityType(link.target_type),
            ).value
        if "notes" in changes:
            link.notes = check_notes(changes["notes"])
        if "sort_order" in changes:
            link.sort_order = changes["sort_order"]
        await self.session.flush()
        return link

    async def delete_link(
        self,
        trip_id: int,
        source_type: EntityType | str,
        source_id: int,
        target_type: EntityType | str,
        target_id: int,
    ) -> bool:
        """Delete the edge if present. Returns whether a row was removed."""
        source = parse_entity_type(source_type)
        target = parse_entity_type(target_type)
        link = await self.repo.find_edge(trip_id, source, source_id, target, target_id)
        if link is None:
            return False
        await self.repo.delete(link)
        return True

    async def delete_link_by_id(self, trip_id: int, link_id: int) -> None:
        link = await self.repo.get_in_trip(trip_id, link_id)
        if link is None:
            raise LinkNotFound(link_id)
        await self.repo.delete(link)

    async def delete_all_links_for_entity(
        self, trip_id: int, entity_type: EntityType | str, entity_id: int
    ) -> int:
        """Remove every link touching the entity; call before deleting the entity."""
        entity = parse_entity_type(entity_type)
        links = await self.repo.list_touching(trip_id, entity, entity_id)
        deleted = await self.repo.delete_many(links)
        if deleted:
            logger.info(
                "Deleted %s links for %s:%s in trip %s", deleted, entity.value, entity_id, trip_id
            )
        return deleted

    async def cleanup_orphaned_links(self, trip_id: int) -> int:
        """Delete links whose source or target row no longer exists in the trip."""
        rows = await self.repo.endpoint_rows(trip_id)
        if not rows:
            return 0

        refs: list[EntityRef] = []
        for row in rows:
            refs.append(EntityRef(EntityType(row.source_type), row.source_id))
            refs.append(EntityRef(EntityType(row.target_type), row.target_id))
        existing: dict[EntityType, set[int]] = {}
        for entity_type, ids in group_ids_by_type(refs).items():
            existing[entity_type] = await self.resolver.existing_ids(trip_id, entity_type, ids)

        orphan_ids = [
            row.id
            for row in rows
            if row.source_id not in existing[EntityType(row.source_type)]
            or row.target_id not in existing[EntityType(row.target_type)]
        ]
        if not orphan_ids:
            return 0
        deleted = await self.repo.delete_many(await self.repo.list_by_ids(trip_id, orphan_ids))
        logger.info("Removed %s orphaned entity links for trip %s", deleted, trip_id)
        return deleted

    # -- reads -------------------------------------------------------------------

    async def get_links_from(
        self,
        trip_id: int,
        source_type: EntityType | str,
        source_id: int,
        target_type: EntityType | str | None = None,
    ) -> list[EntityLink]:
        return await self.repo.list_from(
            trip_id,
            parse_entity_type(source_type),
            source_id,
            parse_entity_type(target_type) if target_type is not None else None,
        )

    async def get_links_to(
        self,
        trip_id: int,
        target_type: EntityType | str,
        target_id: int,
        source_type: EntityType | str | None = None,
    ) -> list[EntityLink]:
        return await self.repo.list_to(
            trip_id,
            parse_entity_type(target_type),
            target_id,
            parse_entity_type(source_type) if source_type is not None else None,
        )

    async def get_all_links_for_entity(
        self, trip_id: int, entity_type: EntityType | str, entity_id: int
    ) -> EntityLinks:
        """Both directions of an entity's links, in two queries."""
        entity = parse_entity_type(entity_type)
        links_from = await self.repo.list_from(trip_id, entity, entity_id)
        links_to = await self.repo.list_to(trip_id, entity, entity_id)
        return EntityLinks(
            links_from=await self.describe_links(
                trip_id, links_from, LinkDirection.OUTGOING
            ),
            links_to=await self.describe_links(trip_id, links_to, LinkDirection.INCOMING),
            summary=summarize_entity(entity, entity_id, links_from, links_to),
        )

    async def get_links_by_target_type(
        self, trip_id: int, target_type: EntityType | str
    ) -> list[EntityLink]:
        return await self.repo.list_by_target_type(trip_id, parse_entity_type(target_type))

    async def get_photos_for_entity(
        self, trip_id: int, entity_type: EntityType | str, entity_id: int
    ) -> list[Photo]:
        """Photos linked to the entity in either direction, in link order.

        A failing photo store degrades to an empty list; the links are
        left untouched.
        """
        entity = parse_entity_type(entity_type)
        links = await self.repo.list_photo_links(trip_id, entity, entity_id)
        photo_ids: list[int] = []
        for link in links:
            if link.source_type == EntityType.PHOTO.value and not (
                entity is EntityType.PHOTO and link.source_id == entity_id
            ):
                photo_id = link.source_id
            else:
                photo_id = link.target_id
            if photo_id not in photo_ids:
                photo_ids.append(photo_id)
        if not photo_ids:
            return []
        try:
            return await self.photo_store.get_photos(trip_id, photo_ids)
        except Exception:
            logger.warning(
                "Photo lookup failed for %s:%s in trip %s; returning no photos",
                entity.value,
                entity_id,
                trip_id,
                exc_info=True,
            )
            return []

    async def get_trip_link_summary(self, trip_id: int) -> dict[str, EntityLinkSummary]:
        return await build_trip_link_summary(
            self.repo, trip_id, safety_limit=self.summary_safety_limit
        )

    async def describe_links(
        self, trip_id: int, links: Sequence[EntityLink], direction: LinkDirection
    ) -> list[LinkView]:
        """Attach the far endpoint's details to each link, one query per type.

        Only entities of ``trip_id`` are described; a far end outside the trip
        is left without details.
        """
        def _far(link: EntityLink) -> EntityRef:
            if direction is LinkDirection.OUTGOING:
                return EntityRef(EntityType(link.target_type), link.target_id)
            return EntityRef(EntityType(link.source_type), link.source_id)

        details: dict[EntityRef, EntityDetails] = {}
        for entity_type, ids in group_ids_by_type(_far(link) for link in links).items():
            described = await self.resolver.describe(trip_id, entity_type, ids)
            for entity_id, entity_details in described.items():
                details[EntityRef(entity_type, entity_id)] = entity_details
        return [
            LinkView(link=link, direction=direction, entity=details.get(_far(link)))
            for link in links
        ]
