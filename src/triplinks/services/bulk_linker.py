# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Triplinks Contributors

"""Batched link creation with partial-failure accounting.

Duplicates never fail a bulk call: edges that already exist, repeats within
the same request and rows inserted concurrently by another writer are all
counted as skipped. A store error inside a batched import fails only that
batch.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from triplinks.errors import DuplicateLink
from triplinks.models.entity_link import EntityLink, EntityType, LinkRelationship
from triplinks.repositories.entity_link_repository import EntityLinkRepository
from triplinks.services.entity_resolver import (
    EntityRef,
    EntityResolver,
    verify_entities_in_trip,
)
from triplinks.services.validation import (
    check_batch_size,
    check_notes,
    is_self_link,
    parse_entity_type,
    parse_relationship,
    require_id,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LinkTarget:
    target_type: EntityType | str
    target_id: int
    relationship: LinkRelationship | str | None = None
    sort_order: int | None = None
    notes: str | None = None


@dataclass(slots=True)
class BulkCreateResult:
    created: int = 0
    skipped: int = 0


@dataclass(slots=True)
class BatchImportResult:
    total: int = 0
    successful: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
    # Photos newly linked by this call.
    photo_ids: list[int] = field(default_factory=list)

    @property
    def message(self) -> str:
        return f"Linked {self.successful} of {self.total} photos ({self.failed} failed)"


# ---------------------------------------------------------------------------
# Bulk linker
# ---------------------------------------------------------------------------


class BulkLinker:
    def __init__(
        self,
        session: AsyncSession,
        *,
        resolver: EntityResolver | None = None,
        verify_membership: bool = False,
        max_targets: int = 500,
        batch_size: int = 50,
    ) -> None:
        self.session = session
        self.repo = EntityLinkRepository(session)
        self.resolver = resolver
        self.verify_membership = verify_membership and resolver is not None
        self.max_targets = max_targets
        self.batch_size = batch_size

    async def bulk_create_links(
        self,
        trip_id: int,
        source_type: EntityType | str,
        source_id: int,
        targets: Sequence[LinkTarget],
        relationship: LinkRelationship | str | None = None,
    ) -> BulkCreateResult:
        """Link one source to many targets, skipping edges that already exist."""
        require_id("trip_id", trip_id)
        source = parse_entity_type(source_type)
        require_id("source_id", source_id)
        check_batch_size("targets", len(targets), self.max_targets)

        rows: list[dict[str, Any]] = []
        for target in targets:
            target_type = parse_entity_type(target.target_type)
            require_id("target_id", target.target_id)
            rows.append(
                {
                    "trip_id": trip_id,
                    "source_type": source.value,
                    "source_id": source_id,
                    "target_type": target_type.value,
                    "target_id": target.target_id,
                    "relationship": parse_relationship(
                        target.relationship or relationship, source, target_type
                    ).value,
                    "sort_order": target.sort_order,
                    "notes": check_notes(target.notes),
                }
            )

        if self.verify_membership:
            refs = [EntityRef(source, source_id)]
            refs.extend(EntityRef(EntityType(r["target_type"]), r["target_id"]) for r in rows)
            await verify_entities_in_trip(self.resolver, trip_id, refs)

        existing = await self.repo.existing_targets(
            trip_id, source, source_id, {EntityType(r["target_type"]) for r in rows}
        )
        result = BulkCreateResult()
        pending: list[dict[str, Any]] = []
        for row in rows:
            key = (row["target_type"], row["target_id"])
            if key in existing or is_self_link(
                source, source_id, EntityType(row["target_type"]), row["target_id"]
            ):
                result.skipped += 1
                continue
            existing.add(key)
            pending.append(row)

        created = await self._insert(pending)
        result.created = len(created)
        result.skipped += len(pending) - len(created)
        logger.info(
            "Bulk linked %s:%s in trip %s: %s created, %s skipped",
            source.value,
            source_id,
            trip_id,
            result.created,
            result.skipped,
        )
        return result

    async def bulk_link_photos(
        self,
        trip_id: int,
        photo_ids: Sequence[int],
        target_type: EntityType | str,
        target_id: int,
        relationship: LinkRelationship | str | None = None,
    ) -> BulkCreateResult:
        """Link many photos to one target, skipping photos already linked to it."""
        require_id("trip_id", trip_id)
        target = parse_entity_type(target_type)
        require_id("target_id", target_id)
        check_batch_size("photo_ids", len(photo_ids), self.max_targets)
        for photo_id in photo_ids:
            require_id("photo_id", photo_id)
        rel = parse_relationship(relationship, EntityType.PHOTO, target)

        if self.verify_membership:
            refs = [EntityRef(target, target_id)]
            refs.extend(EntityRef(EntityType.PHOTO, p) for p in photo_ids)
            await verify_entities_in_trip(self.resolver, trip_id, refs)

        existing = await self.repo.existing_photo_sources(
            trip_id, photo_ids, target, target_id
        )
        result = BulkCreateResult()
        pending = self._photo_rows(trip_id, photo_ids, target, target_id, rel, existing)
        result.skipped = len(photo_ids) - len(pending)

        created = await self._insert(pending)
        result.created = len(created)
        result.skipped += len(pending) - len(created)
        logger.info(
            "Bulk linked %s photos to %s:%s in trip %s: %s created, %s skipped",
            len(photo_ids),
            target.value,
            target_id,
            trip_id,
            result.created,
            result.skipped,
        )
        return result

    async def import_photo_links(
        self,
        trip_id: int,
        photo_ids: Sequence[int],
        target_type: EntityType | str,
        target_id: int,
        relationship: LinkRelationship | str | None = None,
        batch_size: int | None = None,
    ) -> BatchImportResult:
        """Link photos to one target batch by batch, reporting partial failure.

        Each batch runs in its own savepoint. Items that are invalid or not in
        the trip fail individually; a store error fails the whole batch and
        the import carries on with the next one.
        """
        require_id("trip_id", trip_id)
        target = parse_entity_type(target_type)
        require_id("target_id", target_id)
        rel = parse_relationship(relationship, EntityType.PHOTO, target)
        if self.verify_membership:
            await verify_entities_in_trip(
                self.resolver, trip_id, [EntityRef(target, target_id)]
            )

        size = self.batch_size
        if batch_size is not None:
            size = require_id("batch_size", batch_size)
        result = BatchImportResult(total=len(photo_ids))
        # Ids handled by a batch that went through; ids from a failed batch
        # stay out so a later repeat is attempted again.
        seen: set[int] = set()
        for start in range(0, len(photo_ids), size):
            batch_no = start // size + 1
            candidates: list[int] = []
            in_batch: set[int] = set()
            for photo_id in photo_ids[start : start + size]:
                if isinstance(photo_id, bool) or not isinstance(photo_id, int) or photo_id <= 0:
                    result.failed += 1
                    result.errors.append(f"Photo {photo_id}: invalid photo id")
                elif photo_id in seen or photo_id in in_batch:
                    result.skipped += 1
                else:
                    in_batch.add(photo_id)
                    candidates.append(photo_id)
            if not candidates:
                continue

            try:
                async with self.session.begin_nested():
                    linked, skipped, missing = await self._import_batch(
                        trip_id, candidates, target, target_id, rel
                    )
            except SQLAlchemyError as exc:
                logger.error(
                    "Photo link import batch %s for trip %s failed: %s", batch_no, trip_id, exc
                )
                result.failed += len(candidates)
                result.errors.append(f"Batch {batch_no}: {exc}")
                continue

            seen.update(p for p in candidates if p not in missing)
            result.successful += len(linked)
            result.skipped += skipped
            result.photo_ids.extend(linked)
            for photo_id in missing:
                result.failed += 1
                result.errors.append(f"Photo {photo_id}: not found in trip {trip_id}")

        logger.info(
            "Photo link import to %s:%s in trip %s complete: %s successful, %s skipped, %s failed",
            target.value,
            target_id,
            trip_id,
            result.successful,
            result.skipped,
            result.failed,
        )
        return result

    # -- internals -------------------------------------------------------------

    async def _import_batch(
        self,
        trip_id: int,
        photo_ids: list[int],
        target: EntityType,
        target_id: int,
        relationship: LinkRelationship,
    ) -> tuple[list[int], int, list[int]]:
        """Return ``(linked photo ids, skipped count, photo ids missing from trip)``."""
        missing: list[int] = []
        if self.verify_membership:
            found = await self.resolver.existing_ids(trip_id, EntityType.PHOTO, photo_ids)
            missing = [p for p in photo_ids if p not in found]
            photo_ids = [p for p in photo_ids if p in found]

        existing = await self.repo.existing_photo_sources(
            trip_id, photo_ids, target, target_id
        )
        pending = self._photo_rows(trip_id, photo_ids, target, target_id, relationship, existing)
        created = await self._insert(pending)
        linked = [row["source_id"] for row in created]
        return linked, len(photo_ids) - len(linked), missing

    @staticmethod
    def _photo_rows(
        trip_id: int,
        photo_ids: Sequence[int],
        target: EntityType,
        target_id: int,
        relationship: LinkRelationship,
        existing: set[int],
    ) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        seen = set(existing)
        for photo_id in photo_ids:
            if photo_id in seen or is_self_link(EntityType.PHOTO, photo_id, target, target_id):
                continue
            seen.add(photo_id)
            rows.append(
                {
                    "trip_id": trip_id,
                    "source_type": EntityType.PHOTO.value,
                    "source_id": photo_id,
                    "target_type": target.value,
                    "target_id": target_id,
                    "relationship": relationship.value,
                }
            )
        return rows

    async def _insert(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Insert ``rows`` and return those actually created.

        The fast path inserts everything in one savepoint. If a concurrent
        writer created one of the edges first, the unique index rejects the
        batch and rows are retried one at a time, dropping the duplicates.
        """
        if not rows:
            return []
        try:
            async with self.session.begin_nested():
                await self.repo.add_many([EntityLink(**row) for row in rows])
            return rows
        except IntegrityError:
            logger.info("Bulk insert of %s links hit existing edges; retrying one by one", len(rows))

        created: list[dict[str, Any]] = []
        for row in rows:
            try:
                await self.repo.create_unique(EntityLink(**row))
            except DuplicateLink:
                continue
            created.append(row)
        return created
