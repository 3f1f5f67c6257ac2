# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Triplinks Contributors

from __future__ import annotations

from collections.abc import Sequence

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from triplinks.errors import LinkValidationError
from triplinks.models.entity_link import EntityLink, EntityType
from triplinks.models.trip_entity import Location, Photo
from triplinks.services.bulk_linker import BatchImportResult, BulkLinker, LinkTarget
from triplinks.services.entity_resolver import SqlEntityResolver
from tests.conftest import count_links, make_link, make_location, make_photo


async def _seed_photos(db_session: AsyncSession, count: int, trip_id: int = 1) -> list[int]:
    photos = [Photo(**make_photo(trip_id=trip_id, caption=f"photo {i}")) for i in range(count)]
    db_session.add_all(photos)
    await db_session.flush()
    return [p.id for p in photos]


class TestBulkCreateLinks:
    async def test_existing_edges_are_skipped(self, db_session: AsyncSession) -> None:
        linker = BulkLinker(db_session)
        db_session.add_all(
            [
                EntityLink(**make_link(source_id=1, target_type="PHOTO", target_id=3)),
                EntityLink(**make_link(source_id=1, target_type="PHOTO", target_id=7)),
            ]
        )
        await db_session.flush()

        targets = [LinkTarget("PHOTO", i) for i in range(1, 11)]
        result = await linker.bulk_create_links(1, "LOCATION", 1, targets)

        assert result.created == 8
        assert result.skipped == 2
        assert await count_links(linker.session, 1) == 10

    async def test_repeats_and_self_links_skipped(self, db_session: AsyncSession) -> None:
        linker = BulkLinker(db_session)
        targets = [
            LinkTarget("ACTIVITY", 1),
            LinkTarget("ACTIVITY", 1),
            LinkTarget("LOCATION", 1),
            LinkTarget("PHOTO", 2, relationship="PART_OF", sort_order=1, notes="cover"),
        ]
        result = await linker.bulk_create_links(1, EntityType.LOCATION, 1, targets)

        assert result.created == 2
        assert result.skipped == 2
        links = await linker.repo.list_from(1, EntityType.LOCATION, 1)
        assert [(link.target_type, link.relationship) for link in links] == [
            ("PHOTO", "PART_OF"),
            ("ACTIVITY", "RELATED"),
        ]

    async def test_call_level_relationship_applies_to_unlabelled_targets(
        self, db_session: AsyncSession
    ) -> None:
        linker = BulkLinker(db_session)
        await linker.bulk_create_links(
            1,
            "ACTIVITY",
            1,
            [LinkTarget("LOCATION", 1), LinkTarget("LOCATION", 2, relationship="RELATED")],
            relationship="PART_OF",
        )
        links = await linker.repo.list_from(1, EntityType.ACTIVITY, 1)
        assert [link.relationship for link in links] == ["PART_OF", "RELATED"]

    async def test_too_many_targets(self, db_session: AsyncSession) -> None:
        linker = BulkLinker(db_session, max_targets=3)
        targets = [LinkTarget("PHOTO", i) for i in range(1, 5)]
        with pytest.raises(LinkValidationError):
            await linker.bulk_create_links(1, "LOCATION", 1, targets)

    async def test_empty_targets(self, db_session: AsyncSession) -> None:
        linker = BulkLinker(db_session)
        with pytest.raises(LinkValidationError):
            await linker.bulk_create_links(1, "LOCATION", 1, [])

    async def test_concurrent_duplicate_falls_back_to_row_inserts(
        self, db_session: AsyncSession, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        linker = BulkLinker(db_session)

        async def _stale_existing(*args: object, **kwargs: object) -> set[tuple[str, int]]:
            # Simulates another writer inserting PHOTO:2 after the pre-check.
            return set()

        db_session.add(EntityLink(**make_link(source_id=1, target_type="PHOTO", target_id=2)))
        await db_session.flush()
        monkeypatch.setattr(linker.repo, "existing_targets", _stale_existing)

        targets = [LinkTarget("PHOTO", i) for i in range(1, 4)]
        result = await linker.bulk_create_links(1, "LOCATION", 1, targets)
        assert result.created == 2
        assert result.skipped == 1
        assert await count_links(linker.session, 1) == 3


class TestBulkLinkPhotos:
    async def test_five_hundred_photos_in_two_chunks(self, db_session: AsyncSession) -> None:
        linker = BulkLinker(db_session)
        photo_ids = list(range(1, 501))

        first = await linker.bulk_link_photos(1, photo_ids[:250], "LOCATION", 1)
        second = await linker.bulk_link_photos(1, photo_ids[250:], "LOCATION", 1)

        assert first.created == 250
        assert second.created == 250
        links = await linker.repo.list_to(1, EntityType.LOCATION, 1)
        assert len(links) == 500
        assert {link.relationship for link in links} == {"TAKEN_AT"}

    async def test_already_linked_photos_skipped(self, db_session: AsyncSession) -> None:
        linker = BulkLinker(db_session)
        await linker.bulk_link_photos(1, [1, 2], "PHOTO_ALBUM", 1)
        result = await linker.bulk_link_photos(1, [1, 2, 3, 3], "PHOTO_ALBUM", 1)
        assert result.created == 1
        assert result.skipped == 3

    async def test_invalid_photo_id(self, db_session: AsyncSession) -> None:
        linker = BulkLinker(db_session)
        with pytest.raises(LinkValidationError):
            await linker.bulk_link_photos(1, [1, -2], "LOCATION", 1)


class TestImportPhotoLinks:
    async def test_import_in_batches(self, db_session: AsyncSession) -> None:
        location = Location(**make_location())
        db_session.add(location)
        await db_session.flush()
        photo_ids = await _seed_photos(db_session, 7)

        linker = BulkLinker(
            db_session,
            resolver=SqlEntityResolver(db_session),
            verify_membership=True,
            batch_size=3,
        )
        result = await linker.import_photo_links(1, photo_ids, "LOCATION", location.id)

        assert result.total == 7
        assert result.successful == 7
        assert result.failed == 0
        assert result.errors == []
        assert result.photo_ids == photo_ids
        assert result.message == "Linked 7 of 7 photos (0 failed)"

    async def test_item_failures_are_reported(self, db_session: AsyncSession) -> None:
        location = Location(**make_location())
        db_session.add(location)
        await db_session.flush()
        photo_ids = await _seed_photos(db_session, 2)
        foreign_ids = await _seed_photos(db_session, 1, trip_id=2)

        linker = BulkLinker(
            db_session, resolver=SqlEntityResolver(db_session), verify_membership=True
        )
        result = await linker.import_photo_links(
            1, [*photo_ids, foreign_ids[0], 0, photo_ids[0]], "LOCATION", location.id
        )

        assert result.total == 5
        assert result.successful == 2
        assert result.skipped == 1
        assert result.failed == 2
        assert f"Photo {foreign_ids[0]}: not found in trip 1" in result.errors
        assert "Photo 0: invalid photo id" in result.errors

    async def test_failed_batch_does_not_stop_import(
        self, db_session: AsyncSession, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        linker = BulkLinker(db_session, batch_size=2)
        original_add_many = linker.repo.add_many
        calls = 0

        async def _flaky_add_many(links: Sequence[EntityLink]) -> None:
            nonlocal calls
            calls += 1
            if calls == 2:
                raise OperationalError("INSERT", {}, Exception("database is locked"))
            await original_add_many(links)

        monkeypatch.setattr(linker.repo, "add_many", _flaky_add_many)
        result: BatchImportResult = await linker.import_photo_links(
            1, [1, 2, 3, 4, 5, 6], "LOCATION", 1
        )

        assert result.successful == 4
        assert result.failed == 2
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Batch 2:")
        assert result.photo_ids == [1, 2, 5, 6]
        assert await count_links(linker.session, 1) == 4

    async def test_repeat_of_id_from_failed_batch_is_retried(
        self, db_session: AsyncSession, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        linker = BulkLinker(db_session, batch_size=2)
        original_add_many = linker.repo.add_many
        calls = 0

        async def _flaky_add_many(links: Sequence[EntityLink]) -> None:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise OperationalError("INSERT", {}, Exception("database is locked"))
            await original_add_many(links)

        monkeypatch.setattr(linker.repo, "add_many", _flaky_add_many)
        result = await linker.import_photo_links(1, [1, 2, 1, 3], "LOCATION", 1)

        assert result.successful == 2
        assert result.failed == 2
        assert result.skipped == 0
        assert result.successful + result.failed + result.skipped == result.total
        assert result.photo_ids == [1, 3]
        assert await count_links(linker.session, 1) == 2

    @pytest.mark.parametrize("batch_size", [0, -1])
    async def test_non_positive_batch_size_rejected(
        self, db_session: AsyncSession, batch_size: int
    ) -> None:
        linker = BulkLinker(db_session)
        with pytest.raises(LinkValidationError, match="batch_size"):
            await linker.import_photo_links(1, [1, 2, 3], "LOCATION", 1, batch_size=batch_size)
        assert await count_links(linker.session, 1) == 0

    async def test_reimport_skips_existing(self, db_session: AsyncSession) -> None:
        linker = BulkLinker(db_session)
        await linker.import_photo_links(1, [1, 2], "LOCATION", 1)
        result = await linker.import_photo_links(1, [1, 2, 3], "LOCATION", 1)
        assert result.successful == 1
        assert result.skipped == 2
        assert result.photo_ids == [3]
