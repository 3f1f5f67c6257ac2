# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Triplinks Contributors

from __future__ import annotations

import pytest
from pydantic import ValidationError

from triplinks.models.entity_link import EntityType, LinkRelationship
from triplinks.schemas.entity_link import (
    BulkEntityLinksCreate,
    EntityLinkCreate,
    EntityLinkSummaryResponse,
    EntityLinkUpdate,
    PhotoLinkImport,
)
from triplinks.services.link_summary import EntityLinkSummary


class TestEntityLinkCreate:
    def test_parses_enums(self) -> None:
        body = EntityLinkCreate(
            source_type="PHOTO", source_id=1, target_type="LOCATION", target_id=2
        )
        assert body.source_type is EntityType.PHOTO
        assert body.relationship is None

    def test_rejects_unknown_type(self) -> None:
        with pytest.raises(ValidationError):
            EntityLinkCreate(
                source_type="HOTEL", source_id=1, target_type="LOCATION", target_id=2
            )

    def test_rejects_non_positive_id(self) -> None:
        with pytest.raises(ValidationError):
            EntityLinkCreate(
                source_type="PHOTO", source_id=0, target_type="LOCATION", target_id=2
            )

    def test_notes_limit(self) -> None:
        with pytest.raises(ValidationError):
            EntityLinkCreate(
                source_type="PHOTO",
                source_id=1,
                target_type="LOCATION",
                target_id=2,
                notes="x" * 1001,
            )


class TestBulkSchemas:
    def test_targets_required(self) -> None:
        with pytest.raises(ValidationError):
            BulkEntityLinksCreate(source_type="LOCATION", source_id=1, targets=[])

    def test_import_batch_size_bounds(self) -> None:
        body = PhotoLinkImport(photo_ids=[1, 2], target_type="LOCATION", target_id=1)
        assert body.batch_size is None
        with pytest.raises(ValidationError):
            PhotoLinkImport(
                photo_ids=[1], target_type="LOCATION", target_id=1, batch_size=0
            )


class TestEntityLinkUpdate:
    def test_only_set_fields_are_dumped(self) -> None:
        body = EntityLinkUpdate(notes="late checkout")
        assert body.model_dump(exclude_unset=True) == {"notes": "late checkout"}

    def test_relationship_parsed(self) -> None:
        body = EntityLinkUpdate(relationship="PART_OF")
        assert body.relationship is LinkRelationship.PART_OF


class TestSummaryResponse:
    def test_from_summary_dataclass(self) -> None:
        summary = EntityLinkSummary(entity_type="LOCATION", entity_id=1)
        summary.count("PHOTO")
        response = EntityLinkSummaryResponse.model_validate(summary)
        assert response.entity_type is EntityType.LOCATION
        assert response.total_links == 1
        assert response.link_counts == {"PHOTO": 1}
