# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Triplinks Contributors

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from triplinks.models.entity_link import EntityType, LinkDirection, LinkRelationship


class EntityLinkCreate(BaseModel):
    source_type: EntityType
    source_id: int = Field(gt=0)
    target_type: EntityType
    target_id: int = Field(gt=0)
    relationship: LinkRelationship | None = None
    sort_order: int | None = None
    notes: str | None = Field(default=None, max_length=1000)


class LinkTargetItem(BaseModel):
    target_type: EntityType
    target_id: int = Field(gt=0)
    relationship: LinkRelationship | None = None
    sort_order: int | None = None
    notes: str | None = Field(default=None, max_length=1000)


class BulkEntityLinksCreate(BaseModel):
    source_type: EntityType
    source_id: int = Field(gt=0)
    targets: list[LinkTargetItem] = Field(min_length=1)
    relationship: LinkRelationship | None = None


class BulkLinkPhotos(BaseModel):
    photo_ids: list[int] = Field(min_length=1)
    target_type: EntityType
    target_id: int = Field(gt=0)
    relationship: LinkRelationship | None = None


class PhotoLinkImport(BulkLinkPhotos):
    batch_size: int | None = Field(default=None, ge=1, le=500)


class EntityLinkDelete(BaseModel):
    source_type: EntityType
    source_id: int = Field(gt=0)
    target_type: EntityType
    target_id: int = Field(gt=0)


class EntityLinkUpdate(BaseModel):
    relationship: LinkRelationship | None = None
    sort_order: int | None = None
    notes: str | None = Field(default=None, max_length=1000)


class EntityLinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    trip_id: int
    source_type: EntityType
    source_id: int
    target_type: EntityType
    target_id: int
    relationship: LinkRelationship
    sort_order: int | None
    notes: str | None
    created_at: datetime
    updated_at: datetime


class EntityDetailsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str | None = None
    title: str | None = None
    caption: str | None = None
    thumbnail_path: str | None = None
    date: str | None = None


class EnrichedEntityLinkResponse(EntityLinkResponse):
    direction: LinkDirection
    source_entity: EntityDetailsResponse | None = None
    target_entity: EntityDetailsResponse | None = None


class EntityLinkSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    entity_type: EntityType
    entity_id: int
    total_links: int
    link_counts: dict[str, int]


class EntityLinksResponse(BaseModel):
    links_from: list[EnrichedEntityLinkResponse]
    links_to: list[EnrichedEntityLinkResponse]
    summary: EntityLinkSummaryResponse


class TargetTypeLinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    source_type: EntityType
    source_id: int
    target_id: int


class BulkCreateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    created: int
    skipped: int


class PhotoLinkImportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    successful: int
    skipped: int
    failed: int
    errors: list[str]
    photo_ids: list[int]
    message: str


class DeletedCountResponse(BaseModel):
    deleted: int


class PhotoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    trip_id: int
    caption: str | None
    thumbnail_path: str | None
    file_path: str | None
    taken_at: datetime | None
