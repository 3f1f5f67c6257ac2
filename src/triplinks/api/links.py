# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Triplinks Contributors

import logging

from fastapi import APIRouter, Depends, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from triplinks.auth.dependencies import get_current_user_id
from triplinks.config import get_settings
from triplinks.db.session import get_db
from triplinks.models.entity_link import LinkDirection
from triplinks.schemas.common import ErrorResponse, MessageResponse
from triplinks.schemas.entity_link import (
    BulkCreateResponse,
    BulkEntityLinksCreate,
    BulkLinkPhotos,
    DeletedCountResponse,
    EnrichedEntityLinkResponse,
    EntityDetailsResponse,
    EntityLinkCreate,
    EntityLinkDelete,
    EntityLinkResponse,
    EntityLinksResponse,
    EntityLinkSummaryResponse,
    EntityLinkUpdate,
    PhotoLinkImport,
    PhotoLinkImportResponse,
    PhotoResponse,
    TargetTypeLinkResponse,
)
from triplinks.services.bulk_linker import LinkTarget
from triplinks.services.entity_link_service import EntityLinkService, LinkView
from triplinks.services.entity_resolver import SqlEntityResolver, SqlPhotoStore

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)

router = APIRouter(prefix="/trips/{trip_id}/links", tags=["entity-links"])


def _bulk_rate_limit() -> str:
    return get_settings().bulk_rate_limit


async def get_link_service(db: AsyncSession = Depends(get_db)) -> EntityLinkService:
    settings = get_settings()
    return EntityLinkService(
        db,
        resolver=SqlEntityResolver(db),
        photo_store=SqlPhotoStore(db),
        verify_membership=settings.verify_entity_membership,
        max_bulk_targets=settings.max_bulk_targets,
        photo_link_batch_size=settings.photo_link_batch_size,
        summary_safety_limit=settings.summary_safety_limit,
    )


def _enriched(view: LinkView) -> EnrichedEntityLinkResponse:
    base = EntityLinkResponse.model_validate(view.link)
    entity = (
        EntityDetailsResponse.model_validate(view.entity) if view.entity is not None else None
    )
    outgoing = view.direction is LinkDirection.OUTGOING
    return EnrichedEntityLinkResponse(
        **base.model_dump(),
        direction=view.direction,
        target_entity=entity if outgoing else None,
        source_entity=None if outgoing else entity,
    )


# -- writes ----------------------------------------------------------------------


@router.post(
    "",
    response_model=EntityLinkResponse,
    status_code=201,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_link(
    trip_id: int,
    body: EntityLinkCreate,
    user_id: int = Depends(get_current_user_id),
    service: EntityLinkService = Depends(get_link_service),
) -> EntityLinkResponse:
    link = await service.create_link(
        trip_id,
        body.source_type,
        body.source_id,
        body.target_type,
        body.target_id,
        relationship=body.relationship,
        notes=body.notes,
        sort_order=body.sort_order,
    )
    await service.session.commit()
    return EntityLinkResponse.model_validate(link)


@router.post("/bulk", response_model=BulkCreateResponse, status_code=201)
@limiter.limit(_bulk_rate_limit)
async def bulk_create_links(
    request: Request,
    trip_id: int,
    body: BulkEntityLinksCreate,
    user_id: int = Depends(get_current_user_id),
    service: EntityLinkService = Depends(get_link_service),
) -> BulkCreateResponse:
    targets = [
        LinkTarget(
            target_type=t.target_type,
            target_id=t.target_id,
            relationship=t.relationship,
            sort_order=t.sort_order,
            notes=t.notes,
        )
        for t in body.targets
    ]
    result = await service.bulk_create_links(
        trip_id, body.source_type, body.source_id, targets, body.relationship
    )
    await service.session.commit()
    return BulkCreateResponse.model_validate(result)


@router.post("/photos", response_model=BulkCreateResponse, status_code=201)
@limiter.limit(_bulk_rate_limit)
async def bulk_link_photos(
    request: Request,
    trip_id: int,
    body: BulkLinkPhotos,
    user_id: int = Depends(get_current_user_id),
    service: EntityLinkService = Depends(get_link_service),
) -> BulkCreateResponse:
    result = await service.bulk_link_photos(
        trip_id, body.photo_ids, body.target_type, body.target_id, body.relationship
    )
    await service.session.commit()
    return BulkCreateResponse.model_validate(result)


@router.post("/photos/import", response_model=PhotoLinkImportResponse, status_code=201)
@limiter.limit(_bulk_rate_limit)
async def import_photo_links(
    request: Request,
    trip_id: int,
    body: PhotoLinkImport,
    user_id: int = Depends(get_current_user_id),
    service: EntityLinkService = Depends(get_link_service),
) -> PhotoLinkImportResponse:
    result = await service.import_photo_links(
        trip_id,
        body.photo_ids,
        body.target_type,
        body.target_id,
        body.relationship,
        body.batch_size,
    )
    await service.session.commit()
    if result.failed:
        logger.warning(
            "Photo link import for trip %s: %s of %s failed",
            trip_id,
            result.failed,
            result.total,
        )
    return PhotoLinkImportResponse(
        total=result.total,
        successful=result.successful,
        skipped=result.skipped,
        failed=result.failed,
        errors=result.errors,
        photo_ids=result.photo_ids,
        message=result.message,
    )


@router.patch("/{link_id}", response_model=EntityLinkResponse)
async def update_link(
    trip_id: int,
    link_id: int,
    body: EntityLinkUpdate,
    user_id: int = Depends(get_current_user_id),
    service: EntityLinkService = Depends(get_link_service),
) -> EntityLinkResponse:
    link = await service.update_link(trip_id, link_id, body.model_dump(exclude_unset=True))
    await service.session.commit()
    return EntityLinkResponse.model_validate(link)


@router.delete("", response_model=MessageResponse)
async def delete_link(
    trip_id: int,
    body: EntityLinkDelete,
    user_id: int = Depends(get_current_user_id),
    service: EntityLinkService = Depends(get_link_service),
) -> MessageResponse:
    await service.delete_link(
        trip_id, body.source_type, body.source_id, body.target_type, body.target_id
    )
    await service.session.commit()
    return MessageResponse(message="Entity link deleted")


@router.delete("/entity/{entity_type}/{entity_id}", response_model=DeletedCountResponse)
async def delete_all_links_for_entity(
    trip_id: int,
    entity_type: str,
    entity_id: int,
    user_id: int = Depends(get_current_user_id),
    service: EntityLinkService = Depends(get_link_service),
) -> DeletedCountResponse:
    deleted = await service.delete_all_links_for_entity(trip_id, entity_type, entity_id)
    await service.session.commit()
    return DeletedCountResponse(deleted=deleted)


@router.delete("/{link_id}", response_model=MessageResponse)
async def delete_link_by_id(
    trip_id: int,
    link_id: int,
    user_id: int = Depends(get_current_user_id),
    service: EntityLinkService = Depends(get_link_service),
) -> MessageResponse:
    await service.delete_link_by_id(trip_id, link_id)
    await service.session.commit()
    return MessageResponse(message="Entity link deleted")


@router.post("/cleanup-orphans", response_model=DeletedCountResponse)
async def cleanup_orphaned_links(
    trip_id: int,
    user_id: int = Depends(get_current_user_id),
    service: EntityLinkService = Depends(get_link_service),
) -> DeletedCountResponse:
    deleted = await service.cleanup_orphaned_links(trip_id)
    await service.session.commit()
    return DeletedCountResponse(deleted=deleted)


# -- reads -----------------------------------------------------------------------


@router.get("/summary", response_model=dict[str, EntityLinkSummaryResponse])
async def get_trip_link_summary(
    trip_id: int,
    user_id: int = Depends(get_current_user_id),
    service: EntityLinkService = Depends(get_link_service),
) -> dict[str, EntityLinkSummaryResponse]:
    summaries = await service.get_trip_link_summary(trip_id)
    return {
        key: EntityLinkSummaryResponse.model_validate(summary)
        for key, summary in summaries.items()
    }


@router.get("/from/{entity_type}/{entity_id}", response_model=list[EnrichedEntityLinkResponse])
async def get_links_from(
    trip_id: int,
    entity_type: str,
    entity_id: int,
    target_type: str | None = Query(None),
    user_id: int = Depends(get_current_user_id),
    service: EntityLinkService = Depends(get_link_service),
) -> list[EnrichedEntityLinkResponse]:
    links = await service.get_links_from(trip_id, entity_type, entity_id, target_type)
    views = await service.describe_links(trip_id, links, LinkDirection.OUTGOING)
    return [_enriched(v) for v in views]


@router.get("/to/{entity_type}/{entity_id}", response_model=list[EnrichedEntityLinkResponse])
async def get_links_to(
    trip_id: int,
    entity_type: str,
    entity_id: int,
    source_type: str | None = Query(None),
    user_id: int = Depends(get_current_user_id),
    service: EntityLinkService = Depends(get_link_service),
) -> list[EnrichedEntityLinkResponse]:
    links = await service.get_links_to(trip_id, entity_type, entity_id, source_type)
    views = await service.describe_links(trip_id, links, LinkDirection.INCOMING)
    return [_enriched(v) for v in views]


@router.get("/entity/{entity_type}/{entity_id}", response_model=EntityLinksResponse)
async def get_all_links_for_entity(
    trip_id: int,
    entity_type: str,
    entity_id: int,
    user_id: int = Depends(get_current_user_id),
    service: EntityLinkService = Depends(get_link_service),
) -> EntityLinksResponse:
    links = await service.get_all_links_for_entity(trip_id, entity_type, entity_id)
    return EntityLinksResponse(
        links_from=[_enriched(v) for v in links.links_from],
        links_to=[_enriched(v) for v in links.links_to],
        summary=EntityLinkSummaryResponse.model_validate(links.summary),
    )


@router.get("/photos/{entity_type}/{entity_id}", response_model=list[PhotoResponse])
async def get_photos_for_entity(
    trip_id: int,
    entity_type: str,
    entity_id: int,
    user_id: int = Depends(get_current_user_id),
    service: EntityLinkService = Depends(get_link_service),
) -> list[PhotoResponse]:
    photos = await service.get_photos_for_entity(trip_id, entity_type, entity_id)
    return [PhotoResponse.model_validate(p) for p in photos]


@router.get("/target-type/{target_type}", response_model=list[TargetTypeLinkResponse])
async def get_links_by_target_type(
    trip_id: int,
    target_type: str,
    user_id: int = Depends(get_current_user_id),
    service: EntityLinkService = Depends(get_link_service),
) -> list[TargetTypeLinkResponse]:
    links = await service.get_links_by_target_type(trip_id, target_type)
    return [TargetTypeLinkResponse.model_validate(link) for link in links]
