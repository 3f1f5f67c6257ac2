# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Triplinks Contributors

"""Per-entity link counts for a whole trip, computed from one query."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol

from triplinks.models.entity_link import EntityType, entity_key
from triplinks.repositories.entity_link_repository import EntityLinkRepository

logger = logging.getLogger(__name__)


class _Endpoints(Protocol):
    source_type: str
    source_id: int
    target_type: str
    target_id: int


@dataclass(slots=True)
class EntityLinkSummary:
    entity_type: str
    entity_id: int
    total_links: int = 0
    # Keyed by the type of the entity at the other end of each link.
    link_counts: dict[str, int] = field(default_factory=dict)

    def count(self, other_type: str) -> None:
        self.link_counts[other_type] = self.link_counts.get(other_type, 0) + 1
        self.total_links += 1


def summarize_links(links: Iterable[_Endpoints]) -> dict[str, EntityLinkSummary]:
    """Fold links into summaries keyed by ``"TYPE:id"``.

    Each link counts once for its source and once for its target.
    """
    summaries: dict[str, EntityLinkSummary] = {}

    def _summary_for(entity_type: str, entity_id: int) -> EntityLinkSummary:
        key = entity_key(entity_type, entity_id)
        summary = summaries.get(key)
        if summary is None:
            summary = EntityLinkSummary(entity_type=entity_type, entity_id=entity_id)
            summaries[key] = summary
        return summary

    for link in links:
        _summary_for(link.source_type, link.source_id).count(link.target_type)
        _summary_for(link.target_type, link.target_id).count(link.source_type)
    return summaries


def summarize_entity(
    entity_type: EntityType,
    entity_id: int,
    links_from: Iterable[_Endpoints],
    links_to: Iterable[_Endpoints],
) -> EntityLinkSummary:
    summary = EntityLinkSummary(entity_type=entity_type.value, entity_id=entity_id)
    for link in links_from:
        summary.count(link.target_type)
    for link in links_to:
        summary.count(link.source_type)
    return summary


async def build_trip_link_summary(
    repo: EntityLinkRepository, trip_id: int, *, safety_limit: int = 10000
) -> dict[str, EntityLinkSummary]:
    rows = await repo.endpoint_rows(trip_id, limit=safety_limit)
    if len(rows) >= safety_limit:
        logger.warning(
            "Entity link summary for trip %s hit the %s row safety limit; "
            "results may be incomplete",
            trip_id,
            safety_limit,
        )
    return summarize_links(rows)
