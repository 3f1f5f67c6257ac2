# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Triplinks Contributors

"""Exceptions raised by the entity link core.

Each exception carries the HTTP status the API layer answers with, so
routes can let them propagate to the handler registered in ``main``.
"""

from __future__ import annotations


class EntityLinkError(Exception):
    """Base class for entity link failures."""

    status_code: int = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class LinkValidationError(EntityLinkError):
    status_code = 400


class InvalidEntityType(LinkValidationError):
    def __init__(self, value: object) -> None:
        super().__init__(f"Unknown entity type: {value}")
        self.value = value


class InvalidRelationship(LinkValidationError):
    def __init__(self, value: object) -> None:
        super().__init__(f"Unknown link relationship: {value}")
        self.value = value


class SelfLinkError(LinkValidationError):
    def __init__(self) -> None:
        super().__init__("Cannot link an entity to itself")


class DuplicateLink(EntityLinkError):
    status_code = 409

    def __init__(self) -> None:
        super().__init__("Link already exists between these entities")


class LinkNotFound(EntityLinkError):
    status_code = 404

    def __init__(self, link_id: int | None = None) -> None:
        super().__init__("Link not found")
        self.link_id = link_id


class EntityNotInTrip(EntityLinkError):
    status_code = 404

    def __init__(self, entity_type: str, entity_ids: list[int], trip_id: int) -> None:
        if len(entity_ids) == 1:
            detail = f"{entity_type} with ID {entity_ids[0]} not found in trip {trip_id}"
        else:
            ids = ", ".join(str(i) for i in entity_ids)
            detail = f"{entity_type} entities {ids} not found in trip {trip_id}"
        super().__init__(detail)
        self.entity_type = entity_type
        self.entity_ids = entity_ids
        self.trip_id = trip_id
