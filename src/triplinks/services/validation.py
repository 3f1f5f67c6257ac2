# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Triplinks Contributors

from __future__ import annotations

from triplinks.errors import (
    InvalidEntityType,
    InvalidRelationship,
    LinkValidationError,
    SelfLinkError,
)
from triplinks.models.entity_link import EntityType, LinkRelationship, default_relationship

MAX_NOTES_LENGTH = 1000


def parse_entity_type(value: EntityType | str) -> EntityType:
    if isinstance(value, EntityType):
        return value
    try:
        return EntityType(value)
    except ValueError:
        raise InvalidEntityType(value) from None


def parse_relationship(
    value: LinkRelationship | str | None,
    source_type: EntityType,
    target_type: EntityType,
) -> LinkRelationship:
    """Coerce ``value`` to a relationship, inferring one when it is missing."""
    if value is None or value == "":
        return default_relationship(source_type, target_type)
    if isinstance(value, LinkRelationship):
        return value
    try:
        return LinkRelationship(value)
    except ValueError:
        raise InvalidRelationship(value) from None


def require_id(name: str, value: int) -> int:
    # bool is an int subclass and never a valid id
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise LinkValidationError(f"{name} must be a positive integer")
    return value


def check_notes(notes: str | None) -> str | None:
    if notes is not None and len(notes) > MAX_NOTES_LENGTH:
        raise LinkValidationError(f"notes must be at most {MAX_NOTES_LENGTH} characters")
    return notes


def check_not_self(
    source_type: EntityType, source_id: int, target_type: EntityType, target_id: int
) -> None:
    if is_self_link(source_type, source_id, target_type, target_id):
        raise SelfLinkError()


def is_self_link(
    source_type: EntityType, source_id: int, target_type: EntityType, target_id: int
) -> bool:
    return source_type is target_type and source_id == target_id


def check_batch_size(name: str, size: int, maximum: int) -> None:
    if size == 0:
        raise LinkValidationError(f"{name} must not be empty")
    if size > maximum:
        raise LinkValidationError(
            f"{name} has {size} items; at most {maximum} are accepted per request"
        )
