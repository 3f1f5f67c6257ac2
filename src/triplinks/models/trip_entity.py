# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Triplinks Contributors

"""Read-only mappings of the trip entity tables that links point at.

These tables are owned and migrated by their own managers. The link core
only reads the handful of columns it needs to check trip membership,
describe link endpoints and resolve photos.
"""

from __future__ import annotations

from datetime import datetime
from typing import assert_never

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from triplinks.models.base import Base, IntIDMixin
from triplinks.models.entity_link import EntityType


class Location(IntIDMixin, Base):
    __tablename__ = "locations"

    trip_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)


class Activity(IntIDMixin, Base):
    __tablename__ = "activities"

    trip_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)


class Lodging(IntIDMixin, Base):
    __tablename__ = "lodgings"

    trip_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)


class Transportation(IntIDMixin, Base):
    __tablename__ = "transportation"

    trip_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    type: Mapped[str] = mapped_column(String, nullable=False)
    company: Mapped[str | None] = mapped_column(String, default=None)


class Photo(IntIDMixin, Base):
    __tablename__ = "photos"

    trip_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    caption: Mapped[str | None] = mapped_column(Text, default=None)
    thumbnail_path: Mapped[str | None] = mapped_column(String, default=None)
    file_path: Mapped[str | None] = mapped_column(String, default=None)
    taken_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )


class PhotoAlbum(IntIDMixin, Base):
    __tablename__ = "photo_albums"

    trip_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)


class JournalEntry(IntIDMixin, Base):
    __tablename__ = "journal_entries"

    trip_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    title: Mapped[str | None] = mapped_column(String, default=None)
    date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)


TripEntity = (
    Location | Activity | Lodging | Transportation | Photo | PhotoAlbum | JournalEntry
)


def entity_model(entity_type: EntityType) -> type[TripEntity]:
    """Return the mapped class holding rows of ``entity_type``.

    Exhaustive over ``EntityType``; a new member fails type checking here
    until it is given a table.
    """
    match entity_type:
        case EntityType.LOCATION:
            return Location
        case EntityType.ACTIVITY:
            return Activity
        case EntityType.LODGING:
            return Lodging
        case EntityType.TRANSPORTATION:
            return Transportation
        case EntityType.PHOTO:
            return Photo
        case EntityType.PHOTO_ALBUM:
            return PhotoAlbum
        case EntityType.JOURNAL_ENTRY:
            return JournalEntry
        case _:
            assert_never(entity_type)
