# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Triplinks Contributors

from triplinks.repositories.base import BaseRepository
from triplinks.repositories.entity_link_repository import EntityLinkRepository

__all__ = [
    "BaseRepository",
    "EntityLinkRepository",
]
