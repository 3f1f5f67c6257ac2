# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Triplinks Contributors

from fastapi import APIRouter

from triplinks.api.links import router as links_router

v1_router = APIRouter()
v1_router.include_router(links_router)
