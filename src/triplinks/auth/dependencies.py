# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Triplinks Contributors

from __future__ import annotations

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from triplinks.auth.tokens import decode_access_token

_bearer_scheme = HTTPBearer()


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer_scheme),
) -> int:
    """Require a valid JWT and return the authenticated user id.

    Whether the user may act on a given trip is decided upstream; the link
    routes trust the caller once the token is valid.
    """
    try:
        return decode_access_token(credentials.credentials)
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
