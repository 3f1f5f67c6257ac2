# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Triplinks Contributors

from __future__ import annotations

import jwt

from triplinks.config import get_settings


def decode_access_token(token: str) -> int:
    """Decode a JWT access token and return the user id.

    Tokens are issued upstream with the shared HS256 secret.
    Raises jwt.InvalidTokenError or ValueError on any validation failure.
    """
    settings = get_settings()
    payload = jwt.decode(token, settings.jwt_secret_key, algorithms=["HS256"])
    return int(payload["sub"])
