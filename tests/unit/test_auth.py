# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Triplinks Contributors

from __future__ import annotations

from datetime import timedelta

import jwt
import pytest

from triplinks.auth.tokens import decode_access_token
from tests.conftest import make_token


class TestAccessTokens:
    def test_token_carries_user_id(self) -> None:
        assert decode_access_token(make_token(42)) == 42

    def test_tampered_token_rejected(self) -> None:
        with pytest.raises(jwt.InvalidTokenError):
            decode_access_token(make_token(42) + "x")

    def test_wrong_secret_rejected(self) -> None:
        token = make_token(1, secret="another-secret-key-of-at-least-32-chars")
        with pytest.raises(jwt.InvalidTokenError):
            decode_access_token(token)

    def test_expired_token_rejected(self) -> None:
        token = make_token(1, expires_in=timedelta(minutes=-5))
        with pytest.raises(jwt.ExpiredSignatureError):
            decode_access_token(token)
