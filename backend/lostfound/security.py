from __future__ import annotations

import os
from typing import Optional
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired

_DEFAULT_MAX_AGE = 60 * 60 * 24 * 30  # 30 days


def _serializer(secret_key: str | None = None) -> URLSafeTimedSerializer:
    secret = secret_key or os.getenv("SECRET_KEY", "change-me")
    # Salt provides namespace isolation for tokens
    return URLSafeTimedSerializer(secret_key=secret, salt="auth-token")


def issue_token(user_id: int, secret_key: str | None = None) -> str:
    """Issue a signed token for a user. Payload is minimal: {"id": int}."""
    return _serializer(secret_key).dumps({"id": int(user_id)})


def verify_token(token: str, secret_key: str | None = None, max_age: int | None = None) -> Optional[int]:
    """Verify a token and return the user id if valid, else None."""
    if max_age is None:
        try:
            max_age = int(os.getenv("AUTH_TOKEN_MAX_AGE", str(_DEFAULT_MAX_AGE)))
        except ValueError:
            max_age = _DEFAULT_MAX_AGE
    try:
        data = _serializer(secret_key).loads(token, max_age=max_age)
    except (BadSignature, SignatureExpired):
        return None
    if not isinstance(data, dict) or data.get("id") is None:
        return None
    try:
        return int(data["id"])
    except (TypeError, ValueError):
        return None
