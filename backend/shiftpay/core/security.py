from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from shiftpay.core.config import get_settings


# Tokens are minted by the identity service; this helper mirrors its claim layout.
def create_access_token(*, subject: str, role: str, expires_minutes: int = 60 * 12) -> str:
    settings = get_settings()
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    payload = {
        "sub": subject,
        "role": role,
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
