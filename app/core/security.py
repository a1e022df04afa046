# Access tokens issued once a login has completed, and
# the identity checks applied at the API boundary.
import time
import jwt
from app.core.config import settings


def is_valid_subject_id(subject_id: str) -> bool:
    # Personal number, YYYYMMDDNNNN
    return (
        isinstance(subject_id, str)
        and len(subject_id) == settings.SUBJECT_ID_LENGTH
        and subject_id.isascii()
        and subject_id.isdigit()
    )


def mask_subject_id(subject_id: str) -> str:
    return subject_id[:8] + "*" * max(len(subject_id) - 8, 0)


def create_access_token(sub: str, extra: dict | None = None, exp_seconds: int | None = None) -> str:
    now = int(time.time())
    payload = {
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "iat": now,
        "nbf": now,
        "exp": now + (exp_seconds or settings.ACCESS_TOKEN_SECONDS),
        "sub": sub,
    }

    if extra:
        payload.update(extra)
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def decode_access_token(token: str) -> dict:
    return jwt.decode(
        token,
        settings.JWT_SECRET,
        algorithms=["HS256"],
        audience=settings.JWT_AUDIENCE,
        issuer=settings.JWT_ISSUER,
    )
