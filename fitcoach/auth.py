import logging
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from .config import settings


logger = logging.getLogger(__name__)


def issue_owner_token(owner_id: str, expires_minutes: int | None = None) -> str:
    """Sign a bearer token for ``owner_id``; production tokens come from the identity provider."""
    lifetime = timedelta(minutes=expires_minutes or settings.jwt_expire_minutes)
    claims = {"sub": owner_id, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def owner_id_from_token(token: str) -> str | None:
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        logger.info("Rejected expired bearer token")
        return None
    except JWTError:
        return None

    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        return None
    return subject.strip()
