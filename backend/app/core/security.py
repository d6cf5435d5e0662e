from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError

from app.core.config import settings
from app.loader import APP_LOGGER
from app.schemas.auth import TokenPayload

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    user_id: int,
    email: str,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Выпускает access-токен пользователя.

    В токене лежат id (sub) и email: при смене email старые токены перестают
    приниматься.
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims: dict[str, Any] = {"sub": str(user_id), "email": email, "exp": expire}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> TokenPayload | None:
    """Проверяет подпись и срок токена; None, если токен не годится."""
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        payload = TokenPayload(**claims)
    except (JWTError, ValidationError) as exc:
        APP_LOGGER.warning("[auth] rejected token: %s", exc.__class__.__name__)
        return None

    if payload.sub is None or not payload.sub.isdigit():
        APP_LOGGER.warning("[auth] rejected token without numeric sub")
        return None
    return payload
