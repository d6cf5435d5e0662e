from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import decode_access_token
from app.db.session import get_session
from app.loader import APP_LOGGER
from app.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.api_prefix}/auth/login")


def credentials_error(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> User:
    """Возвращает текущего пользователя по access-токену."""
    payload = decode_access_token(token)
    if payload is None:
        raise credentials_error("Невалидный токен")

    query = select(User).where(User.id == int(payload.sub))
    result = await session.execute(query)
    user = result.scalar_one_or_none()

    if user is None:
        APP_LOGGER.warning("[auth] token for missing user_id=%s", payload.sub)
        raise credentials_error("Пользователь не найден")

    # токен выдан на старый email, нужен повторный вход
    if payload.email is not None and payload.email.lower() != user.email:
        APP_LOGGER.warning("[auth] token email mismatch user_id=%s", user.id)
        raise credentials_error("Невалидный токен")

    return user
