from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_user
from app.core.exceptions import BadRequestError
from app.core.security import create_access_token, verify_password
from app.db.session import get_session
from app.loader import APP_LOGGER
from app.models.user import User
from app.schemas.auth import LoginResult
from app.schemas.common import ApiResponse
from app.schemas.user import UserRead

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=ApiResponse[LoginResult])
async def login_user(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[LoginResult]:
    # OAuth2PasswordRequestForm кладёт email в поле username
    normalized_email = form_data.username.strip().lower()

    query = select(User).where(User.email == normalized_email)
    result = await session.execute(query)
    user = result.scalar_one_or_none()

    if user is None or not verify_password(form_data.password, user.hashed_password):
        APP_LOGGER.warning("[auth.login] invalid credentials email=%s", normalized_email)
        raise BadRequestError("Неверный email или пароль")

    access_token = create_access_token(user.id, user.email)
    APP_LOGGER.info("[auth.login] user_id=%s logged in", user.id)

    return ApiResponse[LoginResult](
        message="Вход выполнен",
        data=LoginResult(
            access_token=access_token,
            user=UserRead.model_validate(user),
        ),
    )


@router.get("/me", response_model=ApiResponse[UserRead])
async def read_me(current_user: User = Depends(get_current_user)) -> ApiResponse[UserRead]:
    """Возвращает профиль текущего пользователя."""
    return ApiResponse[UserRead](
        message="Пользователь найден",
        data=UserRead.model_validate(current_user),
    )
