from pydantic import BaseModel, EmailStr

from app.schemas.user import UserRead


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LoginResult(Token):
    user: UserRead


class TokenPayload(BaseModel):
    sub: str | None = None
    email: EmailStr | None = None
