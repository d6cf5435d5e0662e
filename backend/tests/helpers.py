from app.core.security import create_access_token
from app.models import User


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user.id, user.email)
    return {"Authorization": f"Bearer {token}"}
