from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession
from attendance_api.database import get_db
from attendance_api.models.user import User
from attendance_api.core.enums import Role
from attendance_api.core.exceptions import AuthError, ForbiddenError
from attendance_api.core.security import decode_access_token
from attendance_api.services import users

reusable_oauth2 = HTTPBearer(auto_error=False)

async def get_current_user(
    db: AsyncSession = Depends(get_db),
    token: Optional[HTTPAuthorizationCredentials] = Depends(reusable_oauth2)
) -> User:
    if token is None or not token.credentials:
        raise AuthError("Access denied. No token provided.")

    try:
        payload = decode_access_token(token.credentials)
        user_id = int(payload.get("sub"))
    except (JWTError, TypeError, ValueError):
        raise AuthError("Invalid or expired token.")

    # Re-read the user so deactivation takes effect on already-issued tokens
    user = await users.find_by_id(db, user_id)
    if user is None:
        raise AuthError("User not found.")
    if not user.is_active:
        raise AuthError("Account has been deactivated.")
    return user


def require_role(*roles: Role):
    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise ForbiddenError("Access denied. Insufficient permissions.")
        return current_user
    return checker


get_current_admin = require_role(Role.ADMIN)
