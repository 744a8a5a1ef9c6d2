# ticketing/utils/auth_utils.py
from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt
from fastapi import Depends, Request

from ticketing import config
from ticketing.database import USERS, get_database
from ticketing.exceptions import ForbiddenError, UnauthorizedError
from ticketing.models.user import TokenData


def create_access_token(data: dict, expires_delta: timedelta = None):
    """Generate JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta if expires_delta else timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


async def get_user(db, username: str):
    """Fetch user from database by username."""
    return await db[USERS].find_one({"username": username}, {"_id": 0})


async def get_current_user(request: Request, db=Depends(get_database)):
    """Extract JWT token from Authorization header and validate user."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise UnauthorizedError("Invalid authorization header")

    token = auth_header.split(" ")[1]  # Extract token after "Bearer"

    try:
        payload = jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
        username: str = payload.get("sub")
        if username is None:
            raise UnauthorizedError("Invalid token")
        token_data = TokenData(username=username)
    except JWTError:
        raise UnauthorizedError("Invalid credentials")

    user = await get_user(db, token_data.username)
    if user is None:
        raise UnauthorizedError("User not found")
    if not user.get("is_active", True):
        raise UnauthorizedError("User account is disabled")

    return user


def require_role(*roles: str):
    """Dependency factory admitting only users whose role is in ``roles``."""

    async def checker(user=Depends(get_current_user)):
        if user.get("role") not in roles:
            raise ForbiddenError(f"Only {' or '.join(roles)} users can perform this action")
        return user

    return checker


async def get_optional_user(request: Request, db=Depends(get_database)):
    if not request.headers.get("Authorization"):
        return None
    return await get_current_user(request, db)
