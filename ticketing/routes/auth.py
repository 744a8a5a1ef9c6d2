# ticketing/routes/auth.py
from fastapi import APIRouter, Depends
from ticketing.database import SYSTEM, USERS, get_database
from ticketing.exceptions import ForbiddenError, UnauthorizedError, ValidationError
from ticketing.models.user import ROLES, UserCreate, User, Token
from ticketing.utils.auth_utils import create_access_token, get_optional_user
from ticketing.logger_config import logger
from datetime import datetime, timedelta, timezone
from passlib.context import CryptContext
from pymongo.errors import DuplicateKeyError
import uuid
from pydantic import BaseModel

from ticketing import config

router = APIRouter()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

BOOTSTRAP_MARKER = "first_admin_registered"


def get_password_hash(password):
    return pwd_context.hash(password)


def check_role(role: str):
    if role not in ROLES:
        raise ValidationError(f"Invalid role. Role must be one of: {', '.join(ROLES)}.")


async def create_user(db, user: UserCreate) -> User:
    """Validate and store a new account; shared by registration and admin user management."""
    check_role(user.role)

    # Check if username or email already exists
    existing_user = await db[USERS].find_one({"$or": [{"username": user.username}, {"email": user.email}]})
    if existing_user:
        if existing_user["username"] == user.username:
            raise ValidationError("Username already taken.")
        raise ValidationError("Email already registered.")

    user_data = user.model_dump()
    user_data["id"] = str(uuid.uuid4())
    user_data["password"] = get_password_hash(user.password)
    user_data["is_active"] = True
    user_data["created_at"] = datetime.now(timezone.utc).isoformat()

    try:
        await db[USERS].insert_one(user_data)
    except DuplicateKeyError:
        raise ValidationError("Username already taken.")
    logger.info(f"Registered {user.role} user {user.username}")

    return User(**user_data)


async def claim_bootstrap(db, username: str):
    """Only one anonymous registration may ever succeed; the marker's fixed _id makes the claim atomic."""
    if await db[USERS].count_documents({}) > 0:
        raise ForbiddenError("Only admin users can register new accounts")
    try:
        await db[SYSTEM].insert_one({
            "_id": BOOTSTRAP_MARKER,
            "username": username,
            "claimed_at": datetime.now(timezone.utc).isoformat(),
        })
    except DuplicateKeyError:
        raise ForbiddenError("Only admin users can register new accounts")


@router.post("/register", response_model=User)
async def register(user: UserCreate, db=Depends(get_database), caller=Depends(get_optional_user)):
    if caller is not None and caller.get("role") == "admin":
        return await create_user(db, user)
    if caller is not None:
        raise ForbiddenError("Only admin users can register new accounts")

    # The first account bootstraps the system
    check_role(user.role)
    await claim_bootstrap(db, user.username)
    try:
        return await create_user(db, user)
    except Exception:
        await db[SYSTEM].delete_one({"_id": BOOTSTRAP_MARKER})
        raise


class LoginRequest(BaseModel):
    username: str
    password: str


@router.post("/login", response_model=Token)
async def login(credentials: LoginRequest, db=Depends(get_database)):
    user = await db[USERS].find_one({"username": credentials.username})
    if not user or not pwd_context.verify(credentials.password, user["password"]):
        logger.warning(f"Failed login for {credentials.username}")
        raise UnauthorizedError("Invalid credentials")
    if not user.get("is_active", True):
        logger.warning(f"Login attempt for disabled account {credentials.username}")
        raise UnauthorizedError("User account is disabled")

    access_token_expires = timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": credentials.username, "role": user["role"]}, expires_delta=access_token_expires
    )
    return {"access_token": access_token, "token_type": "bearer"}
