# ticketing/models/user.py
from pydantic import BaseModel
from typing import Optional

ROLES = ("admin", "guard")


class UserBase(BaseModel):
    username: str
    email: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    role: str = "guard"


class UserCreate(UserBase):
    password: str


class User(UserBase):
    id: str
    is_active: bool = True


class UserUpdate(BaseModel):
    role: Optional[str] = None
    is_active: Optional[bool] = None


class Token(BaseModel):
    access_token: str
    token_type: str


class TokenData(BaseModel):
    username: Optional[str] = None
