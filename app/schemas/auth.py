from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field


RoleType = Literal["ADMIN", "COMPANY", "CUSTOMER", "INSTALLATION_TEAM"]


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    remember_me: bool = False


class UserResponse(BaseModel):
    id: str
    email: EmailStr
    first_name: str
    last_name: str
    role: RoleType
    company_id: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AuthSessionResponse(BaseModel):
    user: UserResponse
    access_token: Optional[str] = None
