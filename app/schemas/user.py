from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from app.models.user import UserRole

class UserLogin(BaseModel):
    # Compared verbatim with User.email, no normalisation
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

class LoginResponse(BaseModel):
    accessToken: str

class UserProfile(BaseModel):
    id: int
    email: str
    name: str
    surname: str
    role: UserRole
    mobileNumber: Optional[str] = None
    id_manager: Optional[int] = None

    @classmethod
    def from_user(cls, user) -> "UserProfile":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            surname=user.surname,
            role=user.role,
            mobileNumber=user.mobile_number,
            id_manager=user.id_manager,
        )

class UserUpdate(BaseModel):
    name: Optional[str] = None
    surname: Optional[str] = None
    mobileNumber: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8)
    role: Optional[UserRole] = None
    id_manager: Optional[int] = None

class MessageResponse(BaseModel):
    message: str
