from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=100)


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=100)
    firstName: str = Field(min_length=1)
    lastName: str = Field(min_length=1)
    adminKey: str = Field(min_length=10)


class ChangePasswordRequest(BaseModel):
    currentPassword: str = Field(min_length=6)
    newPassword: str = Field(min_length=8, max_length=100)
