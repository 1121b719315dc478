import re
from typing import Annotated

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator, model_validator

from .contacts import ContactAlias

COMMON_PASSWORDS = {
    "password", "123456", "12345678", "qwerty", "abc123",
    "password123", "admin", "letmein", "welcome", "monkey",
}
_NAME_RE = re.compile(r"^[a-zA-ZÀ-ÿ\s]+$")


class RegisterIn(BaseModel):
    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=50)]
    email: Annotated[EmailStr, Field(max_length=100)]
    password: Annotated[str, StringConstraints(min_length=8, max_length=128)]
    contacts: list[ContactAlias] = []

    @field_validator("name")
    @classmethod
    def _letters_only(cls, v: str) -> str:
        if not _NAME_RE.match(v):
            raise ValueError("Name can only contain letters and spaces")
        return v

    @field_validator("email")
    @classmethod
    def _lower(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def _strength(cls, v: str) -> str:
        checks = [
            (r"[A-Z]", "Password must contain at least one uppercase letter"),
            (r"[a-z]", "Password must contain at least one lowercase letter"),
            (r"[0-9]", "Password must contain at least one number"),
            (r"[^A-Za-z0-9]", "Password must contain at least one special character"),
        ]
        for pattern, message in checks:
            if not re.search(pattern, v):
                raise ValueError(message)
        if v.lower() in COMMON_PASSWORDS:
            raise ValueError("Please choose a stronger password. Avoid common passwords.")
        return v

    @model_validator(mode="after")
    def _password_without_name(self):
        first_name = self.name.split()[0].lower()
        if first_name in self.password.lower():
            raise ValueError("Password should not contain your name")
        return self


class LoginIn(BaseModel):
    email: Annotated[EmailStr, Field(max_length=100)]
    password: Annotated[str, StringConstraints(min_length=1, max_length=128)]

    @field_validator("email")
    @classmethod
    def _lower(cls, v: str) -> str:
        return v.lower()


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str


class AuthOut(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserOut
