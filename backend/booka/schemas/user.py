"""Pydantic v2 schemas for the current user's profile."""

from pydantic import BaseModel, EmailStr, Field, model_validator


class UserUpdate(BaseModel):
    """Partial profile update. At least one field must be provided."""

    name: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = None

    @model_validator(mode="after")
    def check_not_empty(self) -> "UserUpdate":
        if self.name is None and self.email is None:
            raise ValueError("at least one of name or email must be provided")
        return self
