from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class SimulationEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    slug: str
    title: str
    active: bool = True


class RoleRequestCreate(BaseModel):
    email: str = Field(min_length=3, max_length=200)
    role: str = Field(min_length=1, max_length=200)

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str) -> str:
        cleaned = value.strip()
        if not _EMAIL_RE.match(cleaned):
            raise ValueError("email must be a valid email address")
        return cleaned.lower()

    @field_validator("role")
    @classmethod
    def _validate_role(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("role must not be blank")
        return cleaned


class RoleRequestResponse(BaseModel):
    ok: bool = True
    email_sent: bool = False
