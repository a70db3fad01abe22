from __future__ import annotations

from datetime import datetime

from pydantic import Field, field_validator

from app.schemas.ai import AnalysisResult, WireModel


class WaitlistCreate(WireModel):
    name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=3, max_length=200)
    profession: str = Field(min_length=1, max_length=200)

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        local, _, domain = normalized.partition("@")
        if not local or "." not in domain:
            raise ValueError("A valid email address is required")
        return normalized


class WaitlistEntry(WaitlistCreate):
    id: int
    created_at: datetime


class ResumeCreate(WireModel):
    user_id: int | None = None
    file_name: str = Field(min_length=1, max_length=255)
    content_text: str


class Resume(ResumeCreate):
    id: int
    analysis: AnalysisResult | None = None
    created_at: datetime
    updated_at: datetime


class JobDescriptionCreate(WireModel):
    user_id: int | None = None
    title: str = Field(min_length=1, max_length=200)
    company: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=50000)
    location: str | None = None
    salary: str | None = None
    posted_date: str | None = None
    url: str | None = None


class JobDescription(JobDescriptionCreate):
    id: int
    created_at: datetime
