from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

ServiceName = Literal["openai", "gemini", "mock"]
ProviderStatusCode = Literal[
    "ok",
    "unchecked",
    "key_missing",
    "auth_error",
    "quota_exceeded",
    "timeout",
    "transport_error",
    "empty_response",
    "unexpected_response",
    "malformed_response",
    "unsupported",
    "unknown_error",
]

MAX_RECOMMENDATIONS = 7


def clamp_score(value: int) -> int:
    return max(0, min(100, int(value)))


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalysisResult(WireModel):
    overall_score: int = 0
    ats_compatibility: int = 0
    keyword_optimization: int = 0
    experience_relevance: int = 0
    recommendations: list[str] = Field(default_factory=list)

    @field_validator("overall_score", "ats_compatibility", "keyword_optimization", "experience_relevance")
    @classmethod
    def _clamp(cls, value: int) -> int:
        return clamp_score(value)

    @field_validator("recommendations")
    @classmethod
    def _bound_recommendations(cls, value: list[str]) -> list[str]:
        cleaned = [item.strip() for item in value if item and item.strip()]
        return cleaned[:MAX_RECOMMENDATIONS]


class JobMatch(WireModel):
    id: str
    title: str = ""
    company: str = ""
    location: str = ""
    salary: str = ""
    posted_date: str = ""
    match_score: int = 0

    @field_validator("match_score")
    @classmethod
    def _clamp(cls, value: int) -> int:
        return clamp_score(value)


class ProviderStatus(WireModel):
    is_valid: bool
    message: str
    code: ProviderStatusCode = "ok"


class AnalysisOutcome(WireModel):
    result: AnalysisResult
    service_used: ServiceName
    notice: str | None = None


class MatchOutcome(WireModel):
    results: list[JobMatch]
    service_used: ServiceName
    notice: str | None = None


class ExtractTextOutcome(WireModel):
    text: str
    service_used: ServiceName
    notice: str | None = None


class ServiceStatus(WireModel):
    openai: ProviderStatus
    gemini: ProviderStatus
    preferred: ServiceName


class AnalyzeRequest(WireModel):
    resume_text: str = Field(min_length=1, max_length=50000)
    job_description: str | None = Field(default=None, max_length=50000)

    @field_validator("resume_text")
    @classmethod
    def _require_text(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Resume text is required")
        return value


class JobMatchRequest(WireModel):
    resume_text: str = Field(min_length=1, max_length=50000)

    @field_validator("resume_text")
    @classmethod
    def _require_text(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Resume text is required")
        return value


class UploadOutcome(WireModel):
    resume_text: str
    analysis: AnalysisResult
    resume_id: int | None = None
    text_source: ServiceName
    analysis_source: ServiceName
    notice: str | None = None
