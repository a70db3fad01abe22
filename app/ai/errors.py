from __future__ import annotations

import asyncio

import openai
from google.genai import errors as genai_errors


class AIServiceError(RuntimeError):
    def __init__(self, message: str, *, code: str = "ai_error"):
        super().__init__(message)
        self.code = code


class ProviderUnavailable(AIServiceError):
    """Auth, quota, transport or empty-content failure of a single provider call."""

    def __init__(self, provider: str, message: str, *, code: str = "unknown_error"):
        super().__init__(message, code=code)
        self.provider = provider


class MalformedResponse(AIServiceError):
    def __init__(self, raw_text: str, message: str = "Response contained no recoverable structure."):
        super().__init__(message, code="malformed_response")
        self.raw_text = raw_text


class InvalidInput(AIServiceError):
    def __init__(self, message: str):
        super().__init__(message, code="invalid_input")


class NoFileProvided(InvalidInput):
    def __init__(self, message: str = "No resume file provided. Please make sure you've selected a file."):
        super().__init__(message)
        self.code = "no_file_provided"


class AllProvidersExhausted(AIServiceError):
    def __init__(self, attempts: list[str]):
        super().__init__(
            f"No AI provider could serve the request (attempted: {', '.join(attempts) or 'none'}).",
            code="all_providers_exhausted",
        )
        self.attempts = attempts


def _status_code(exc: Exception) -> int | None:
    for attr in ("status_code", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


def _is_quota_error(exc: Exception) -> bool:
    s = str(exc).lower()
    return "429" in s or "quota" in s or "rate limit" in s or "resource_exhausted" in s


def _is_auth_error(exc: Exception) -> bool:
    s = str(exc).lower()
    return (
        "401" in s
        or "403" in s
        or "unauthorized" in s
        or "invalid api key" in s
        or "api key not valid" in s
        or "authentication" in s
    )


def classify_provider_error(exc: Exception) -> str:
    if isinstance(exc, ProviderUnavailable):
        return exc.code
    if isinstance(exc, (asyncio.TimeoutError, openai.APITimeoutError)):
        return "timeout"
    if isinstance(exc, openai.AuthenticationError | openai.PermissionDeniedError):
        return "auth_error"
    if isinstance(exc, openai.RateLimitError):
        return "quota_exceeded"
    if isinstance(exc, openai.APIConnectionError):
        return "transport_error"

    status = _status_code(exc) if isinstance(exc, openai.APIStatusError | genai_errors.APIError) else None
    if status == 429 or _is_quota_error(exc):
        return "quota_exceeded"
    if status in {401, 403} or _is_auth_error(exc):
        return "auth_error"
    if isinstance(exc, (ConnectionError, OSError)):
        return "transport_error"
    return "unknown_error"


def describe_provider_error(provider: str, code: str, detail: str = "") -> str:
    label = provider.capitalize() if provider != "openai" else "OpenAI"
    if code == "key_missing":
        env_name = f"{provider.upper()}_API_KEY"
        return f"{label} API key is missing. Please set the {env_name} environment variable."
    if code == "quota_exceeded":
        return f"{label} API quota exceeded. Please check your plan and billing details."
    if code == "auth_error":
        return f"{label} API key was rejected. Please verify the {provider.upper()}_API_KEY value."
    if code == "timeout":
        return f"{label} API did not respond in time."
    if code == "transport_error":
        return f"{label} API could not be reached."
    if code == "empty_response":
        return f"{label} API returned an empty response."
    if code == "unexpected_response":
        return f"{label} API returned an unexpected response."
    suffix = f": {detail}" if detail else ""
    return f"{label} API error{suffix or ': Unknown error'}"
