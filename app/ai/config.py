from __future__ import annotations

from dataclasses import dataclass

from app.core.config import _get_env, _get_env_bool, _get_env_float, _get_env_list

KNOWN_PROVIDERS = ("openai", "gemini")


def _looks_like_placeholder(value: str) -> bool:
    lower = value.strip().lower()
    return lower.startswith("your_") or lower.startswith("replace_") or lower in {"changeme", "todo"}


def _get_api_key(name: str) -> str | None:
    raw = (_get_env(name) or "").strip()
    if not raw or _looks_like_placeholder(raw):
        return None
    return raw


@dataclass(frozen=True)
class AIConfig:
    provider_order: tuple[str, ...]
    openai_api_key: str | None
    openai_model: str
    openai_base_url: str | None
    gemini_api_key: str | None
    gemini_model: str
    gemini_document_extraction: bool
    timeout_s: float
    probe_before_call: bool
    probe_on_startup: bool
    reprobe_interval_s: float


def _provider_order() -> tuple[str, ...]:
    order = [name.lower() for name in _get_env_list("AI_PROVIDER_ORDER", list(KNOWN_PROVIDERS))]
    unknown = [name for name in order if name not in KNOWN_PROVIDERS]
    if unknown:
        raise ValueError(f"Unsupported AI_PROVIDER_ORDER entries: {', '.join(unknown)}")
    return tuple(dict.fromkeys(order))


def load_ai_config() -> AIConfig:
    return AIConfig(
        provider_order=_provider_order(),
        openai_api_key=_get_api_key("OPENAI_API_KEY"),
        openai_model=(_get_env("OPENAI_MODEL", "gpt-4o") or "gpt-4o").strip(),
        openai_base_url=(_get_env("OPENAI_BASE_URL") or "").strip() or None,
        gemini_api_key=_get_api_key("GEMINI_API_KEY"),
        gemini_model=(_get_env("GEMINI_MODEL", "gemini-1.5-pro") or "gemini-1.5-pro").strip(),
        gemini_document_extraction=_get_env_bool("GEMINI_DOCUMENT_EXTRACTION", False),
        timeout_s=max(1.0, _get_env_float("AI_TIMEOUT_S", 30.0)),
        probe_before_call=_get_env_bool("AI_PROBE_BEFORE_CALL", False),
        probe_on_startup=_get_env_bool("AI_PROBE_ON_STARTUP", False),
        reprobe_interval_s=max(0.0, _get_env_float("AI_REPROBE_INTERVAL_S", 300.0)),
    )
