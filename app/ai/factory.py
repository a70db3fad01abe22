from __future__ import annotations

from functools import lru_cache

from app.ai.availability import AvailabilityTracker
from app.ai.config import AIConfig, load_ai_config
from app.ai.orchestrator import AIOrchestrator
from app.ai.providers import gemini_provider, openai_provider
from app.ai.types import AIProvider
from app.analytics.db import log_ai_service_run


def build_providers(cfg: AIConfig) -> dict[str, AIProvider]:
    return {
        "openai": openai_provider.from_config(cfg),
        "gemini": gemini_provider.from_config(cfg),
    }


def build_orchestrator(cfg: AIConfig | None = None) -> AIOrchestrator:
    cfg = cfg or load_ai_config()
    providers = build_providers(cfg)
    tracker = AvailabilityTracker(providers, probe_timeout_s=cfg.timeout_s)
    return AIOrchestrator(
        providers,
        tracker,
        order=cfg.provider_order,
        timeout_s=cfg.timeout_s,
        probe_before_call=cfg.probe_before_call,
        run_recorder=log_ai_service_run,
    )


@lru_cache(maxsize=1)
def get_orchestrator() -> AIOrchestrator:
    return build_orchestrator()
