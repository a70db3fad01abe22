from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Protocol, Sequence, TypeVar

from app.ai.availability import AvailabilityTracker
from app.ai.config import KNOWN_PROVIDERS
from app.ai.errors import (
    AllProvidersExhausted,
    MalformedResponse,
    NoFileProvided,
    classify_provider_error,
    describe_provider_error,
)
from app.ai.mock import MockGenerator
from app.ai.normalizer import normalize_analysis, normalize_matches
from app.ai.types import AIProvider, TaskName
from app.schemas.ai import (
    AnalysisOutcome,
    AnalysisResult,
    ExtractTextOutcome,
    JobMatch,
    MatchOutcome,
    ProviderStatus,
    ServiceName,
    ServiceStatus,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SUBJECTS: dict[str, str] = {
    "analyze": "This analysis was",
    "match": "These job matches were",
    "extract_text": "This resume text was",
}


class RunRecorder(Protocol):
    def __call__(
        self,
        *,
        task: str,
        service_used: str,
        attempts: Sequence[str],
        degraded: bool,
        latency_ms: int,
    ) -> None: ...


@dataclass
class _TaskRun:
    task: TaskName
    attempts: list[str] = field(default_factory=list)
    degraded: bool = False
    started: float = field(default_factory=time.perf_counter)


def _label(name: str) -> str:
    return "OpenAI" if name == "openai" else name.capitalize()


def mock_notice(task: TaskName, reason: str = "no AI provider is currently available") -> str:
    return f"{_SUBJECTS[task]} generated using a mock service because {reason}."


def secondary_notice(task: TaskName, name: str) -> str:
    return f"{_SUBJECTS[task]} served by {_label(name)} because a higher-priority AI provider was unavailable."


class AIOrchestrator:
    """Runs each task through the provider priority order, then the mock tier.

    Providers are tried strictly in sequence. A provider whose cached flag is
    down is skipped without a call; any failure while calling or normalizing
    marks it down and moves on. The mock tier always answers.
    """

    def __init__(
        self,
        providers: Mapping[str, AIProvider],
        tracker: AvailabilityTracker,
        *,
        order: Sequence[str] = KNOWN_PROVIDERS,
        timeout_s: float = 30.0,
        probe_before_call: bool = False,
        mock: MockGenerator | None = None,
        run_recorder: RunRecorder | None = None,
    ):
        self._providers = dict(providers)
        self._tracker = tracker
        self._order = tuple(order)
        self._timeout_s = timeout_s
        self._probe_before_call = probe_before_call
        self._mock = mock or MockGenerator()
        self._run_recorder = run_recorder

    @property
    def tracker(self) -> AvailabilityTracker:
        return self._tracker

    @property
    def order(self) -> tuple[str, ...]:
        return self._order

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    async def analyze(self, resume_text: str, job_description: str | None = None) -> AnalysisOutcome:
        run = _TaskRun(task="analyze")
        if not (resume_text or "").strip():
            result = self._mock.mock_analyze(resume_text or "", job_description)
            return self._finish(run, AnalysisOutcome(
                result=result,
                service_used="mock",
                notice=mock_notice("analyze", "the resume text was empty"),
            ))

        async def call(provider: AIProvider) -> AnalysisResult:
            raw = await provider.analyze(resume_text, job_description)
            return normalize_analysis(raw)

        result, served_by = await self._run(run, call)
        if served_by is None:
            self._log_exhausted(run)
            return self._finish(run, AnalysisOutcome(
                result=self._mock.mock_analyze(resume_text, job_description),
                service_used="mock",
                notice=mock_notice("analyze"),
            ))
        return self._finish(run, AnalysisOutcome(
            result=result,
            service_used=served_by,
            notice=secondary_notice("analyze", served_by) if run.degraded else None,
        ))

    async def match(self, resume_text: str) -> MatchOutcome:
        run = _TaskRun(task="match")
        if not (resume_text or "").strip():
            return self._finish(run, MatchOutcome(
                results=self._mock.mock_match(resume_text or ""),
                service_used="mock",
                notice=mock_notice("match", "the resume text was empty"),
            ))

        async def call(provider: AIProvider) -> list[JobMatch]:
            raw = await provider.match(resume_text)
            return normalize_matches(raw)

        results, served_by = await self._run(run, call)
        if served_by is None:
            self._log_exhausted(run)
            return self._finish(run, MatchOutcome(
                results=self._mock.mock_match(resume_text),
                service_used="mock",
                notice=mock_notice("match"),
            ))
        return self._finish(run, MatchOutcome(
            results=results,
            service_used=served_by,
            notice=secondary_notice("match", served_by) if run.degraded else None,
        ))

    async def extract_text(self, file_bytes: bytes, mime_type: str) -> ExtractTextOutcome:
        if not file_bytes:
            raise NoFileProvided()
        run = _TaskRun(task="extract_text")

        async def call(provider: AIProvider) -> str:
            text = await provider.extract_text(file_bytes, mime_type)
            if not text.strip():
                raise MalformedResponse(text, "Extracted text was empty.")
            return text

        text, served_by = await self._run(run, call, needs_documents=True)
        if served_by is None:
            self._log_exhausted(run)
            return self._finish(run, ExtractTextOutcome(
                text=self._mock.mock_extract_text(file_bytes, mime_type),
                service_used="mock",
                notice=mock_notice("extract_text", "no AI provider could read the document"),
            ))
        return self._finish(run, ExtractTextOutcome(
            text=text,
            service_used=served_by,
            notice=secondary_notice("extract_text", served_by) if run.degraded else None,
        ))

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    async def probe(self, name: str) -> ProviderStatus:
        provider = self._providers.get(name)
        if provider is None:
            raise KeyError(name)
        if not provider.configured:
            status = ProviderStatus(
                is_valid=False, message=describe_provider_error(name, "key_missing"), code="key_missing"
            )
            self._tracker.mark_down(name, status)
            return status
        return await self._tracker.probe(name)

    async def status(self, refresh: bool = True) -> ServiceStatus:
        statuses: dict[str, ProviderStatus] = {}
        for name in KNOWN_PROVIDERS:
            provider = self._providers.get(name)
            if provider is None or name not in self._order:
                statuses[name] = ProviderStatus(
                    is_valid=False,
                    message=f"{_label(name)} is not enabled in AI_PROVIDER_ORDER.",
                    code="unsupported",
                )
            elif not provider.configured:
                statuses[name] = ProviderStatus(
                    is_valid=False, message=describe_provider_error(name, "key_missing"), code="key_missing"
                )
            elif refresh:
                statuses[name] = await self._tracker.probe(name)
            else:
                statuses[name] = self._tracker.get_status(name)
        return ServiceStatus(**statuses, preferred=self.preferred())

    def preferred(self) -> ServiceName:
        for name in self._order:
            provider = self._providers.get(name)
            if provider is not None and provider.configured and self._tracker.is_available(name):
                return name  # type: ignore[return-value]
        return "mock"

    async def reprobe_down_providers(self) -> dict[str, ProviderStatus]:
        results: dict[str, ProviderStatus] = {}
        for name in self._tracker.down_providers():
            provider = self._providers.get(name)
            if provider is None or not provider.configured:
                continue
            results[name] = await self._tracker.probe(name)
        return results

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run(
        self,
        run: _TaskRun,
        call: Callable[[AIProvider], Awaitable[T]],
        *,
        needs_documents: bool = False,
    ) -> tuple[T | None, ServiceName | None]:
        for name in self._order:
            provider = self._providers.get(name)
            if provider is None or not provider.configured:
                self._log_skip(run, name, "not_configured")
                continue
            if needs_documents and not provider.supports_documents:
                self._log_skip(run, name, "documents_unsupported")
                continue
            if not self._tracker.is_available(name):
                run.degraded = True
                self._log_skip(run, name, "marked_down")
                continue
            if self._probe_before_call:
                status = await self._tracker.probe(name)
                if not status.is_valid:
                    run.degraded = True
                    self._log_skip(run, name, f"probe_{status.code}")
                    continue

            run.attempts.append(name)
            try:
                value = await asyncio.wait_for(call(provider), timeout=self._timeout_s)
            except Exception as exc:  # noqa: BLE001
                run.degraded = True
                self._on_failure(run, name, exc)
                continue

            self._tracker.mark_up(name)
            return value, name  # type: ignore[return-value]
        return None, None

    def _on_failure(self, run: _TaskRun, name: str, exc: Exception) -> None:
        code = "malformed_response" if isinstance(exc, MalformedResponse) else classify_provider_error(exc)
        message = describe_provider_error(name, code, str(exc))
        self._tracker.mark_down(name, ProviderStatus(is_valid=False, message=message, code=code))
        details: dict[str, Any] = {
            "event": "ai_provider_failed",
            "task": run.task,
            "provider": name,
            "step": "normalize" if isinstance(exc, MalformedResponse) else "call",
            "code": code,
            "error": str(exc)[:300],
        }
        if isinstance(exc, MalformedResponse):
            details["raw_preview"] = exc.raw_text[:300]
        logger.warning(json.dumps(details))

    def _log_skip(self, run: _TaskRun, name: str, reason: str) -> None:
        logger.info(json.dumps({"event": "ai_provider_skipped", "task": run.task, "provider": name, "reason": reason}))

    def _log_exhausted(self, run: _TaskRun) -> None:
        exhausted = AllProvidersExhausted(run.attempts)
        logger.warning(json.dumps({"event": "ai_fallback_mock", "task": run.task, "reason": str(exhausted)}))

    def _finish(self, run: _TaskRun, outcome: T) -> T:
        latency_ms = int((time.perf_counter() - run.started) * 1000)
        service_used = getattr(outcome, "service_used", "mock")
        logger.info(
            json.dumps(
                {
                    "event": "ai_task_complete",
                    "task": run.task,
                    "service_used": service_used,
                    "attempts": run.attempts,
                    "degraded": run.degraded or service_used == "mock",
                    "duration_ms": latency_ms,
                }
            )
        )
        if self._run_recorder is not None:
            try:
                self._run_recorder(
                    task=run.task,
                    service_used=service_used,
                    attempts=list(run.attempts),
                    degraded=run.degraded or service_used == "mock",
                    latency_ms=latency_ms,
                )
            except Exception:  # pragma: no cover
                logger.debug("ai_run_recording_failed", exc_info=True)
        return outcome
