from __future__ import annotations

import asyncio
import json
import logging
import threading
from typing import Iterable, Mapping

from app.ai.errors import classify_provider_error, describe_provider_error
from app.ai.types import AIProvider
from app.schemas.ai import ProviderStatus

logger = logging.getLogger(__name__)


def _initial_status() -> ProviderStatus:
    return ProviderStatus(is_valid=True, message="Not checked yet", code="unchecked")


class AvailabilityTracker:
    """Advisory per-provider health flags shared by all concurrent tasks.

    Flags start available, flip down on any failed call or probe and flip back
    up only after a successful probe or call. Writes are last-write-wins.
    """

    def __init__(
        self,
        providers: Mapping[str, AIProvider] | None = None,
        names: Iterable[str] = (),
        *,
        probe_timeout_s: float | None = None,
    ):
        self._providers: dict[str, AIProvider] = dict(providers or {})
        self._probe_timeout_s = probe_timeout_s
        self._lock = threading.Lock()
        self._statuses: dict[str, ProviderStatus] = {
            name: _initial_status() for name in (*self._providers, *names)
        }

    def is_available(self, name: str) -> bool:
        with self._lock:
            status = self._statuses.get(name)
        return status is None or status.is_valid

    def get_status(self, name: str) -> ProviderStatus:
        with self._lock:
            return self._statuses.get(name) or _initial_status()

    def mark_down(self, name: str, status: ProviderStatus | None = None) -> None:
        status = status or ProviderStatus(is_valid=False, message="Provider call failed", code="unknown_error")
        if status.is_valid:
            status = status.model_copy(update={"is_valid": False})
        with self._lock:
            was_valid = self._statuses.get(name, _initial_status()).is_valid
            self._statuses[name] = status
        if was_valid:
            logger.warning(json.dumps({"event": "ai_provider_down", "provider": name, "code": status.code}))

    def mark_up(self, name: str, status: ProviderStatus | None = None) -> None:
        status = status or ProviderStatus(is_valid=True, message="Last call succeeded", code="ok")
        with self._lock:
            was_valid = self._statuses.get(name, _initial_status()).is_valid
            self._statuses[name] = status
        if not was_valid:
            logger.info(json.dumps({"event": "ai_provider_up", "provider": name}))

    async def probe(self, name: str) -> ProviderStatus:
        provider = self._providers.get(name)
        if provider is None:
            raise KeyError(name)
        try:
            status = await asyncio.wait_for(provider.probe(), timeout=self._probe_timeout_s)
        except Exception as exc:  # noqa: BLE001
            code = classify_provider_error(exc)
            logger.warning("ai_probe_failed provider=%s code=%s: %s", name, code, exc)
            status = ProviderStatus(
                is_valid=False, message=describe_provider_error(name, code, str(exc)), code=code
            )
        if status.is_valid:
            self.mark_up(name, status)
        else:
            self.mark_down(name, status)
        return status

    def snapshot(self) -> dict[str, ProviderStatus]:
        with self._lock:
            return dict(self._statuses)

    def down_providers(self) -> list[str]:
        with self._lock:
            return [name for name, status in self._statuses.items() if not status.is_valid]

    def reset(self) -> None:
        with self._lock:
            for name in self._statuses:
                self._statuses[name] = _initial_status()
