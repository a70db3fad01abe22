from __future__ import annotations

import base64
import logging
from typing import Any, Sequence

from openai import AsyncOpenAI

from app.ai.errors import ProviderUnavailable, classify_provider_error, describe_provider_error
from app.ai.prompts import (
    EXTRACT_INSTRUCTION,
    EXTRACT_SYSTEM,
    PROBE_PROMPT,
    build_analysis_messages,
    build_match_messages,
)
from app.ai.types import ChatMessage
from app.schemas.ai import ProviderStatus

logger = logging.getLogger(__name__)


class OpenAIProvider:
    name = "openai"
    supports_documents = True

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_s: float = 30.0,
        temperature: float = 0.2,
    ):
        self._model = model
        self._temperature = temperature
        self._api_key = (api_key or "").strip() or None
        self._client: AsyncOpenAI | None = None
        if self._api_key:
            # No SDK retries; the orchestrator moves to the next provider instead.
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=base_url or None,
                timeout=timeout_s,
                max_retries=0,
            )

    @property
    def configured(self) -> bool:
        return self._client is not None

    def _require_client(self) -> AsyncOpenAI:
        if self._client is None:
            raise ProviderUnavailable(
                self.name, describe_provider_error(self.name, "key_missing"), code="key_missing"
            )
        return self._client

    async def _complete(self, messages: Sequence[dict[str, Any]], *, json_mode: bool, max_tokens: int | None = None) -> str:
        client = self._require_client()
        create_kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": list(messages),
            "temperature": self._temperature,
        }
        if json_mode:
            create_kwargs["response_format"] = {"type": "json_object"}
        if max_tokens:
            create_kwargs["max_tokens"] = max_tokens

        try:
            response = await client.chat.completions.create(**create_kwargs)
        except Exception as exc:  # noqa: BLE001
            code = classify_provider_error(exc)
            logger.warning("openai_call_failed model=%s code=%s: %s", self._model, code, exc)
            raise ProviderUnavailable(self.name, describe_provider_error(self.name, code, str(exc)), code=code) from exc

        content = response.choices[0].message.content if response.choices else ""
        if not content or not content.strip():
            raise ProviderUnavailable(
                self.name, describe_provider_error(self.name, "empty_response"), code="empty_response"
            )
        return content

    @staticmethod
    def _payload(messages: Sequence[ChatMessage]) -> list[dict[str, Any]]:
        return [{"role": m.role, "content": m.content} for m in messages]

    async def analyze(self, resume_text: str, job_description: str | None = None) -> str:
        messages = build_analysis_messages(resume_text, job_description)
        return await self._complete(self._payload(messages), json_mode=True)

    async def match(self, resume_text: str) -> str:
        messages = build_match_messages(resume_text)
        return await self._complete(self._payload(messages), json_mode=True)

    async def extract_text(self, file_bytes: bytes, mime_type: str) -> str:
        encoded = base64.b64encode(file_bytes).decode("utf-8")
        messages = [
            {"role": "system", "content": EXTRACT_SYSTEM},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": EXTRACT_INSTRUCTION},
                    {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{encoded}"}},
                ],
            },
        ]
        text = await self._complete(messages, json_mode=False, max_tokens=4000)
        return text.strip()

    async def probe(self) -> ProviderStatus:
        if not self.configured:
            return ProviderStatus(
                is_valid=False, message=describe_provider_error(self.name, "key_missing"), code="key_missing"
            )
        try:
            text = await self._complete(
                [{"role": "user", "content": PROBE_PROMPT}], json_mode=False, max_tokens=5
            )
        except ProviderUnavailable as exc:
            return ProviderStatus(is_valid=False, message=str(exc), code=exc.code)
        if "online" not in text.lower():
            return ProviderStatus(
                is_valid=False,
                message=describe_provider_error(self.name, "unexpected_response"),
                code="unexpected_response",
            )
        return ProviderStatus(is_valid=True, message="OpenAI API is operational", code="ok")


def from_config(config) -> OpenAIProvider:
    return OpenAIProvider(
        model=config.openai_model,
        api_key=config.openai_api_key,
        base_url=config.openai_base_url,
        timeout_s=config.timeout_s,
    )
