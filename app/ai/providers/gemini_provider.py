from __future__ import annotations

import logging
from typing import Any

from google import genai
from google.genai import types as genai_types

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

_SAFETY_CATEGORIES = (
    genai_types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
    genai_types.HarmCategory.HARM_CATEGORY_HARASSMENT,
    genai_types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
    genai_types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
)


class GeminiProvider:
    """Gemini adapter.

    Document transcription is off by default: with ``document_extraction=False``
    the adapter reports ``supports_documents = False`` and the orchestrator
    moves straight to the next tier for ``extract_text`` without marking
    Gemini down.
    """

    name = "gemini"

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        timeout_s: float = 30.0,
        temperature: float = 0.2,
        document_extraction: bool = False,
    ):
        self._model = model
        self._temperature = temperature
        self._document_extraction = document_extraction
        self._client: genai.Client | None = None
        key = (api_key or "").strip()
        if key:
            self._client = genai.Client(
                api_key=key,
                http_options=genai_types.HttpOptions(timeout=int(timeout_s * 1000)),
            )

    @property
    def configured(self) -> bool:
        return self._client is not None

    @property
    def supports_documents(self) -> bool:
        return self._document_extraction

    def _require_client(self) -> genai.Client:
        if self._client is None:
            raise ProviderUnavailable(
                self.name, describe_provider_error(self.name, "key_missing"), code="key_missing"
            )
        return self._client

    def _config(self, *, system: str | None, json_mode: bool, max_output_tokens: int | None = None):
        return genai_types.GenerateContentConfig(
            system_instruction=system,
            temperature=self._temperature,
            max_output_tokens=max_output_tokens,
            response_mime_type="application/json" if json_mode else None,
            safety_settings=[
                genai_types.SafetySetting(
                    category=category,
                    threshold=genai_types.HarmBlockThreshold.BLOCK_ONLY_HIGH,
                )
                for category in _SAFETY_CATEGORIES
            ],
        )

    async def _generate(self, contents: Any, config: genai_types.GenerateContentConfig) -> str:
        client = self._require_client()
        try:
            response = await client.aio.models.generate_content(
                model=self._model,
                contents=contents,
                config=config,
            )
        except Exception as exc:  # noqa: BLE001
            code = classify_provider_error(exc)
            logger.warning("gemini_call_failed model=%s code=%s: %s", self._model, code, exc)
            raise ProviderUnavailable(self.name, describe_provider_error(self.name, code, str(exc)), code=code) from exc

        text = response.text
        if not text or not text.strip():
            raise ProviderUnavailable(
                self.name, describe_provider_error(self.name, "empty_response"), code="empty_response"
            )
        return text

    @staticmethod
    def _split(messages: list[ChatMessage]) -> tuple[str, str]:
        system = "\n\n".join(m.content for m in messages if m.role == "system")
        user = "\n\n".join(m.content for m in messages if m.role != "system")
        return system, user

    async def analyze(self, resume_text: str, job_description: str | None = None) -> str:
        system, user = self._split(build_analysis_messages(resume_text, job_description))
        return await self._generate(user, self._config(system=system, json_mode=True))

    async def match(self, resume_text: str) -> str:
        system, user = self._split(build_match_messages(resume_text))
        return await self._generate(user, self._config(system=system, json_mode=True))

    async def extract_text(self, file_bytes: bytes, mime_type: str) -> str:
        if not self._document_extraction:
            raise ProviderUnavailable(
                self.name,
                "Gemini document extraction is disabled; set GEMINI_DOCUMENT_EXTRACTION=1 to enable it.",
                code="unsupported",
            )
        contents = [
            EXTRACT_INSTRUCTION,
            genai_types.Part.from_bytes(data=file_bytes, mime_type=mime_type),
        ]
        text = await self._generate(contents, self._config(system=EXTRACT_SYSTEM, json_mode=False, max_output_tokens=4000))
        return text.strip()

    async def probe(self) -> ProviderStatus:
        if not self.configured:
            return ProviderStatus(
                is_valid=False, message=describe_provider_error(self.name, "key_missing"), code="key_missing"
            )
        try:
            text = await self._generate(
                PROBE_PROMPT, self._config(system=None, json_mode=False, max_output_tokens=10)
            )
        except ProviderUnavailable as exc:
            return ProviderStatus(is_valid=False, message=str(exc), code=exc.code)
        if "online" not in text.lower():
            return ProviderStatus(
                is_valid=False,
                message=describe_provider_error(self.name, "unexpected_response"),
                code="unexpected_response",
            )
        return ProviderStatus(is_valid=True, message="Gemini API is operational", code="ok")


def from_config(config) -> GeminiProvider:
    return GeminiProvider(
        model=config.gemini_model,
        api_key=config.gemini_api_key,
        timeout_s=config.timeout_s,
        document_extraction=config.gemini_document_extraction,
    )
