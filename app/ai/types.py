from dataclasses import dataclass
from typing import Literal, Protocol

from app.schemas.ai import ProviderStatus

Role = Literal["system", "user", "assistant"]
TaskName = Literal["analyze", "match", "extract_text"]


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str


class AIProvider(Protocol):
    name: str

    @property
    def configured(self) -> bool: ...

    @property
    def supports_documents(self) -> bool: ...

    async def analyze(self, resume_text: str, job_description: str | None = None) -> str: ...

    async def match(self, resume_text: str) -> str: ...

    async def extract_text(self, file_bytes: bytes, mime_type: str) -> str: ...

    async def probe(self) -> ProviderStatus: ...
