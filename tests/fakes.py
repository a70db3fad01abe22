import asyncio

from app.ai.errors import ProviderUnavailable
from app.schemas.ai import ProviderStatus

ANALYSIS_JSON = (
    '{"overallScore": 82, "atsCompatibility": 75, "keywordOptimization": 64, '
    '"experienceRelevance": 90, "recommendations": ["Quantify achievements", "Add a skills section"]}'
)
MATCHES_JSON = (
    '{"jobs": [{"id": "j-1", "title": "Backend Engineer", "company": "Acme", "location": "Remote", '
    '"salary": "$120k", "postedDate": "2024-05-01", "matchScore": 88}, '
    '{"id": "j-2", "title": "Platform Engineer", "company": "Globex", "location": "Berlin", '
    '"salary": "$110k", "postedDate": "2024-05-03", "matchScore": 81}]}'
)


class FakeProvider:
    """Scriptable provider; each reply is a string or an exception to raise."""

    def __init__(
        self,
        name,
        *,
        configured=True,
        supports_documents=True,
        analysis=ANALYSIS_JSON,
        matches=MATCHES_JSON,
        text="Jane Doe\nSenior Engineer",
        probe_status=None,
        delay=0.0,
    ):
        self.name = name
        self._configured = configured
        self._supports_documents = supports_documents
        self.analysis = analysis
        self.matches = matches
        self.text = text
        self.probe_status = probe_status or ProviderStatus(is_valid=True, message="ok", code="ok")
        self.delay = delay
        self.calls = {"analyze": 0, "match": 0, "extract_text": 0, "probe": 0}

    @property
    def configured(self):
        return self._configured

    @property
    def supports_documents(self):
        return self._supports_documents

    async def _reply(self, task, value):
        self.calls[task] += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(value, BaseException):
            raise value
        return value

    async def analyze(self, resume_text, job_description=None):
        return await self._reply("analyze", self.analysis)

    async def match(self, resume_text):
        return await self._reply("match", self.matches)

    async def extract_text(self, file_bytes, mime_type):
        return await self._reply("extract_text", self.text)

    async def probe(self):
        return await self._reply("probe", self.probe_status)


def quota_error(name):
    return ProviderUnavailable(name, "quota exceeded", code="quota_exceeded")
