from __future__ import annotations

import json
import logging

from app.ai.orchestrator import AIOrchestrator
from app.core.memory_store import MemoryStore
from app.schemas.ai import UploadOutcome
from app.schemas.records import ResumeCreate

logger = logging.getLogger(__name__)


def _combine_notices(*notices: str | None) -> str | None:
    unique = [n for n in dict.fromkeys(notices) if n]
    return " ".join(unique) or None


async def process_upload(
    orchestrator: AIOrchestrator,
    store: MemoryStore,
    *,
    file_bytes: bytes,
    mime_type: str,
    file_name: str,
    user_id: int | None = None,
) -> UploadOutcome:
    """Extract text from an uploaded resume, analyze it and persist both.

    The resume is stored only when ``user_id`` is given. Both AI steps degrade
    independently, so the text may come from one tier and the analysis from
    another.
    """
    extracted = await orchestrator.extract_text(file_bytes, mime_type)

    resume_id: int | None = None
    if user_id is not None:
        saved = store.save_resume(
            ResumeCreate(user_id=user_id, file_name=file_name or "resume", content_text=extracted.text)
        )
        resume_id = saved.id

    analyzed = await orchestrator.analyze(extracted.text)
    if resume_id is not None:
        store.update_resume_analysis(resume_id, analyzed.result)

    logger.info(
        json.dumps(
            {
                "event": "resume_upload_processed",
                "bytes": len(file_bytes),
                "mime_type": mime_type,
                "resume_id": resume_id,
                "text_source": extracted.service_used,
                "analysis_source": analyzed.service_used,
            }
        )
    )
    return UploadOutcome(
        resume_text=extracted.text,
        analysis=analyzed.result,
        resume_id=resume_id,
        text_source=extracted.service_used,
        analysis_source=analyzed.service_used,
        notice=_combine_notices(extracted.notice, analyzed.notice),
    )
