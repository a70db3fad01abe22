from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status

from app.ai.errors import InvalidInput, NoFileProvided
from app.ai.factory import get_orchestrator
from app.ai.orchestrator import AIOrchestrator
from app.core.config import settings
from app.core.memory_store import MemoryStore, RecordNotFoundError, get_store
from app.core.rate_limit import rate_limit
from app.schemas.ai import (
    AnalysisOutcome,
    AnalyzeRequest,
    ExtractTextOutcome,
    JobMatchRequest,
    MatchOutcome,
    UploadOutcome,
)
from app.schemas.records import Resume
from app.services.resume_service import process_upload

router = APIRouter()

DEFAULT_MIME_TYPE = "application/octet-stream"


async def _read_upload(upload: UploadFile | None) -> bytes:
    if upload is None:
        raise NoFileProvided()
    max_bytes = settings.max_upload_mb * 1024 * 1024
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await upload.read(1024 * 64)
        if not chunk:
            break
        total += len(chunk)
        if total > max_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File too large. Maximum allowed size is {settings.max_upload_mb} MB.",
            )
        chunks.append(chunk)
    payload = b"".join(chunks)
    if not payload:
        raise NoFileProvided()
    return payload


def _input_error(exc: InvalidInput) -> HTTPException:
    code = status.HTTP_400_BAD_REQUEST if isinstance(exc, NoFileProvided) else status.HTTP_422_UNPROCESSABLE_ENTITY
    return HTTPException(status_code=code, detail=str(exc))


@router.post("/resume/analyze", response_model=AnalysisOutcome)
@rate_limit(settings.ai_rate_limit)
async def analyze_resume(
    request: Request,
    payload: AnalyzeRequest,
    orchestrator: AIOrchestrator = Depends(get_orchestrator),
):
    _ = request
    return await orchestrator.analyze(payload.resume_text, payload.job_description)


@router.post("/resume/job-matches", response_model=MatchOutcome)
@rate_limit(settings.ai_rate_limit)
async def job_matches(
    request: Request,
    payload: JobMatchRequest,
    orchestrator: AIOrchestrator = Depends(get_orchestrator),
):
    _ = request
    return await orchestrator.match(payload.resume_text)


@router.post("/resume/extract-text", response_model=ExtractTextOutcome)
@rate_limit(settings.ai_rate_limit)
async def extract_text(
    request: Request,
    resume: UploadFile | None = File(default=None),
    orchestrator: AIOrchestrator = Depends(get_orchestrator),
):
    _ = request
    try:
        content = await _read_upload(resume)
        return await orchestrator.extract_text(content, resume.content_type or DEFAULT_MIME_TYPE)
    except InvalidInput as exc:
        raise _input_error(exc) from exc


@router.post("/resume/upload", response_model=UploadOutcome, response_model_exclude_none=True)
@rate_limit(settings.ai_rate_limit)
async def upload_resume(
    request: Request,
    resume: UploadFile | None = File(default=None),
    user_id: int | None = Form(default=None, alias="userId"),
    orchestrator: AIOrchestrator = Depends(get_orchestrator),
    store: MemoryStore = Depends(get_store),
):
    _ = request
    try:
        content = await _read_upload(resume)
        return await process_upload(
            orchestrator,
            store,
            file_bytes=content,
            mime_type=resume.content_type or DEFAULT_MIME_TYPE,
            file_name=resume.filename or "resume",
            user_id=user_id,
        )
    except InvalidInput as exc:
        raise _input_error(exc) from exc
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get("/resume/user/{user_id}", response_model=list[Resume])
def list_user_resumes(user_id: int, store: MemoryStore = Depends(get_store)):
    return store.get_resumes_by_user_id(user_id)


@router.get("/resume/{resume_id}", response_model=Resume)
def get_resume(resume_id: int, store: MemoryStore = Depends(get_store)):
    resume = store.get_resume(resume_id)
    if resume is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resume not found")
    return resume
