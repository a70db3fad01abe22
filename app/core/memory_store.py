from __future__ import annotations

import threading
from datetime import datetime, timezone

from app.schemas.ai import AnalysisResult
from app.schemas.records import (
    JobDescription,
    JobDescriptionCreate,
    Resume,
    ResumeCreate,
    WaitlistCreate,
    WaitlistEntry,
)


class DuplicateRecordError(Exception):
    pass


class RecordNotFoundError(Exception):
    pass


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryStore:
    """Process-local CRUD store keyed by incrementing integer ids."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._waitlist: dict[int, WaitlistEntry] = {}
        self._resumes: dict[int, Resume] = {}
        self._job_descriptions: dict[int, JobDescription] = {}
        self._next_ids = {"waitlist": 1, "resumes": 1, "job_descriptions": 1}

    def _next_id(self, table: str) -> int:
        value = self._next_ids[table]
        self._next_ids[table] = value + 1
        return value

    def add_to_waitlist(self, data: WaitlistCreate) -> WaitlistEntry:
        with self._lock:
            if any(entry.email == data.email for entry in self._waitlist.values()):
                raise DuplicateRecordError("This email is already on our waitlist")
            entry = WaitlistEntry(**data.model_dump(), id=self._next_id("waitlist"), created_at=_utc_now())
            self._waitlist[entry.id] = entry
            return entry

    def get_waitlist_entries(self) -> list[WaitlistEntry]:
        with self._lock:
            return list(self._waitlist.values())

    def save_resume(self, data: ResumeCreate) -> Resume:
        now = _utc_now()
        with self._lock:
            resume = Resume(
                **data.model_dump(),
                id=self._next_id("resumes"),
                analysis=None,
                created_at=now,
                updated_at=now,
            )
            self._resumes[resume.id] = resume
            return resume

    def get_resume(self, resume_id: int) -> Resume | None:
        with self._lock:
            return self._resumes.get(resume_id)

    def get_resumes_by_user_id(self, user_id: int) -> list[Resume]:
        with self._lock:
            return [resume for resume in self._resumes.values() if resume.user_id == user_id]

    def update_resume_analysis(self, resume_id: int, analysis: AnalysisResult) -> Resume:
        with self._lock:
            resume = self._resumes.get(resume_id)
            if resume is None:
                raise RecordNotFoundError("Resume not found")
            updated = resume.model_copy(update={"analysis": analysis, "updated_at": _utc_now()})
            self._resumes[resume_id] = updated
            return updated

    def save_job_description(self, data: JobDescriptionCreate) -> JobDescription:
        with self._lock:
            job = JobDescription(**data.model_dump(), id=self._next_id("job_descriptions"), created_at=_utc_now())
            self._job_descriptions[job.id] = job
            return job

    def get_job_description(self, job_id: int) -> JobDescription | None:
        with self._lock:
            return self._job_descriptions.get(job_id)

    def get_job_descriptions_by_user_id(self, user_id: int) -> list[JobDescription]:
        with self._lock:
            return [job for job in self._job_descriptions.values() if job.user_id == user_id]

    def clear(self) -> None:
        with self._lock:
            self._waitlist.clear()
            self._resumes.clear()
            self._job_descriptions.clear()
            self._next_ids = {"waitlist": 1, "resumes": 1, "job_descriptions": 1}


store = MemoryStore()


def get_store() -> MemoryStore:
    return store
