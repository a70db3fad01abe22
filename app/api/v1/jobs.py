from fastapi import APIRouter, Depends, HTTPException, status

from app.core.memory_store import MemoryStore, get_store
from app.schemas.records import JobDescription, JobDescriptionCreate

router = APIRouter()


@router.post("/jobs", response_model=JobDescription, status_code=status.HTTP_201_CREATED)
def create_job_description(payload: JobDescriptionCreate, store: MemoryStore = Depends(get_store)):
    return store.save_job_description(payload)


@router.get("/jobs/user/{user_id}", response_model=list[JobDescription])
def list_user_job_descriptions(user_id: int, store: MemoryStore = Depends(get_store)):
    return store.get_job_descriptions_by_user_id(user_id)


@router.get("/jobs/{job_id}", response_model=JobDescription)
def get_job_description(job_id: int, store: MemoryStore = Depends(get_store)):
    job = store.get_job_description(job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job description not found")
    return job
