from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.core.memory_store import DuplicateRecordError, MemoryStore, get_store
from app.core.rate_limit import rate_limit
from app.core.security import require_api_key
from app.schemas.records import WaitlistCreate, WaitlistEntry

router = APIRouter()


@router.post("/waitlist", status_code=status.HTTP_201_CREATED)
@rate_limit()
async def join_waitlist(
    request: Request,
    payload: WaitlistCreate,
    store: MemoryStore = Depends(get_store),
):
    _ = request
    try:
        entry = store.add_to_waitlist(payload)
    except DuplicateRecordError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return {
        "message": "Successfully added to waitlist",
        "data": entry.model_dump(mode="json", by_alias=True),
    }


@router.get("/waitlist", response_model=list[WaitlistEntry])
def list_waitlist(
    _: None = Depends(require_api_key),
    store: MemoryStore = Depends(get_store),
):
    return store.get_waitlist_entries()
