from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.ai.factory import get_orchestrator
from app.ai.orchestrator import AIOrchestrator
from app.schemas.ai import ProviderStatus, ServiceStatus

router = APIRouter()


@router.get("/ai/status", response_model=ServiceStatus)
async def ai_status(
    refresh: bool = Query(default=True),
    orchestrator: AIOrchestrator = Depends(get_orchestrator),
):
    return await orchestrator.status(refresh=refresh)


@router.post("/ai/providers/{name}/probe", response_model=ProviderStatus)
async def probe_provider(name: str, orchestrator: AIOrchestrator = Depends(get_orchestrator)):
    try:
        return await orchestrator.probe(name.lower())
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown AI provider '{name}'") from exc
