from fastapi import APIRouter, Depends

from ..config import settings
from ..deps import get_ai_client, get_current_owner
from ..gemini_client import GeminiClient
from ..resilience import invoke_with_retry
from ..schemas import AIModelsResponse


router = APIRouter(prefix="/api/ai", tags=["AI"])


@router.get("/models", response_model=AIModelsResponse)
async def get_available_models(
    owner_id: str = Depends(get_current_owner),
    client: GeminiClient = Depends(get_ai_client),
):
    models = await invoke_with_retry(
        client.list_models,
        max_retries=settings.retry_max_attempts,
        initial_delay_ms=settings.retry_initial_delay_ms,
    )
    return {
        "models": models,
        "chat_model": settings.chat_model,
        "chat_fallback_model": settings.chat_fallback_model,
        "vision_model": settings.vision_model,
        "plan_model": settings.plan_model,
    }
