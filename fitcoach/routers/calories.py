from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..deps import get_ai_client, get_current_owner
from ..gemini_client import GeminiClient
from ..schemas import FoodAnalysisResponse
from ..services import analyze_food_image, log_ai_interaction


router = APIRouter(prefix="/api/calories", tags=["Calories"])


@router.post("/analyze", response_model=FoodAnalysisResponse)
async def analyze_image(
    image: UploadFile = File(...),
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner),
    client: GeminiClient = Depends(get_ai_client),
):
    if not image.content_type or not image.content_type.startswith("image/"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please select a valid image file")

    payload = await image.read()
    if not payload:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The uploaded image is empty")
    if len(payload) > settings.max_image_bytes:
        limit_mb = settings.max_image_bytes // (1024 * 1024)
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Image size should be less than {limit_mb}MB",
        )

    result = await analyze_food_image(client, payload, image.content_type)

    log_ai_interaction(
        db,
        owner_id,
        kind="food_analysis",
        model=settings.vision_model,
        input_payload={
            "file_name": image.filename,
            "content_type": image.content_type,
            "size_bytes": len(payload),
        },
        output_payload=result,
    )

    return result
