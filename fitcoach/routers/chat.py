from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import get_ai_client, get_current_owner
from ..gemini_client import GeminiClient
from ..schemas import ChatClearResponse, ChatMessageRead, ChatRequest, ChatResponse
from ..services import clear_turns, list_turns, send_chat_message


router = APIRouter(prefix="/api/chat", tags=["Chat"])


@router.get("/messages", response_model=list[ChatMessageRead])
def get_messages(
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner),
):
    return list_turns(db, owner_id)


@router.delete("/messages", response_model=ChatClearResponse)
def clear_messages(
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner),
):
    return {"deleted": clear_turns(db, owner_id)}


@router.post("", response_model=ChatResponse)
async def chat_with_bot(
    payload: ChatRequest,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner),
    client: GeminiClient = Depends(get_ai_client),
):
    message = payload.message.strip()
    if not message:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message cannot be empty")

    reply = await send_chat_message(db, client, owner_id, message)
    return {"reply": reply}
