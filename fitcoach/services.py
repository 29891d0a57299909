import json
import logging
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import settings
from .errors import AIServiceError
from .gemini_client import content, text_part
from .models import AIInteraction, ChatMessage, FitnessPlan
from .normalizer import DIET, FOOD, WORKOUT, normalize
from .prompts import (
    PLAN_GENERATION_CONFIG,
    build_chat_request,
    build_diet_prompt,
    build_food_analysis_contents,
    build_workout_prompt,
)
from .resilience import invoke_with_retry


logger = logging.getLogger(__name__)


def log_ai_interaction(
    db: Session,
    owner_id: str | None,
    kind: str,
    model: str | None,
    input_payload: dict | None,
    output_payload: dict | str | None,
    meta: dict | None = None,
) -> None:
    try:
        entry = AIInteraction(
            owner_id=owner_id,
            kind=kind,
            model=model,
            input_payload=json.dumps(input_payload, ensure_ascii=False) if input_payload is not None else None,
            output_payload=json.dumps(output_payload, ensure_ascii=False) if isinstance(output_payload, (dict, list)) else output_payload,
            meta=json.dumps(meta, ensure_ascii=False) if meta is not None else None,
        )
        db.add(entry)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Could not record AI interaction %s for owner %s", kind, owner_id)


# Conversation turns


def list_turns(db: Session, owner_id: str) -> list[ChatMessage]:
    return (
        db.query(ChatMessage)
        .filter(ChatMessage.owner_id == owner_id)
        .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
        .all()
    )


def append_turn(db: Session, owner_id: str, role: str, text: str) -> ChatMessage:
    if role not in ("user", "assistant"):
        raise ValueError(f"Unsupported chat role: {role}")

    turn = ChatMessage(owner_id=owner_id, role=role, content=text)
    db.add(turn)
    db.commit()
    db.refresh(turn)
    return turn


def clear_turns(db: Session, owner_id: str) -> int:
    deleted = db.query(ChatMessage).filter(ChatMessage.owner_id == owner_id).delete(synchronize_session=False)
    db.commit()
    return deleted


# Fitness plans


def list_plans(db: Session, owner_id: str) -> list[FitnessPlan]:
    return (
        db.query(FitnessPlan)
        .filter(FitnessPlan.owner_id == owner_id)
        .order_by(FitnessPlan.created_at.desc(), FitnessPlan.id.desc())
        .all()
    )


def get_active_plan(db: Session, owner_id: str) -> FitnessPlan | None:
    return (
        db.query(FitnessPlan)
        .filter(FitnessPlan.owner_id == owner_id, FitnessPlan.is_active.is_(True))
        .order_by(FitnessPlan.created_at.desc(), FitnessPlan.id.desc())
        .first()
    )


def _deactivate_plans(db: Session, owner_id: str) -> None:
    db.query(FitnessPlan).filter(
        FitnessPlan.owner_id == owner_id,
        FitnessPlan.is_active.is_(True),
    ).update({FitnessPlan.is_active: False}, synchronize_session=False)


def create_plan(
    db: Session,
    owner_id: str,
    name: str,
    workout_plan: dict,
    diet_plan: dict,
    is_active: bool = True,
) -> FitnessPlan:
    """Insert a plan; an active plan replaces the owner's current one in the same transaction."""
    plan = FitnessPlan(
        owner_id=owner_id,
        name=name,
        workout_schedule=workout_plan.get("schedule", []),
        exercises=workout_plan.get("exercises", []),
        diet_plan=diet_plan,
        is_active=is_active,
    )
    try:
        if is_active:
            _deactivate_plans(db, owner_id)
        db.add(plan)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(plan)
    return plan


def activate_plan(db: Session, owner_id: str, plan_id: int) -> FitnessPlan | None:
    plan = db.query(FitnessPlan).filter(FitnessPlan.id == plan_id, FitnessPlan.owner_id == owner_id).first()
    if not plan:
        return None
    if plan.is_active:
        return plan

    try:
        _deactivate_plans(db, owner_id)
        plan.is_active = True
        db.add(plan)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(plan)
    return plan


# AI pipelines


async def send_chat_message(db: Session, client, owner_id: str, message: str) -> str:
    """Persist the user turn, ask the chat model for a reply and persist it.

    The user turn is written before the model call. If the call fails the
    turn is left without a reply unless ``chat_discard_orphan_turns`` is set.
    """
    user_turn = append_turn(db, owner_id, "user", message)
    request = build_chat_request(
        list_turns(db, owner_id),
        message,
        window=settings.chat_history_window,
    )
    used_model = settings.chat_model

    def call(model: str):
        async def _call() -> str:
            nonlocal used_model
            used_model = model
            return await client.generate_content(
                model,
                request.contents,
                system_instruction=request.system_instruction,
                generation_config=request.generation_config,
            )

        return _call

    try:
        reply = await invoke_with_retry(
            call(settings.chat_model),
            call(settings.chat_fallback_model),
            max_retries=settings.retry_max_attempts,
            initial_delay_ms=settings.chat_retry_initial_delay_ms,
        )
    except AIServiceError as exc:
        logger.error("Chat generation failed for owner %s (%s): %s", owner_id, exc.kind.value, exc.detail)
        if settings.chat_discard_orphan_turns:
            db.delete(user_turn)
            db.commit()
        else:
            logger.warning("User turn %s for owner %s left without a reply", user_turn.id, owner_id)
        raise

    append_turn(db, owner_id, "assistant", reply)
    log_ai_interaction(
        db,
        owner_id,
        kind="chat",
        model=used_model,
        input_payload={"message": message, "history_turns": len(request.history)},
        output_payload={"reply": reply},
        meta={"fallback_used": used_model != settings.chat_model},
    )
    return reply


async def analyze_food_image(client, image_bytes: bytes, mime_type: str) -> dict:
    contents = build_food_analysis_contents(image_bytes, mime_type)
    raw_response = await invoke_with_retry(
        lambda: client.generate_content(settings.vision_model, contents),
        max_retries=settings.retry_max_attempts,
        initial_delay_ms=settings.retry_initial_delay_ms,
    )
    return normalize(raw_response, FOOD)


async def _generate_json(client, prompt: str) -> str:
    contents = [content("user", text_part(prompt))]
    return await invoke_with_retry(
        lambda: client.generate_content(
            settings.plan_model,
            contents,
            generation_config=PLAN_GENERATION_CONFIG,
        ),
        max_retries=settings.retry_max_attempts,
        initial_delay_ms=settings.retry_initial_delay_ms,
    )


async def generate_fitness_plan(db: Session, client, owner_id: str, profile: dict) -> FitnessPlan:
    workout_plan = normalize(await _generate_json(client, build_workout_prompt(profile)), WORKOUT)
    diet_plan = normalize(await _generate_json(client, build_diet_prompt(profile)), DIET)

    name = f"{profile.get('fitness_goal') or 'Fitness'} Plan - {date.today().strftime('%m/%d/%Y')}"
    plan = create_plan(db, owner_id, name, workout_plan, diet_plan, is_active=True)

    log_ai_interaction(
        db,
        owner_id,
        kind="fitness_plan",
        model=settings.plan_model,
        input_payload=profile,
        output_payload={"workout": workout_plan, "diet": diet_plan},
        meta={"plan_id": plan.id},
    )
    return plan
