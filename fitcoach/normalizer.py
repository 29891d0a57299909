import json
import math
import re

from .errors import MalformedUpstreamResponseError


FOOD = "food"
WORKOUT = "workout"
DIET = "diet"

CONFIDENCE_LEVELS = {"high", "medium", "low"}
NUTRITION_FIELDS = ("protein", "carbs", "fat", "fiber")

DEFAULT_SETS = 3
DEFAULT_REPS = 10
DEFAULT_DAILY_CALORIES = 2000

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?\s*```$", re.DOTALL)
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)
_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


def strip_code_fences(text: str) -> str:
    stripped = (text or "").strip()
    match = _FENCE_RE.match(stripped)
    if match:
        return match.group(1).strip()
    if stripped.startswith("```"):
        return re.sub(r"^```[a-zA-Z]*\s*", "", stripped).strip()
    return stripped


def _load_json(text: str):
    # ValueError also covers integer literals past the int conversion limit.
    try:
        return json.loads(text)
    except (ValueError, RecursionError) as exc:
        raise MalformedUpstreamResponseError(detail=f"Invalid JSON from model: {exc}") from exc


def parse_json_object(text: str) -> dict:
    cleaned = strip_code_fences(text)
    try:
        parsed = _load_json(cleaned)
    except MalformedUpstreamResponseError:
        # Prose around the object, with or without a fence.
        match = _OBJECT_RE.search(cleaned)
        if not match:
            raise
        parsed = _load_json(match.group(0))

    if not isinstance(parsed, dict):
        raise MalformedUpstreamResponseError(
            detail=f"Expected a JSON object from model, got {type(parsed).__name__}"
        )
    return parsed


def _safe_int(value: object, default: int, minimum: int | None = None) -> int:
    number = None
    if isinstance(value, bool):
        number = None
    elif isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        match = _NUMBER_RE.search(value.replace(",", ""))
        if match:
            number = float(match.group(0))

    if isinstance(number, float) and not math.isfinite(number):
        return default
    try:
        result = int(number) if number is not None else None
    except (ValueError, OverflowError):
        return default

    if result is None:
        return default
    if minimum is not None and result < minimum:
        return default
    return result


def _safe_text(value: object, fallback: str = "") -> str:
    if value is None or isinstance(value, (dict, list)):
        return fallback

    text = str(value).strip()
    return text if text else fallback


def _text_list(value: object) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [text for text in (_safe_text(item) for item in value) if text]


def normalize_food_analysis(parsed: dict) -> dict:
    nutrition = parsed.get("nutritionalInfo")
    if not isinstance(nutrition, dict):
        nutrition = parsed.get("nutrition") if isinstance(parsed.get("nutrition"), dict) else {}

    confidence = _safe_text(parsed.get("confidence"), fallback="low").lower()
    if confidence not in CONFIDENCE_LEVELS:
        confidence = "low"

    return {
        "food_name": _safe_text(parsed.get("foodName"), fallback="Unknown Food"),
        "calories": _safe_int(parsed.get("calories"), default=0, minimum=0),
        "serving_size": _safe_text(parsed.get("servingSize"), fallback="Unknown"),
        "confidence": confidence,
        "nutrition": {field: _safe_text(nutrition.get(field), fallback="N/A") for field in NUTRITION_FIELDS},
        "description": _safe_text(parsed.get("description"), fallback="Could not analyze the food."),
    }


def normalize_workout_plan(parsed: dict) -> dict:
    exercises = []
    raw_exercises = parsed.get("exercises")
    for exercise in raw_exercises if isinstance(raw_exercises, list) else []:
        if not isinstance(exercise, dict):
            continue
        raw_routines = exercise.get("routines")
        routines = [
            {
                "name": _safe_text(routine.get("name"), fallback="Exercise"),
                "sets": _safe_int(routine.get("sets"), default=DEFAULT_SETS, minimum=1),
                "reps": _safe_int(routine.get("reps"), default=DEFAULT_REPS, minimum=1),
            }
            for routine in (raw_routines if isinstance(raw_routines, list) else [])
            if isinstance(routine, dict)
        ]
        exercises.append({"day": _safe_text(exercise.get("day")), "routines": routines})

    return {"schedule": _text_list(parsed.get("schedule")), "exercises": exercises}


def normalize_diet_plan(parsed: dict) -> dict:
    meals = []
    raw_meals = parsed.get("meals")
    for index, meal in enumerate(raw_meals if isinstance(raw_meals, list) else [], start=1):
        if not isinstance(meal, dict):
            continue
        meals.append(
            {
                "name": _safe_text(meal.get("name"), fallback=f"Meal {index}"),
                "foods": _text_list(meal.get("foods")),
            }
        )

    return {
        "daily_calories": _safe_int(parsed.get("dailyCalories"), default=DEFAULT_DAILY_CALORIES, minimum=1),
        "meals": meals,
    }


NORMALIZERS = {
    FOOD: normalize_food_analysis,
    WORKOUT: normalize_workout_plan,
    DIET: normalize_diet_plan,
}


def normalize(raw_text: str, kind: str) -> dict:
    """Parse raw model output and coerce it into the shape for ``kind``.

    Raises :class:`MalformedUpstreamResponseError` only when the text is not
    a JSON object at all; missing or mistyped fields fall back to defaults.
    """
    try:
        normalizer = NORMALIZERS[kind]
    except KeyError:
        raise ValueError(f"Unknown response kind: {kind}") from None
    return normalizer(parse_json_object(raw_text))
