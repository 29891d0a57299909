import base64
from types import SimpleNamespace

from fitcoach.prompts import (
    CHAT_GENERATION_CONFIG,
    REFUSAL_MESSAGE,
    build_chat_request,
    build_diet_prompt,
    build_food_analysis_contents,
    build_workout_prompt,
)


def _turns(count):
    return [
        SimpleNamespace(role="user" if index % 2 else "assistant", content=f"turn {index}")
        for index in range(1, count + 1)
    ]


def test_chat_history_window_excludes_current_message():
    stored = _turns(12) + [SimpleNamespace(role="user", content="current question")]

    request = build_chat_request(stored, "current question", window=10)

    texts = [item["parts"][0]["text"] for item in request.history]
    assert texts == [f"turn {index}" for index in range(3, 13)]
    assert request.contents[-1] == {"role": "user", "parts": [{"text": "current question"}]}
    assert len(request.contents) == 11


def test_chat_history_maps_roles_for_the_model():
    stored = [
        SimpleNamespace(role="user", content="hi"),
        SimpleNamespace(role="assistant", content="hello"),
        SimpleNamespace(role="user", content="next"),
    ]

    request = build_chat_request(stored, "next")

    assert [item["role"] for item in request.history] == ["user", "model"]


def test_chat_request_with_only_current_message_has_no_history():
    request = build_chat_request([SimpleNamespace(role="user", content="first")], "first")

    assert request.history == []
    assert REFUSAL_MESSAGE in request.system_instruction
    assert request.generation_config == CHAT_GENERATION_CONFIG


def test_food_analysis_contents_inline_the_image():
    contents = build_food_analysis_contents(b"\x89PNG", "image/png")

    parts = contents[0]["parts"]
    assert "foodName" in parts[0]["text"]
    assert parts[1]["inlineData"] == {
        "mimeType": "image/png",
        "data": base64.b64encode(b"\x89PNG").decode("utf-8"),
    }


def test_plan_prompts_include_profile_and_schema_constraints():
    profile = {
        "age": "30",
        "height": "180cm",
        "weight": "80kg",
        "injuries": "",
        "workout_days": "3",
        "fitness_goal": "Muscle gain",
        "fitness_level": "beginner",
        "dietary_restrictions": "vegetarian",
    }

    workout = build_workout_prompt(profile)
    diet = build_diet_prompt(profile)

    assert "Fitness goal: Muscle gain" in workout
    assert "Injuries or limitations: None" in workout
    assert '"sets" and "reps" MUST ALWAYS be NUMBERS' in workout
    assert '"schedule": ["Monday", "Wednesday", "Friday"]' in workout
    assert "Dietary restrictions: vegetarian" in diet
    assert '"dailyCalories": 2000' in diet
