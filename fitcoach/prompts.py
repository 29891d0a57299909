from dataclasses import dataclass, field
from typing import Sequence

from .gemini_client import content, image_part, text_part


REFUSAL_MESSAGE = "I can help only with fitness, diet, or health-related questions."

CHAT_SYSTEM_INSTRUCTION = f"""You are an AI assistant for a fitness application.
Your purpose is to provide accurate, clear, and helpful responses only about:
- Fitness
- Workouts
- Exercise routines
- Diet plans
- Nutrition
- Healthy lifestyle
- Weight loss or weight gain
- Muscle building
- Wellness and physical health improvement

STRICT RULES:
1. Do NOT answer any question that is not related to fitness, health, exercise, or diet.
2. If a user asks anything outside these topics, politely decline by saying:
   "{REFUSAL_MESSAGE}"
3. Keep responses simple, practical, and beginner-friendly unless the user asks for advanced details.
4. Prioritize safety: never suggest extreme diets or dangerous workouts.
5. Keep workout plans and diet recommendations general unless the user provides personal details (age, weight, goal, etc.).

Your role is ONLY to help users improve their fitness, diet, and health."""

CHAT_GENERATION_CONFIG = {
    "temperature": 0.9,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 2048,
}

PLAN_GENERATION_CONFIG = {
    "temperature": 0.4,
    "topP": 0.9,
    "responseMimeType": "application/json",
}

FOOD_ANALYSIS_PROMPT = """Analyze this food image and provide detailed nutritional information in the following JSON format:
{
  "foodName": "name of the food/dish",
  "calories": estimated calories (as a number),
  "servingSize": "estimated serving size (e.g., '1 plate', '200g', '1 cup')",
  "confidence": "high/medium/low - your confidence in the identification",
  "nutritionalInfo": {
    "protein": "estimated protein (e.g., '25g')",
    "carbs": "estimated carbohydrates (e.g., '45g')",
    "fat": "estimated fat (e.g., '15g')",
    "fiber": "estimated fiber (e.g., '5g')"
  },
  "description": "brief description of the food and any notable ingredients visible"
}

Be as accurate as possible based on what you can see in the image. If you cannot identify the food clearly, set confidence to "low" and provide your best estimate."""

ROLE_MAP = {"user": "user", "assistant": "model"}


@dataclass
class ChatPrompt:
    message: str
    history: list[dict] = field(default_factory=list)
    system_instruction: str = CHAT_SYSTEM_INSTRUCTION
    generation_config: dict = field(default_factory=lambda: dict(CHAT_GENERATION_CONFIG))

    @property
    def contents(self) -> list[dict]:
        return [*self.history, content("user", text_part(self.message))]


def build_chat_request(turns: Sequence, message: str, window: int = 10) -> ChatPrompt:
    """Build a chat request from stored turns, oldest first.

    The newest stored turn is the message being answered, so the history is
    the ``window`` turns that precede it.
    """
    previous = list(turns)[:-1] if turns else []
    recent = previous[-window:] if window > 0 else []
    history = [
        content(ROLE_MAP.get(turn.role, "user"), text_part(turn.content))
        for turn in recent
    ]
    return ChatPrompt(message=message, history=history)


def build_food_analysis_contents(image_bytes: bytes, mime_type: str) -> list[dict]:
    return [content("user", text_part(FOOD_ANALYSIS_PROMPT), image_part(image_bytes, mime_type))]


def build_workout_prompt(profile: dict) -> str:
    return f"""You are an experienced fitness coach creating a personalized workout plan based on:
Age: {profile.get('age')}
Height: {profile.get('height')}
Weight: {profile.get('weight')}
Injuries or limitations: {profile.get('injuries') or 'None'}
Available days for workout: {profile.get('workout_days')}
Fitness goal: {profile.get('fitness_goal')}
Fitness level: {profile.get('fitness_level')}

As a professional coach:
- Consider muscle group splits to avoid overtraining the same muscles on consecutive days
- Design exercises that match the fitness level and account for any injuries
- Structure the workouts to specifically target the user's fitness goal

CRITICAL SCHEMA INSTRUCTIONS:
- Your output MUST contain ONLY the fields specified below, NO ADDITIONAL FIELDS
- "sets" and "reps" MUST ALWAYS be NUMBERS, never strings
- For example: "sets": 3, "reps": 10
- Do NOT use text like "reps": "As many as possible" or "reps": "To failure"
- Instead use specific numbers like "reps": 12 or "reps": 15
- For cardio, use "sets": 1, "reps": 1 or another appropriate number
- NEVER include strings for numerical fields
- NEVER add extra fields not shown in the example below

Return a JSON object with this EXACT structure:
{{
  "schedule": ["Monday", "Wednesday", "Friday"],
  "exercises": [
    {{
      "day": "Monday",
      "routines": [
        {{
          "name": "Exercise Name",
          "sets": 3,
          "reps": 10
        }}
      ]
    }}
  ]
}}

DO NOT add any fields that are not in this example. Your response must be a valid JSON object with no additional text."""


def build_diet_prompt(profile: dict) -> str:
    return f"""You are an experienced nutrition coach creating a personalized diet plan based on:
Age: {profile.get('age')}
Height: {profile.get('height')}
Weight: {profile.get('weight')}
Fitness goal: {profile.get('fitness_goal')}
Dietary restrictions: {profile.get('dietary_restrictions') or 'None'}

As a professional nutrition coach:
- Calculate appropriate daily calorie intake based on the person's stats and goals
- Create a balanced meal plan with proper macronutrient distribution
- Include a variety of nutrient-dense foods while respecting dietary restrictions
- Consider meal timing around workouts for optimal performance and recovery

CRITICAL SCHEMA INSTRUCTIONS:
- Your output MUST contain ONLY the fields specified below, NO ADDITIONAL FIELDS
- "dailyCalories" MUST be a NUMBER, not a string
- DO NOT add fields like "supplements", "macros", "notes", or ANYTHING else
- ONLY include the EXACT fields shown in the example below
- Each meal should include ONLY a "name" and "foods" array

Return a JSON object with this EXACT structure and no other fields:
{{
  "dailyCalories": 2000,
  "meals": [
    {{
      "name": "Breakfast",
      "foods": ["Oatmeal with berries", "Greek yogurt", "Black coffee"]
    }},
    {{
      "name": "Lunch",
      "foods": ["Grilled chicken salad", "Whole grain bread", "Water"]
    }}
  ]
}}

DO NOT add any fields that are not in this example. Your response must be a valid JSON object with no additional text."""
