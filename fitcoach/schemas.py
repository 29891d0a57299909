from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    message: str = Field(min_length=1, max_length=4000)


class ChatResponse(BaseModel):
    reply: str


class ChatMessageRead(BaseModel):
    id: int
    role: Literal["user", "assistant"]
    content: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ChatClearResponse(BaseModel):
    deleted: int


class NutritionInfo(BaseModel):
    protein: str
    carbs: str
    fat: str
    fiber: str


class FoodAnalysisResponse(BaseModel):
    food_name: str
    calories: int
    serving_size: str
    confidence: Literal["high", "medium", "low"]
    nutrition: NutritionInfo
    description: str


class PlanGenerateRequest(BaseModel):
    age: str = Field(min_length=1, max_length=16)
    height: str = Field(min_length=1, max_length=32)
    weight: str = Field(min_length=1, max_length=32)
    injuries: str = Field(default="", max_length=500)
    workout_days: str = Field(min_length=1, max_length=64)
    fitness_goal: str = Field(min_length=1, max_length=120)
    fitness_level: str = Field(min_length=1, max_length=64)
    dietary_restrictions: str = Field(default="", max_length=500)


class Routine(BaseModel):
    name: str
    sets: int = Field(ge=1)
    reps: int = Field(ge=1)


class ExerciseDay(BaseModel):
    day: str
    routines: list[Routine]


class Meal(BaseModel):
    name: str
    foods: list[str]


class DietPlan(BaseModel):
    daily_calories: int
    meals: list[Meal]


class FitnessPlanRead(BaseModel):
    id: int
    name: str
    workout_schedule: list[str]
    exercises: list[ExerciseDay]
    diet_plan: DietPlan
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AIModelRead(BaseModel):
    name: str
    display_name: str
    methods: list[str]


class AIModelsResponse(BaseModel):
    models: list[AIModelRead]
    chat_model: str
    chat_fallback_model: str
    vision_model: str
    plan_model: str
