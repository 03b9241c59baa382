"""Typed results for each AI capability.

Model output is validated here immediately after the call returns; a payload
that does not fit raises :class:`GPTResponseError` instead of leaking loosely
shaped JSON into storage and responses. Field names are camelCase on the wire.
"""
from __future__ import annotations

from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from hairflow.services.gpt import GPTResponseError

TreatmentType = Literal["color", "cut", "perm"]
TREATMENT_TYPES: tuple[str, ...] = ("color", "cut", "perm")


class ResultModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


class Step(ResultModel):
    order: int
    action: str
    duration: str = ""
    details: str = ""


class Procedure(ResultModel):
    type: Literal["color", "cut", "perm", "mixed"]
    description: str


class Chemicals(ResultModel):
    brand: str
    formula: str
    ratio: str
    application_order: str = ""
    processing_time: str = ""


class RevisitRecommendation(ResultModel):
    week: int
    reason: str


# recipe: current photo vs reference photo


class CurrentHairState(ResultModel):
    base_level: str
    damage_level: str
    hair_type: str
    hair_volume: str
    summary: str


class TargetAnalysis(ResultModel):
    color_gap: str
    length_diff: str
    texture_diff: str
    summary: str


class RecipeResult(ResultModel):
    current_analysis: CurrentHairState
    target_analysis: TargetAnalysis
    procedure: Procedure
    chemicals: Chemicals
    steps: list[Step] = Field(min_length=1)
    cautions: list[str] = Field(default_factory=list)


# single-photo customer analysis


class HairAnalysis(ResultModel):
    condition: str
    damage_level: str
    scalp_condition: str
    hair_type: str
    thickness: str
    porosity: str
    density: str | None = None
    summary: str


class ProductSuggestion(ResultModel):
    name: str
    purpose: str = ""
    usage: str = ""


class CareRecipe(ResultModel):
    recommended_treatment: str
    description: str
    steps: list[Step] = Field(default_factory=list)
    products: list[ProductSuggestion] = Field(default_factory=list)
    homecare: list[str] = Field(default_factory=list)
    cautions: list[str] = Field(default_factory=list)
    revisit_weeks: int = 4


class CustomerAnalysisResult(ResultModel):
    hair_analysis: HairAnalysis
    recipe: CareRecipe


# timeline prediction


class PlannedWeek(ResultModel):
    week: int
    label: str
    description: str
    dalle_prompt: str


class TimelinePlan(ResultModel):
    """What the vision model returns before any image is generated."""

    current_analysis: str
    predictions: list[PlannedWeek] = Field(min_length=1)
    revisit_recommendation: RevisitRecommendation


class WeekPrediction(ResultModel):
    week: int
    label: str
    image_url: str = ""
    description: str


class TimelineResult(ResultModel):
    treatment_type: TreatmentType
    current_analysis: str
    predictions: list[WeekPrediction]
    revisit_recommendation: RevisitRecommendation


# three-view (front/back/side) and five-view analyses


class FaceShape(ResultModel):
    type: str
    description: str
    confidence: int = 0


class RecommendedStyle(ResultModel):
    name: str
    reason: str
    suitability: int = 0
    image_description: str = ""


class StyleAnalysis(ResultModel):
    current_style: str
    vibe: list[str] = Field(default_factory=list)
    recommended_styles: list[RecommendedStyle] = Field(default_factory=list)


class ThreeViewAnalysisResult(ResultModel):
    face_shape: FaceShape
    style_analysis: StyleAnalysis
    hair_analysis: HairAnalysis
    comprehensive_advice: str


class ViewNotes(ResultModel):
    front: str
    back: str
    left: str
    right: str
    top: str


class FiveViewAnalysisResult(ResultModel):
    face_shape: FaceShape
    head_shape: str
    view_notes: ViewNotes
    hair_analysis: HairAnalysis
    growth_pattern: str = ""
    overall_summary: str


# style recommendation with generated previews


class PlannedStyle(ResultModel):
    id: str
    name: str
    dalle_prompt: str
    description: str
    suitability: int = 0
    difficulty: Literal["easy", "medium", "hard"] = "medium"
    estimated_time: str = ""
    match_reason: str = ""


class StyleRecommendationPlan(ResultModel):
    current_analysis: str
    recommendations: list[PlannedStyle] = Field(min_length=1)
    face_shape_note: str = ""


class StyleOption(PlannedStyle):
    image_url: str = ""


class StyleRecommendationResult(ResultModel):
    current_analysis: str
    recommendations: list[StyleOption]
    face_shape_note: str = ""


# recipe for a chosen style


class SelectedStyle(ResultModel):
    name: str
    description: str
    image_url: str | None = None


class StyleBasedRecipeResult(ResultModel):
    selected_style: SelectedStyle
    feasibility: str
    procedure: Procedure
    chemicals: Chemicals
    steps: list[Step] = Field(min_length=1)
    estimated_time: str = ""
    cautions: list[str] = Field(default_factory=list)
    aftercare: list[str] = Field(default_factory=list)


# post-treatment timeline with care tips


class PlannedCareWeek(PlannedWeek):
    care_tips: list[str] = Field(default_factory=list)


class PostTreatmentPlan(ResultModel):
    current_analysis: str
    weekly_predictions: list[PlannedCareWeek] = Field(min_length=1)
    revisit_recommendation: RevisitRecommendation


class CareWeekPrediction(WeekPrediction):
    care_tips: list[str] = Field(default_factory=list)


class PostTreatmentTimeline(ResultModel):
    treatment_type: TreatmentType
    completed_photo_url: str
    current_analysis: str
    weekly_predictions: list[CareWeekPrediction]
    revisit_recommendation: RevisitRecommendation


ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_result(model: type[ModelT], payload: Any) -> ModelT:
    """Validate model output against ``model``."""
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise GPTResponseError(
            f"GPT response does not match {model.__name__}: {exc.error_count()} errors"
        ) from exc


def dump(result: BaseModel) -> dict[str, Any]:
    """camelCase JSON-ready dict, as stored and returned."""
    return result.model_dump(by_alias=True, mode="json")
