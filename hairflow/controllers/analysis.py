from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy import func, select

from hairflow import db as db_module
from hairflow.dependencies import (
    ApiModel,
    ErrorResponse,
    api_error,
    envelope,
    get_usage_guard,
    rate_limit,
)
from hairflow.models import Consultation, ErrorCode, Profile, Recipe, Timeline
from hairflow.services import prompts
from hairflow.services.capability import (
    ImageInput,
    ask_model,
    ensure_customer,
    persist_quietly,
    read_image,
    read_images,
    render_images,
    store_images,
    validate_treatment_type,
)
from hairflow.services.gpt import image_data_url, image_part, text_part
from hairflow.services.results import (
    CareWeekPrediction,
    CustomerAnalysisResult,
    FiveViewAnalysisResult,
    PostTreatmentPlan,
    PostTreatmentTimeline,
    RecipeResult,
    StyleBasedRecipeResult,
    StyleOption,
    StyleRecommendationPlan,
    StyleRecommendationResult,
    ThreeViewAnalysisResult,
    TimelinePlan,
    TimelineResult,
    WeekPrediction,
    dump,
)
from hairflow.services.usage import UsageGuard

router = APIRouter()

_ERRORS: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


class StyleRecommendationRequest(ApiModel):
    five_view_analysis: dict[str, Any] | None = None


class StyleToRecipeRequest(ApiModel):
    style_name: str | None = None
    style_description: str | None = None
    style_image_url: str | None = None
    current_hair_state: dict[str, Any] | None = None


def _vision_content(
    prompt: str, images: list[ImageInput], labels: dict[str, str] | None = None
) -> list[dict[str, Any]]:
    """Interleave optional per-image captions with the photos, prompt last."""
    parts: list[dict[str, Any]] = []
    for img in images:
        if labels:
            parts.append(text_part(labels[img.label]))
        parts.append(image_part(image_data_url(img.data, img.content_type)))
    parts.append(text_part(prompt))
    return parts


def _revisit_text(week: int) -> str:
    return f"revisit in {week} weeks"


def _save_recipe(
    user_id: str,
    customer_id: str | None,
    current_url: str | None,
    reference_url: str | None,
    result: dict[str, Any],
) -> str:
    with db_module.SessionLocal() as db:
        row = Recipe(
            user_id=user_id,
            customer_id=customer_id,
            current_image_url=current_url,
            reference_image_url=reference_url,
            result=result,
        )
        db.add(row)
        db.commit()
        return row.id


def _save_timeline(
    user_id: str,
    customer_id: str | None,
    image_url: str,
    treatment_type: str,
    result: dict[str, Any],
    revisit: str,
) -> tuple[str, datetime]:
    with db_module.SessionLocal() as db:
        row = Timeline(
            user_id=user_id,
            customer_id=customer_id,
            treatment_image_url=image_url,
            treatment_type=treatment_type,
            result=result,
            revisit_recommendation=revisit,
        )
        db.add(row)
        db.commit()
        return row.id, row.created_at


def _save_consultation(
    customer_id: str,
    designer_id: str,
    treatment_type: str,
    photos: dict[str, str],
    result: dict[str, Any],
    notes: str = "",
    numbered: bool = False,
) -> Consultation:
    with db_module.SessionLocal() as db:
        session_number = None
        if numbered:
            count = db.execute(
                select(func.count())
                .select_from(Consultation)
                .where(Consultation.customer_id == customer_id)
            ).scalar_one()
            session_number = count + 1
        row = Consultation(
            customer_id=customer_id,
            designer_id=designer_id,
            session_number=session_number,
            treatment_type=treatment_type,
            photos=photos,
            result=result,
            notes=notes,
        )
        db.add(row)
        db.commit()
        return row


async def _predict_timeline(
    capability: str, image: ImageInput, treatment_type: str, temperature: float
) -> TimelineResult:
    plan = await ask_model(
        capability,
        prompts.TIMELINE_ANALYSIS_SYSTEM_PROMPT,
        _vision_content(prompts.get_timeline_analysis_prompt(treatment_type), [image]),
        TimelinePlan,
        temperature=temperature,
    )
    urls = await render_images(
        [prompts.get_dalle_prompt(p.dalle_prompt, p.label) for p in plan.predictions]
    )
    return TimelineResult(
        treatment_type=treatment_type,
        current_analysis=plan.current_analysis,
        predictions=[
            WeekPrediction(
                week=p.week, label=p.label, image_url=url, description=p.description
            )
            for p, url in zip(plan.predictions, urls)
        ],
        revisit_recommendation=plan.revisit_recommendation,
    )


@router.post("/recipe", responses=_ERRORS)
async def create_recipe(
    user: Profile = Depends(rate_limit),
    guard: UsageGuard = Depends(get_usage_guard),
    current: UploadFile | None = File(None),
    reference: UploadFile | None = File(None),
):
    """Treatment recipe from the current hair and a reference style photo."""
    async with guard.hold(user.id) as usage:
        images = await read_images({"current": current, "reference": reference})
        urls = await store_images(user.id, None, images)
        result = await ask_model(
            "recipe",
            prompts.RECIPE_SYSTEM_PROMPT,
            _vision_content(prompts.RECIPE_USER_PROMPT, images),
            RecipeResult,
        )
        await usage.charge()
    await persist_quietly(
        "recipe",
        _save_recipe,
        user.id,
        None,
        urls["current"],
        urls["reference"],
        dump(result),
    )
    return envelope(result)


@router.post("/timeline", responses=_ERRORS)
async def create_timeline(
    user: Profile = Depends(rate_limit),
    guard: UsageGuard = Depends(get_usage_guard),
    image: UploadFile | None = File(None),
    treatment_type: str | None = Form(None, alias="treatmentType"),
):
    """Week-by-week look of the hair after a treatment, with generated images."""
    async with guard.hold(user.id) as usage:
        kind = validate_treatment_type(treatment_type)
        photo = await read_image(image, "image")
        urls = await store_images(user.id, None, [photo])
        result = await _predict_timeline("timeline", photo, kind, 0.4)
        await usage.charge()
    await persist_quietly(
        "timeline",
        _save_timeline,
        user.id,
        None,
        urls["image"],
        kind,
        dump(result),
        _revisit_text(result.revisit_recommendation.week),
    )
    return envelope(result)


@router.post("/customers/{customer_id}/analyze", responses=_ERRORS)
async def analyze_customer(
    customer_id: str,
    user: Profile = Depends(rate_limit),
    guard: UsageGuard = Depends(get_usage_guard),
    image: UploadFile | None = File(None),
):
    """Diagnose a customer's hair from one photo and suggest a care recipe."""
    async with guard.hold(user.id) as usage:
        await ensure_customer(user.id, customer_id)
        photo = await read_image(image, "image")
        urls = await store_images(user.id, customer_id, [photo])
        result = await ask_model(
            "customer_analysis",
            prompts.CUSTOMER_ANALYSIS_SYSTEM_PROMPT,
            _vision_content(prompts.CUSTOMER_ANALYSIS_USER_PROMPT, [photo]),
            CustomerAnalysisResult,
        )
        await usage.charge()

    analysis = dump(result)
    saved = await persist_quietly(
        "customer analysis",
        _save_timeline,
        user.id,
        customer_id,
        urls["image"],
        "analysis",
        analysis,
        _revisit_text(result.recipe.revisit_weeks),
    )
    await persist_quietly(
        "customer recipe",
        _save_recipe,
        user.id,
        customer_id,
        urls["image"],
        None,
        analysis["recipe"],
    )
    timeline_id, created_at = saved or (None, datetime.now(timezone.utc))
    return envelope(
        {
            "id": timeline_id,
            "customerId": customer_id,
            "imageUrl": urls["image"],
            "analysis": analysis,
            "createdAt": created_at,
        }
    )


@router.post("/customers/{customer_id}/timeline", responses=_ERRORS)
async def predict_customer_timeline(
    customer_id: str,
    user: Profile = Depends(rate_limit),
    guard: UsageGuard = Depends(get_usage_guard),
    image: UploadFile | None = File(None),
    treatment_type: str | None = Form(None, alias="treatmentType"),
):
    async with guard.hold(user.id) as usage:
        await ensure_customer(user.id, customer_id)
        kind = validate_treatment_type(treatment_type, default="color")
        photo = await read_image(image, "image")
        urls = await store_images(user.id, customer_id, [photo])
        result = await _predict_timeline("customer_timeline", photo, kind, 0.3)
        await usage.charge()
    saved = await persist_quietly(
        "customer timeline",
        _save_timeline,
        user.id,
        customer_id,
        urls["image"],
        "timeline",
        dump(result),
        _revisit_text(result.revisit_recommendation.week),
    )
    return envelope(
        {"id": saved[0] if saved else None, "timelinePrediction": dump(result)}
    )


@router.post("/customers/{customer_id}/comprehensive-analysis", responses=_ERRORS)
async def comprehensive_analysis(
    customer_id: str,
    user: Profile = Depends(rate_limit),
    guard: UsageGuard = Depends(get_usage_guard),
    front: UploadFile | None = File(None),
    back: UploadFile | None = File(None),
    side: UploadFile | None = File(None),
):
    """Face shape, style direction and hair condition from three angles."""
    async with guard.hold(user.id) as usage:
        await ensure_customer(user.id, customer_id)
        images = await read_images({"front": front, "back": back, "side": side})
        urls = await store_images(user.id, customer_id, images)
        result = await ask_model(
            "three_view",
            prompts.THREE_VIEW_ANALYSIS_SYSTEM_PROMPT,
            _vision_content(
                prompts.THREE_VIEW_ANALYSIS_USER_PROMPT,
                images,
                prompts.THREE_VIEW_LABELS,
            ),
            ThreeViewAnalysisResult,
            max_tokens=2500,
        )
        await usage.charge()

    analysis = dump(result)
    row = await persist_quietly(
        "comprehensive analysis",
        _save_consultation,
        customer_id,
        user.id,
        "analysis",
        urls,
        analysis,
        "",
        True,
    )
    return envelope(
        {
            "id": row.id if row else None,
            "customerId": customer_id,
            "designerId": user.id,
            "sessionNumber": row.session_number if row else None,
            "treatmentType": "analysis",
            "photos": urls,
            "result": analysis,
            "chemicalRecords": [],
            "notes": "",
            "createdAt": row.created_at if row else datetime.now(timezone.utc),
        }
    )


@router.post("/customers/{customer_id}/five-view-analysis", responses=_ERRORS)
async def five_view_analysis(
    customer_id: str,
    user: Profile = Depends(rate_limit),
    guard: UsageGuard = Depends(get_usage_guard),
    front: UploadFile | None = File(None),
    back: UploadFile | None = File(None),
    left: UploadFile | None = File(None),
    right: UploadFile | None = File(None),
    top: UploadFile | None = File(None),
):
    async with guard.hold(user.id) as usage:
        await ensure_customer(user.id, customer_id)
        images = await read_images(
            {"front": front, "back": back, "left": left, "right": right, "top": top}
        )
        urls = await store_images(user.id, customer_id, images)
        result = await ask_model(
            "five_view",
            prompts.FIVE_VIEW_ANALYSIS_SYSTEM_PROMPT,
            _vision_content(
                prompts.FIVE_VIEW_ANALYSIS_USER_PROMPT,
                images,
                prompts.FIVE_VIEW_LABELS,
            ),
            FiveViewAnalysisResult,
            max_tokens=3000,
        )
        await usage.charge()
    row = await persist_quietly(
        "five-view analysis",
        _save_consultation,
        customer_id,
        user.id,
        "analysis",
        urls,
        dump(result),
        "five-view analysis",
    )
    return envelope(
        {"id": row.id if row else None, "analysis": dump(result), "photos": urls}
    )


@router.post("/customers/{customer_id}/style-recommendations", responses=_ERRORS)
async def style_recommendations(
    customer_id: str,
    body: StyleRecommendationRequest,
    user: Profile = Depends(rate_limit),
    guard: UsageGuard = Depends(get_usage_guard),
):
    """Suggest styles for a five-view analysis and render a preview of each."""
    async with guard.hold(user.id) as usage:
        await ensure_customer(user.id, customer_id)
        if not body.five_view_analysis:
            raise api_error(
                400, ErrorCode.MISSING_FIELDS, "fiveViewAnalysis is required"
            )
        plan = await ask_model(
            "style_recommendation",
            prompts.STYLE_RECOMMENDATION_SYSTEM_PROMPT,
            prompts.get_style_recommendation_prompt(body.five_view_analysis),
            StyleRecommendationPlan,
            max_tokens=3000,
            temperature=0.5,
        )
        urls = await render_images(
            [prompts.get_salon_image_prompt(s.dalle_prompt) for s in plan.recommendations]
        )
        result = StyleRecommendationResult(
            current_analysis=plan.current_analysis,
            recommendations=[
                StyleOption(**s.model_dump(), image_url=url)
                for s, url in zip(plan.recommendations, urls)
            ],
            face_shape_note=plan.face_shape_note,
        )
        await usage.charge()
    row = await persist_quietly(
        "style recommendations",
        _save_consultation,
        customer_id,
        user.id,
        "style-recommendation",
        {},
        dump(result),
        "AI style recommendations",
    )
    return envelope(
        {"id": row.id if row else None, "styleRecommendations": dump(result)}
    )


@router.post("/customers/{customer_id}/style-to-recipe", responses=_ERRORS)
async def style_to_recipe(
    customer_id: str,
    body: StyleToRecipeRequest,
    user: Profile = Depends(rate_limit),
    guard: UsageGuard = Depends(get_usage_guard),
):
    async with guard.hold(user.id) as usage:
        await ensure_customer(user.id, customer_id)
        if not (
            body.style_name and body.style_description and body.current_hair_state
        ):
            raise api_error(
                400,
                ErrorCode.MISSING_FIELDS,
                "styleName, styleDescription and currentHairState are required",
            )
        result = await ask_model(
            "style_to_recipe",
            prompts.STYLE_TO_RECIPE_SYSTEM_PROMPT,
            prompts.get_style_to_recipe_prompt(
                body.style_name, body.style_description, body.current_hair_state
            ),
            StyleBasedRecipeResult,
            max_tokens=3000,
        )
        result.selected_style.image_url = body.style_image_url
        await usage.charge()
    row = await persist_quietly(
        "style recipe",
        _save_consultation,
        customer_id,
        user.id,
        "recipe",
        {"style": body.style_image_url} if body.style_image_url else {},
        dump(result),
        f"selected style: {body.style_name}",
    )
    return envelope({"id": row.id if row else None, "recipe": dump(result)})


@router.post("/customers/{customer_id}/post-treatment-timeline", responses=_ERRORS)
async def post_treatment_timeline(
    customer_id: str,
    user: Profile = Depends(rate_limit),
    guard: UsageGuard = Depends(get_usage_guard),
    completed_photo: UploadFile | None = File(None, alias="completedPhoto"),
    treatment_type: str | None = Form(None, alias="treatmentType"),
):
    """Aftercare timeline for a finished treatment, with care tips per week."""
    async with guard.hold(user.id) as usage:
        await ensure_customer(user.id, customer_id)
        kind = validate_treatment_type(treatment_type, default="cut")
        photo = await read_image(completed_photo, "completed")
        urls = await store_images(user.id, customer_id, [photo])
        plan = await ask_model(
            "post_treatment",
            prompts.POST_TREATMENT_TIMELINE_SYSTEM_PROMPT,
            _vision_content(prompts.get_post_treatment_timeline_prompt(kind), [photo]),
            PostTreatmentPlan,
            max_tokens=3000,
        )
        images = await render_images(
            [
                prompts.get_salon_image_prompt(w.dalle_prompt, over_time=True)
                for w in plan.weekly_predictions
            ]
        )
        result = PostTreatmentTimeline(
            treatment_type=kind,
            completed_photo_url=urls["completed"],
            current_analysis=plan.current_analysis,
            weekly_predictions=[
                CareWeekPrediction(
                    week=w.week,
                    label=w.label,
                    image_url=url,
                    description=w.description,
                    care_tips=w.care_tips,
                )
                for w, url in zip(plan.weekly_predictions, images)
            ],
            revisit_recommendation=plan.revisit_recommendation,
        )
        await usage.charge()
    row = await persist_quietly(
        "post-treatment timeline",
        _save_consultation,
        customer_id,
        user.id,
        "timeline",
        urls,
        dump(result),
        f"post-treatment timeline ({kind})",
    )
    return envelope({"id": row.id if row else None, "timeline": dump(result)})
