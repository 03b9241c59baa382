"""Shared steps of every quota-consuming request.

Handlers run: authenticate, hold quota, check ownership, validate input,
store photos, ask the model, charge, persist, respond. The helpers here
implement the individual steps and translate collaborator failures into the
error envelope.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, NamedTuple, TypeVar

from fastapi import UploadFile
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from hairflow import db as db_module
from hairflow.config import Settings
from hairflow.dependencies import api_error
from hairflow.metrics import (
    ai_failure_total,
    ai_latency_seconds,
    ai_requests_total,
    image_generation_fail_total,
    persistence_warning_total,
    upload_fail_total,
)
from hairflow.models import Customer, ErrorCode
from hairflow.services.gpt import GPTResponseError, call_gpt_json, generate_image
from hairflow.services.results import TREATMENT_TYPES, parse_result
from hairflow.services.storage import StorageError, get_public_url, upload_photo

settings = Settings()
logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT", bound=BaseModel)
T = TypeVar("T")


class ImageInput(NamedTuple):
    label: str
    data: bytes
    content_type: str


async def read_image(
    upload: UploadFile | None, label: str, cfg: Settings = settings
) -> ImageInput:
    """Validate one uploaded photo and read it into memory."""
    if upload is None or not upload.filename:
        raise api_error(400, ErrorCode.MISSING_IMAGE, f"Photo '{label}' is required")
    limit = cfg.max_upload_bytes
    if getattr(upload, "size", None) and upload.size > limit:
        raise api_error(400, ErrorCode.FILE_TOO_LARGE, "Each image must be 10MB or smaller")
    content_type = (upload.content_type or "").lower()
    if content_type not in cfg.allowed_image_types:
        raise api_error(
            400, ErrorCode.INVALID_FORMAT, "Only JPG, PNG and WebP images are supported"
        )
    data = await upload.read(limit + 1)
    if len(data) > limit:
        raise api_error(400, ErrorCode.FILE_TOO_LARGE, "Each image must be 10MB or smaller")
    if not data:
        raise api_error(400, ErrorCode.MISSING_IMAGE, f"Photo '{label}' is empty")
    return ImageInput(label, data, content_type)


async def read_images(
    uploads: dict[str, UploadFile | None], cfg: Settings = settings
) -> list[ImageInput]:
    """Validate a set of named photos; all of them are required."""
    missing = [label for label, upload in uploads.items() if upload is None]
    if missing:
        raise api_error(
            400,
            ErrorCode.MISSING_IMAGE,
            "Missing photos: " + ", ".join(missing),
        )
    return [await read_image(upload, label, cfg) for label, upload in uploads.items()]


def validate_treatment_type(value: str | None, default: str | None = None) -> str:
    value = (value or "").strip() or default
    if value is None:
        raise api_error(400, ErrorCode.MISSING_FIELDS, "treatmentType is required")
    if value not in TREATMENT_TYPES:
        raise api_error(
            400, ErrorCode.INVALID_TYPE, "treatmentType must be one of color, cut, perm"
        )
    return value


async def store_images(
    designer_id: str, customer_id: str | None, images: list[ImageInput]
) -> dict[str, str]:
    """Upload photos concurrently and return ``{label: public URL}``."""
    try:
        keys = await asyncio.gather(
            *(
                upload_photo(
                    designer_id, customer_id, img.label, img.data, img.content_type
                )
                for img in images
            )
        )
    except StorageError as exc:
        upload_fail_total.inc()
        raise api_error(500, ErrorCode.UPLOAD_FAILED, "Photo upload failed") from exc
    return {img.label: get_public_url(key) for img, key in zip(images, keys)}


async def ask_model(
    capability: str,
    system_prompt: str,
    content: str | list[dict[str, Any]],
    result_model: type[ResultT],
    *,
    max_tokens: int = 2000,
    temperature: float = 0.3,
) -> ResultT:
    """Call the vision model and validate its answer against ``result_model``."""
    ai_requests_total.labels(capability).inc()
    start = time.perf_counter()
    try:
        payload = await asyncio.to_thread(
            call_gpt_json,
            system_prompt,
            content,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return parse_result(result_model, payload)
    except GPTResponseError as exc:
        ai_failure_total.labels(capability, "no_response").inc()
        logger.warning("Unusable %s response: %s", capability, exc)
        raise api_error(
            500, ErrorCode.AI_NO_RESPONSE, "No usable AI response, please try again"
        ) from exc
    except TimeoutError as exc:
        ai_failure_total.labels(capability, "timeout").inc()
        logger.exception("%s model call timed out", capability)
        raise api_error(500, ErrorCode.AI_FAILED, "AI request timed out") from exc
    except RuntimeError as exc:
        ai_failure_total.labels(capability, "error").inc()
        logger.exception("%s model call failed", capability)
        raise api_error(500, ErrorCode.AI_FAILED, "AI request failed") from exc
    finally:
        ai_latency_seconds.labels(capability).observe(time.perf_counter() - start)


async def _render_one(index: int, prompt: str) -> str:
    try:
        return await asyncio.to_thread(generate_image, prompt)
    except Exception:
        image_generation_fail_total.inc()
        logger.exception("Image generation failed for slot %s", index)
        return ""


async def render_images(prompts: list[str]) -> list[str]:
    """Generate one image per prompt concurrently.

    The result has one URL per prompt in the same order. A branch that fails
    leaves ``""`` in its slot without affecting the others.
    """
    return list(
        await asyncio.gather(*(_render_one(i, p) for i, p in enumerate(prompts)))
    )


async def persist_quietly(what: str, fn: Callable[..., T], *args: Any) -> T | None:
    """Write a result record after the quota was charged.

    A database failure here is logged and counted but never turned into an
    error response: the caller already paid for the result.
    """
    try:
        return await asyncio.to_thread(fn, *args)
    except SQLAlchemyError:
        persistence_warning_total.inc()
        logger.exception("Failed to persist %s", what)
        return None


def _customer_exists(designer_id: str, customer_id: str) -> bool:
    with db_module.SessionLocal() as db:
        found = db.execute(
            select(Customer.id).where(
                Customer.id == customer_id, Customer.designer_id == designer_id
            )
        ).scalar_one_or_none()
        return found is not None


async def ensure_customer(designer_id: str, customer_id: str) -> None:
    """404 unless ``customer_id`` exists and belongs to ``designer_id``."""
    try:
        exists = await asyncio.to_thread(_customer_exists, designer_id, customer_id)
    except SQLAlchemyError as exc:
        logger.exception("Customer lookup failed")
        raise api_error(500, ErrorCode.DB_ERROR, "Failed to load customer") from exc
    if not exists:
        raise api_error(404, ErrorCode.NOT_FOUND, "Customer not found")


__all__ = [
    "ImageInput",
    "ask_model",
    "ensure_customer",
    "persist_quietly",
    "read_image",
    "read_images",
    "render_images",
    "store_images",
    "validate_treatment_type",
]
