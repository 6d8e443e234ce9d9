"""Prompt metadata — model tracking, token estimates and timestamps."""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Any

ISO_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")
MAX_MODEL_LENGTH = 100


def iso_now() -> str:
    """Current UTC time as YYYY-MM-DDTHH:MM:SS.sssZ."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def parse_iso(value: str) -> datetime:
    return datetime.strptime(value, "%Y-%m-%dT%H:%M:%S.%fZ").replace(tzinfo=timezone.utc)


def is_iso_timestamp(value: Any) -> bool:
    """True for strings in the millisecond Zulu format that name a real instant."""
    if not isinstance(value, str) or not ISO_PATTERN.match(value):
        return False
    try:
        parse_iso(value)
    except ValueError:
        return False
    return True


def _assert_iso(value: Any, field_name: str) -> None:
    if not is_iso_timestamp(value):
        raise ValueError(
            f"{field_name} must be a valid ISO 8601 string (YYYY-MM-DDTHH:mm:ss.sssZ)"
        )


def count_words(text: str) -> int:
    return len(text.split())


def estimate_tokens(text: str, is_code: bool = False) -> dict[str, Any]:
    """Estimate a token range for text.

    The lower bound comes from the word count (0.75 tokens per word) and the
    upper bound from the character count (0.25 tokens per char). Code is
    denser, so both bounds are scaled by 1.3. Confidence drops as the upper
    bound grows.
    """
    if not isinstance(text, str):
        raise ValueError("estimate_tokens: text must be a string")

    low = 0.75 * count_words(text)
    high = 0.25 * len(text)
    if is_code:
        low *= 1.3
        high *= 1.3

    min_tokens = max(0, math.floor(low))
    max_tokens = max(min_tokens, math.ceil(high))

    if max_tokens < 1000:
        confidence = "high"
    elif max_tokens <= 5000:
        confidence = "medium"
    else:
        confidence = "low"

    return {"min": min_tokens, "max": max_tokens, "confidence": confidence}


def track_model(model_name: str, content: str, is_code: bool = False) -> dict[str, Any]:
    """Build fresh metadata for content written against model_name."""
    if not isinstance(model_name, str) or not model_name.strip():
        raise ValueError("Model name must be a non-empty string")
    model = model_name.strip()
    if len(model) > MAX_MODEL_LENGTH:
        raise ValueError(f"Model name must be at most {MAX_MODEL_LENGTH} characters")

    created_at = iso_now()
    return {
        "model": model,
        "createdAt": created_at,
        "updatedAt": created_at,
        "tokenEstimate": estimate_tokens(content, is_code),
    }


def update_timestamps(metadata: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of metadata with updatedAt moved to now."""
    if not isinstance(metadata, dict):
        raise ValueError("update_timestamps: metadata must be provided")
    _assert_iso(metadata.get("createdAt"), "createdAt")

    updated_at = iso_now()
    if parse_iso(updated_at) < parse_iso(metadata["createdAt"]):
        raise ValueError("updatedAt must be greater than or equal to createdAt")

    return {**metadata, "updatedAt": updated_at}


def format_human(value: str) -> str:
    """Render an ISO timestamp like 'Jan 05, 2025 14:03'; unknown input passes through."""
    if not is_iso_timestamp(value):
        return value
    return parse_iso(value).strftime("%b %d, %Y %H:%M")
