"""Aggregate statistics over a prompt collection."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping


def _round2(value: float) -> int | float:
    # Decimal(float) is exact, so halves round the same way as Number.toFixed(2).
    rounded = float(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
    return int(rounded) if rounded.is_integer() else rounded


def average_rating(prompts: Iterable[Mapping[str, Any]], ratings: Mapping[str, Any]) -> int | float:
    """Mean of positive ratings for the given prompts, 0 when none are rated."""
    rated = []
    for p in prompts:
        r = ratings.get(p.get("id"))
        if isinstance(r, (int, float)) and not isinstance(r, bool) and r > 0:
            rated.append(r)
    if not rated:
        return 0
    return _round2(sum(rated) / len(rated))


def most_used_model(prompts: Iterable[Mapping[str, Any]]) -> str | None:
    """Model named by the most prompts. Ties go to the first one seen."""
    counts: dict[str, int] = {}
    for p in prompts:
        metadata = p.get("metadata")
        model = metadata.get("model") if isinstance(metadata, Mapping) else None
        if not isinstance(model, str) or not model.strip():
            continue
        model = model.strip()
        counts[model] = counts.get(model, 0) + 1

    best: str | None = None
    best_count = 0
    for model, count in counts.items():
        if count > best_count:
            best, best_count = model, count
    return best


def compute_stats(
    prompts: list[Mapping[str, Any]], ratings: Mapping[str, Any]
) -> dict[str, Any]:
    """Compute export stats. Pure: reads only its arguments."""
    return {
        "totalPrompts": len(prompts),
        "averageRating": average_rating(prompts, ratings),
        "mostUsedModel": most_used_model(prompts),
    }
