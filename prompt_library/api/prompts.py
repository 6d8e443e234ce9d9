"""Prompt CRUD and rating endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from prompt_library.api.models import (
    PromptCreate,
    PromptResponse,
    PromptUpdate,
    RatingResponse,
    RatingUpdate,
)
from prompt_library.core.library import PromptLibrary, get_library

router = APIRouter()


def _require(library: PromptLibrary, prompt_id: str) -> dict:
    prompt = library.get_prompt(prompt_id)
    if not prompt:
        raise HTTPException(status_code=404, detail=f"Prompt '{prompt_id}' not found")
    return prompt


def _with_rating(library: PromptLibrary, prompt: dict) -> PromptResponse:
    rating = library.get_rating(prompt["id"])
    return PromptResponse(**{**prompt, "rating": rating or None})


@router.post("", response_model=PromptResponse, status_code=201)
async def create_prompt(
    data: PromptCreate,
    library: PromptLibrary = Depends(get_library),
) -> PromptResponse:
    """Create a new prompt, tracking the model when one is named."""
    try:
        prompt = library.create_prompt(
            title=data.title, content=data.content, model=data.model, is_code=data.is_code
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return PromptResponse(**prompt)


@router.get("", response_model=list[PromptResponse])
async def list_prompts(
    search: str | None = None,
    library: PromptLibrary = Depends(get_library),
) -> list[PromptResponse]:
    """List prompts, newest first, optionally filtered by a search term."""
    prompts = [p for p in library.get_prompts() if isinstance(p, dict)]
    if search:
        needle = search.lower()
        prompts = [
            p
            for p in prompts
            if needle in str(p.get("title", "")).lower()
            or needle in str(p.get("content", "")).lower()
        ]
    return [_with_rating(library, p) for p in prompts]


@router.get("/{prompt_id}", response_model=PromptResponse)
async def get_prompt(
    prompt_id: str,
    library: PromptLibrary = Depends(get_library),
) -> PromptResponse:
    return _with_rating(library, _require(library, prompt_id))


@router.put("/{prompt_id}", response_model=PromptResponse)
async def update_prompt(
    prompt_id: str,
    data: PromptUpdate,
    library: PromptLibrary = Depends(get_library),
) -> PromptResponse:
    """Update a prompt's title or content."""
    try:
        prompt = library.update_prompt(
            prompt_id, title=data.title, content=data.content, is_code=data.is_code
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if not prompt:
        raise HTTPException(status_code=404, detail=f"Prompt '{prompt_id}' not found")
    return _with_rating(library, prompt)


@router.delete("/{prompt_id}", status_code=204)
async def delete_prompt(
    prompt_id: str,
    library: PromptLibrary = Depends(get_library),
) -> None:
    if not library.delete_prompt(prompt_id):
        raise HTTPException(status_code=404, detail=f"Prompt '{prompt_id}' not found")


# --- Ratings ---


@router.get("/{prompt_id}/rating", response_model=RatingResponse)
async def get_rating(
    prompt_id: str,
    library: PromptLibrary = Depends(get_library),
) -> RatingResponse:
    _require(library, prompt_id)
    return RatingResponse(prompt_id=prompt_id, rating=library.get_rating(prompt_id))


@router.put("/{prompt_id}/rating", response_model=RatingResponse)
async def set_rating(
    prompt_id: str,
    data: RatingUpdate,
    library: PromptLibrary = Depends(get_library),
) -> RatingResponse:
    """Rate a prompt from 1 to 5, or clear the rating with 0."""
    _require(library, prompt_id)
    rating = int(data.rating) if data.rating.is_integer() else data.rating
    library.set_rating(prompt_id, rating)
    return RatingResponse(prompt_id=prompt_id, rating=library.get_rating(prompt_id))
