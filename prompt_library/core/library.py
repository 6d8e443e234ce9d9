"""Prompt Library — CRUD operations for prompts and their ratings."""

from __future__ import annotations

import time
from functools import lru_cache
from typing import Any
from uuid import uuid4

import structlog

from prompt_library.core.metadata import (
    estimate_tokens,
    track_model,
    update_timestamps,
)
from prompt_library.db.client import (
    PROMPTS_KEY,
    RATINGS_KEY,
    StorageClient,
    get_storage_client,
)

logger = structlog.get_logger()

MAX_RATING = 5


def now_ms() -> int:
    return int(time.time() * 1000)


class PromptLibrary:
    """Manages the prompt table and the per-prompt ratings table."""

    def __init__(self, db: StorageClient) -> None:
        self.db = db

    def get_prompts(self) -> list[dict[str, Any]]:
        """All prompts, most recently added first."""
        prompts = self.db.get(PROMPTS_KEY, [])
        return prompts if isinstance(prompts, list) else []

    def get_prompt(self, prompt_id: str) -> dict[str, Any] | None:
        for p in self.get_prompts():
            if isinstance(p, dict) and p.get("id") == prompt_id:
                return p
        return None

    def create_prompt(
        self,
        title: str,
        content: str,
        model: str | None = None,
        is_code: bool = False,
    ) -> dict[str, Any]:
        """Create a prompt and put it at the head of the collection."""
        if not title or not title.strip():
            raise ValueError("Title must not be empty")
        if not content or not content.strip():
            raise ValueError("Content must not be empty")

        prompt: dict[str, Any] = {
            "id": str(uuid4()),
            "title": title.strip(),
            "content": content,
            "createdAt": now_ms(),
        }
        if model:
            prompt["metadata"] = track_model(model, content, is_code)

        self.save_prompt(prompt)
        return prompt

    def save_prompt(self, prompt: dict[str, Any]) -> None:
        """Prepend a prompt record to the table."""
        self.db.put(PROMPTS_KEY, [prompt, *self.get_prompts()])
        logger.info("prompt.saved", id=prompt.get("id"))

    def update_prompt(
        self,
        prompt_id: str,
        title: str | None = None,
        content: str | None = None,
        is_code: bool = False,
    ) -> dict[str, Any] | None:
        """Edit a prompt in place, refreshing its metadata when present.

        Imported metadata whose createdAt is not a millisecond ISO timestamp,
        or lies in the future, keeps its timestamps; only the token estimate
        is recomputed.
        """
        prompts = self.get_prompts()
        for idx, p in enumerate(prompts):
            if isinstance(p, dict) and p.get("id") == prompt_id:
                break
        else:
            return None

        updated = dict(prompts[idx])
        if title is not None:
            if not title.strip():
                raise ValueError("Title must not be empty")
            updated["title"] = title.strip()
        if content is not None:
            if not content.strip():
                raise ValueError("Content must not be empty")
            updated["content"] = content
        if isinstance(updated.get("metadata"), dict):
            try:
                metadata = update_timestamps(updated["metadata"])
            except ValueError:
                metadata = dict(updated["metadata"])
            metadata["tokenEstimate"] = estimate_tokens(updated["content"], is_code)
            updated["metadata"] = metadata

        prompts[idx] = updated
        self.db.put(PROMPTS_KEY, prompts)
        logger.info("prompt.updated", id=prompt_id)
        return updated

    def delete_prompt(self, prompt_id: str) -> bool:
        prompts = self.get_prompts()
        remaining = [p for p in prompts if not (isinstance(p, dict) and p.get("id") == prompt_id)]
        if len(remaining) == len(prompts):
            return False
        self.db.put(PROMPTS_KEY, remaining)
        logger.info("prompt.deleted", id=prompt_id)
        return True

    def clear_all(self) -> None:
        self.db.remove_item(PROMPTS_KEY)
        logger.info("prompt.cleared")

    # --- Ratings ---

    def get_all_ratings(self) -> dict[str, Any]:
        ratings = self.db.get(RATINGS_KEY, {})
        return ratings if isinstance(ratings, dict) else {}

    def get_rating(self, prompt_id: str) -> int | float:
        """Stored rating for a prompt, 0 when unrated."""
        value = self.get_all_ratings().get(prompt_id)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
        return 0

    def set_rating(self, prompt_id: str, value: int | float) -> None:
        """Rate a prompt 1..5; 0 clears the rating."""
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("Rating must be a number")
        if not 0 <= value <= MAX_RATING:
            raise ValueError(f"Rating must be between 0 and {MAX_RATING}")

        ratings = self.get_all_ratings()
        if value == 0:
            ratings.pop(prompt_id, None)
        else:
            ratings[prompt_id] = value
        self.db.put(RATINGS_KEY, ratings)
        logger.info("prompt.rated", id=prompt_id, rating=value)


@lru_cache
def get_library() -> PromptLibrary:
    """Get cached library instance."""
    return PromptLibrary(get_storage_client())
