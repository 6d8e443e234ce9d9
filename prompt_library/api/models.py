"""Pydantic request/response models for the API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from prompt_library.core.transfer import ImportMode


# --- Prompts ---


class PromptCreate(BaseModel):
    """Create a new prompt."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    model: str | None = Field(default=None, min_length=1, max_length=100)
    is_code: bool = Field(default=False, alias="isCode")


class PromptUpdate(BaseModel):
    """Update a prompt's title or content."""

    model_config = ConfigDict(populate_by_name=True)

    title: str | None = Field(default=None, min_length=1, max_length=200)
    content: str | None = Field(default=None, min_length=1)
    is_code: bool = Field(default=False, alias="isCode")


class PromptResponse(BaseModel):
    """Prompt response, in the same field layout as the export file."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    content: str
    created_at: int | float = Field(alias="createdAt")
    rating: float | None = None
    # Imported prompts may carry metadata of any shape
    metadata: Any = None


# --- Ratings ---


class RatingUpdate(BaseModel):
    """Set a rating; 0 clears it."""

    rating: float = Field(..., ge=0, le=5)


class RatingResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt_id: str = Field(alias="promptId")
    rating: float


# --- Notes ---


class NoteCreate(BaseModel):
    content: str = Field(..., min_length=1)


class NoteResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    prompt_id: str = Field(alias="promptId")
    content: str
    created_at: int = Field(alias="createdAt")
    updated_at: int = Field(alias="updatedAt")


# --- Import / export ---


class ImportConflictResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    existing_title: str = Field(alias="existingTitle")
    incoming_title: str = Field(alias="incomingTitle")


class ImportAnalysisResponse(BaseModel):
    """Result of analysing an import file. Invalid files carry a reason."""

    model_config = ConfigDict(populate_by_name=True)

    valid: bool
    reason: str | None = None
    version: Any = None
    has_internal_duplicates: bool | None = Field(default=None, alias="hasInternalDuplicates")
    duplicate_ids: list[str] | None = Field(default=None, alias="duplicateIds")
    conflicts: list[ImportConflictResponse] | None = None
    imported_count: int | None = Field(default=None, alias="importedCount")


class AnalyzeResponse(BaseModel):
    analysis: ImportAnalysisResponse
    payload: dict[str, Any] | None = None


class ImportApplyRequest(BaseModel):
    """Apply a previously analysed payload."""

    payload: dict[str, Any]
    mode: ImportMode = ImportMode.MERGE_SKIP


class ImportResultResponse(BaseModel):
    applied: bool
    mode: ImportMode
    imported: int
    skipped: int
    overwritten: int
    duplicated: int
    errors: list[str]


class BackupResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key: str
    created_at: str | None = Field(default=None, alias="createdAt")
    prompt_count: int = Field(alias="promptCount")


class RestoreResponse(BaseModel):
    key: str
    restored: int
