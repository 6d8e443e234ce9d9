"""Per-prompt notes endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from prompt_library.api.models import NoteCreate, NoteResponse
from prompt_library.core.library import PromptLibrary, get_library
from prompt_library.core.notes import NotesStore, get_notes_store

router = APIRouter()


def _require_prompt(library: PromptLibrary, prompt_id: str) -> None:
    if not library.get_prompt(prompt_id):
        raise HTTPException(status_code=404, detail=f"Prompt '{prompt_id}' not found")


@router.get("/{prompt_id}/notes", response_model=list[NoteResponse])
async def list_notes(
    prompt_id: str,
    notes: NotesStore = Depends(get_notes_store),
) -> list[NoteResponse]:
    """Notes for a prompt, most recently updated first."""
    return [NoteResponse(**n) for n in notes.get_notes(prompt_id)]


@router.post("/{prompt_id}/notes", response_model=NoteResponse, status_code=201)
async def add_note(
    prompt_id: str,
    data: NoteCreate,
    notes: NotesStore = Depends(get_notes_store),
    library: PromptLibrary = Depends(get_library),
) -> NoteResponse:
    _require_prompt(library, prompt_id)
    try:
        note = notes.add_note(prompt_id, data.content)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return NoteResponse(**note)


@router.put("/{prompt_id}/notes/{note_id}", response_model=NoteResponse)
async def update_note(
    prompt_id: str,
    note_id: str,
    data: NoteCreate,
    notes: NotesStore = Depends(get_notes_store),
    library: PromptLibrary = Depends(get_library),
) -> NoteResponse:
    """Edit a note. Editing a note that was removed meanwhile re-creates it."""
    _require_prompt(library, prompt_id)
    try:
        note = notes.update_note(prompt_id, note_id, data.content)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return NoteResponse(**note)


@router.delete("/{prompt_id}/notes/{note_id}", status_code=204)
async def delete_note(
    prompt_id: str,
    note_id: str,
    notes: NotesStore = Depends(get_notes_store),
) -> None:
    notes.delete_note(prompt_id, note_id)
