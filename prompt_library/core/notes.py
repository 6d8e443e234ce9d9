"""Per-prompt notes, kept in a single table keyed by prompt id."""

from __future__ import annotations

from functools import lru_cache
from typing import Any
from uuid import uuid4

import structlog

from prompt_library.core.library import now_ms
from prompt_library.db.client import NOTES_KEY, StorageClient, get_storage_client

logger = structlog.get_logger()


def _check_content(content: str) -> None:
    if not isinstance(content, str) or not content.strip():
        raise ValueError("Note content must not be empty")


class NotesStore:
    """Add, edit and remove notes attached to prompts."""

    def __init__(self, db: StorageClient) -> None:
        self.db = db

    def _read_all(self) -> dict[str, list[dict[str, Any]]]:
        notes = self.db.get(NOTES_KEY, {})
        return notes if isinstance(notes, dict) else {}

    def _write_all(self, notes: dict[str, list[dict[str, Any]]]) -> None:
        self.db.put(NOTES_KEY, notes)

    def get_notes(self, prompt_id: str) -> list[dict[str, Any]]:
        """Notes for a prompt, most recently updated first."""
        notes = self._read_all().get(prompt_id, [])
        return sorted(notes, key=lambda n: n.get("updatedAt", 0), reverse=True)

    def add_note(self, prompt_id: str, content: str) -> dict[str, Any]:
        _check_content(content)
        now = now_ms()
        note = {
            "id": str(uuid4()),
            "promptId": prompt_id,
            "content": content,
            "createdAt": now,
            "updatedAt": now,
        }
        all_notes = self._read_all()
        all_notes[prompt_id] = [note, *all_notes.get(prompt_id, [])]
        self._write_all(all_notes)
        logger.info("note.added", prompt_id=prompt_id, note_id=note["id"])
        return note

    def update_note(self, prompt_id: str, note_id: str, content: str) -> dict[str, Any]:
        """Edit a note. A note that no longer exists is re-created instead."""
        _check_content(content)
        all_notes = self._read_all()
        notes = list(all_notes.get(prompt_id, []))
        for idx, note in enumerate(notes):
            if note.get("id") == note_id:
                break
        else:
            return self.add_note(prompt_id, content)

        updated = {**notes[idx], "content": content, "updatedAt": now_ms()}
        notes[idx] = updated
        all_notes[prompt_id] = notes
        self._write_all(all_notes)
        logger.info("note.updated", prompt_id=prompt_id, note_id=note_id)
        return updated

    def delete_note(self, prompt_id: str, note_id: str) -> None:
        all_notes = self._read_all()
        all_notes[prompt_id] = [n for n in all_notes.get(prompt_id, []) if n.get("id") != note_id]
        self._write_all(all_notes)
        logger.info("note.deleted", prompt_id=prompt_id, note_id=note_id)


@lru_cache
def get_notes_store() -> NotesStore:
    """Get cached notes store instance."""
    return NotesStore(get_storage_client())
