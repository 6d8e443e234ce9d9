"""Test fixtures — in-memory storage client and shared test data."""

from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from prompt_library.db.client import PROMPTS_KEY, RATINGS_KEY, StorageClient


class MockStorageClient(StorageClient):
    """In-memory stand-in for the file-backed storage client."""

    def __init__(self):
        super().__init__("unused")
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._items if k.startswith(prefix))

    def snapshot(self) -> dict[str, str]:
        return dict(self._items)


def make_prompt(id: str, title: str = "Untitled", **extra: Any) -> dict[str, Any]:
    return {
        "id": id,
        "title": title,
        "content": f"Content of {title}",
        "createdAt": 1700000000000,
        **extra,
    }


def make_export(*prompts: dict[str, Any], version: Any = 1) -> dict[str, Any]:
    return {
        "version": version,
        "exportedAt": "2025-01-01T00:00:00.000Z",
        "stats": {"totalPrompts": len(prompts), "averageRating": 0, "mostUsedModel": None},
        "prompts": list(prompts),
    }


@pytest.fixture
def mock_db() -> MockStorageClient:
    """Fresh in-memory store for each test."""
    return MockStorageClient()


@pytest.fixture
def seeded_db(mock_db) -> MockStorageClient:
    """Store holding two prompts, one rated and tagged with a model."""
    mock_db.put(
        PROMPTS_KEY,
        [
            make_prompt(
                "p2",
                "Summarise",
                metadata={
                    "model": "gpt-4o",
                    "createdAt": "2025-01-02T00:00:00.000Z",
                    "updatedAt": "2025-01-02T00:00:00.000Z",
                    "tokenEstimate": {"min": 3, "max": 5, "confidence": "high"},
                },
            ),
            make_prompt("p1", "Translate"),
        ],
    )
    mock_db.put(RATINGS_KEY, {"p2": 4})
    return mock_db


@pytest.fixture
def app(mock_db):
    """FastAPI test app with mocked dependencies."""
    from prompt_library.core.library import PromptLibrary, get_library
    from prompt_library.core.notes import NotesStore, get_notes_store
    from prompt_library.core.transfer import TransferService, get_transfer_service
    from prompt_library.db.client import get_storage_client
    from prompt_library.main import app as _app

    library = PromptLibrary(mock_db)
    notes = NotesStore(mock_db)
    transfer = TransferService(mock_db)

    _app.dependency_overrides[get_library] = lambda: library
    _app.dependency_overrides[get_notes_store] = lambda: notes
    _app.dependency_overrides[get_transfer_service] = lambda: transfer
    _app.dependency_overrides[get_storage_client] = lambda: mock_db

    yield _app

    _app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    """HTTP test client."""
    return TestClient(app)
