"""Tests for the file-backed storage client."""

import json

from prompt_library.core.library import PromptLibrary
from prompt_library.core.transfer import TransferService
from prompt_library.db.client import BACKUP_PREFIX, PROMPTS_KEY, StorageClient


class TestStorageClient:
    def test_missing_key(self, tmp_path):
        db = StorageClient(tmp_path)
        assert db.get_item(PROMPTS_KEY) is None
        assert db.get(PROMPTS_KEY, []) == []

    def test_put_and_get(self, tmp_path):
        db = StorageClient(tmp_path / "data")
        db.put(PROMPTS_KEY, [{"id": "a", "title": "Ünïcode"}])
        assert db.get(PROMPTS_KEY) == [{"id": "a", "title": "Ünïcode"}]
        # A second client on the same directory sees the data
        assert StorageClient(tmp_path / "data").get(PROMPTS_KEY)[0]["id"] == "a"

    def test_corrupt_value_returns_default(self, tmp_path):
        db = StorageClient(tmp_path)
        db.set_item(PROMPTS_KEY, "[{broken")
        assert db.get(PROMPTS_KEY, []) == []

    def test_undecodable_bytes_return_default(self, tmp_path):
        db = StorageClient(tmp_path)
        db.put(PROMPTS_KEY, [])
        db._path(PROMPTS_KEY).write_bytes(b"\xff\xfe[garbage")
        assert db.get(PROMPTS_KEY, []) == []
        assert PromptLibrary(db).get_prompts() == []

    def test_deeply_nested_value_returns_default(self, tmp_path):
        db = StorageClient(tmp_path)
        db.set_item(PROMPTS_KEY, "[" * 100000 + "]" * 100000)
        assert db.get(PROMPTS_KEY, []) == []

    def test_analyze_survives_corrupt_table(self, tmp_path):
        db = StorageClient(tmp_path)
        db.put(PROMPTS_KEY, [])
        db._path(PROMPTS_KEY).write_bytes(b"\xff\xfe[garbage")
        analysis, payload = TransferService(db).analyze_import(
            json.dumps({"version": 1, "prompts": [{"id": "a", "title": "t", "content": "c", "createdAt": 1}]})
        )
        assert analysis.valid is True
        assert analysis.conflicts == []

    def test_keys_with_prefix(self, tmp_path):
        db = StorageClient(tmp_path)
        db.put(PROMPTS_KEY, [])
        db.put(f"{BACKUP_PREFIX}2025-01-01T00:00:00.000Z", {})
        db.put(f"{BACKUP_PREFIX}2025-01-02T00:00:00.000Z#2", {})
        assert db.keys(BACKUP_PREFIX) == [
            f"{BACKUP_PREFIX}2025-01-01T00:00:00.000Z",
            f"{BACKUP_PREFIX}2025-01-02T00:00:00.000Z#2",
        ]
        assert len(db.keys()) == 3

    def test_keys_on_missing_dir(self, tmp_path):
        assert StorageClient(tmp_path / "nowhere").keys() == []

    def test_remove_item(self, tmp_path):
        db = StorageClient(tmp_path)
        db.put(PROMPTS_KEY, [1])
        db.remove_item(PROMPTS_KEY)
        db.remove_item(PROMPTS_KEY)
        assert db.get_item(PROMPTS_KEY) is None

    def test_no_temp_files_left(self, tmp_path):
        db = StorageClient(tmp_path)
        db.put(PROMPTS_KEY, [1, 2])
        assert [p.name for p in tmp_path.iterdir() if p.name.startswith(".tmp-")] == []
