"""Tests for the HTTP API."""

import json

from prompt_library.db.client import BACKUP_PREFIX, PROMPTS_KEY
from tests.conftest import make_export, make_prompt


class TestPromptAPI:
    def test_create_prompt(self, client):
        resp = client.post("/api/v1/prompts", json={"title": "Greeting", "content": "Say hi", "model": "gpt-4o"})
        assert resp.status_code == 201
        data = resp.json()
        assert data["title"] == "Greeting"
        assert "createdAt" in data
        assert data["metadata"]["model"] == "gpt-4o"

    def test_create_code_prompt(self, client):
        content = "def add(a, b):\n    return a + b"
        resp = client.post(
            "/api/v1/prompts", json={"title": "Add", "content": content, "model": "gpt-4o", "isCode": True}
        )
        assert resp.status_code == 201
        # 7 words and 31 chars, scaled by 1.3
        assert resp.json()["metadata"]["tokenEstimate"] == {"min": 6, "max": 11, "confidence": "high"}

    def test_create_validation(self, client):
        resp = client.post("/api/v1/prompts", json={"title": "", "content": "x"})
        assert resp.status_code == 422

    def test_create_blank_title(self, client):
        resp = client.post("/api/v1/prompts", json={"title": "   ", "content": "x"})
        assert resp.status_code == 422

    def test_list_prompts(self, client, seeded_db):
        resp = client.get("/api/v1/prompts")
        assert resp.status_code == 200
        data = resp.json()
        assert [p["id"] for p in data] == ["p2", "p1"]
        assert data[0]["rating"] == 4
        assert data[1]["rating"] is None

    def test_search(self, client, seeded_db):
        resp = client.get("/api/v1/prompts?search=transl")
        assert [p["id"] for p in resp.json()] == ["p1"]

    def test_get_not_found(self, client):
        assert client.get("/api/v1/prompts/nope").status_code == 404

    def test_update_prompt(self, client, seeded_db):
        resp = client.put("/api/v1/prompts/p1", json={"title": "Translate to French"})
        assert resp.status_code == 200
        assert resp.json()["title"] == "Translate to French"

    def test_delete_prompt(self, client, seeded_db):
        assert client.delete("/api/v1/prompts/p1").status_code == 204
        assert client.delete("/api/v1/prompts/p1").status_code == 404

    def test_rating(self, client, seeded_db):
        resp = client.put("/api/v1/prompts/p1/rating", json={"rating": 3})
        assert resp.status_code == 200
        assert resp.json()["rating"] == 3
        assert resp.json()["promptId"] == "p1"
        assert client.get("/api/v1/prompts/p1/rating").json()["rating"] == 3

    def test_rating_out_of_range(self, client, seeded_db):
        assert client.put("/api/v1/prompts/p1/rating", json={"rating": 7}).status_code == 422

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"


class TestNotesAPI:
    def test_add_and_list(self, client, seeded_db):
        resp = client.post("/api/v1/prompts/p1/notes", json={"content": "Use formal tone"})
        assert resp.status_code == 201
        note = resp.json()
        assert note["promptId"] == "p1"

        listed = client.get("/api/v1/prompts/p1/notes").json()
        assert [n["id"] for n in listed] == [note["id"]]

    def test_add_to_missing_prompt(self, client):
        assert client.post("/api/v1/prompts/nope/notes", json={"content": "x"}).status_code == 404

    def test_update_and_delete(self, client, seeded_db):
        note = client.post("/api/v1/prompts/p1/notes", json={"content": "draft"}).json()
        resp = client.put(f"/api/v1/prompts/p1/notes/{note['id']}", json={"content": "final"})
        assert resp.json()["content"] == "final"
        assert client.delete(f"/api/v1/prompts/p1/notes/{note['id']}").status_code == 204
        assert client.get("/api/v1/prompts/p1/notes").json() == []


class TestTransferAPI:
    def test_export(self, client, seeded_db):
        resp = client.get("/api/v1/export")
        assert resp.status_code == 200
        assert 'filename="prompts-export-' in resp.headers["content-disposition"]
        data = json.loads(resp.text)
        assert data["version"] == 1
        assert data["stats"]["totalPrompts"] == 2

    def test_export_corrupt_store(self, client, mock_db):
        mock_db.put(PROMPTS_KEY, [{"id": 1}])
        resp = client.get("/api/v1/export")
        assert resp.status_code == 500
        assert "invalid prompt records" in resp.json()["detail"]

    def test_analyze_invalid(self, client):
        resp = client.post("/api/v1/import/analyze", content=b"not json")
        assert resp.status_code == 200
        body = resp.json()
        assert body["analysis"] == {
            "valid": False,
            "reason": "Invalid JSON",
            "version": None,
            "hasInternalDuplicates": None,
            "duplicateIds": None,
            "conflicts": None,
            "importedCount": None,
        }
        assert body["payload"] is None

    def test_analyze_unsupported_version(self, client):
        resp = client.post("/api/v1/import/analyze", content=json.dumps(make_export(make_prompt("a"), version=2)))
        analysis = resp.json()["analysis"]
        assert analysis["valid"] is False
        assert analysis["reason"] == "Unsupported version 2"
        assert analysis["version"] == 2

    def test_analyze_then_apply(self, client, seeded_db):
        raw = json.dumps(make_export(make_prompt("p1", "New title"), make_prompt("n1")))
        body = client.post("/api/v1/import/analyze", content=raw).json()
        assert body["analysis"]["conflicts"] == [
            {"id": "p1", "existingTitle": "Translate", "incomingTitle": "New title"}
        ]

        resp = client.post("/api/v1/import/apply", json={"payload": body["payload"], "mode": "merge-overwrite"})
        assert resp.status_code == 200
        result = resp.json()
        assert result["applied"] is True
        assert result["mode"] == "merge-overwrite"
        assert (result["imported"], result["overwritten"]) == (1, 1)

    def test_analysis_uses_camel_case(self, client, seeded_db):
        raw = json.dumps(make_export(make_prompt("a"), make_prompt("a")))
        analysis = client.post("/api/v1/import/analyze", content=raw).json()["analysis"]
        assert analysis["importedCount"] == 2
        assert analysis["hasInternalDuplicates"] is True
        assert analysis["duplicateIds"] == ["a"]

    def test_imported_prompt_with_odd_metadata_is_listable(self, client, mock_db):
        raw = json.dumps(make_export(make_prompt("a", metadata="gpt-4o"), make_prompt("b", metadata=[1, 2])))
        body = client.post("/api/v1/import/analyze", content=raw).json()
        assert body["analysis"]["valid"] is True
        result = client.post("/api/v1/import/apply", json={"payload": body["payload"], "mode": "merge-skip"}).json()
        assert result["applied"] is True

        resp = client.get("/api/v1/prompts")
        assert resp.status_code == 200
        assert [p["metadata"] for p in resp.json()] == ["gpt-4o", [1, 2]]
        assert client.get("/api/v1/prompts/a").json()["metadata"] == "gpt-4o"

    def test_imported_prompt_with_second_precision_metadata_is_editable(self, client, mock_db):
        metadata = {"model": "gpt-4o", "createdAt": "2025-01-01T00:00:00Z", "updatedAt": "2025-01-01T00:00:00Z"}
        payload = make_export(make_prompt("a", metadata=metadata))
        client.post("/api/v1/import/apply", json={"payload": payload, "mode": "merge-skip"})

        resp = client.put("/api/v1/prompts/a", json={"content": "one two three four"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["content"] == "one two three four"
        assert data["metadata"]["createdAt"] == "2025-01-01T00:00:00Z"
        assert data["metadata"]["updatedAt"] == "2025-01-01T00:00:00Z"
        assert data["metadata"]["tokenEstimate"] == {"min": 3, "max": 5, "confidence": "high"}

    def test_apply_rejects_bad_payload(self, client, seeded_db):
        before = seeded_db.snapshot()
        resp = client.post(
            "/api/v1/import/apply",
            json={"payload": make_export(make_prompt("x"), version=9), "mode": "replace"},
        )
        assert resp.json()["applied"] is False
        assert resp.json()["errors"] == ["Unsupported version"]
        assert seeded_db.snapshot() == before

    def test_apply_unknown_mode(self, client):
        resp = client.post("/api/v1/import/apply", json={"payload": make_export(make_prompt("a")), "mode": "nope"})
        assert resp.status_code == 422

    def test_backups(self, client, seeded_db):
        client.post("/api/v1/import/apply", json={"payload": make_export(make_prompt("z")), "mode": "replace"})
        backups = client.get("/api/v1/backups").json()
        assert len(backups) == 1
        assert backups[0]["key"].startswith(BACKUP_PREFIX)
        assert backups[0]["promptCount"] == 2

        from urllib.parse import quote

        resp = client.post(f"/api/v1/backups/{quote(backups[0]['key'], safe='')}/restore")
        assert resp.status_code == 200
        assert resp.json()["restored"] == 2
        ids = [p["id"] for p in client.get("/api/v1/prompts").json()]
        assert ids == ["p2", "p1"]

    def test_restore_missing_backup(self, client):
        resp = client.post(f"/api/v1/backups/{BACKUP_PREFIX}nope/restore")
        assert resp.status_code == 404
