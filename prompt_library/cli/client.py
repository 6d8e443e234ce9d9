"""API client for the Prompt Library REST API."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx


class LibraryClient:
    """HTTP client wrapping all Prompt Library API endpoints."""

    def __init__(self, base_url: str = "http://localhost:8500") -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=f"{self.base_url}/api/v1", timeout=30)

    def _handle(self, resp: httpx.Response) -> Any:
        if resp.status_code >= 400:
            try:
                detail = resp.json().get("detail", resp.text)
            except Exception:
                detail = resp.text
            raise RuntimeError(f"API error ({resp.status_code}): {detail}")
        if resp.status_code == 204:
            return None
        return resp.json()

    # --- Prompts ---

    def list_prompts(self, **params: Any) -> list[dict]:
        return self._handle(self._client.get("/prompts", params=params))

    def create_prompt(self, data: dict) -> dict:
        return self._handle(self._client.post("/prompts", json=data))

    def get_prompt(self, prompt_id: str) -> dict:
        return self._handle(self._client.get(f"/prompts/{prompt_id}"))

    def delete_prompt(self, prompt_id: str) -> None:
        self._handle(self._client.delete(f"/prompts/{prompt_id}"))

    def set_rating(self, prompt_id: str, rating: float) -> dict:
        return self._handle(self._client.put(f"/prompts/{prompt_id}/rating", json={"rating": rating}))

    # --- Notes ---

    def list_notes(self, prompt_id: str) -> list[dict]:
        return self._handle(self._client.get(f"/prompts/{prompt_id}/notes"))

    def add_note(self, prompt_id: str, content: str) -> dict:
        return self._handle(self._client.post(f"/prompts/{prompt_id}/notes", json={"content": content}))

    # --- Import / export ---

    def export(self) -> tuple[str, str]:
        """Return (suggested filename, file text)."""
        resp = self._client.get("/export")
        self._handle(resp)
        disposition = resp.headers.get("content-disposition", "")
        filename = disposition.split("filename=")[-1].strip('"') if "filename=" in disposition else ""
        return filename, resp.text

    def analyze_import(self, raw: bytes) -> dict:
        return self._handle(self._client.post(
            "/import/analyze",
            content=raw,
            headers={"Content-Type": "application/json"},
        ))

    def apply_import(self, payload: dict, mode: str) -> dict:
        return self._handle(self._client.post("/import/apply", json={"payload": payload, "mode": mode}))

    # --- Backups ---

    def list_backups(self) -> list[dict]:
        return self._handle(self._client.get("/backups"))

    def restore_backup(self, key: str) -> dict:
        return self._handle(self._client.post(f"/backups/{quote(key, safe='')}/restore"))
