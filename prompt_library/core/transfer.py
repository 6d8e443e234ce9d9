"""Export/import of the prompt collection.

Exports are versioned, self-describing JSON snapshots. Imports happen in two
steps: ``analyze_import`` validates an untrusted file and reports conflicts
against the current collection without touching storage, then
``apply_import`` merges the approved payload using one of four strategies.
Every apply is preceded by a backup of the prompt table and rolled back from
it if anything goes wrong.
"""

from __future__ import annotations

import json
import secrets
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any

import structlog

from prompt_library.core.library import PromptLibrary
from prompt_library.core.metadata import iso_now
from prompt_library.core.stats import compute_stats
from prompt_library.db.client import (
    BACKUP_PREFIX,
    PROMPTS_KEY,
    StorageClient,
    get_storage_client,
)

logger = structlog.get_logger()

EXPORT_VERSION = 1

_BASE36 = string.digits + string.ascii_lowercase


class ExportValidationError(ValueError):
    """Stored prompts are corrupt and cannot be exported."""


class BackupNotFoundError(LookupError):
    """No backup exists under the requested key."""


class ImportMode(str, Enum):
    """How to resolve incoming prompts whose id already exists."""

    REPLACE = "replace"
    MERGE_SKIP = "merge-skip"
    MERGE_OVERWRITE = "merge-overwrite"
    MERGE_DUPLICATE = "merge-duplicate"


@dataclass
class ImportConflict:
    """An incoming prompt that shares its id with a stored one."""
    id: str
    existing_title: str
    incoming_title: str


@dataclass
class ImportAnalysis:
    """Outcome of checking a candidate import file."""
    valid: bool
    reason: str | None = None
    version: Any = None
    has_internal_duplicates: bool | None = None
    duplicate_ids: list[str] | None = None
    conflicts: list[ImportConflict] | None = None
    imported_count: int | None = None


@dataclass
class ImportResult:
    """Counters and errors from a single apply."""
    mode: ImportMode
    applied: bool = False
    imported: int = 0
    skipped: int = 0
    overwritten: int = 0
    duplicated: int = 0
    errors: list[str] = field(default_factory=list)


def validate_prompt_shape(prompt: Any) -> bool:
    """Minimal structural check shared by export and import."""
    if not isinstance(prompt, dict):
        return False
    created_at = prompt.get("createdAt")
    return (
        isinstance(prompt.get("id"), str)
        and isinstance(prompt.get("title"), str)
        and isinstance(prompt.get("content"), str)
        and isinstance(created_at, (int, float))
        and not isinstance(created_at, bool)
    )


def is_supported_version(version: Any) -> bool:
    return not isinstance(version, bool) and version == EXPORT_VERSION


def describe_version(data: dict[str, Any]) -> str:
    """Render the version field the way it appears in the JSON file."""
    if "version" not in data:
        return "undefined"
    version = data["version"]
    if isinstance(version, str):
        return version
    if isinstance(version, float) and version.is_integer():
        return str(int(version))
    return json.dumps(version, ensure_ascii=False)


def export_filename(now: datetime | None = None) -> str:
    """prompts-export-YYYY-MM-DDTHH-MM-SS.json, in UTC."""
    now = now or datetime.now(timezone.utc)
    return f"prompts-export-{now.strftime('%Y-%m-%dT%H-%M-%S')}.json"


def serialize_export(payload: dict[str, Any]) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON constant {name}")


def parse_json(text: str | bytes) -> Any:
    """Strict JSON parsing: no NaN/Infinity literals, UTF-8 only."""
    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("utf-8-sig")
    elif text.startswith("\ufeff"):
        text = text[1:]
    return json.loads(text, parse_constant=_reject_constant)


def _base36(n: int) -> str:
    digits = []
    while True:
        n, rem = divmod(n, 36)
        digits.append(_BASE36[rem])
        if not n:
            break
    return "".join(reversed(digits))


def generate_unique_id(base: str, taken: set[str] | dict[str, Any]) -> str:
    """Derive a new id from base that is not in taken."""
    while True:
        suffix = "".join(secrets.choice(_BASE36) for _ in range(4))
        candidate = f"{base}-{_base36(int(time.time() * 1000))}-{suffix}"
        if candidate not in taken:
            return candidate


class TransferService:
    """Builds exports, analyses import files and applies them with rollback."""

    def __init__(self, db: StorageClient) -> None:
        self.db = db
        self.library = PromptLibrary(db)

    # --- Export ---

    def build_export_payload(self) -> dict[str, Any]:
        """Snapshot the full collection with stats.

        Raises ExportValidationError when storage holds malformed prompts.
        """
        prompts = self.library.get_prompts()
        if not all(validate_prompt_shape(p) for p in prompts):
            raise ExportValidationError("Storage contains invalid prompt records")

        return {
            "version": EXPORT_VERSION,
            "exportedAt": iso_now(),
            "stats": compute_stats(prompts, self.library.get_all_ratings()),
            "prompts": prompts,
        }

    def export_to_file(self, directory: str | Path) -> Path:
        """Write an export into directory and return its path."""
        payload = self.build_export_payload()
        out_dir = Path(directory)
        out_dir.mkdir(parents=True, exist_ok=True)
        path = out_dir / export_filename()
        path.write_text(serialize_export(payload), encoding="utf-8")
        logger.info("export.written", path=str(path), prompts=len(payload["prompts"]))
        return path

    # --- Import analysis ---

    def analyze_import(
        self, text: str | bytes
    ) -> tuple[ImportAnalysis, dict[str, Any] | None]:
        """Validate an import file and diff it against storage.

        Never raises and never writes. The payload is returned only when the
        analysis is valid.
        """
        try:
            data = parse_json(text)
        except (ValueError, RecursionError):
            return ImportAnalysis(valid=False, reason="Invalid JSON"), None

        if not isinstance(data, dict):
            return ImportAnalysis(valid=False, reason="Invalid payload"), None

        version = data.get("version")
        if not is_supported_version(version):
            reason = f"Unsupported version {describe_version(data)}"
            return ImportAnalysis(valid=False, reason=reason, version=version), None

        prompts = data.get("prompts")
        if not isinstance(prompts, list) or not prompts:
            return ImportAnalysis(valid=False, reason="No prompts to import"), None

        if not all(validate_prompt_shape(p) for p in prompts):
            return ImportAnalysis(valid=False, reason="One or more prompts are invalid"), None

        # Each repeat encounter is recorded, so an id seen three times appears twice
        seen: set[str] = set()
        duplicate_ids: list[str] = []
        for p in prompts:
            if p["id"] in seen:
                duplicate_ids.append(p["id"])
            seen.add(p["id"])

        existing = {
            p["id"]: p
            for p in self.library.get_prompts()
            if isinstance(p, dict) and isinstance(p.get("id"), str)
        }
        conflicts = [
            ImportConflict(
                id=p["id"],
                existing_title=existing[p["id"]].get("title", ""),
                incoming_title=p["title"],
            )
            for p in prompts
            if p["id"] in existing
        ]

        logger.info(
            "import.analyzed",
            prompts=len(prompts),
            conflicts=len(conflicts),
            duplicates=len(duplicate_ids),
        )
        analysis = ImportAnalysis(
            valid=True,
            version=version,
            imported_count=len(prompts),
            has_internal_duplicates=bool(duplicate_ids),
            duplicate_ids=duplicate_ids,
            conflicts=conflicts,
        )
        return analysis, data

    def analyze_import_file(
        self, path: str | Path
    ) -> tuple[ImportAnalysis, dict[str, Any] | None]:
        return self.analyze_import(Path(path).read_bytes())

    # --- Backups ---

    def backup_prompts(self) -> str:
        """Copy the prompt table to a new timestamped key and return the key."""
        created_at = iso_now()
        key = f"{BACKUP_PREFIX}{created_at}"
        n = 1
        while self.db.get_item(key) is not None:
            n += 1
            key = f"{BACKUP_PREFIX}{created_at}#{n}"

        self.db.put(key, {"createdAt": created_at, "prompts": self.db.get(PROMPTS_KEY, [])})
        logger.info("backup.created", key=key)
        return key

    def list_backups(self) -> list[dict[str, Any]]:
        """Backups, newest first."""
        backups = []
        for key in self.db.keys(BACKUP_PREFIX):
            data = self.db.get(key)
            if not isinstance(data, dict):
                continue
            prompts = data.get("prompts")
            backups.append(
                {
                    "key": key,
                    "createdAt": data.get("createdAt"),
                    "promptCount": len(prompts) if isinstance(prompts, list) else 0,
                }
            )
        backups.sort(key=lambda b: b["key"], reverse=True)
        return backups

    def restore_backup(self, key: str) -> int:
        """Overwrite the prompt table from a backup. Returns the prompt count."""
        data = self.db.get(key) if key.startswith(BACKUP_PREFIX) else None
        if not isinstance(data, dict) or not isinstance(data.get("prompts"), list):
            raise BackupNotFoundError(f"Backup '{key}' not found")

        self.db.put(PROMPTS_KEY, data["prompts"])
        logger.info("backup.restored", key=key, prompts=len(data["prompts"]))
        return len(data["prompts"])

    # --- Import apply ---

    def apply_import(self, payload: dict[str, Any], mode: ImportMode | str) -> ImportResult:
        """Merge payload into storage using mode.

        Invalid payloads are refused without touching storage. Any failure
        after the backup is taken restores the backup and is reported in
        ``errors`` with ``applied`` left False.
        """
        mode = ImportMode(mode)
        result = ImportResult(mode=mode)

        if not isinstance(payload, dict) or not is_supported_version(payload.get("version")):
            result.errors.append("Unsupported version")
            return result
        incoming = payload.get("prompts")
        if not isinstance(incoming, list) or not all(validate_prompt_shape(p) for p in incoming):
            result.errors.append("Invalid prompt data")
            return result

        backup_key = self.backup_prompts()
        try:
            existing = self.library.get_prompts()
            index = {p["id"]: p for p in existing}
            working = list(existing)

            for prompt in incoming:
                if prompt["id"] not in index:
                    index[prompt["id"]] = prompt
                    working.append(prompt)
                    result.imported += 1
                    continue

                if mode is ImportMode.REPLACE:
                    continue
                if mode is ImportMode.MERGE_SKIP:
                    result.skipped += 1
                elif mode is ImportMode.MERGE_OVERWRITE:
                    pos = next(i for i, p in enumerate(working) if p["id"] == prompt["id"])
                    working[pos] = prompt
                    index[prompt["id"]] = prompt
                    result.overwritten += 1
                elif mode is ImportMode.MERGE_DUPLICATE:
                    new_id = generate_unique_id(prompt["id"], index)
                    copy = {**prompt, "id": new_id}
                    index[new_id] = copy
                    working.append(copy)
                    result.duplicated += 1

            if mode is ImportMode.REPLACE:
                final = list({p["id"]: p for p in incoming}.values())
                result.imported = len(incoming)
                result.skipped = result.overwritten = result.duplicated = 0
            else:
                # Last write wins per id, keeping the position of the first
                final = list({p["id"]: p for p in working}.values())

            self.db.put(PROMPTS_KEY, final)
            result.applied = True
            logger.info(
                "import.applied",
                mode=mode.value,
                imported=result.imported,
                skipped=result.skipped,
                overwritten=result.overwritten,
                duplicated=result.duplicated,
                backup=backup_key,
            )
        except Exception as e:
            try:
                self.restore_backup(backup_key)
            except Exception as restore_error:
                logger.warning("import.rollback_failed", backup=backup_key, error=str(restore_error))
            else:
                logger.warning("import.rolled_back", backup=backup_key, error=str(e))
            result.errors.append(str(e) or "Import failed unexpectedly")

        return result


@lru_cache
def get_transfer_service() -> TransferService:
    """Get cached transfer service instance."""
    return TransferService(get_storage_client())
