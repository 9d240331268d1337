"""
Error taxonomy and structured logging for migration events.

The :mod:`src.utils.errors` module defines the exceptions raised across the
pipeline and centralizes the writing of log entries for both failed and
successful per-item operations.  Each entry is appended to a JSON Lines file
under the migration output directory so that the information can be reviewed
or parsed after a run.

Two public logging functions are provided:

``report_error``
    Record an error that occurred for a content item.  An optional exception
    can be supplied and will be serialized to the log.

``report_ok``
    Record a successful step for a content item.  Additional key/value
    information can be attached to the entry via the ``extra`` parameter.

The ``ERRORS`` dictionary maps error or event codes to human readable
messages.  Codes not present in the dictionary fall back to the code itself.
"""

from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional

# Mapping of event codes used throughout the migration to descriptive messages.
# The keys include both error and success codes as the same lookup is used by
# :func:`report_error` and :func:`report_ok`.
ERRORS: Dict[str, str] = {
    "TRANSFORM_FALLBACK": "Content could not be transformed; fallback document used",
    "TRANSFORM_FAILED": "Content could not be transformed",
    "BUILDER_UPLOAD": "Builder.io rejected the content",
    "ALREADY_MIGRATED": "Content already exists in Builder.io; skipped",
    "UPLOADED": "Content uploaded successfully",
    "DRY_RUN": "Dry-run: content not uploaded",
}

_REPORT_DIR = "migration-output"
_ERROR_LOG = "errors.jsonl"
_OK_LOG = "success.jsonl"


class MigrationError(Exception):
    """Base class for every error raised by the migration pipeline."""


class FetchError(MigrationError):
    """A source API request failed (network error or non-2xx status).

    ``kind`` names the collection being fetched (``users``, ``pages``,
    ``posts``...) so the failing stage can be reported precisely.
    """

    def __init__(self, kind: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"Failed to fetch {kind}: {message}")
        self.kind = kind
        self.message = message
        self.status_code = status_code

    @property
    def is_authorization_error(self) -> bool:
        return self.status_code in (401, 403)


class AuthError(FetchError):
    """Authorization was rejected even after a fresh token was acquired."""


class TransformError(MigrationError):
    """Raised when HTML cannot be converted into a Builder block tree."""


class UploadError(MigrationError):
    """The destination API refused to create a content entry."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class DedupQueryError(MigrationError):
    """The destination query used for duplicate detection failed."""


class DependencyError(MigrationError):
    """One or more required Python modules are not importable."""

    def __init__(self, message: str, installed: Optional[List[str]] = None, missing: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.installed = installed or []
        self.missing = missing or []


def _write_jsonl(path: str, data: Dict[str, Any]) -> None:
    """Append ``data`` as a JSON object followed by a newline to ``path``."""
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, default=str)
        f.write("\n")


def _entry(code: str, item: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "code": code,
        "message": ERRORS.get(code, code),
        "id": item.get("id"),
        "type": item.get("type"),
        "title": item.get("title"),
    }


def report_error(
    code: str,
    item: Dict[str, Any],
    exc: Optional[BaseException] = None,
    *,
    report_dir: str = _REPORT_DIR,
) -> None:
    """Log an error event for ``item``.

    Parameters
    ----------
    code:
        A key identifying the type of error.  If ``code`` is present in
        :data:`ERRORS` its value will be used as the message.
    item:
        A mapping describing the content item.  Only the ``id``, ``type`` and
        ``title`` keys are referenced if present.
    exc:
        Optional exception instance that triggered the error.  The string
        representation of the exception will be included in the log entry.
    report_dir:
        Directory receiving ``errors.jsonl``.
    """
    entry = _entry(code, item)
    if exc is not None:
        entry["error"] = str(exc)
    print(f"[ERROR] {entry['message']} - {item.get('type', '')} {item.get('id', '')}")
    _write_jsonl(os.path.join(report_dir, _ERROR_LOG), entry)


def report_ok(
    code: str,
    item: Dict[str, Any],
    extra: Optional[Dict[str, Any]] = None,
    *,
    report_dir: str = _REPORT_DIR,
) -> None:
    """Log a successful event for ``item``.

    Parameters
    ----------
    code:
        A key identifying the type of event.
    item:
        The content item mapping associated with the event.
    extra:
        Optional dictionary of additional fields to merge into the log entry.
    report_dir:
        Directory receiving ``success.jsonl``.
    """
    entry = _entry(code, item)
    if extra:
        entry.update(extra)
    print(f"[OK] {entry['message']} - {item.get('type', '')} {item.get('id', '')}")
    _write_jsonl(os.path.join(report_dir, _OK_LOG), entry)
