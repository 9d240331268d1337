"""
High-level orchestration of the WordPress → Builder.io migration.

This module defines a :class:`BuilderMigrationTool` class that ties
together the extractors, parsers, migrators and utilities into a
complete pipeline.  A run goes through seven fixed steps: dependency
checks, fetching users, pages and posts from the WordPress REST API,
transforming every item into a Builder.io page document, uploading the
documents and generating the final report.

The tool owns a single :class:`~models.migration_state.MigrationState`.
It is reset at the start of every run and only ever handed out as a deep
copy (:meth:`BuilderMigrationTool.get_progress_snapshot`).  Observers that
need push updates can :meth:`~BuilderMigrationTool.subscribe` to typed
:class:`~models.migration_state.StepEvent` messages.

Configuration is supplied via a JSON file path or directly as a
dictionary.  The ``wordpress`` section names the source site (and
optional JWT credentials), the ``builder`` section holds the Builder.io
private key and model, and optional migration settings (dry-run, debug
dumps, output directory...) live under the ``migration`` key.
"""

from __future__ import annotations

import copy
import json
import os
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from models.builder_page import ContentItem, PageDocument, slugify
from models.migration_state import (
    STEP_DEFINITIONS,
    ContentTypeBreakdown,
    FailedItem,
    MigrationState,
    StepEvent,
    utc_now,
)
from src.extractors.auth import TokenProvider, call_with_auth_retry
from src.extractors.wordpress_api import collection_base_url, fetch_collection, fetch_seo_data
from src.migrators.builder_migrator import upload_page
from src.parsers.content_transformer import transform_content
from src.parsers.media import extract_media
from src.utils.errors import MigrationError, UploadError, report_error, report_ok
from src.utils.pre_flight_checks import check_dependencies, run_config_checks
from src.utils.report import build_migration_report, write_report

DEFAULT_CONFIG_FILE = "config/migration_config.json"

# Flat keys accepted from the dashboard's start request
_FLAT_OVERRIDES = {
    "wordpressUrl": ("wordpress", "url"),
    "builderApiKey": ("builder", "api_key"),
    "builderModel": ("builder", "model"),
}

_COLLECTION_STATS = {
    "users": "total_users",
    "pages": "total_pages",
    "posts": "total_posts",
}

# Collection name -> content type stored in originMeta
_CONTENT_TYPES = (("pages", "page"), ("posts", "post"))

Listener = Callable[[StepEvent], None]


def load_migration_config(config: Optional[Dict[str, Any]] = None, *, config_file: Optional[str] = None) -> Dict[str, Any]:
    """
    Read the configuration from ``config_file`` (when it exists) or use
    ``config``, then fill every missing key with its default.  Credentials
    fall back to environment variables.
    """
    if config_file and os.path.exists(config_file):
        with open(config_file, "r", encoding="utf-8") as f:
            config = json.load(f)
    elif config is None:
        # Default configuration
        config = {}
    config = copy.deepcopy(config)

    # Ensure essential keys exist to prevent KeyErrors
    wordpress = config.setdefault("wordpress", {})
    wordpress.setdefault("url", os.getenv("WORDPRESS_URL", ""))
    wordpress.setdefault("api_endpoint", "/wp-json/wp/v2")
    wordpress.setdefault("auth_endpoint", "/wp-json/jwt-auth/v1/token")
    wordpress.setdefault("seo_endpoint", "/wp-json/yoast/v1")
    wordpress.setdefault("username", os.getenv("WORDPRESS_USERNAME", ""))
    wordpress.setdefault("password", os.getenv("WORDPRESS_PASSWORD", ""))

    builder = config.setdefault("builder", {})
    builder.setdefault("api_key", os.getenv("BUILDER_API_KEY", ""))
    builder.setdefault("public_api_key", os.getenv("BUILDER_PUBLIC_API_KEY", ""))
    builder.setdefault("model", os.getenv("BUILDER_MODEL", "page"))
    builder.setdefault("api_endpoint", "https://builder.io/api/v1")
    builder.setdefault("content_endpoint", "https://cdn.builder.io/api/v3/content")
    builder.setdefault("max_attempts", 5)

    migration = config.setdefault("migration", {})
    migration.setdefault("dry_run", False)
    migration.setdefault("debug", False)
    migration.setdefault("output_dir", "migration-output")
    migration.setdefault("per_page", 100)
    migration.setdefault("fetch_concurrency", 4)
    migration.setdefault("fetch_seo", False)
    migration.setdefault("max_attempts", 5)
    return config


def apply_overrides(config: Dict[str, Any], overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Merge a start request (flat dashboard keys or nested sections) into ``config``."""
    merged = copy.deepcopy(config)
    for key, value in (overrides or {}).items():
        if key in _FLAT_OVERRIDES:
            if value:
                section, name = _FLAT_OVERRIDES[key]
                merged.setdefault(section, {})[name] = value
        elif isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key].update(value)
        else:
            merged[key] = value
    return merged


class BuilderMigrationTool:
    """
    Encapsulates all state and behavior required to migrate the pages and
    posts of a WordPress site to Builder.io.  Per-item success and failure
    information is recorded using the :mod:`src.utils.errors` module; run
    progress is kept in a :class:`MigrationState` that is safe to read at
    any time through :meth:`get_progress_snapshot`.

    The network-facing collaborators can be swapped (tests pass fakes):
    ``fetcher`` has the signature of
    :func:`~src.extractors.wordpress_api.fetch_collection`, ``transformer``
    that of :func:`~src.parsers.content_transformer.transform_content` and
    ``uploader`` that of :func:`~src.migrators.builder_migrator.upload_page`.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        *,
        config_file: Optional[str] = None,
        fetcher: Callable[..., List[Dict[str, Any]]] = fetch_collection,
        transformer: Callable[..., PageDocument] = transform_content,
        uploader: Callable[..., Dict[str, Any]] = upload_page,
        dependency_check: Callable[[], Dict[str, Any]] = check_dependencies,
    ) -> None:
        self.config = load_migration_config(config, config_file=config_file)
        self._fetcher = fetcher
        self._transformer = transformer
        self._uploader = uploader
        self._dependency_check = dependency_check

        self._lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._thread: Optional[threading.Thread] = None
        self._token_provider = TokenProvider(self.config["wordpress"])
        self._state = MigrationState.initial()
        self._reset_run_data()

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    @property
    def output_dir(self) -> str:
        return self.config["migration"]["output_dir"]

    def log_message(self, message: str, level: str = "INFO") -> None:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        log_entry = f"[{timestamp}] {level}: {message}"
        print(log_entry)
        # Append to log file
        os.makedirs(self.output_dir, exist_ok=True)
        with open(os.path.join(self.output_dir, "migration.log"), "a", encoding="utf-8") as f:
            f.write(log_entry + "\n")

    def _dump(self, filename: str, data: Any) -> None:
        """Write a debug JSON file when ``migration.debug`` is enabled."""
        if not self.config["migration"].get("debug"):
            return
        os.makedirs(self.output_dir, exist_ok=True)
        path = os.path.join(self.output_dir, filename)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2, default=str)
        self.log_message(f"Debug data saved to {path}", level="DEBUG")

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------
    def reset(self) -> None:
        """Return the state to its initial values; must not be called mid-run."""
        with self._lock:
            self._state = MigrationState.initial()
            self._reset_run_data()

    def _reset_run_data(self) -> None:
        self._documents: List[Tuple[ContentItem, PageDocument]] = []
        self._failures: List[FailedItem] = []
        self._successes: List[Dict[str, str]] = []
        self._breakdown: Dict[str, ContentTypeBreakdown] = {
            content_type: ContentTypeBreakdown() for _, content_type in _CONTENT_TYPES
        }
        self._start_time = utc_now()

    def get_progress_snapshot(self) -> MigrationState:
        """A deep copy of the current state; mutating it has no effect on the run."""
        with self._lock:
            return self._state.model_copy(deep=True)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for step events; returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, step_id: str) -> None:
        with self._lock:
            index = self._state.step_index(step_id)
            step = self._state.steps[index]
            event = StepEvent(
                step_id=step_id,
                index=index,
                status=step.status,
                data=copy.deepcopy(step.data),
                error=step.error,
                stats=self._state.stats.model_copy(),
            )
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                self.log_message(f"Progress listener failed: {e}", level="WARNING")

    def _update_step(self, step_id: str, status: str, data: Any = None, error: Optional[str] = None) -> None:
        with self._lock:
            index = self._state.step_index(step_id)
            step = self._state.steps[index]
            self._state.steps[index] = step.model_copy(update={"status": status, "data": data, "error": error})
            self._state.current_step = index
            if status == "failed":
                self._state.status = "failed"
                self._state.error = f"Error in {step.name}: {error}"
            elif status == "completed" and index == len(self._state.steps) - 1:
                self._state.status = "completed"
        self._emit(step_id)

    def _bump(self, **deltas: int) -> None:
        with self._lock:
            stats = self._state.stats
            for field, delta in deltas.items():
                setattr(stats, field, getattr(stats, field) + delta)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------
    def _prepare_run(self, overrides: Optional[Dict[str, Any]]) -> None:
        if overrides:
            self.config = load_migration_config(apply_overrides(self.config, overrides))
            self._token_provider = TokenProvider(self.config["wordpress"])
        self.reset()
        with self._lock:
            self._state.status = "running"

    def start(self, config: Optional[Dict[str, Any]] = None) -> Dict[str, str]:
        """
        Start a run in a background thread and return immediately.  Progress
        is read with :meth:`get_progress_snapshot`.  A second start while a
        run is in progress is refused.
        """
        with self._lock:
            if self._state.status == "running":
                return {"status": "busy"}
            self._prepare_run(config)
            self._thread = threading.Thread(target=self._run_pipeline, name="builder-migration", daemon=True)
            self._thread.start()
        return {"status": "started"}

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for a run started with :meth:`start`; ``True`` once it has finished."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def run(self, config: Optional[Dict[str, Any]] = None) -> MigrationState:
        """Run the whole pipeline in the calling thread and return the final state."""
        with self._lock:
            if self._state.status == "running":
                raise MigrationError("A migration is already running")
            self._prepare_run(config)
        self._run_pipeline()
        return self.get_progress_snapshot()

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------
    def _run_pipeline(self) -> None:
        stages: Dict[str, Callable[[], Any]] = {
            "dependencies": self._check_dependencies,
            "users": lambda: self._fetch_stage("users"),
            "pages": lambda: self._fetch_stage("pages"),
            "posts": lambda: self._fetch_stage("posts"),
            "transform": self._transform_stage,
            "upload": self._upload_stage,
            "report": self._report_stage,
        }
        step_id = STEP_DEFINITIONS[0][0]
        try:
            self.log_message("Starting WordPress to Builder.io migration.")
            for step_id, name in STEP_DEFINITIONS:
                self.log_message(f"{name}...")
                self._update_step(step_id, "running")
                try:
                    data = stages[step_id]()
                except Exception as e:
                    self._update_step(step_id, "failed", error=str(e))
                    self.log_message(f"{name} failed: {e}", level="ERROR")
                    return
                self._update_step(step_id, "completed", data)
            self.log_message("Migration complete!")
        except Exception as e:
            # Raised outside a stage (e.g. the log file cannot be written)
            with self._lock:
                still_running = self._state.status == "running"
            if still_running:
                self._update_step(step_id, "failed", error=str(e))
            print(f"[ERROR] Migration aborted: {e}")

    def _check_dependencies(self) -> Dict[str, Any]:
        result = self._dependency_check()
        run_config_checks(self.config)
        return result

    def _fetch_stage(self, kind: str) -> Dict[str, Any]:
        wordpress = self.config["wordpress"]
        migration = self.config["migration"]
        base_url = collection_base_url(wordpress)

        def fetch(token: Optional[str]) -> List[Dict[str, Any]]:
            return self._fetcher(
                kind,
                base_url,
                token,
                per_page=int(migration["per_page"]),
                max_workers=int(migration["fetch_concurrency"]),
                max_attempts=int(migration["max_attempts"]),
            )

        records = call_with_auth_retry(self._token_provider, fetch)
        self._dump(f"wp-{kind}-raw.json", records)
        with self._lock:
            setattr(self._state.content_buffer, kind, copy.deepcopy(records))
            setattr(self._state.stats, _COLLECTION_STATS[kind], len(records))
        for collection, content_type in _CONTENT_TYPES:
            if collection == kind:
                self._breakdown[content_type].total = len(records)
        self.log_message(f"Successfully fetched {len(records)} {kind} from WordPress")
        return {"count": len(records)}

    def _seo_fetcher(self) -> Optional[Callable[[ContentItem], Optional[Dict[str, Any]]]]:
        if not self.config["migration"].get("fetch_seo"):
            return None
        wordpress = self.config["wordpress"]
        return lambda item: fetch_seo_data(wordpress, item, self._token_provider.get_token())

    def _transform_stage(self) -> Dict[str, Any]:
        with self._lock:
            buffer = self._state.content_buffer.model_copy(deep=True)
        authors = {u.get("id"): u.get("name") for u in buffer.users if isinstance(u, dict)}
        model = self.config["builder"]["model"]
        seo_fetcher = self._seo_fetcher()

        queue = [(content_type, record) for collection, content_type in _CONTENT_TYPES
                 for record in getattr(buffer, collection)]
        failed_items: List[FailedItem] = []
        self._documents = []

        for content_type, record in queue:
            described = _describe(content_type, record)
            try:
                item = ContentItem.from_wordpress(record, content_type)
                if not item.author_name and item.author_id in authors:
                    item = item.model_copy(update={"author_name": authors[item.author_id]})
                doc = self._transformer(item, model=model, seo_fetcher=seo_fetcher)
            except Exception as e:
                # Not even a fallback document: the item cannot be migrated
                failure = FailedItem(reason=f"Transform failed: {e}", stage="transform", **described)
                failed_items.append(failure)
                self._failures.append(failure)
                self._breakdown[content_type].failed += 1
                self._bump(failed_content=1)
                report_error("TRANSFORM_FAILED", described, e, report_dir=self.output_dir)
                continue

            if doc.is_fallback:
                failed_items.append(FailedItem(reason=doc.fallback_reason, stage="transform", **described))
                report_error("TRANSFORM_FALLBACK", described, report_dir=self.output_dir)
            self._documents.append((item, doc))
            self._bump(transformed_content=1)

            self._dump(f"builder-{content_type}-{slugify(item.slug or str(item.id)) or item.id}.json", doc.to_builder_payload())
            if isinstance(item.body_html, str):
                self._dump(f"{content_type}-{item.id}-media.json", extract_media(item.body_html))

        self.log_message(f"Content transformed successfully ({len(self._documents)} documents)")
        return {
            "processed": len(queue),
            "succeeded": len(queue) - len(failed_items),
            "failed": len(failed_items),
            "failedItems": [f.model_dump(by_alias=True) for f in failed_items],
        }

    def _upload_stage(self) -> Dict[str, Any]:
        builder = self.config["builder"]
        dry_run = bool(self.config["migration"].get("dry_run"))
        failed_items: List[FailedItem] = []
        uploaded = skipped = 0

        for item, doc in self._documents:
            described = item.describe()
            breakdown = self._breakdown[item.content_type]
            if dry_run:
                self.log_message(f"Dry-run: would upload {item.content_type} '{doc.name}' to {doc.target_url}")
                report_ok("DRY_RUN", described, {"url": doc.target_url}, report_dir=self.output_dir)
                result: Dict[str, Any] = {"skipped": False, "url": doc.target_url}
            else:
                try:
                    result = self._uploader(builder, doc, item.id)
                except Exception as e:
                    reason = e.message if isinstance(e, UploadError) else f"Unexpected error: {e}"
                    failure = FailedItem(reason=reason, stage="upload", **described)
                    failed_items.append(failure)
                    self._failures.append(failure)
                    breakdown.failed += 1
                    self._bump(failed_content=1)
                    report_error("BUILDER_UPLOAD", described, e, report_dir=self.output_dir)
                    self._emit("upload")
                    continue

            if result.get("skipped"):
                skipped += 1
                breakdown.skipped += 1
                self._bump(skipped_content=1)
                report_ok("ALREADY_MIGRATED", described, report_dir=self.output_dir)
            else:
                uploaded += 1
                breakdown.migrated += 1
                self._bump(uploaded_content=1)
                self._successes.append({"name": doc.name, "url": result.get("url") or doc.target_url})
                if not dry_run:
                    report_ok("UPLOADED", described, {"url": doc.target_url}, report_dir=self.output_dir)
            self._emit("upload")

        return {
            "processed": len(self._documents),
            "succeeded": uploaded,
            "skipped": skipped,
            "failed": len(failed_items),
            "failedItems": [f.model_dump(by_alias=True) for f in failed_items],
        }

    def _report_stage(self) -> Dict[str, Any]:
        end_time = utc_now()
        with self._lock:
            stats = self._state.stats.model_copy()
        report = build_migration_report(
            stats=stats,
            breakdown={k: v.model_copy() for k, v in self._breakdown.items()},
            failures=list(self._failures),
            successes=list(self._successes),
            start_time=self._start_time,
            end_time=end_time,
        )
        path = write_report(report, os.path.join(self.output_dir, "migration-report.json"))
        with self._lock:
            self._state.report = report
        self.log_message(f"Migration report saved to {path}")
        return {"generatedAt": end_time.isoformat(), "reportFile": path}


def _describe(content_type: str, record: Any) -> Dict[str, Any]:
    if not isinstance(record, dict):
        return {"id": None, "type": content_type, "title": None}
    title = record.get("title")
    if isinstance(title, dict):
        title = title.get("rendered")
    return {"id": record.get("id"), "type": content_type, "title": title if isinstance(title, str) else None}
