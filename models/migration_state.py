from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

RunStatus = Literal["idle", "running", "completed", "failed"]
StepStatus = Literal["pending", "running", "completed", "failed"]

# Fixed pipeline order: (id, display name).
STEP_DEFINITIONS: tuple[tuple[str, str], ...] = (
    ("dependencies", "Checking Dependencies"),
    ("users", "Fetching WordPress Users"),
    ("pages", "Fetching WordPress Pages"),
    ("posts", "Fetching WordPress Posts"),
    ("transform", "Transforming Content"),
    ("upload", "Uploading to Builder.io"),
    ("report", "Generating Report"),
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Step(_CamelModel):
    id: str
    name: str
    status: StepStatus = "pending"
    data: Optional[Any] = None
    error: Optional[str] = None


class MigrationStats(_CamelModel):
    total_users: int = Field(0, alias="totalUsers")
    total_pages: int = Field(0, alias="totalPages")
    total_posts: int = Field(0, alias="totalPosts")
    transformed_content: int = Field(0, alias="transformedContent")
    uploaded_content: int = Field(0, alias="uploadedContent")
    failed_content: int = Field(0, alias="failedContent")
    skipped_content: int = Field(0, alias="skippedContent")


class ContentBuffer(_CamelModel):
    users: list[dict[str, Any]] = Field(default_factory=list)
    pages: list[dict[str, Any]] = Field(default_factory=list)
    posts: list[dict[str, Any]] = Field(default_factory=list)


class FailedItem(_CamelModel):
    id: Any
    type: str
    title: Optional[str] = None
    reason: str
    stage: str


class ReportSummary(_CamelModel):
    total_content: int = Field(..., alias="totalContent")
    migrated_content: int = Field(..., alias="migratedContent")
    failed_content: int = Field(..., alias="failedContent")
    skipped_content: int = Field(..., alias="skippedContent")
    migration_time: str = Field(..., alias="migrationTime")
    start_time: datetime = Field(..., alias="startTime")
    end_time: datetime = Field(..., alias="endTime")


class ContentTypeBreakdown(_CamelModel):
    total: int = 0
    migrated: int = 0
    failed: int = 0
    skipped: int = 0


class FailureReason(_CamelModel):
    reason: str
    count: int


class MigrationReport(BaseModel):
    """Final run report; built once from real counters, never mutated."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    summary: ReportSummary
    content_breakdown: dict[str, ContentTypeBreakdown] = Field(..., alias="contentBreakdown")
    failure_reasons: list[FailureReason] = Field(default_factory=list, alias="failureReasons")
    success_list: list[dict[str, Any]] = Field(default_factory=list, alias="successList")
    failure_list: list[dict[str, Any]] = Field(default_factory=list, alias="failureList")

    def reason_count(self, reason: str) -> int:
        for entry in self.failure_reasons:
            if entry.reason == reason:
                return entry.count
        return 0


class MigrationState(_CamelModel):
    status: RunStatus = "idle"
    current_step: int = Field(0, alias="currentStep")
    steps: list[Step] = Field(default_factory=list)
    stats: MigrationStats = Field(default_factory=MigrationStats)
    content_buffer: ContentBuffer = Field(default_factory=ContentBuffer, alias="contentBuffer")
    report: Optional[MigrationReport] = None
    error: Optional[str] = None

    @classmethod
    def initial(cls) -> "MigrationState":
        return cls(steps=[Step(id=step_id, name=name) for step_id, name in STEP_DEFINITIONS])

    def step(self, step_id: str) -> Step:
        for step in self.steps:
            if step.id == step_id:
                return step
        raise KeyError(step_id)

    def step_index(self, step_id: str) -> int:
        for index, step in enumerate(self.steps):
            if step.id == step_id:
                return index
        raise KeyError(step_id)


class StepEvent(_CamelModel):
    """Typed progress message pushed to subscribers on every state transition."""

    step_id: str = Field(..., alias="stepId")
    index: int
    status: StepStatus
    data: Optional[Any] = None
    error: Optional[str] = None
    stats: MigrationStats
    timestamp: datetime = Field(default_factory=utc_now)
