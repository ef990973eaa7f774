"""Data models for pipeline input records and insights output."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

SUCCESS = "SUCCESS"


# ---------------------------------------------------------------------------
# Input records
# ---------------------------------------------------------------------------

class Job(BaseModel):
    """A single job execution inside a pipeline.

    A job name may appear several times in one pipeline when the job was
    retried; every record except the last carries `retried=True`.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    stage: str = ""
    duration: float = Field(default=0.0, ge=0)
    status: str = Field(default=SUCCESS, description="SUCCESS | FAILED | CANCELED | SKIPPED | ...")
    retried: bool = False
    needs: Optional[list[str]] = Field(
        default=None,
        description="None = wait for earlier stages, [] = start immediately",
    )


class Pipeline(BaseModel):
    """A finished pipeline run with its jobs."""
    model_config = ConfigDict(frozen=True)

    id: str
    ref: str = ""
    source: str = ""
    status: str = Field(description="success | failed")
    duration: int = Field(default=0, ge=0)
    stages: list[str] = []
    jobs: list[Job] = []


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

class PredecessorJob(BaseModel):
    """Job on the critical path leading to another job."""
    name: str
    duration_p50: float = 0.0


class PipelineCountWithLinks(BaseModel):
    count: int = 0
    links: list[str] = []


class JobCountWithLinks(BaseModel):
    count: int = 0
    links: list[str] = []


class CriticalPath(BaseModel):
    """Longest dependency chain of a single pipeline."""
    jobs: list[str]
    total_duration_seconds: float


class JobMetrics(BaseModel):
    """Latency and reliability statistics for one job name."""
    name: str
    duration_p50: float = 0.0
    duration_p95: float = 0.0
    duration_p99: float = 0.0
    time_to_feedback_p50: float = 0.0
    time_to_feedback_p95: float = 0.0
    time_to_feedback_p99: float = 0.0
    predecessors: list[PredecessorJob] = []
    flakiness_rate: float = 0.0
    flaky_retries: JobCountWithLinks = JobCountWithLinks()
    failure_rate: float = 0.0
    failed_executions: JobCountWithLinks = JobCountWithLinks()
    total_executions: int = 0


class TypeMetrics(BaseModel):
    """Aggregated metrics for one pipeline type."""
    percentage: float = Field(default=0.0, ge=0, le=100)
    total_pipelines: int = 0
    successful_pipelines: PipelineCountWithLinks = PipelineCountWithLinks()
    failed_pipelines: PipelineCountWithLinks = PipelineCountWithLinks()
    success_rate: float = 0.0
    duration_p50: float = 0.0
    duration_p95: float = 0.0
    duration_p99: float = 0.0
    time_to_feedback_p50: float = 0.0
    time_to_feedback_p95: float = 0.0
    time_to_feedback_p99: float = 0.0
    jobs: list[JobMetrics] = []


class PipelineType(BaseModel):
    """Cluster of pipelines sharing the same set of job names."""
    label: str
    count: int
    percentage: float
    jobs: list[str] = []
    ids: list[str] = []
    stages: list[str] = []
    ref_patterns: list[str] = []
    sources: list[str] = []
    metrics: TypeMetrics = TypeMetrics()


class CIInsights(BaseModel):
    """Top-level analysis result handed to renderers."""
    provider: str
    project: str
    collected_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    total_pipelines: int = 0
    total_pipeline_types: int = 0
    pipeline_types: list[PipelineType] = []
