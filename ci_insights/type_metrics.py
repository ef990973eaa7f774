"""Aggregation of per-pipeline job timings into pipeline type metrics."""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Optional

from .dependencies import calculate_job_metrics
from .links import LinkBuilder
from .models import (
    JobCountWithLinks,
    JobMetrics,
    Pipeline,
    PipelineCountWithLinks,
    PredecessorJob,
    TypeMetrics,
)
from .reliability import JobReliability, calculate_job_reliability
from .stats import percentiles, success_rate

logger = logging.getLogger(__name__)


@dataclass
class _JobSamples:
    durations: list[float] = field(default_factory=list)
    time_to_feedbacks: list[float] = field(default_factory=list)
    predecessor_names: set[str] = field(default_factory=set)


def calculate_type_metrics(
    pipelines: list[Pipeline],
    percentage: float,
    links: LinkBuilder,
) -> TypeMetrics:
    """Build TypeMetrics for one cluster of pipelines.

    Timing statistics come from successful pipelines only; reliability is
    computed over every pipeline in the cluster.
    """
    successful = [p for p in pipelines if p.status == "success"]
    failed = [p for p in pipelines if p.status != "success"]

    duration_p50, duration_p95, duration_p99 = percentiles([float(p.duration) for p in successful])
    jobs, (ttf_p50, ttf_p95, ttf_p99) = aggregate_job_metrics(successful, pipelines, links)

    return TypeMetrics(
        percentage=percentage,
        total_pipelines=len(pipelines),
        successful_pipelines=_pipeline_links(successful, links),
        failed_pipelines=_pipeline_links(failed, links),
        success_rate=success_rate(len(successful), len(pipelines)),
        duration_p50=duration_p50,
        duration_p95=duration_p95,
        duration_p99=duration_p99,
        time_to_feedback_p50=ttf_p50,
        time_to_feedback_p95=ttf_p95,
        time_to_feedback_p99=ttf_p99,
        jobs=jobs,
    )


def _pipeline_links(pipelines: list[Pipeline], links: LinkBuilder) -> PipelineCountWithLinks:
    return PipelineCountWithLinks(
        count=len(pipelines),
        links=[links.pipeline_url(p.id) for p in pipelines],
    )


def aggregate_job_metrics(
    successful_pipelines: list[Pipeline],
    all_pipelines: list[Pipeline],
    links: LinkBuilder,
) -> tuple[list[JobMetrics], tuple[float, float, float]]:
    """Job metrics across pipelines plus pipeline-level time-to-feedback.

    Returns (jobs sorted by time_to_feedback_p95 descending,
    (p50, p95, p99) of the earliest feedback per pipeline).
    """
    if not successful_pipelines:
        return [], (0.0, 0.0, 0.0)

    per_pipeline = [calculate_job_metrics(p) for p in successful_pipelines]

    # Earliest signal a developer gets from each pipeline
    first_feedback = [
        min(job.time_to_feedback_p50 for job in pipeline_jobs)
        for pipeline_jobs in per_pipeline
        if pipeline_jobs
    ]
    feedback_percentiles = percentiles(first_feedback)

    samples: dict[str, _JobSamples] = defaultdict(_JobSamples)
    for pipeline_jobs in per_pipeline:
        for job in pipeline_jobs:
            data = samples[job.name]
            data.durations.append(job.duration_p50)
            data.time_to_feedbacks.append(job.time_to_feedback_p50)
            data.predecessor_names.update(pred.name for pred in job.predecessors)

    duration_percentiles = {name: percentiles(data.durations) for name, data in samples.items()}
    reliability = calculate_job_reliability(all_pipelines, links)

    jobs = [
        _build_job_metrics(name, data, duration_percentiles, reliability.get(name))
        for name, data in samples.items()
    ]
    jobs.sort(key=lambda j: (-j.time_to_feedback_p95, j.name))

    logger.debug(f"Aggregated {len(jobs)} jobs over {len(successful_pipelines)} successful pipelines")
    return jobs, feedback_percentiles


def _build_job_metrics(
    name: str,
    data: _JobSamples,
    duration_percentiles: dict[str, tuple[float, float, float]],
    reliability: Optional[JobReliability],
) -> JobMetrics:
    duration_p50, duration_p95, duration_p99 = duration_percentiles[name]
    ttf_p50, ttf_p95, ttf_p99 = percentiles(data.time_to_feedbacks)

    predecessors = [
        PredecessorJob(name=pred, duration_p50=duration_percentiles[pred][0])
        for pred in data.predecessor_names
        if pred in duration_percentiles
    ]
    predecessors.sort(key=lambda p: (-p.duration_p50, p.name))

    if reliability is None:
        reliability = JobReliability()

    return JobMetrics(
        name=name,
        duration_p50=duration_p50,
        duration_p95=duration_p95,
        duration_p99=duration_p99,
        time_to_feedback_p50=ttf_p50,
        time_to_feedback_p95=ttf_p95,
        time_to_feedback_p99=ttf_p99,
        predecessors=predecessors,
        flakiness_rate=reliability.flakiness_rate,
        flaky_retries=JobCountWithLinks(
            count=reliability.flaky_retries,
            links=reliability.flaky_job_links,
        ),
        failure_rate=reliability.failure_rate,
        failed_executions=JobCountWithLinks(
            count=reliability.failed_executions,
            links=reliability.failed_job_links,
        ),
        total_executions=reliability.total_executions,
    )
