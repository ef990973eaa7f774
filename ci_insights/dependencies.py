"""Job dependency resolution and time-to-feedback for a single pipeline.

A job's dependencies come either from its explicit `needs` list or, when
`needs` is absent, from every job in an earlier stage. The finish time of a
job is its own duration plus the finish time of its slowest dependency,
measured from pipeline start:

    finish(job) = duration(job)                                 no deps
    finish(job) = duration(job) + max(finish(d) for d in deps)  otherwise

Finish times are memoized per pipeline, so the whole DAG is walked once.
The dependency that produced the maximum is recorded as the job's critical
predecessor; following those links backwards yields the critical path.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterator, Optional

from .errors import DependencyCycleError
from .models import SUCCESS, CriticalPath, Job, JobMetrics, Pipeline, PredecessorJob

logger = logging.getLogger(__name__)


def dependencies(job: Job, jobs_by_name: dict[str, Job], stage_index: dict[str, int]) -> list[str]:
    """Names of the jobs `job` has to wait for."""
    if job.needs is not None:
        # [] means "start immediately", anything else is taken literally
        return list(job.needs)

    current = stage_index.get(job.stage, 0)
    return [
        name for name, other in jobs_by_name.items()
        if stage_index.get(other.stage, 0) < current
    ]


@dataclass
class DependencyResolution:
    """Finish times and critical predecessors for every job of one pipeline."""
    finish_times: dict[str, float] = field(default_factory=dict)
    predecessors: dict[str, str] = field(default_factory=dict)

    def predecessor_chain(self, name: str) -> list[str]:
        """Critical-path ancestors of `name`, earliest first."""
        chain = []
        current = self.predecessors.get(name)
        while current is not None:
            chain.append(current)
            current = self.predecessors.get(current)
        chain.reverse()
        return chain


@dataclass
class _Frame:
    """A job whose dependencies are still being walked."""
    job: Job
    deps: Iterator[str]
    slowest_dep: Optional[str] = None
    slowest_time: float = 0.0

    def consider(self, dep: str, time: float):
        if self.slowest_dep is None or time > self.slowest_time:
            self.slowest_dep, self.slowest_time = dep, time


class _Resolver:

    def __init__(self, pipeline: Pipeline):
        # Retried records share a name; the last record represents the job.
        self.jobs_by_name = {job.name: job for job in pipeline.jobs}
        self.stage_index = {stage: i for i, stage in enumerate(pipeline.stages)}
        self.result = DependencyResolution()

        unknown = sorted({
            job.stage for job in pipeline.jobs if job.stage not in self.stage_index
        })
        for stage in unknown:
            logger.warning(
                f"Pipeline {pipeline.id}: stage '{stage}' not in stage order, "
                f"treating it as the first stage"
            )

    def _frame(self, job: Job) -> _Frame:
        # Sorted so that ties go to the lexicographically smallest name.
        deps = sorted(set(dependencies(job, self.jobs_by_name, self.stage_index)))
        return _Frame(job=job, deps=iter(deps))

    def finish_time(self, name: str) -> float:
        """Post-order walk with an explicit stack; chains may be arbitrarily deep."""
        finish_times = self.result.finish_times
        if name in finish_times:
            return finish_times[name]

        job = self.jobs_by_name.get(name)
        if job is None:
            finish_times[name] = 0.0
            return 0.0

        stack = [self._frame(job)]
        on_stack = {name}
        while stack:
            frame = stack[-1]
            dep = next(frame.deps, None)
            if dep is not None:
                if dep in finish_times:
                    frame.consider(dep, finish_times[dep])
                elif dep not in self.jobs_by_name:
                    finish_times[dep] = 0.0
                    frame.consider(dep, 0.0)
                elif dep in on_stack:
                    path = [f.job.name for f in stack]
                    raise DependencyCycleError(path[path.index(dep):] + [dep])
                else:
                    stack.append(self._frame(self.jobs_by_name[dep]))
                    on_stack.add(dep)
                continue

            stack.pop()
            done = frame.job.name
            on_stack.discard(done)
            finish = frame.job.duration + frame.slowest_time
            finish_times[done] = finish
            if frame.slowest_dep is not None and frame.slowest_time > 0:
                self.result.predecessors[done] = frame.slowest_dep
            if stack:
                stack[-1].consider(done, finish)

        return finish_times[name]


def resolve_pipeline(pipeline: Pipeline) -> DependencyResolution:
    """Compute finish times and critical predecessors for all jobs.

    Raises DependencyCycleError if explicit `needs` form a cycle.
    """
    resolver = _Resolver(pipeline)
    for name in sorted(resolver.jobs_by_name):
        resolver.finish_time(name)
    return resolver.result


def calculate_job_metrics(pipeline: Pipeline) -> list[JobMetrics]:
    """Per-pipeline timings for every successful job.

    With a single data point per job all percentiles are equal. Reliability
    fields stay at zero; they only make sense across many pipelines.
    """
    if not pipeline.jobs:
        return []

    resolution = resolve_pipeline(pipeline)
    jobs_by_name = {job.name: job for job in pipeline.jobs}

    metrics = []
    for name, job in jobs_by_name.items():
        if job.status != SUCCESS:
            continue
        time_to_feedback = resolution.finish_times.get(name, 0.0)
        predecessors = [
            PredecessorJob(name=pred, duration_p50=jobs_by_name[pred].duration)
            for pred in resolution.predecessor_chain(name)
            if pred in jobs_by_name
        ]
        metrics.append(JobMetrics(
            name=name,
            duration_p50=job.duration,
            duration_p95=job.duration,
            duration_p99=job.duration,
            time_to_feedback_p50=time_to_feedback,
            time_to_feedback_p95=time_to_feedback,
            time_to_feedback_p99=time_to_feedback,
            predecessors=predecessors,
        ))

    metrics.sort(key=lambda m: (-m.time_to_feedback_p50, m.name))
    return metrics


def critical_path(pipeline: Pipeline) -> Optional[CriticalPath]:
    """The dependency chain ending at the job that finishes last."""
    if not pipeline.jobs:
        return None

    resolution = resolve_pipeline(pipeline)
    known = {job.name for job in pipeline.jobs}
    last_job, total = min(
        ((name, t) for name, t in resolution.finish_times.items() if name in known),
        key=lambda item: (-item[1], item[0]),
    )
    return CriticalPath(
        jobs=resolution.predecessor_chain(last_job) + [last_job],
        total_duration_seconds=total,
    )
