"""Flaky and failed job classification across a group of pipelines.

Within one pipeline all records of the same job name form a group. A group is
exactly one of:

- flaky:   retried at least once and the final (non-retried) record succeeded
- failed:  not flaky, and the final record is missing or did not succeed
- success: everything else
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Optional

from .links import LinkBuilder
from .models import SUCCESS, Job, Pipeline
from .stats import rate


@dataclass
class JobReliability:
    """Reliability counters for one job name."""
    total_executions: int = 0
    flaky_retries: int = 0
    flaky_job_links: list[str] = field(default_factory=list)
    failed_executions: int = 0
    failed_job_links: list[str] = field(default_factory=list)

    @property
    def flakiness_rate(self) -> float:
        return rate(self.flaky_retries, self.total_executions)

    @property
    def failure_rate(self) -> float:
        return rate(self.failed_executions, self.total_executions)


def group_jobs_by_name(jobs: list[Job]) -> dict[str, list[Job]]:
    grouped: dict[str, list[Job]] = defaultdict(list)
    for job in jobs:
        grouped[job.name].append(job)
    return dict(grouped)


def final_record(records: list[Job]) -> Optional[Job]:
    """The record that was not superseded by a retry, if any."""
    return next((job for job in records if not job.retried), None)


def is_job_flaky(records: list[Job]) -> bool:
    was_retried = any(job.retried for job in records)
    final = final_record(records)
    return was_retried and final is not None and final.status == SUCCESS


def is_job_failed(records: list[Job]) -> bool:
    final = final_record(records)
    return final is None or final.status != SUCCESS


def calculate_job_reliability(
    pipelines: list[Pipeline],
    links: LinkBuilder,
) -> dict[str, JobReliability]:
    """Count executions, flaky retries and failures per job name."""
    reliability: dict[str, JobReliability] = defaultdict(JobReliability)

    for pipeline in pipelines:
        for name, records in group_jobs_by_name(pipeline.jobs).items():
            entry = reliability[name]
            entry.total_executions += len(records)

            if is_job_flaky(records):
                retry_links = [links.job_url(job.id) for job in records if job.retried]
                entry.flaky_retries += len(retry_links)
                entry.flaky_job_links.extend(retry_links)
            elif is_job_failed(records):
                entry.failed_executions += 1
                final = final_record(records)
                if final is not None:
                    entry.failed_job_links.append(links.job_url(final.id))

    return dict(reliability)
