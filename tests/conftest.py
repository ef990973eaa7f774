"""
CI Insights Test Configuration

Shared fixtures and record builders for all tests.
"""
import pytest
from typing import List, Optional

from ci_insights.links import GitLabLinks
from ci_insights.models import Job, Pipeline


# =============================================================================
# HELPERS
# =============================================================================

def make_job(
    name: str,
    stage: str = "build",
    duration: float = 10.0,
    needs: Optional[List[str]] = None,
    status: str = "SUCCESS",
    retried: bool = False,
    job_id: Optional[str] = None,
) -> Job:
    """Build a Job; the id defaults to a GID derived from the name."""
    return Job(
        id=job_id or f"gid://gitlab/Ci::Job/{name}",
        name=name,
        stage=stage,
        duration=duration,
        status=status,
        retried=retried,
        needs=needs,
    )


def make_pipeline(
    jobs: List[Job],
    stages: Optional[List[str]] = None,
    pipeline_id: str = "gid://gitlab/Ci::Pipeline/1",
    status: str = "success",
    duration: int = 100,
    ref: str = "main",
    source: str = "push",
) -> Pipeline:
    """Build a Pipeline; stages default to the jobs' stages in first-seen order."""
    if stages is None:
        stages = list(dict.fromkeys(job.stage for job in jobs))
    return Pipeline(
        id=pipeline_id,
        ref=ref,
        source=source,
        status=status,
        duration=duration,
        stages=stages,
        jobs=jobs,
    )


# =============================================================================
# FIXTURES: Links
# =============================================================================

@pytest.fixture
def links() -> GitLabLinks:
    return GitLabLinks("https://gitlab.com", "group/project")


# =============================================================================
# FIXTURES: Sample Pipelines
# =============================================================================

@pytest.fixture
def linear_pipeline() -> Pipeline:
    """build -> test -> deploy, one job per stage, implicit dependencies."""
    return make_pipeline(
        [
            make_job("job1", "build", 10.0),
            make_job("job2", "test", 15.0),
            make_job("job3", "deploy", 20.0),
        ],
        stages=["build", "test", "deploy"],
    )


@pytest.fixture
def diamond_pipeline() -> Pipeline:
    """job1 fans out to job2/job3 which join again in job4."""
    return make_pipeline(
        [
            make_job("job1", "build", 10.0, needs=[]),
            make_job("job2", "test", 5.0, needs=["job1"]),
            make_job("job3", "test", 8.0, needs=["job1"]),
            make_job("job4", "deploy", 3.0, needs=["job2", "job3"]),
        ],
        stages=["build", "test", "deploy"],
    )


@pytest.fixture
def mixed_pipelines() -> List[Pipeline]:
    """10 pipelines: 8 build/test/deploy (one failed, one flaky) and 2 lint-only."""
    pipelines = []
    for i in range(8):
        test_jobs = [make_job("unit-test", "test", 20.0 + i, job_id=f"gid://gitlab/Ci::Job/{i}2")]
        status = "success"
        if i == 6:
            # retried once, then passed
            test_jobs = [
                make_job("unit-test", "test", 5.0, status="FAILED", retried=True,
                         job_id=f"gid://gitlab/Ci::Job/{i}20"),
                make_job("unit-test", "test", 26.0, job_id=f"gid://gitlab/Ci::Job/{i}21"),
            ]
        if i == 7:
            test_jobs = [make_job("unit-test", "test", 27.0, status="FAILED",
                                  job_id=f"gid://gitlab/Ci::Job/{i}2")]
            status = "failed"
        jobs = [
            make_job("compile", "build", 10.0 + i, job_id=f"gid://gitlab/Ci::Job/{i}1"),
            *test_jobs,
            make_job("deploy-prod", "deploy", 5.0, job_id=f"gid://gitlab/Ci::Job/{i}3"),
        ]
        pipelines.append(make_pipeline(
            jobs,
            stages=["build", "test", "deploy"],
            pipeline_id=f"gid://gitlab/Ci::Pipeline/{100 + i}",
            status=status,
            duration=60 + i,
        ))
    for i in range(2):
        pipelines.append(make_pipeline(
            [make_job("lint", "check", 3.0, job_id=f"gid://gitlab/Ci::Job/9{i}")],
            pipeline_id=f"gid://gitlab/Ci::Pipeline/{200 + i}",
            ref="feature",
            source="merge_request_event",
            duration=5,
        ))
    return pipelines
