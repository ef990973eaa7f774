"""Conversion of raw provider payloads into Pipeline records.

Fetching is done elsewhere; these helpers only reshape what the GitLab
GraphQL API and the GitHub REST API return into the engine's input model.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import ValidationError

from .errors import PayloadError
from .models import Job, Pipeline

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = {"success", "failed"}

GITHUB_PIPELINE_STATUS = {
    "success": "success",
    "failure": "failed",
}

GITHUB_JOB_STATUS = {
    "success": "SUCCESS",
    "failure": "FAILED",
    "cancelled": "CANCELED",
    "skipped": "SKIPPED",
    "timed_out": "FAILED",
}


def _nodes(connection: Optional[dict]) -> list[dict]:
    """Flatten a GraphQL connection (`{"nodes": [...]}`), dropping nulls."""
    if not connection:
        return []
    return [node for node in connection.get("nodes") or [] if node]


# ---------------------------------------------------------------------------
# GitLab
# ---------------------------------------------------------------------------

def job_from_gitlab_node(node: dict) -> Job:
    needs = node.get("needs")
    return Job(
        id=str(node.get("id") or ""),
        name=node.get("name") or "",
        stage=(node.get("stage") or {}).get("name") or "",
        duration=float(node.get("duration") or 0),
        status=(node.get("status") or "").upper(),
        retried=bool(node.get("retried")),
        needs=None if needs is None else [n["name"] for n in _nodes(needs) if n.get("name")],
    )


def pipeline_from_gitlab_node(node: dict) -> Optional[Pipeline]:
    """Convert a GitLab GraphQL pipeline node.

    Returns None for pipelines that are still running or have no duration.
    """
    if not node.get("id"):
        raise PayloadError("GitLab pipeline node without id")

    status = (node.get("status") or "").lower()
    if node.get("duration") is None or status not in TERMINAL_STATUSES:
        logger.debug(f"Skipping pipeline {node['id']} (status={status}, duration={node.get('duration')})")
        return None

    return Pipeline(
        id=node["id"],
        ref=node.get("ref") or "",
        source=node.get("source") or "",
        status=status,
        duration=int(node["duration"]),
        stages=[s["name"] for s in _nodes(node.get("stages")) if s.get("name")],
        jobs=[job_from_gitlab_node(j) for j in _nodes(node.get("jobs"))],
    )


# ---------------------------------------------------------------------------
# GitHub
# ---------------------------------------------------------------------------

def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _seconds_between(start: Optional[str], end: Optional[str]) -> float:
    started, completed = _parse_time(start), _parse_time(end)
    if started is None or completed is None:
        return 0.0
    return max((completed - started).total_seconds(), 0.0)


def pipeline_from_github_run(run: dict) -> Optional[Pipeline]:
    """Convert a GitHub Actions workflow run that embeds its `jobs`.

    GitHub exposes no job graph, so every job lives in one stage named after
    the workflow. Jobs from earlier attempts of the run count as retried.
    """
    if run.get("id") is None:
        raise PayloadError("GitHub workflow run without id")

    status = GITHUB_PIPELINE_STATUS.get(run.get("conclusion") or "")
    if status is None:
        logger.debug(f"Skipping workflow run {run['id']} (conclusion={run.get('conclusion')})")
        return None

    run_id = str(run["id"])
    stage = run.get("name") or "workflow"
    attempt = run.get("run_attempt") or 1

    duration = run.get("duration")
    if duration is None:
        duration = _seconds_between(run.get("run_started_at") or run.get("created_at"), run.get("updated_at"))

    jobs = [
        Job(
            id=f"{run_id}/job/{job['id']}",
            name=job.get("name") or "",
            stage=stage,
            duration=_seconds_between(job.get("started_at"), job.get("completed_at")),
            status=GITHUB_JOB_STATUS.get(job.get("conclusion") or "", (job.get("conclusion") or "").upper()),
            retried=(job.get("run_attempt") or attempt) < attempt,
        )
        for job in run.get("jobs") or []
    ]

    return Pipeline(
        id=run_id,
        ref=run.get("head_branch") or "",
        source=run.get("event") or "",
        status=status,
        duration=int(duration),
        stages=[stage],
        jobs=jobs,
    )


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------

CONVERTERS: dict[str, Callable[[dict], Optional[Pipeline]]] = {
    "gitlab": pipeline_from_gitlab_node,
    "github": pipeline_from_github_run,
}


def convert_records(records: list[Any], provider: str = "gitlab") -> list[Pipeline]:
    """Convert raw records, skipping (and logging) the unusable ones."""
    try:
        convert = CONVERTERS[provider.lower()]
    except KeyError:
        raise PayloadError(f"Unknown provider '{provider}'") from None

    pipelines = []
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            logger.warning(f"Record #{index} is not an object, skipping")
            continue
        try:
            pipeline = convert(record)
        except (PayloadError, ValidationError, ValueError, TypeError, KeyError) as e:
            logger.warning(f"Record #{index} could not be converted: {e}")
            continue
        if pipeline is not None:
            pipelines.append(pipeline)

    logger.info(f"Converted {len(pipelines)} of {len(records)} {provider} records")
    return pipelines


def load_pipelines(path: str | Path, provider: str = "gitlab") -> list[Pipeline]:
    """Read a JSON export (a list, or `{"pipelines": [...]}`) into pipelines."""
    path = Path(path)
    try:
        data = json.loads(path.read_text())
    except (json.JSONDecodeError, OSError) as e:
        raise PayloadError(f"Cannot read pipelines from {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("pipelines")
    if not isinstance(data, list):
        raise PayloadError(f"{path} must contain a list of pipelines")

    return convert_records(data, provider)
