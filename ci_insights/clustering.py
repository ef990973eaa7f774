"""Pipeline type clustering by job-name signature."""

import logging
from collections import defaultdict

from .links import LinkBuilder
from .models import Pipeline, PipelineType
from .type_metrics import calculate_type_metrics

logger = logging.getLogger(__name__)

# Checked in order, first hit wins.
LABEL_RULES = [
    ("Production", ("prod",)),
    ("Development", ("staging", "dev", "test", "qa")),
]
DEFAULT_LABEL = "Unknown"


def job_signature(pipeline: Pipeline) -> tuple[str, ...]:
    """Sorted, de-duplicated job names; retries do not change the signature."""
    return tuple(sorted({job.name for job in pipeline.jobs}))


def cluster_pipelines(pipelines: list[Pipeline]) -> dict[tuple[str, ...], list[Pipeline]]:
    clusters: dict[tuple[str, ...], list[Pipeline]] = defaultdict(list)
    for pipeline in pipelines:
        clusters[job_signature(pipeline)].append(pipeline)
    return dict(clusters)


def label_for(job_names) -> str:
    lowered = [name.lower() for name in job_names]
    for label, needles in LABEL_RULES:
        if any(needle in name for name in lowered for needle in needles):
            return label
    return DEFAULT_LABEL


def _unique(values) -> list[str]:
    return list(dict.fromkeys(values))


def extract_characteristics(pipelines: list[Pipeline]) -> tuple[list[str], list[str], list[str]]:
    """Stages, refs and sources seen in a cluster, in first-seen order."""
    stages = _unique(job.stage for p in pipelines for job in p.jobs)
    ref_patterns = _unique(p.ref for p in pipelines)
    sources = _unique(p.source for p in pipelines)
    return stages, ref_patterns, sources


def group_pipeline_types(
    pipelines: list[Pipeline],
    min_type_percentage: float,
    links: LinkBuilder,
) -> list[PipelineType]:
    """Cluster pipelines, drop rare clusters and attach metrics.

    Clusters whose share of all pipelines is below `min_type_percentage`
    are discarded. The result is ordered by pipeline count, largest first.
    """
    total = len(pipelines)
    clusters = cluster_pipelines(pipelines)

    retained = []
    for signature, members in clusters.items():
        percentage = len(members) / max(total, 1) * 100.0
        if percentage < min_type_percentage:
            logger.debug(f"Dropping pipeline type {list(signature)} ({percentage:.1f}%)")
            continue
        retained.append((signature, members, percentage))

    retained.sort(key=lambda item: (-len(item[1]), item[0]))
    logger.info(
        f"Found {len(clusters)} pipeline types, {len(retained)} at or above "
        f"{min_type_percentage}%"
    )

    return [
        _create_pipeline_type(signature, members, percentage, links)
        for signature, members, percentage in retained
    ]


def _create_pipeline_type(
    signature: tuple[str, ...],
    pipelines: list[Pipeline],
    percentage: float,
    links: LinkBuilder,
) -> PipelineType:
    stages, ref_patterns, sources = extract_characteristics(pipelines)
    return PipelineType(
        label=label_for(signature),
        count=len(pipelines),
        percentage=percentage,
        jobs=list(signature),
        ids=[p.id for p in pipelines],
        stages=stages,
        ref_patterns=ref_patterns,
        sources=sources,
        metrics=calculate_type_metrics(pipelines, percentage, links),
    )
