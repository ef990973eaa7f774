"""Analysis entry point: pipelines in, CIInsights out."""

import logging
from datetime import datetime, timezone
from typing import Optional

from .clustering import group_pipeline_types
from .links import GitLabLinks, LinkBuilder
from .models import CIInsights, Pipeline

logger = logging.getLogger(__name__)


def collect_insights(
    pipelines: list[Pipeline],
    *,
    provider: str = "GitLab",
    project: str = "",
    min_type_percentage: int = 1,
    links: Optional[LinkBuilder] = None,
    collected_at: Optional[datetime] = None,
) -> CIInsights:
    """Cluster pipelines into types and compute their metrics.

    Pure and synchronous: the same input always yields the same pipeline
    types in the same order.
    """
    if not 0 <= min_type_percentage <= 100:
        raise ValueError(f"min_type_percentage must be within 0..100, got {min_type_percentage}")

    if links is None:
        links = GitLabLinks(project_path=project)

    logger.info(f"Analyzing {len(pipelines)} pipelines for {provider} project '{project}'")
    if not pipelines:
        logger.warning(f"No pipelines to analyze for project '{project}'")

    pipeline_types = group_pipeline_types(pipelines, min_type_percentage, links)

    return CIInsights(
        provider=provider,
        project=project,
        collected_at=collected_at or datetime.now(timezone.utc),
        total_pipelines=len(pipelines),
        total_pipeline_types=len(pipeline_types),
        pipeline_types=pipeline_types,
    )
