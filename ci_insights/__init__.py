"""
CI Insights - Pipeline Analytics Engine

Turns already-fetched CI/CD pipeline records (GitLab, GitHub Actions) into
structured insights:
    - clustering: pipeline types by job-name signature
    - dependencies: time-to-feedback and critical paths per pipeline
    - reliability: flaky and failed job classification
    - type_metrics: percentile-based job and pipeline metrics

Entry point:
    collect_insights(pipelines, provider=..., project=..., min_type_percentage=...)
"""

__version__ = "0.1.0"

from .engine import collect_insights
from .models import CIInsights, Job, Pipeline, PipelineType

__all__ = ["collect_insights", "CIInsights", "Job", "Pipeline", "PipelineType"]
