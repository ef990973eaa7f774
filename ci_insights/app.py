"""CI Insights: FastAPI application.

Thin HTTP surface over the analysis engine. Callers post already-fetched
pipeline records and get clustered pipeline types with job metrics back.
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from . import __version__
from .config import InsightsConfig, get_config
from .engine import collect_insights
from .errors import InsightsError
from .loaders import convert_records
from .models import CIInsights, Pipeline

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


class AnalyzeRequest(BaseModel):
    """POST /analyze request body. Unset fields fall back to the config."""
    provider: Optional[str] = None
    project: Optional[str] = None
    base_url: Optional[str] = None
    min_type_percentage: Optional[int] = Field(default=None, ge=0, le=100)
    pipelines: list[Pipeline]


class RawAnalyzeRequest(BaseModel):
    """POST /analyze/{provider} request body with unconverted API records."""
    project: Optional[str] = None
    base_url: Optional[str] = None
    min_type_percentage: Optional[int] = Field(default=None, ge=0, le=100)
    records: list[dict]


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = get_config()
    logging.getLogger().setLevel(config.log_level)
    logger.info(f"CI Insights v{app.version} started (provider={config.provider})")
    yield
    logger.info("Shutting down")


app = FastAPI(
    title="CI Insights",
    description="Pipeline clustering, job latency and reliability analysis",
    version=__version__,
    lifespan=lifespan,
)


def _effective_config(provider=None, project=None, base_url=None, min_type_percentage=None) -> InsightsConfig:
    overrides = {
        "provider": provider,
        "project": project,
        "base_url": base_url,
        "min_type_percentage": min_type_percentage,
    }
    return get_config().model_copy(update={k: v for k, v in overrides.items() if v is not None})


def _analyze(pipelines: list[Pipeline], config: InsightsConfig) -> CIInsights:
    try:
        insights = collect_insights(
            pipelines,
            provider=config.provider_name,
            project=config.project,
            min_type_percentage=config.min_type_percentage,
            links=config.link_builder(),
        )
    except InsightsError as e:
        logger.error(f"Analysis rejected: {e}")
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(f"Analysis failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    logger.info(
        f"Analyzed {insights.total_pipelines} pipelines into "
        f"{insights.total_pipeline_types} types"
    )
    return insights


# ---------------------------------------------------------------------------
# Health Check
# ---------------------------------------------------------------------------

@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "service": "ci-insights",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ---------------------------------------------------------------------------
# Analyze
# ---------------------------------------------------------------------------

@app.post("/analyze", response_model=CIInsights)
def analyze(request: AnalyzeRequest):
    """Analyze pipelines that already match the engine's input model."""
    if request.provider is not None and request.provider not in ("gitlab", "github"):
        raise HTTPException(status_code=400, detail=f"Unknown provider '{request.provider}'")
    config = _effective_config(
        request.provider, request.project, request.base_url, request.min_type_percentage
    )
    return _analyze(request.pipelines, config)


@app.post("/analyze/{provider}", response_model=CIInsights)
def analyze_raw(provider: str, request: RawAnalyzeRequest):
    """Analyze raw GitLab GraphQL nodes or GitHub workflow runs."""
    if provider not in ("gitlab", "github"):
        raise HTTPException(status_code=404, detail=f"Unknown provider '{provider}'")
    config = _effective_config(
        provider, request.project, request.base_url, request.min_type_percentage
    )
    pipelines = convert_records(request.records, provider)
    return _analyze(pipelines, config)
