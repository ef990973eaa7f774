"""Tests for the FastAPI application endpoints."""

import pytest
from fastapi.testclient import TestClient

from ci_insights import config as config_module
from ci_insights.app import app
from ci_insights.config import InsightsConfig


@pytest.fixture
def client(monkeypatch):
    """Test client with a fixed configuration."""
    monkeypatch.setattr(config_module, "_config", InsightsConfig(project="group/project"))
    with TestClient(app) as c:
        yield c
    config_module._config = None


def job(name, stage, duration, needs=None, status="SUCCESS", retried=False, job_id=None):
    return {
        "id": job_id or f"gid://gitlab/Ci::Job/{name}",
        "name": name,
        "stage": stage,
        "duration": duration,
        "status": status,
        "retried": retried,
        "needs": needs,
    }


def pipeline(pipeline_id, jobs, status="success", duration=60):
    return {
        "id": f"gid://gitlab/Ci::Pipeline/{pipeline_id}",
        "ref": "main",
        "source": "push",
        "status": status,
        "duration": duration,
        "stages": ["build", "test", "deploy"],
        "jobs": jobs,
    }


LINEAR_JOBS = [
    job("job1", "build", 10.0),
    job("job2", "test", 15.0),
    job("job3", "deploy", 20.0),
]


class TestHealthEndpoint:

    def test_health_returns_200(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200

    def test_health_has_status(self, client):
        data = client.get("/health").json()
        assert data["status"] == "healthy"
        assert data["service"] == "ci-insights"
        assert "version" in data


class TestAnalyze:

    def test_analyze_linear_pipeline(self, client):
        resp = client.post("/analyze", json={"pipelines": [pipeline(1, LINEAR_JOBS)]})
        assert resp.status_code == 200
        data = resp.json()
        assert data["provider"] == "GitLab"
        assert data["project"] == "group/project"
        assert data["total_pipelines"] == 1
        jobs = data["pipeline_types"][0]["metrics"]["jobs"]
        assert [j["name"] for j in jobs] == ["job3", "job2", "job1"]
        assert jobs[0]["time_to_feedback_p50"] == 45.0
        assert [p["name"] for p in jobs[0]["predecessors"]] == ["job2", "job1"]

    def test_request_overrides_config(self, client):
        payload = {
            "project": "acme/app",
            "min_type_percentage": 100,
            "pipelines": [pipeline(1, LINEAR_JOBS), pipeline(2, [job("lint", "build", 1.0)])],
        }
        data = client.post("/analyze", json=payload).json()
        assert data["project"] == "acme/app"
        assert data["total_pipeline_types"] == 0

    def test_empty_pipelines(self, client):
        resp = client.post("/analyze", json={"pipelines": []})
        assert resp.status_code == 200
        assert resp.json()["pipeline_types"] == []

    def test_missing_pipelines(self, client):
        resp = client.post("/analyze", json={})
        assert resp.status_code == 422

    def test_invalid_threshold(self, client):
        resp = client.post("/analyze", json={"min_type_percentage": 101, "pipelines": []})
        assert resp.status_code == 422

    def test_unknown_provider(self, client):
        resp = client.post("/analyze", json={"provider": "jenkins", "pipelines": []})
        assert resp.status_code == 400

    def test_dependency_cycle_rejected(self, client):
        jobs = [job("a", "build", 1.0, needs=["b"]), job("b", "build", 1.0, needs=["a"])]
        resp = client.post("/analyze", json={"pipelines": [pipeline(1, jobs)]})
        assert resp.status_code == 422
        assert "cycle" in resp.json()["detail"].lower()


class TestAnalyzeRaw:

    def test_gitlab_nodes(self, client):
        node = {
            "id": "gid://gitlab/Ci::Pipeline/77",
            "status": "SUCCESS",
            "duration": 30,
            "ref": "main",
            "source": "web",
            "stages": {"nodes": [{"name": "build"}]},
            "jobs": {"nodes": [{
                "id": "gid://gitlab/Ci::Job/1",
                "name": "compile",
                "stage": {"name": "build"},
                "duration": 30,
                "status": "SUCCESS",
                "retried": False,
                "needs": None,
            }]},
        }
        resp = client.post("/analyze/gitlab", json={"records": [node]})
        assert resp.status_code == 200
        data = resp.json()
        assert data["total_pipelines"] == 1
        assert data["pipeline_types"][0]["metrics"]["successful_pipelines"]["links"] == [
            "https://gitlab.com/group/project/-/pipelines/77"
        ]

    def test_github_runs(self, client):
        run = {
            "id": 5,
            "name": "CI",
            "conclusion": "success",
            "duration": 90,
            "jobs": [{"id": 9, "name": "build", "conclusion": "success"}],
        }
        resp = client.post("/analyze/github", json={"project": "owner/repo", "records": [run]})
        assert resp.status_code == 200
        data = resp.json()
        assert data["provider"] == "GitHub Actions"
        assert data["pipeline_types"][0]["metrics"]["successful_pipelines"]["links"] == [
            "https://github.com/owner/repo/actions/runs/5"
        ]

    def test_unknown_provider(self, client):
        resp = client.post("/analyze/jenkins", json={"records": []})
        assert resp.status_code == 404
