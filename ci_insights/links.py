"""Evidence links pointing back at pipelines and jobs in the provider UI."""

from typing import Protocol


class LinkBuilder(Protocol):
    """Turns opaque pipeline/job ids into clickable URLs."""

    def pipeline_url(self, pipeline_id: str) -> str:
        ...

    def job_url(self, job_id: str) -> str:
        ...


def extract_numeric_id(gid: str) -> str:
    """`gid://gitlab/Ci::Pipeline/123` -> `123`. Plain ids pass through."""
    return gid.rsplit("/", 1)[-1]


class GitLabLinks:
    """Links into a GitLab project, built from GraphQL global ids."""

    def __init__(self, base_url: str = "https://gitlab.com", project_path: str = ""):
        self.base_url = base_url.rstrip("/")
        self.project_path = project_path.strip("/")

    def pipeline_url(self, pipeline_id: str) -> str:
        return f"{self.base_url}/{self.project_path}/-/pipelines/{extract_numeric_id(pipeline_id)}"

    def job_url(self, job_id: str) -> str:
        return f"{self.base_url}/{self.project_path}/-/jobs/{extract_numeric_id(job_id)}"


class GitHubLinks:
    """Links into a GitHub repository's Actions tab.

    Job ids produced by the GitHub loader are `{run_id}/job/{job_id}`, which
    is exactly the path suffix GitHub uses for job pages.
    """

    def __init__(self, repo_path: str, base_url: str = "https://github.com"):
        self.base_url = base_url.rstrip("/")
        self.repo_path = repo_path.strip("/")

    def pipeline_url(self, pipeline_id: str) -> str:
        return f"{self.base_url}/{self.repo_path}/actions/runs/{pipeline_id}"

    def job_url(self, job_id: str) -> str:
        return f"{self.base_url}/{self.repo_path}/actions/runs/{job_id}"
