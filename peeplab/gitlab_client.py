#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
GitLab REST API client.

Thin wrapper over a requests.Session that maps HTTP failures onto the
peeplab exception hierarchy and decodes JSON into models.
"""

from typing import Any, Callable, Dict, List, Optional, TypeVar
from urllib.parse import quote

import requests

from peeplab.exceptions import (
    AuthenticationError,
    NetworkError,
    NotFoundError,
    RateLimitedError,
    SerializationError,
)
from peeplab.models import Job, MergeRequest, Note, Pipeline, Project

T = TypeVar("T")


class GitLabClient:
    """Client for the subset of the GitLab v4 API the dashboard needs.

    Safe to share between worker threads: every call is a single
    independent request on the shared session.
    """

    def __init__(self, instance_url: str, token: str, timeout: float = 30.0):
        if not token or any(c in token for c in "\r\n"):
            raise ValueError("Invalid token format")
        self.base_url = f"{instance_url.rstrip('/')}/api/v4"
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"PRIVATE-TOKEN": token})

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None, not_found: str = "Resource not found") -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request("GET", url, params=params, timeout=self.timeout)
        except requests.Timeout as e:
            raise NetworkError(f"Request to {url} timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise NetworkError(f"Request to {url} failed: {e}") from e

        if response.status_code == 401:
            raise AuthenticationError()
        if response.status_code == 404:
            raise NotFoundError(not_found)
        if response.status_code == 429:
            raise RateLimitedError()
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise NetworkError(f"GitLab API error: {e}", status_code=response.status_code) from e
        return response

    def _get_list(self, path: str, params: Dict[str, Any], factory: Callable[[Dict[str, Any]], T]) -> List[T]:
        data = self._json(self._get(path, params))
        if not isinstance(data, list):
            raise SerializationError(f"Expected a list from {path}")
        try:
            return [factory(item) for item in data]
        except (KeyError, ValueError, TypeError) as e:
            raise SerializationError(f"Unexpected response from {path}: {e}") from e

    @staticmethod
    def _json(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise SerializationError(f"Invalid JSON response: {e}") from e

    def get_project_by_path(self, project_path: str) -> Project:
        """Resolve ``namespace/project`` to a Project (path is URL-encoded)."""
        encoded = quote(project_path, safe="")
        data = self._json(self._get(f"/projects/{encoded}", not_found=f"Project '{project_path}' not found"))
        try:
            return Project.from_dict(data)
        except (KeyError, ValueError, TypeError) as e:
            raise SerializationError(f"Unexpected project response: {e}") from e

    def get_merge_requests(self, project_id: int) -> List[MergeRequest]:
        return self._get_list(
            f"/projects/{project_id}/merge_requests",
            {"state": "opened", "per_page": 20},
            MergeRequest.from_dict,
        )

    def get_merge_requests_by_branch(self, project_id: int, source_branch: str) -> List[MergeRequest]:
        return self._get_list(
            f"/projects/{project_id}/merge_requests",
            {"state": "opened", "source_branch": source_branch, "per_page": 20},
            MergeRequest.from_dict,
        )

    def get_mr_pipelines(self, project_id: int, mr_iid: int) -> List[Pipeline]:
        return self._get_list(
            f"/projects/{project_id}/merge_requests/{mr_iid}/pipelines",
            {"per_page": 10},
            Pipeline.from_dict,
        )

    def get_pipeline_jobs(self, project_id: int, pipeline_id: int) -> List[Job]:
        return self._get_list(
            f"/projects/{project_id}/pipelines/{pipeline_id}/jobs",
            {"per_page": 100},
            Job.from_dict,
        )

    def get_job_trace(self, project_id: int, job_id: int) -> str:
        response = self._get(f"/projects/{project_id}/jobs/{job_id}/trace", not_found="Job trace not found")
        return response.text

    def get_mr_notes(self, project_id: int, mr_iid: int) -> List[Note]:
        """Notes come newest first."""
        return self._get_list(
            f"/projects/{project_id}/merge_requests/{mr_iid}/notes",
            {"per_page": 100, "sort": "desc", "order_by": "created_at"},
            Note.from_dict,
        )
