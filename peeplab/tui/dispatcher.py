#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Effect execution against the GitLab API.

``execute_effect`` performs one fetch Effect and answers with exactly one
Action: the matching ``*Loaded`` result tagged with the Effect's routing
identifiers, or ``ApiError``. It blocks, so the app runs it in a worker
thread. Local effects (editor, browser) are handled by the app itself.
"""

from dataclasses import asdict
from typing import Callable, Dict, Type

from peeplab.debug_logger import get_logger
from peeplab.exceptions import PeeplabError
from peeplab.gitlab_client import GitLabClient
from peeplab.tui import actions as a


def _fetch_merge_requests(client: GitLabClient, effect: a.FetchMergeRequests) -> a.Action:
    return a.MergeRequestsLoaded(client.get_merge_requests(effect.project_id))


def _fetch_merge_requests_by_branch(client: GitLabClient, effect: a.FetchMergeRequestsByBranch) -> a.Action:
    return a.MergeRequestsLoaded(client.get_merge_requests_by_branch(effect.project_id, effect.branch))


def _refresh_all(client: GitLabClient, effect: a.RefreshAll) -> a.Action:
    if effect.branch:
        merge_requests = client.get_merge_requests_by_branch(effect.project_id, effect.branch)
    else:
        merge_requests = client.get_merge_requests(effect.project_id)
    return a.MergeRequestsLoaded(merge_requests)


def _fetch_pipelines(client: GitLabClient, effect: a.FetchPipelines) -> a.Action:
    pipelines = client.get_mr_pipelines(effect.project_id, effect.mr_iid)
    return a.PipelinesLoaded(mr_index=effect.mr_index, pipelines=pipelines)


def _fetch_jobs(client: GitLabClient, effect: a.FetchJobs) -> a.Action:
    jobs = client.get_pipeline_jobs(effect.project_id, effect.pipeline_id)
    return a.JobsLoaded(mr_index=effect.mr_index, pipeline_id=effect.pipeline_id, jobs=jobs)


def _fetch_job_trace(client: GitLabClient, effect: a.FetchJobTrace) -> a.Action:
    trace = client.get_job_trace(effect.project_id, effect.job_id)
    return a.JobTraceLoaded(job_id=effect.job_id, job_name=effect.job_name, trace=trace)


def _fetch_notes(client: GitLabClient, effect: a.FetchNotes) -> a.Action:
    notes = client.get_mr_notes(effect.project_id, effect.mr_iid)
    return a.NotesLoaded(mr_index=effect.mr_index, notes=notes)


API_EFFECTS: Dict[Type[a.Effect], Callable[[GitLabClient, a.Effect], a.Action]] = {
    a.FetchMergeRequests: _fetch_merge_requests,
    a.FetchMergeRequestsByBranch: _fetch_merge_requests_by_branch,
    a.RefreshAll: _refresh_all,
    a.FetchPipelines: _fetch_pipelines,
    a.FetchJobs: _fetch_jobs,
    a.FetchJobTrace: _fetch_job_trace,
    a.FetchNotes: _fetch_notes,
}


def is_api_effect(effect: a.Effect) -> bool:
    return type(effect) in API_EFFECTS


def execute_effect(effect: a.Effect, client: GitLabClient) -> a.Action:
    """Run one API effect and return its result action.

    Errors never escape: any PeeplabError or OSError becomes
    ``ApiError(str(error))``.

    Raises:
        TypeError: if effect is not an API effect.
    """
    handler = API_EFFECTS.get(type(effect))
    if handler is None:
        raise TypeError(f"Not an API effect: {effect.name}")

    logger = get_logger()
    logger.effect(effect.name, asdict(effect))
    try:
        return handler(client, effect)
    except (PeeplabError, OSError) as e:
        logger.api_error(effect.name, str(e))
        return a.ApiError(str(e))
