#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Action and Effect value types.

An Action is one user input or one arrived API result; the reducer consumes
them one at a time. An Effect describes I/O the reducer wants done; the
dispatcher performs it and answers with exactly one Action. Effects carry
the routing identifiers needed to tag their result.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from peeplab.models import Job, MergeRequest, Note, Pipeline


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Action:
    """Base class for reducer inputs."""

    @property
    def name(self) -> str:
        return type(self).__name__


class Effect:
    """Base class for outstanding asynchronous work."""

    @property
    def name(self) -> str:
        return type(self).__name__


# =============================================================================
# User input actions
# =============================================================================


@dataclass(frozen=True)
class Quit(Action):
    pass


@dataclass(frozen=True)
class Start(Action):
    """Initial load of merge requests."""


@dataclass(frozen=True)
class NextMr(Action):
    pass


@dataclass(frozen=True)
class PrevMr(Action):
    pass


@dataclass(frozen=True)
class NextJob(Action):
    pass


@dataclass(frozen=True)
class PrevJob(Action):
    pass


@dataclass(frozen=True)
class NextPipeline(Action):
    pass


@dataclass(frozen=True)
class PrevPipeline(Action):
    pass


@dataclass(frozen=True)
class SelectMr(Action):
    """Open the merge request picker."""


@dataclass(frozen=True)
class ChooseMr(Action):
    index: int


@dataclass(frozen=True)
class CancelSelection(Action):
    pass


@dataclass(frozen=True)
class OpenSelectedJobLog(Action):
    pass


@dataclass(frozen=True)
class Refresh(Action):
    now: float = field(default_factory=time.monotonic)


@dataclass(frozen=True)
class Tick(Action):
    now: float = field(default_factory=time.monotonic)


@dataclass(frozen=True)
class RemoveCurrentMr(Action):
    pass


@dataclass(frozen=True)
class ShowHelp(Action):
    pass


@dataclass(frozen=True)
class HideHelp(Action):
    pass


@dataclass(frozen=True)
class ToggleCommentsView(Action):
    pass


@dataclass(frozen=True)
class NextNote(Action):
    pass


@dataclass(frozen=True)
class PrevNote(Action):
    pass


@dataclass(frozen=True)
class OpenMrInBrowser(Action):
    pass


# Log viewer


@dataclass(frozen=True)
class CloseLogViewer(Action):
    pass


@dataclass(frozen=True)
class ScrollLogUp(Action):
    pass


@dataclass(frozen=True)
class ScrollLogDown(Action):
    pass


@dataclass(frozen=True)
class ScrollLogPageUp(Action):
    pass


@dataclass(frozen=True)
class ScrollLogPageDown(Action):
    pass


@dataclass(frozen=True)
class ScrollLogHome(Action):
    pass


@dataclass(frozen=True)
class ScrollLogEnd(Action):
    pass


@dataclass(frozen=True)
class SetViewportHeight(Action):
    height: int


@dataclass(frozen=True)
class ToggleTimestampMode(Action):
    pass


@dataclass(frozen=True)
class OpenLogInEditor(Action):
    pass


@dataclass(frozen=True)
class StartSearch(Action):
    pass


@dataclass(frozen=True)
class SearchInput(Action):
    text: str


@dataclass(frozen=True)
class SearchBackspace(Action):
    pass


@dataclass(frozen=True)
class ExecuteSearch(Action):
    pass


@dataclass(frozen=True)
class CancelSearch(Action):
    pass


@dataclass(frozen=True)
class NextMatch(Action):
    pass


@dataclass(frozen=True)
class PrevMatch(Action):
    pass


# =============================================================================
# API result actions
# =============================================================================


@dataclass(frozen=True)
class MergeRequestsLoaded(Action):
    merge_requests: List[MergeRequest]


@dataclass(frozen=True)
class PipelinesLoaded(Action):
    mr_index: int
    pipelines: List[Pipeline]


@dataclass(frozen=True)
class JobsLoaded(Action):
    mr_index: int
    pipeline_id: int
    jobs: List[Job]
    loaded_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class JobTraceLoaded(Action):
    job_id: int
    job_name: str
    trace: str


@dataclass(frozen=True)
class NotesLoaded(Action):
    mr_index: int
    notes: List[Note]


@dataclass(frozen=True)
class ApiError(Action):
    message: str


# =============================================================================
# Effects
# =============================================================================


@dataclass(frozen=True)
class FetchMergeRequests(Effect):
    project_id: int


@dataclass(frozen=True)
class FetchMergeRequestsByBranch(Effect):
    project_id: int
    branch: str


@dataclass(frozen=True)
class FetchPipelines(Effect):
    mr_index: int
    project_id: int
    mr_iid: int


@dataclass(frozen=True)
class FetchJobs(Effect):
    mr_index: int
    project_id: int
    pipeline_id: int


@dataclass(frozen=True)
class FetchJobTrace(Effect):
    project_id: int
    job_id: int
    job_name: str


@dataclass(frozen=True)
class FetchNotes(Effect):
    mr_index: int
    project_id: int
    mr_iid: int


@dataclass(frozen=True)
class RefreshAll(Effect):
    project_id: int
    branch: Optional[str] = None


@dataclass(frozen=True)
class OpenInEditor(Effect):
    text: str


@dataclass(frozen=True)
class OpenUrl(Effect):
    url: str
