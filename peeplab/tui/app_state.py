# SPDX-License-Identifier: MIT
"""State containers for the dashboard.

All mutable application state lives here and is changed only by
``reducer.update``:

- Mode / TimestampMode: UI mode and log timestamp display
- TrackedMergeRequest: per-MR cache of pipelines, jobs, logs and notes
- LogViewerState: the open job log, scroll position and search
- AppState: top-level container
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from rich.text import Text

from peeplab.models import Job, MergeRequest, Note, Pipeline


class Mode(str, Enum):
    NORMAL = "normal"
    VIEWING_COMMENTS = "viewing_comments"
    VIEWING_LOG = "viewing_log"
    SELECTING_MR = "selecting_mr"
    SHOWING_HELP = "showing_help"


class TimestampMode(str, Enum):
    """How CI timestamps are shown in the log viewer."""

    HIDDEN = "hidden"
    DATE_ONLY = "date_only"
    FULL = "full"

    def next(self) -> "TimestampMode":
        order = list(TimestampMode)
        return order[(order.index(self) + 1) % len(order)]

    @property
    def label(self) -> str:
        return {"hidden": "Hidden", "date_only": "Date", "full": "Full"}[self.value]


@dataclass
class TrackedMergeRequest:
    """A merge request and everything loaded for it.

    ``selected_note_index`` indexes ``user_notes``, never ``notes``.
    """

    mr: MergeRequest
    pipelines: List[Pipeline] = field(default_factory=list)
    jobs: Dict[int, List[Job]] = field(default_factory=dict)  # pipeline_id -> jobs
    job_logs: Dict[int, str] = field(default_factory=dict)  # job_id -> raw trace
    notes: List[Note] = field(default_factory=list)
    notes_loaded: bool = False
    selected_pipeline_index: int = 0
    selected_note_index: int = 0
    loading: bool = True

    @property
    def iid(self) -> int:
        return self.mr.iid

    @property
    def user_notes(self) -> List[Note]:
        return [note for note in self.notes if not note.system]

    @property
    def selected_pipeline(self) -> Optional[Pipeline]:
        if 0 <= self.selected_pipeline_index < len(self.pipelines):
            return self.pipelines[self.selected_pipeline_index]
        return None

    @property
    def selected_jobs(self) -> Optional[List[Job]]:
        """Jobs of the selected pipeline, or None if not loaded yet."""
        pipeline = self.selected_pipeline
        if pipeline is None:
            return None
        return self.jobs.get(pipeline.id)

    @property
    def selected_note(self) -> Optional[Note]:
        user_notes = self.user_notes
        if 0 <= self.selected_note_index < len(user_notes):
            return user_notes[self.selected_note_index]
        return None

    def clear_caches(self) -> None:
        """Drop notes and job logs; pipelines and jobs stay until reloaded."""
        self.notes = []
        self.notes_loaded = False
        self.job_logs.clear()


@dataclass
class LogViewerState:
    raw_trace: Optional[str] = None
    lines: List[Text] = field(default_factory=list)
    scroll_offset: int = 0
    viewport_height: int = 0
    job_id: Optional[int] = None
    job_name: Optional[str] = None
    timestamp_mode: TimestampMode = TimestampMode.HIDDEN
    search_query: str = ""
    matches: List[int] = field(default_factory=list)
    current_match: Optional[int] = None
    searching: bool = False

    @property
    def total_lines(self) -> int:
        return len(self.lines)

    @property
    def current_match_line(self) -> Optional[int]:
        if self.current_match is None or not (0 <= self.current_match < len(self.matches)):
            return None
        return self.matches[self.current_match]

    def clear_search(self) -> None:
        self.search_query = ""
        self.matches = []
        self.current_match = None
        self.searching = False


@dataclass
class CommentsRestore:
    """Pending comments reload started by a refresh while viewing comments.

    ``note_id`` is the selected note's identifier, not its position, since
    new notes shift positions.
    """

    mr_iid: int
    note_id: Optional[int] = None
    notes_requested: bool = False


@dataclass
class AppState:
    """Top-level application state."""

    project_id: int
    current_branch: Optional[str] = None
    focus_current_branch: bool = False
    tracked_mrs: List[TrackedMergeRequest] = field(default_factory=list)
    selected_mr_index: int = 0
    selected_job_index: int = 0
    mode: Mode = Mode.NORMAL
    mode_before_help: Mode = Mode.NORMAL
    log: LogViewerState = field(default_factory=LogViewerState)
    status_message: Optional[str] = None
    error_message: Optional[str] = None
    last_refresh: Optional[datetime] = None
    auto_refresh_interval: float = 60.0  # seconds
    last_auto_refresh: Optional[float] = None  # monotonic seconds
    comments_restore: Optional[CommentsRestore] = None
    max_tracked_mrs: Optional[int] = None
    should_quit: bool = False

    @property
    def branch_filter(self) -> Optional[str]:
        return self.current_branch if self.focus_current_branch else None

    @property
    def selected_mr(self) -> Optional[TrackedMergeRequest]:
        if 0 <= self.selected_mr_index < len(self.tracked_mrs):
            return self.tracked_mrs[self.selected_mr_index]
        return None

    @property
    def selected_jobs(self) -> Optional[List[Job]]:
        mr = self.selected_mr
        return mr.selected_jobs if mr else None

    @property
    def selected_job(self) -> Optional[Job]:
        jobs = self.selected_jobs
        if jobs and 0 <= self.selected_job_index < len(jobs):
            return jobs[self.selected_job_index]
        return None

    def mr_at(self, index: int) -> Optional[TrackedMergeRequest]:
        """Bounds-checked lookup; None for stale or removed indices."""
        if 0 <= index < len(self.tracked_mrs):
            return self.tracked_mrs[index]
        return None

    def find_mr(self, iid: int) -> Optional[int]:
        for index, tracked in enumerate(self.tracked_mrs):
            if tracked.iid == iid:
                return index
        return None
