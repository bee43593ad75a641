#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
State transitions for the dashboard.

``update(state, action)`` is the only place application state changes. It
runs synchronously, performs no I/O and returns the Effects (possibly none)
the action calls for. API results may arrive out of order or refer to a
merge request that has since been removed, so every index lookup is
bounds-checked and stale results are dropped silently.
"""

from typing import Callable, Dict, List, Optional, Type

from peeplab.models import Note, job_priority
from peeplab.tui import actions as a
from peeplab.tui.app_state import (
    AppState,
    CommentsRestore,
    LogViewerState,
    Mode,
    TrackedMergeRequest,
)
from peeplab.tui.log_processor import plain_text, process_log_content, split_lines
from peeplab.tui.search import center_offset, clamp_offset, cycle_index, find_matches, max_scroll_offset

PAGE_SCROLL_LINES = 10

STATUS_REFRESHING = "Refreshing..."
STATUS_LOADING_COMMENTS = "Loading comments..."

Effects = List[a.Effect]
Handler = Callable[[AppState, a.Action], Effects]

_HANDLERS: Dict[Type[a.Action], Handler] = {}


def _handles(*action_types: Type[a.Action]) -> Callable[[Handler], Handler]:
    def register(fn: Handler) -> Handler:
        for action_type in action_types:
            _HANDLERS[action_type] = fn
        return fn

    return register


def update(state: AppState, action: a.Action) -> Effects:
    """Apply one action to state and return the effects it requests.

    Unknown actions are ignored.
    """
    handler = _HANDLERS.get(type(action))
    if handler is None:
        return []
    return handler(state, action)


def initial_status(state: AppState) -> str:
    if state.branch_filter:
        return f"Loading MR for branch '{state.branch_filter}'..."
    return "Loading merge requests..."


# =============================================================================
# Lifecycle
# =============================================================================


@_handles(a.Quit)
def _quit(state: AppState, action: a.Quit) -> Effects:
    state.should_quit = True
    return []


@_handles(a.Start)
def _start(state: AppState, action: a.Start) -> Effects:
    state.status_message = initial_status(state)
    branch = state.branch_filter
    if branch:
        return [a.FetchMergeRequestsByBranch(project_id=state.project_id, branch=branch)]
    return [a.FetchMergeRequests(project_id=state.project_id)]


def _refresh(state: AppState, now: float) -> Effects:
    state.last_auto_refresh = now

    mr = state.selected_mr
    if state.mode is Mode.VIEWING_COMMENTS and mr is not None:
        note = mr.selected_note
        state.comments_restore = CommentsRestore(mr_iid=mr.iid, note_id=note.id if note else None)
    else:
        state.comments_restore = None

    for tracked in state.tracked_mrs:
        tracked.clear_caches()

    state.status_message = STATUS_REFRESHING
    state.error_message = None
    return [a.RefreshAll(project_id=state.project_id, branch=state.branch_filter)]


@_handles(a.Refresh)
def _manual_refresh(state: AppState, action: a.Refresh) -> Effects:
    return _refresh(state, action.now)


@_handles(a.Tick)
def _tick(state: AppState, action: a.Tick) -> Effects:
    if state.last_auto_refresh is None:
        state.last_auto_refresh = action.now
        return []
    if action.now - state.last_auto_refresh >= state.auto_refresh_interval:
        return _refresh(state, action.now)
    return []


@_handles(a.ApiError)
def _api_error(state: AppState, action: a.ApiError) -> Effects:
    state.error_message = action.message
    state.status_message = None
    return []


# =============================================================================
# Merge request navigation
# =============================================================================


def _fetch_notes_if_needed(state: AppState) -> Effects:
    mr = state.selected_mr
    if mr is None or mr.notes_loaded:
        return []
    state.status_message = STATUS_LOADING_COMMENTS
    return [a.FetchNotes(mr_index=state.selected_mr_index, project_id=state.project_id, mr_iid=mr.iid)]


def _move_mr(state: AppState, step: int) -> Effects:
    if not state.tracked_mrs:
        return []
    state.selected_mr_index = cycle_index(state.selected_mr_index, len(state.tracked_mrs), step)
    state.selected_job_index = 0
    if state.mode is Mode.VIEWING_COMMENTS:
        return _fetch_notes_if_needed(state)
    return []


@_handles(a.NextMr)
def _next_mr(state: AppState, action: a.NextMr) -> Effects:
    return _move_mr(state, 1)


@_handles(a.PrevMr)
def _prev_mr(state: AppState, action: a.PrevMr) -> Effects:
    return _move_mr(state, -1)


@_handles(a.SelectMr)
def _select_mr(state: AppState, action: a.SelectMr) -> Effects:
    if state.mode is Mode.NORMAL and state.tracked_mrs:
        state.mode = Mode.SELECTING_MR
    return []


@_handles(a.ChooseMr)
def _choose_mr(state: AppState, action: a.ChooseMr) -> Effects:
    if state.mode is not Mode.SELECTING_MR:
        return []
    if state.mr_at(action.index) is not None:
        state.selected_mr_index = action.index
        state.selected_job_index = 0
    state.mode = Mode.NORMAL
    return []


@_handles(a.CancelSelection)
def _cancel_selection(state: AppState, action: a.CancelSelection) -> Effects:
    if state.mode is Mode.SELECTING_MR:
        state.mode = Mode.NORMAL
    return []


@_handles(a.RemoveCurrentMr)
def _remove_current_mr(state: AppState, action: a.RemoveCurrentMr) -> Effects:
    if not state.tracked_mrs:
        return []
    del state.tracked_mrs[state.selected_mr_index]
    if state.selected_mr_index > 0:
        state.selected_mr_index -= 1
    state.selected_job_index = 0
    return []


@_handles(a.OpenMrInBrowser)
def _open_mr_in_browser(state: AppState, action: a.OpenMrInBrowser) -> Effects:
    mr = state.selected_mr
    if mr is None:
        return []
    return [a.OpenUrl(url=mr.mr.web_url)]


# =============================================================================
# Pipelines and jobs
# =============================================================================


def _move_pipeline(state: AppState, step: int) -> Effects:
    mr_index = state.selected_mr_index
    mr = state.mr_at(mr_index)
    state.selected_job_index = 0
    if mr is None or not mr.pipelines:
        return []

    mr.selected_pipeline_index = cycle_index(mr.selected_pipeline_index, len(mr.pipelines), step)
    pipeline_id = mr.pipelines[mr.selected_pipeline_index].id
    if pipeline_id in mr.jobs:
        return []
    return [a.FetchJobs(mr_index=mr_index, project_id=state.project_id, pipeline_id=pipeline_id)]


@_handles(a.NextPipeline)
def _next_pipeline(state: AppState, action: a.NextPipeline) -> Effects:
    return _move_pipeline(state, 1)


@_handles(a.PrevPipeline)
def _prev_pipeline(state: AppState, action: a.PrevPipeline) -> Effects:
    return _move_pipeline(state, -1)


def _move_job(state: AppState, step: int) -> Effects:
    jobs = state.selected_jobs
    if jobs:
        state.selected_job_index = cycle_index(state.selected_job_index, len(jobs), step)
    return []


@_handles(a.NextJob)
def _next_job(state: AppState, action: a.NextJob) -> Effects:
    return _move_job(state, 1)


@_handles(a.PrevJob)
def _prev_job(state: AppState, action: a.PrevJob) -> Effects:
    return _move_job(state, -1)


@_handles(a.MergeRequestsLoaded)
def _merge_requests_loaded(state: AppState, action: a.MergeRequestsLoaded) -> Effects:
    for mr in action.merge_requests:
        index = state.find_mr(mr.iid)
        if index is not None:
            state.tracked_mrs[index].mr = mr
        elif state.max_tracked_mrs is None or len(state.tracked_mrs) < state.max_tracked_mrs:
            state.tracked_mrs.append(TrackedMergeRequest(mr=mr))

    if not state.tracked_mrs and state.branch_filter:
        state.status_message = f"No open merge request for branch '{state.branch_filter}'"
    else:
        state.status_message = f"Loaded {len(state.tracked_mrs)} merge requests"

    return [
        a.FetchPipelines(mr_index=index, project_id=state.project_id, mr_iid=tracked.iid)
        for index, tracked in enumerate(state.tracked_mrs)
    ]


@_handles(a.PipelinesLoaded)
def _pipelines_loaded(state: AppState, action: a.PipelinesLoaded) -> Effects:
    mr = state.mr_at(action.mr_index)
    if mr is None:
        return []

    mr.pipelines = list(action.pipelines)
    mr.loading = False
    if mr.selected_pipeline_index >= len(mr.pipelines):
        mr.selected_pipeline_index = 0
        if action.mr_index == state.selected_mr_index:
            state.selected_job_index = 0

    restore = state.comments_restore
    if restore is not None and restore.mr_iid == mr.iid and not restore.notes_requested:
        # Reload comments first; NotesLoaded continues with the jobs
        restore.notes_requested = True
        return [a.FetchNotes(mr_index=action.mr_index, project_id=state.project_id, mr_iid=mr.iid)]

    if mr.pipelines:
        return [a.FetchJobs(mr_index=action.mr_index, project_id=state.project_id, pipeline_id=mr.pipelines[0].id)]
    return []


@_handles(a.JobsLoaded)
def _jobs_loaded(state: AppState, action: a.JobsLoaded) -> Effects:
    mr = state.mr_at(action.mr_index)
    if mr is None:
        return []

    # sorted() is stable: equal statuses keep API order
    jobs = sorted(action.jobs, key=lambda job: job_priority(job.status))
    mr.jobs[action.pipeline_id] = jobs
    state.last_refresh = action.loaded_at

    pipeline = mr.selected_pipeline
    if action.mr_index == state.selected_mr_index and pipeline is not None and pipeline.id == action.pipeline_id:
        if state.selected_job_index >= len(jobs):
            state.selected_job_index = max(0, len(jobs) - 1)
    return []


# =============================================================================
# Comments
# =============================================================================


def _note_position(notes: List[Note], note_id: Optional[int]) -> int:
    if note_id is None:
        return 0
    for position, note in enumerate(notes):
        if note.id == note_id:
            return position
    return 0


@_handles(a.ToggleCommentsView)
def _toggle_comments_view(state: AppState, action: a.ToggleCommentsView) -> Effects:
    if state.mode is Mode.VIEWING_COMMENTS:
        state.mode = Mode.NORMAL
        return []
    if state.mode is not Mode.NORMAL:
        return []
    state.mode = Mode.VIEWING_COMMENTS
    return _fetch_notes_if_needed(state)


@_handles(a.NotesLoaded)
def _notes_loaded(state: AppState, action: a.NotesLoaded) -> Effects:
    mr = state.mr_at(action.mr_index)
    if mr is None:
        return []

    mr.notes = list(action.notes)
    mr.notes_loaded = True
    if state.status_message == STATUS_LOADING_COMMENTS:
        state.status_message = None

    restore = state.comments_restore
    if restore is None or restore.mr_iid != mr.iid:
        mr.selected_note_index = 0
        return []

    state.comments_restore = None
    mr.selected_note_index = _note_position(mr.user_notes, restore.note_id)
    if restore.notes_requested and mr.pipelines:
        return [a.FetchJobs(mr_index=action.mr_index, project_id=state.project_id, pipeline_id=mr.pipelines[0].id)]
    return []


def _move_note(state: AppState, step: int) -> Effects:
    if state.mode is not Mode.VIEWING_COMMENTS:
        return []
    mr = state.selected_mr
    if mr is None:
        return []
    count = len(mr.user_notes)
    if count:
        mr.selected_note_index = cycle_index(mr.selected_note_index, count, step)
    return []


@_handles(a.NextNote)
def _next_note(state: AppState, action: a.NextNote) -> Effects:
    return _move_note(state, 1)


@_handles(a.PrevNote)
def _prev_note(state: AppState, action: a.PrevNote) -> Effects:
    return _move_note(state, -1)


# =============================================================================
# Help
# =============================================================================


@_handles(a.ShowHelp)
def _show_help(state: AppState, action: a.ShowHelp) -> Effects:
    if state.mode is not Mode.SHOWING_HELP:
        state.mode_before_help = state.mode
        state.mode = Mode.SHOWING_HELP
    return []


@_handles(a.HideHelp)
def _hide_help(state: AppState, action: a.HideHelp) -> Effects:
    if state.mode is Mode.SHOWING_HELP:
        state.mode = state.mode_before_help
    return []


# =============================================================================
# Log viewer
# =============================================================================


def _show_log(state: AppState, job_id: int, job_name: str, trace: str) -> None:
    log = state.log
    log.raw_trace = trace
    log.lines = process_log_content(trace, log.timestamp_mode)
    log.scroll_offset = 0
    log.job_id = job_id
    log.job_name = job_name
    log.clear_search()
    state.mode = Mode.VIEWING_LOG
    state.status_message = None


@_handles(a.OpenSelectedJobLog)
def _open_selected_job_log(state: AppState, action: a.OpenSelectedJobLog) -> Effects:
    mr = state.selected_mr
    job = state.selected_job
    if mr is None or job is None:
        return []

    cached = mr.job_logs.get(job.id)
    if cached is not None:
        _show_log(state, job.id, job.name, cached)
        return []

    state.status_message = f"Fetching log for job '{job.name}'..."
    return [a.FetchJobTrace(project_id=state.project_id, job_id=job.id, job_name=job.name)]


@_handles(a.JobTraceLoaded)
def _job_trace_loaded(state: AppState, action: a.JobTraceLoaded) -> Effects:
    mr = state.selected_mr
    if mr is not None:
        mr.job_logs[action.job_id] = action.trace
    _show_log(state, action.job_id, action.job_name, action.trace)
    return []


@_handles(a.CloseLogViewer)
def _close_log_viewer(state: AppState, action: a.CloseLogViewer) -> Effects:
    if state.mode is not Mode.VIEWING_LOG:
        return []
    state.mode = Mode.NORMAL
    state.log = LogViewerState(
        viewport_height=state.log.viewport_height,
        timestamp_mode=state.log.timestamp_mode,
    )
    return []


def _scroll_to(state: AppState, offset: int) -> Effects:
    if state.mode is Mode.VIEWING_LOG:
        log = state.log
        log.scroll_offset = clamp_offset(offset, log.total_lines, log.viewport_height)
    return []


@_handles(a.ScrollLogUp)
def _scroll_up(state: AppState, action: a.ScrollLogUp) -> Effects:
    return _scroll_to(state, state.log.scroll_offset - 1)


@_handles(a.ScrollLogDown)
def _scroll_down(state: AppState, action: a.ScrollLogDown) -> Effects:
    return _scroll_to(state, state.log.scroll_offset + 1)


@_handles(a.ScrollLogPageUp)
def _scroll_page_up(state: AppState, action: a.ScrollLogPageUp) -> Effects:
    return _scroll_to(state, state.log.scroll_offset - PAGE_SCROLL_LINES)


@_handles(a.ScrollLogPageDown)
def _scroll_page_down(state: AppState, action: a.ScrollLogPageDown) -> Effects:
    return _scroll_to(state, state.log.scroll_offset + PAGE_SCROLL_LINES)


@_handles(a.ScrollLogHome)
def _scroll_home(state: AppState, action: a.ScrollLogHome) -> Effects:
    return _scroll_to(state, 0)


@_handles(a.ScrollLogEnd)
def _scroll_end(state: AppState, action: a.ScrollLogEnd) -> Effects:
    return _scroll_to(state, max_scroll_offset(state.log.total_lines, state.log.viewport_height))


@_handles(a.SetViewportHeight)
def _set_viewport_height(state: AppState, action: a.SetViewportHeight) -> Effects:
    log = state.log
    log.viewport_height = max(0, action.height)
    log.scroll_offset = clamp_offset(log.scroll_offset, log.total_lines, log.viewport_height)
    return []


@_handles(a.ToggleTimestampMode)
def _toggle_timestamp_mode(state: AppState, action: a.ToggleTimestampMode) -> Effects:
    log = state.log
    log.timestamp_mode = log.timestamp_mode.next()
    if log.raw_trace is not None:
        log.lines = process_log_content(log.raw_trace, log.timestamp_mode)
    return []


@_handles(a.OpenLogInEditor)
def _open_log_in_editor(state: AppState, action: a.OpenLogInEditor) -> Effects:
    if state.mode is not Mode.VIEWING_LOG or state.log.raw_trace is None:
        return []
    return [a.OpenInEditor(text=plain_text(state.log.lines))]


# =============================================================================
# Log search
# =============================================================================


@_handles(a.StartSearch)
def _start_search(state: AppState, action: a.StartSearch) -> Effects:
    if state.mode is Mode.VIEWING_LOG:
        state.log.searching = True
        state.log.search_query = ""
    return []


@_handles(a.SearchInput)
def _search_input(state: AppState, action: a.SearchInput) -> Effects:
    if state.log.searching:
        state.log.search_query += action.text
    return []


@_handles(a.SearchBackspace)
def _search_backspace(state: AppState, action: a.SearchBackspace) -> Effects:
    if state.log.searching:
        state.log.search_query = state.log.search_query[:-1]
    return []


def _select_match(state: AppState, match: int) -> None:
    log = state.log
    log.current_match = match
    log.scroll_offset = center_offset(log.matches[match], log.viewport_height, log.total_lines)


@_handles(a.ExecuteSearch)
def _execute_search(state: AppState, action: a.ExecuteSearch) -> Effects:
    log = state.log
    if not log.searching:
        return []
    log.searching = False
    query = log.search_query
    log.matches = find_matches(split_lines(log.raw_trace or ""), query)

    if not log.matches:
        log.current_match = None
        state.status_message = f"No matches for '{query}'" if query else None
        return []

    _select_match(state, 0)
    state.status_message = f"{len(log.matches)} matches for '{query}'"
    return []


@_handles(a.CancelSearch)
def _cancel_search(state: AppState, action: a.CancelSearch) -> Effects:
    state.log.searching = False
    state.log.search_query = ""
    return []


def _move_match(state: AppState, step: int) -> Effects:
    log = state.log
    if state.mode is not Mode.VIEWING_LOG or not log.matches:
        return []
    if log.current_match is None:
        match = 0 if step > 0 else len(log.matches) - 1
    else:
        match = cycle_index(log.current_match, len(log.matches), step)
    _select_match(state, match)
    return []


@_handles(a.NextMatch)
def _next_match(state: AppState, action: a.NextMatch) -> Effects:
    return _move_match(state, 1)


@_handles(a.PrevMatch)
def _prev_match(state: AppState, action: a.PrevMatch) -> Effects:
    return _move_match(state, -1)
