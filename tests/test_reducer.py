#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Tests for the state reducer.

Each test builds an AppState, applies actions through update() and checks
the resulting state and returned effects.
"""

import pytest

from conftest import make_job, make_mr, make_note, make_pipeline
from peeplab.tui import actions as a
from peeplab.tui.app_state import AppState, CommentsRestore, Mode, TimestampMode, TrackedMergeRequest
from peeplab.tui.reducer import PAGE_SCROLL_LINES, update

PROJECT = 42


def state_with_mrs(count: int, **kwargs) -> AppState:
    state = AppState(project_id=PROJECT, **kwargs)
    update(state, a.MergeRequestsLoaded([make_mr(i + 1) for i in range(count)]))
    return state


def state_with_jobs(jobs, pipelines=None) -> AppState:
    state = state_with_mrs(1)
    pipelines = pipelines or [make_pipeline(100)]
    update(state, a.PipelinesLoaded(mr_index=0, pipelines=pipelines))
    update(state, a.JobsLoaded(mr_index=0, pipeline_id=pipelines[0].id, jobs=jobs))
    return state


def state_viewing_log(trace: str, viewport_height: int = 20) -> AppState:
    state = state_with_jobs([make_job(7, "failed", "build")])
    update(state, a.SetViewportHeight(viewport_height))
    update(state, a.JobTraceLoaded(job_id=7, job_name="build", trace=trace))
    return state


# =============================================================================
# Startup and merge request loading
# =============================================================================


class TestStart:
    def test_start_fetches_all_mrs_without_branch_focus(self):
        state = AppState(project_id=PROJECT)
        assert update(state, a.Start()) == [a.FetchMergeRequests(project_id=PROJECT)]

    def test_start_fetches_branch_mrs_with_branch_focus(self):
        state = AppState(project_id=PROJECT, current_branch="feat/x", focus_current_branch=True)
        effects = update(state, a.Start())
        assert effects == [a.FetchMergeRequestsByBranch(project_id=PROJECT, branch="feat/x")]
        assert "feat/x" in state.status_message

    def test_branch_without_focus_is_not_a_filter(self):
        state = AppState(project_id=PROJECT, current_branch="feat/x", focus_current_branch=False)
        assert update(state, a.Start()) == [a.FetchMergeRequests(project_id=PROJECT)]


class TestMergeRequestsLoaded:
    def test_new_mrs_are_tracked_in_loading_state(self):
        state = AppState(project_id=PROJECT)
        update(state, a.MergeRequestsLoaded([make_mr(1), make_mr(2)]))

        assert [t.iid for t in state.tracked_mrs] == [1, 2]
        assert all(t.loading for t in state.tracked_mrs)
        assert all(t.pipelines == [] and t.jobs == {} for t in state.tracked_mrs)

    def test_emits_pipeline_fetch_for_every_tracked_mr(self):
        state = AppState(project_id=PROJECT)
        effects = update(state, a.MergeRequestsLoaded([make_mr(1), make_mr(2), make_mr(3)]))

        assert effects == [
            a.FetchPipelines(mr_index=0, project_id=PROJECT, mr_iid=1),
            a.FetchPipelines(mr_index=1, project_id=PROJECT, mr_iid=2),
            a.FetchPipelines(mr_index=2, project_id=PROJECT, mr_iid=3),
        ]

    def test_reload_dedupes_by_iid(self):
        state = state_with_mrs(2)
        effects = update(state, a.MergeRequestsLoaded([make_mr(2, title="renamed"), make_mr(3)]))

        assert [t.iid for t in state.tracked_mrs] == [1, 2, 3]
        assert state.tracked_mrs[1].mr.title == "renamed"
        # Previously tracked MRs are refetched too
        assert [e.mr_iid for e in effects] == [1, 2, 3]

    def test_cap_limits_new_mrs(self):
        state = AppState(project_id=PROJECT, max_tracked_mrs=2)
        update(state, a.MergeRequestsLoaded([make_mr(1), make_mr(2), make_mr(3)]))
        assert [t.iid for t in state.tracked_mrs] == [1, 2]

    def test_empty_branch_result_reports_status(self):
        state = AppState(project_id=PROJECT, current_branch="feat/x", focus_current_branch=True)
        assert update(state, a.MergeRequestsLoaded([])) == []
        assert "feat/x" in state.status_message


class TestPipelinesLoaded:
    def test_out_of_order_results_only_clear_their_own_mr(self):
        state = state_with_mrs(2)

        effects = update(state, a.PipelinesLoaded(mr_index=1, pipelines=[make_pipeline(200)]))

        assert state.tracked_mrs[1].loading is False
        assert state.tracked_mrs[0].loading is True
        assert effects == [a.FetchJobs(mr_index=1, project_id=PROJECT, pipeline_id=200)]

        update(state, a.PipelinesLoaded(mr_index=0, pipelines=[make_pipeline(100)]))
        assert state.tracked_mrs[0].loading is False

    def test_fetches_jobs_for_latest_pipeline(self):
        state = state_with_mrs(1)
        effects = update(state, a.PipelinesLoaded(mr_index=0, pipelines=[make_pipeline(9), make_pipeline(8)]))
        assert effects == [a.FetchJobs(mr_index=0, project_id=PROJECT, pipeline_id=9)]

    def test_no_pipelines_no_effect(self):
        state = state_with_mrs(1)
        assert update(state, a.PipelinesLoaded(mr_index=0, pipelines=[])) == []
        assert state.tracked_mrs[0].loading is False

    def test_stale_index_is_ignored(self):
        state = state_with_mrs(1)
        assert update(state, a.PipelinesLoaded(mr_index=5, pipelines=[make_pipeline(1)])) == []
        assert state.tracked_mrs[0].pipelines == []

    def test_pipeline_index_clamped_when_list_shrinks(self):
        state = state_with_mrs(1)
        update(state, a.PipelinesLoaded(mr_index=0, pipelines=[make_pipeline(3), make_pipeline(2), make_pipeline(1)]))
        state.tracked_mrs[0].selected_pipeline_index = 2

        update(state, a.PipelinesLoaded(mr_index=0, pipelines=[make_pipeline(3)]))
        assert state.tracked_mrs[0].selected_pipeline_index == 0


class TestJobsLoaded:
    def test_jobs_sorted_by_status_priority(self):
        jobs = [
            make_job(1, "success"),
            make_job(2, "skipped"),
            make_job(3, "failed"),
            make_job(4, "manual"),
            make_job(5, "running"),
            make_job(6, "created"),
            make_job(7, "pending"),
            make_job(8, "canceled"),
        ]
        state = state_with_jobs(jobs)
        statuses = [job.status.value for job in state.selected_jobs]
        assert statuses == ["failed", "running", "pending", "canceled", "created", "manual", "success", "skipped"]

    def test_sort_is_stable_for_equal_status(self):
        jobs = [
            make_job(1, "success", "a"),
            make_job(2, "failed", "b"),
            make_job(3, "success", "c"),
            make_job(4, "failed", "d"),
            make_job(5, "success", "e"),
        ]
        state = state_with_jobs(jobs)
        assert [job.name for job in state.selected_jobs] == ["b", "d", "a", "c", "e"]

    def test_unranked_statuses_sort_last(self):
        state = state_with_jobs([make_job(1, "scheduled"), make_job(2, "skipped")])
        assert [job.id for job in state.selected_jobs] == [2, 1]

    def test_records_last_refresh(self):
        state = state_with_jobs([make_job(1)])
        assert state.last_refresh is not None

    def test_stale_index_is_ignored(self):
        state = state_with_mrs(1)
        assert update(state, a.JobsLoaded(mr_index=3, pipeline_id=1, jobs=[make_job(1)])) == []
        assert state.tracked_mrs[0].jobs == {}

    def test_job_index_clamped_when_jobs_shrink(self):
        state = state_with_jobs([make_job(1), make_job(2), make_job(3)])
        state.selected_job_index = 2
        update(state, a.JobsLoaded(mr_index=0, pipeline_id=100, jobs=[make_job(1)]))
        assert state.selected_job_index == 0


# =============================================================================
# Navigation
# =============================================================================


class TestMrNavigation:
    @pytest.mark.parametrize("count", [1, 2, 5])
    def test_next_mr_n_times_returns_to_start(self, count):
        state = state_with_mrs(count)
        state.selected_mr_index = count - 1
        for _ in range(count):
            update(state, a.NextMr())
        assert state.selected_mr_index == count - 1

    def test_prev_mr_wraps(self):
        state = state_with_mrs(3)
        update(state, a.PrevMr())
        assert state.selected_mr_index == 2

    def test_navigation_on_empty_is_noop(self):
        state = AppState(project_id=PROJECT)
        assert update(state, a.NextMr()) == []
        assert update(state, a.PrevMr()) == []
        assert state.selected_mr_index == 0

    def test_changing_mr_resets_job_index(self):
        state = state_with_mrs(2)
        state.selected_job_index = 4
        update(state, a.NextMr())
        assert state.selected_job_index == 0

    def test_changing_mr_in_comments_view_fetches_notes(self):
        state = state_with_mrs(2)
        state.mode = Mode.VIEWING_COMMENTS
        effects = update(state, a.NextMr())
        assert effects == [a.FetchNotes(mr_index=1, project_id=PROJECT, mr_iid=2)]


class TestJobNavigation:
    def test_next_job_wraps(self):
        state = state_with_jobs([make_job(1), make_job(2)])
        update(state, a.NextJob())
        assert state.selected_job_index == 1
        update(state, a.NextJob())
        assert state.selected_job_index == 0

    def test_prev_job_wraps(self):
        state = state_with_jobs([make_job(1), make_job(2), make_job(3)])
        update(state, a.PrevJob())
        assert state.selected_job_index == 2

    def test_no_jobs_is_noop(self):
        state = state_with_mrs(1)
        update(state, a.NextJob())
        assert state.selected_job_index == 0


class TestPipelineNavigation:
    def test_switching_to_uncached_pipeline_fetches_jobs(self):
        state = state_with_jobs([make_job(1)], pipelines=[make_pipeline(3), make_pipeline(2)])
        state.selected_job_index = 1

        effects = update(state, a.NextPipeline())

        assert state.tracked_mrs[0].selected_pipeline_index == 1
        assert state.selected_job_index == 0
        assert effects == [a.FetchJobs(mr_index=0, project_id=PROJECT, pipeline_id=2)]

    def test_switching_to_cached_pipeline_has_no_effect(self):
        state = state_with_jobs([make_job(1)], pipelines=[make_pipeline(3), make_pipeline(2)])
        update(state, a.JobsLoaded(mr_index=0, pipeline_id=2, jobs=[make_job(5)]))

        assert update(state, a.PrevPipeline()) == []
        assert state.tracked_mrs[0].selected_pipeline_index == 1

    def test_no_pipelines_is_noop(self):
        state = state_with_mrs(1)
        assert update(state, a.NextPipeline()) == []


class TestRemoveCurrentMr:
    def test_removing_last_selected_moves_to_new_last(self):
        state = state_with_mrs(3)
        state.selected_mr_index = 2

        update(state, a.RemoveCurrentMr())

        assert [t.iid for t in state.tracked_mrs] == [1, 2]
        assert state.selected_mr_index == 1

    def test_removing_first_keeps_index_zero(self):
        state = state_with_mrs(2)
        update(state, a.RemoveCurrentMr())
        assert state.selected_mr_index == 0
        assert [t.iid for t in state.tracked_mrs] == [2]

    def test_removing_only_mr(self):
        state = state_with_mrs(1)
        update(state, a.RemoveCurrentMr())
        assert state.tracked_mrs == []
        assert state.selected_mr_index == 0
        assert update(state, a.RemoveCurrentMr()) == []

    def test_late_result_for_removed_mr_is_dropped(self):
        state = state_with_mrs(2)
        state.selected_mr_index = 1
        update(state, a.RemoveCurrentMr())

        assert update(state, a.PipelinesLoaded(mr_index=1, pipelines=[make_pipeline(1)])) == []
        assert update(state, a.NotesLoaded(mr_index=1, notes=[make_note(1)])) == []


class TestSelectMr:
    def test_choose_selects_and_returns_to_normal(self):
        state = state_with_mrs(3)
        update(state, a.SelectMr())
        assert state.mode is Mode.SELECTING_MR

        update(state, a.ChooseMr(2))
        assert state.selected_mr_index == 2
        assert state.mode is Mode.NORMAL

    def test_out_of_range_choice_keeps_selection(self):
        state = state_with_mrs(2)
        update(state, a.SelectMr())
        update(state, a.ChooseMr(7))
        assert state.selected_mr_index == 0
        assert state.mode is Mode.NORMAL

    def test_cancel(self):
        state = state_with_mrs(2)
        update(state, a.SelectMr())
        update(state, a.CancelSelection())
        assert state.mode is Mode.NORMAL

    def test_select_without_mrs_stays_normal(self):
        state = AppState(project_id=PROJECT)
        update(state, a.SelectMr())
        assert state.mode is Mode.NORMAL


# =============================================================================
# Refresh
# =============================================================================


class TestRefresh:
    def test_refresh_clears_notes_and_logs_but_keeps_pipelines(self):
        state = state_with_jobs([make_job(1)])
        tracked = state.tracked_mrs[0]
        tracked.job_logs[1] = "trace"
        update(state, a.NotesLoaded(mr_index=0, notes=[make_note(1)]))

        effects = update(state, a.Refresh(now=10.0))

        assert effects == [a.RefreshAll(project_id=PROJECT, branch=None)]
        assert tracked.notes == []
        assert tracked.notes_loaded is False
        assert tracked.job_logs == {}
        assert tracked.pipelines and tracked.jobs
        assert state.last_auto_refresh == 10.0
        assert state.comments_restore is None

    def test_refresh_carries_branch_filter(self):
        state = AppState(project_id=PROJECT, current_branch="main", focus_current_branch=True)
        assert update(state, a.Refresh(now=0.0)) == [a.RefreshAll(project_id=PROJECT, branch="main")]

    def test_refresh_clears_error(self):
        state = AppState(project_id=PROJECT)
        update(state, a.ApiError("boom"))
        update(state, a.Refresh(now=0.0))
        assert state.error_message is None


class TestTick:
    def test_first_tick_starts_timer(self):
        state = AppState(project_id=PROJECT, auto_refresh_interval=60.0)
        assert update(state, a.Tick(now=100.0)) == []
        assert state.last_auto_refresh == 100.0

    def test_tick_before_interval_does_nothing(self):
        state = AppState(project_id=PROJECT, auto_refresh_interval=60.0, last_auto_refresh=100.0)
        assert update(state, a.Tick(now=159.0)) == []
        assert state.last_auto_refresh == 100.0

    def test_tick_past_interval_refreshes(self):
        state = AppState(project_id=PROJECT, auto_refresh_interval=60.0, last_auto_refresh=100.0)
        assert update(state, a.Tick(now=160.0)) == [a.RefreshAll(project_id=PROJECT, branch=None)]
        assert state.last_auto_refresh == 160.0

    def test_manual_refresh_resets_auto_timer(self):
        state = AppState(project_id=PROJECT, auto_refresh_interval=60.0, last_auto_refresh=0.0)
        update(state, a.Refresh(now=50.0))
        assert update(state, a.Tick(now=70.0)) == []


class TestCommentsRestore:
    def test_refresh_restores_selected_note_by_id(self):
        state = state_with_jobs([make_job(1)])
        update(state, a.ToggleCommentsView())
        update(state, a.NotesLoaded(mr_index=0, notes=[make_note(10), make_note(11), make_note(12)]))
        update(state, a.NextNote())
        assert state.tracked_mrs[0].selected_note.id == 11

        update(state, a.Refresh(now=1.0))
        assert state.comments_restore == CommentsRestore(mr_iid=1, note_id=11)

        update(state, a.MergeRequestsLoaded([make_mr(1)]))
        effects = update(state, a.PipelinesLoaded(mr_index=0, pipelines=[make_pipeline(100)]))
        assert effects == [a.FetchNotes(mr_index=0, project_id=PROJECT, mr_iid=1)]

        # Two new notes arrive first, shifting note 11 to position 3
        notes = [make_note(14), make_note(13), make_note(12), make_note(11), make_note(10)]
        effects = update(state, a.NotesLoaded(mr_index=0, notes=notes))

        assert state.tracked_mrs[0].selected_note_index == 3
        assert state.tracked_mrs[0].selected_note.id == 11
        assert state.comments_restore is None
        assert effects == [a.FetchJobs(mr_index=0, project_id=PROJECT, pipeline_id=100)]

    def test_missing_note_defaults_to_first(self):
        state = state_with_mrs(1)
        state.comments_restore = CommentsRestore(mr_iid=1, note_id=99, notes_requested=True)
        update(state, a.NotesLoaded(mr_index=0, notes=[make_note(1), make_note(2)]))
        assert state.tracked_mrs[0].selected_note_index == 0

    def test_restore_skips_system_notes(self):
        state = state_with_mrs(1)
        state.comments_restore = CommentsRestore(mr_iid=1, note_id=3, notes_requested=True)
        notes = [make_note(1, system=True), make_note(2), make_note(4, system=True), make_note(3)]
        update(state, a.NotesLoaded(mr_index=0, notes=notes))
        assert state.tracked_mrs[0].selected_note_index == 1

    def test_refresh_outside_comments_records_nothing(self):
        state = state_with_mrs(1)
        update(state, a.Refresh(now=0.0))
        assert state.comments_restore is None


# =============================================================================
# Comments
# =============================================================================


class TestComments:
    def test_first_toggle_fetches_notes(self):
        state = state_with_mrs(1)
        effects = update(state, a.ToggleCommentsView())
        assert state.mode is Mode.VIEWING_COMMENTS
        assert effects == [a.FetchNotes(mr_index=0, project_id=PROJECT, mr_iid=1)]

    def test_toggle_with_loaded_notes_has_no_effect(self):
        state = state_with_mrs(1)
        update(state, a.NotesLoaded(mr_index=0, notes=[]))
        assert update(state, a.ToggleCommentsView()) == []

    def test_toggle_back_is_pure(self):
        state = state_with_mrs(1)
        update(state, a.ToggleCommentsView())
        assert update(state, a.ToggleCommentsView()) == []
        assert state.mode is Mode.NORMAL

    def test_ignored_in_log_view(self):
        state = state_viewing_log("line\n")
        assert update(state, a.ToggleCommentsView()) == []
        assert state.mode is Mode.VIEWING_LOG

    def test_note_navigation_skips_system_notes(self):
        state = state_with_mrs(1)
        update(state, a.ToggleCommentsView())
        notes = [make_note(1), make_note(2, system=True), make_note(3)]
        update(state, a.NotesLoaded(mr_index=0, notes=notes))
        tracked = state.tracked_mrs[0]

        update(state, a.NextNote())
        assert tracked.selected_note.id == 3
        update(state, a.NextNote())
        assert tracked.selected_note.id == 1
        update(state, a.PrevNote())
        assert tracked.selected_note.id == 3

    def test_notes_loaded_resets_selection(self):
        state = state_with_mrs(1)
        state.tracked_mrs[0].selected_note_index = 4
        update(state, a.NotesLoaded(mr_index=0, notes=[make_note(1)]))
        assert state.tracked_mrs[0].selected_note_index == 0
        assert state.tracked_mrs[0].notes_loaded is True


# =============================================================================
# Help, browser, errors, quit
# =============================================================================


class TestMisc:
    def test_help_returns_to_previous_mode(self):
        state = state_viewing_log("x\n")
        update(state, a.ShowHelp())
        assert state.mode is Mode.SHOWING_HELP
        update(state, a.HideHelp())
        assert state.mode is Mode.VIEWING_LOG

    def test_open_mr_in_browser(self):
        state = state_with_mrs(1)
        assert update(state, a.OpenMrInBrowser()) == [a.OpenUrl(url=state.tracked_mrs[0].mr.web_url)]

    def test_open_browser_without_mr(self):
        assert update(AppState(project_id=PROJECT), a.OpenMrInBrowser()) == []

    def test_api_error_replaces_status(self):
        state = AppState(project_id=PROJECT)
        update(state, a.Start())
        update(state, a.ApiError("401 Unauthorized"))
        assert state.error_message == "401 Unauthorized"
        assert state.status_message is None

    def test_quit(self):
        state = AppState(project_id=PROJECT)
        update(state, a.Quit())
        assert state.should_quit is True


# =============================================================================
# Log viewer
# =============================================================================


class TestOpenJobLog:
    def test_uncached_log_is_fetched(self):
        state = state_with_jobs([make_job(7, "failed", "build")])
        effects = update(state, a.OpenSelectedJobLog())
        assert effects == [a.FetchJobTrace(project_id=PROJECT, job_id=7, job_name="build")]
        assert state.mode is Mode.NORMAL

    def test_trace_loaded_caches_and_shows(self):
        state = state_with_jobs([make_job(7, "failed", "build")])
        update(state, a.JobTraceLoaded(job_id=7, job_name="build", trace="one\ntwo\n"))

        assert state.mode is Mode.VIEWING_LOG
        assert state.tracked_mrs[0].job_logs[7] == "one\ntwo\n"
        assert [line.plain for line in state.log.lines] == ["one", "two"]
        assert state.log.scroll_offset == 0

    def test_cached_log_opens_without_effect(self):
        state = state_with_jobs([make_job(7, "failed", "build")])
        state.tracked_mrs[0].job_logs[7] = "cached\n"
        assert update(state, a.OpenSelectedJobLog()) == []
        assert state.mode is Mode.VIEWING_LOG
        assert state.log.lines[0].plain == "cached"

    def test_no_selected_job(self):
        state = state_with_mrs(1)
        assert update(state, a.OpenSelectedJobLog()) == []

    def test_close_keeps_timestamp_mode(self):
        state = state_viewing_log("a\n")
        update(state, a.ToggleTimestampMode())
        update(state, a.CloseLogViewer())
        assert state.mode is Mode.NORMAL
        assert state.log.raw_trace is None
        assert state.log.lines == []
        assert state.log.timestamp_mode is TimestampMode.DATE_ONLY


class TestLogScrolling:
    TRACE = "".join(f"line {i}\n" for i in range(100))

    def test_scroll_down_and_up(self):
        state = state_viewing_log(self.TRACE)
        update(state, a.ScrollLogDown())
        update(state, a.ScrollLogDown())
        update(state, a.ScrollLogUp())
        assert state.log.scroll_offset == 1

    def test_scroll_up_clamps_at_zero(self):
        state = state_viewing_log(self.TRACE)
        update(state, a.ScrollLogUp())
        assert state.log.scroll_offset == 0

    def test_page_scroll(self):
        state = state_viewing_log(self.TRACE)
        update(state, a.ScrollLogPageDown())
        assert state.log.scroll_offset == PAGE_SCROLL_LINES
        update(state, a.ScrollLogPageUp())
        assert state.log.scroll_offset == 0

    def test_end_and_home(self):
        state = state_viewing_log(self.TRACE, viewport_height=20)
        update(state, a.ScrollLogEnd())
        assert state.log.scroll_offset == 80
        update(state, a.ScrollLogDown())
        assert state.log.scroll_offset == 80
        update(state, a.ScrollLogHome())
        assert state.log.scroll_offset == 0

    def test_growing_viewport_reclamps(self):
        state = state_viewing_log(self.TRACE, viewport_height=20)
        update(state, a.ScrollLogEnd())
        update(state, a.SetViewportHeight(50))
        assert state.log.scroll_offset == 50


class TestTimestampToggle:
    TRACE = "2026-01-12T10:35:38.187431Z 00O \x1b[0KHello\n"

    def test_three_toggles_return_to_hidden(self):
        state = state_viewing_log(self.TRACE)
        seen = []
        for _ in range(3):
            update(state, a.ToggleTimestampMode())
            seen.append(state.log.timestamp_mode)
        assert seen == [TimestampMode.DATE_ONLY, TimestampMode.FULL, TimestampMode.HIDDEN]

    def test_toggle_reprocesses_trace(self):
        state = state_viewing_log(self.TRACE)
        assert state.log.lines[0].plain == "Hello"
        update(state, a.ToggleTimestampMode())
        assert state.log.lines[0].plain == "2026-01-12 Hello"
        update(state, a.ToggleTimestampMode())
        assert state.log.lines[0].plain == "2026-01-12 10:35:38 Hello"


class TestOpenLogInEditor:
    def test_emits_plain_text(self):
        state = state_viewing_log("\x1b[31mred\x1b[0m\nplain\n")
        assert update(state, a.OpenLogInEditor()) == [a.OpenInEditor(text="red\nplain")]

    def test_outside_log_view_is_noop(self):
        state = state_with_mrs(1)
        assert update(state, a.OpenLogInEditor()) == []


class TestLogSearch:
    TRACE = "".join(("ERROR here\n" if i in (5, 50, 90) else f"line {i}\n") for i in range(100))

    def search(self, state, query):
        update(state, a.StartSearch())
        for char in query:
            update(state, a.SearchInput(char))
        update(state, a.ExecuteSearch())

    def test_typing_builds_query(self):
        state = state_viewing_log(self.TRACE)
        update(state, a.StartSearch())
        update(state, a.SearchInput("e"))
        update(state, a.SearchInput("rx"))
        update(state, a.SearchBackspace())
        assert state.log.searching is True
        assert state.log.search_query == "er"

    def test_execute_finds_lines_and_centers_first(self):
        state = state_viewing_log(self.TRACE, viewport_height=20)
        self.search(state, "error")

        assert state.log.matches == [5, 50, 90]
        assert state.log.current_match == 0
        assert state.log.scroll_offset == 0
        assert state.log.searching is False
        assert "3 matches" in state.status_message

    def test_next_match_recenters(self):
        state = state_viewing_log(self.TRACE, viewport_height=20)
        self.search(state, "ERROR")

        update(state, a.NextMatch())
        assert state.log.current_match_line == 50
        assert state.log.scroll_offset == 40

        update(state, a.NextMatch())
        assert state.log.scroll_offset == 80

        update(state, a.NextMatch())
        assert state.log.current_match == 0

    def test_prev_match_wraps(self):
        state = state_viewing_log(self.TRACE, viewport_height=20)
        self.search(state, "error")
        update(state, a.PrevMatch())
        assert state.log.current_match_line == 90

    def test_empty_query_finds_nothing_and_keeps_offset(self):
        state = state_viewing_log(self.TRACE, viewport_height=20)
        update(state, a.ScrollLogPageDown())
        self.search(state, "")
        assert state.log.matches == []
        assert state.log.scroll_offset == PAGE_SCROLL_LINES

    def test_no_matches_reports_status(self):
        state = state_viewing_log(self.TRACE)
        self.search(state, "nope")
        assert state.log.matches == []
        assert "No matches" in state.status_message

    def test_cancel_keeps_results(self):
        state = state_viewing_log(self.TRACE)
        self.search(state, "error")
        update(state, a.StartSearch())
        update(state, a.SearchInput("x"))
        update(state, a.CancelSearch())

        assert state.log.search_query == ""
        assert state.log.searching is False
        assert state.log.matches == [5, 50, 90]

    def test_new_trace_resets_search(self):
        state = state_viewing_log(self.TRACE)
        self.search(state, "error")
        update(state, a.JobTraceLoaded(job_id=7, job_name="build", trace="other\n"))
        assert state.log.matches == []
        assert state.log.current_match is None

    def test_match_on_raw_text_maps_to_display_line(self):
        trace = "section_start:1:build\nok\n2026-01-12T10:00:00Z 00O needle\n"
        state = state_viewing_log(trace)
        self.search(state, "needle")
        assert state.log.matches == [2]
        assert state.log.lines[2].plain == "needle"


class TestUnknownAction:
    def test_unknown_action_is_ignored(self):
        class Custom(a.Action):
            pass

        state = AppState(project_id=PROJECT)
        assert update(state, Custom()) == []
        assert isinstance(state.tracked_mrs, list)


def test_tracked_mr_defaults():
    tracked = TrackedMergeRequest(mr=make_mr(1))
    assert tracked.loading is True
    assert tracked.selected_jobs is None
