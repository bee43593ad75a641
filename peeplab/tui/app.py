#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Main TUI application for the peeplab merge request dashboard.

The app owns the AppState and is its only writer: every key press, timer
tick and API result becomes an Action that goes through ``reducer.update``
on the UI thread. Effects returned by the reducer run as thread workers and
post their result Action back through the app's message queue, so results
are reduced one at a time in arrival order.

Panels:
- MR tabs across the top
- Pipelines of the selected MR and the jobs of the selected pipeline
- Comments view (replaces jobs)
- Full-screen job log viewer with search
- Status bar
"""

import webbrowser
from typing import List, Optional

from rich.markup import escape
from rich.text import Text
from textual import events, work
from textual.app import App, ComposeResult, SuspendNotSupported
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.message import Message
from textual.screen import ModalScreen
from textual.widgets import Header, Static

from peeplab.config import GitLabConfig, Settings
from peeplab.debug_logger import get_logger
from peeplab.editor import open_in_editor
from peeplab.exceptions import PeeplabError
from peeplab.gitlab_client import GitLabClient
from peeplab.tui import actions as a
from peeplab.tui.app_state import AppState, LogViewerState, Mode, TrackedMergeRequest
from peeplab.tui.dispatcher import execute_effect, is_api_effect
from peeplab.tui.formatting import (
    format_duration,
    format_relative_time,
    format_time,
    job_status_markup,
    pipeline_status_markup,
    truncate,
)
from peeplab.tui.keymap import HELP_SECTIONS, map_key
from peeplab.tui.reducer import update

# Lines rendered when the viewport height is not known yet
FALLBACK_VIEWPORT = 200

MATCH_STYLE = "on grey23"
CURRENT_MATCH_STYLE = "black on yellow"


class ActionMessage(Message):
    """Carries an Action from a worker thread to the UI thread."""

    def __init__(self, action: a.Action) -> None:
        super().__init__()
        self.action = action


# =============================================================================
# Rendering
# =============================================================================


def render_mr_tabs(state: AppState) -> str:
    if not state.tracked_mrs:
        return "[dim]No merge requests tracked[/dim]"

    tabs = []
    for index, tracked in enumerate(state.tracked_mrs):
        label = f" !{tracked.iid} {escape(truncate(tracked.mr.title, 30))} "
        if tracked.loading:
            label += "… "
        if index == state.selected_mr_index:
            tabs.append(f"[reverse bold]{label}[/reverse bold]")
        else:
            tabs.append(label)
    return "│".join(tabs)


def render_pipelines(tracked: Optional[TrackedMergeRequest], relative: bool) -> str:
    if tracked is None:
        return ""

    mr = tracked.mr
    lines = [
        f"[bold]!{mr.iid}[/bold] {escape(mr.title)}",
        f"[dim]{escape(mr.author.name)} · {escape(mr.source_branch)} · updated {format_time(mr.updated_at, relative)}[/dim]",
        "",
    ]
    if tracked.loading and not tracked.pipelines:
        lines.append("[dim]Loading pipelines...[/dim]")
        return "\n".join(lines)
    if not tracked.pipelines:
        lines.append("[dim]No pipelines[/dim]")
        return "\n".join(lines)

    for index, pipeline in enumerate(tracked.pipelines):
        marker = "▶" if index == tracked.selected_pipeline_index else " "
        lines.append(
            f"{marker} #{pipeline.id} {pipeline_status_markup(pipeline.status)} "
            f"[dim]{escape(pipeline.ref_name)} · {format_time(pipeline.created_at, relative)}[/dim]"
        )
    return "\n".join(lines)


def render_jobs(state: AppState) -> str:
    tracked = state.selected_mr
    if tracked is None or tracked.selected_pipeline is None:
        return ""

    jobs = tracked.selected_jobs
    if jobs is None:
        return "[dim]Loading jobs...[/dim]"
    if not jobs:
        return "[dim]No jobs[/dim]"

    lines = []
    for index, job in enumerate(jobs):
        row = f"{job_status_markup(job.status)} {escape(job.name)} [dim]{escape(job.stage)}[/dim]"
        duration = format_duration(job.duration)
        if duration:
            row += f" [dim]({duration})[/dim]"
        if index == state.selected_job_index:
            row = f"[reverse]{row}[/reverse]"
        lines.append(row)
    return "\n".join(lines)


def render_comments(tracked: Optional[TrackedMergeRequest], relative: bool) -> str:
    if tracked is None:
        return ""
    if not tracked.notes_loaded:
        return "[dim]Loading comments...[/dim]"

    notes = tracked.user_notes
    if not notes:
        return "[dim]No comments[/dim]"

    lines = [f"[bold]Comments ({len(notes)})[/bold]", ""]
    for index, note in enumerate(notes):
        selected = index == tracked.selected_note_index
        marker = "▶" if selected else " "
        header = f"{marker} [bold]{escape(note.author.name)}[/bold] [dim]{format_time(note.created_at, relative)}[/dim]"
        lines.append(header)
        body = note.body if selected else truncate(note.body.replace("\n", " "), 80)
        for body_line in body.splitlines() or [""]:
            lines.append(f"    {escape(body_line)}")
        lines.append("")
    return "\n".join(lines)


def render_mr_picker(state: AppState) -> str:
    lines = ["[bold]Select merge request[/bold] [dim](number, Esc to cancel)[/dim]", ""]
    for index, tracked in enumerate(state.tracked_mrs):
        lines.append(f"  [bold]{index + 1}[/bold]  !{tracked.iid} {escape(tracked.mr.title)}")
    return "\n".join(lines)


def render_log_header(log: LogViewerState) -> str:
    name = escape(log.job_name or "")
    position = f"{min(log.scroll_offset + 1, log.total_lines)}/{log.total_lines}"
    return f"[bold]Job log: {name}[/bold]  [dim]{position} · timestamps: {log.timestamp_mode.label}[/dim]"


def render_log(log: LogViewerState) -> Text:
    """Render the visible window of the log with match lines highlighted."""
    height = log.viewport_height or FALLBACK_VIEWPORT
    start = log.scroll_offset
    matches = set(log.matches)
    current = log.current_match_line

    window = []
    for index in range(start, min(start + height, log.total_lines)):
        line = log.lines[index]
        if index == current:
            line = line.copy()
            line.stylize(CURRENT_MATCH_STYLE)
        elif index in matches:
            line = line.copy()
            line.stylize(MATCH_STYLE)
        window.append(line)
    return Text("\n").join(window)


def render_search_bar(log: LogViewerState) -> str:
    if log.searching:
        return f"/{escape(log.search_query)}█"
    if log.matches and log.current_match is not None:
        return f"[dim]match {log.current_match + 1}/{len(log.matches)} · n/N to navigate[/dim]"
    return "[dim]/ search · t timestamps · e editor · q close[/dim]"


def render_status(state: AppState) -> str:
    parts: List[str] = []
    if state.error_message:
        parts.append(f"[bold red]Error: {escape(state.error_message)}[/bold red]")
    elif state.status_message:
        parts.append(escape(state.status_message))
    if state.branch_filter:
        parts.append(f"[dim]branch: {escape(state.branch_filter)}[/dim]")
    if state.last_refresh is not None:
        parts.append(f"[dim]updated {format_relative_time(state.last_refresh)}[/dim]")
    parts.append("[dim]? help[/dim]")
    return " | ".join(parts)


def render_help() -> str:
    lines = []
    for title, entries in HELP_SECTIONS:
        lines.append(f"[bold]{title}[/bold]")
        for keys, description in entries:
            lines.append(f"  [cyan]{escape(keys):<12}[/cyan] {description}")
        lines.append("")
    return "\n".join(lines).rstrip()


# =============================================================================
# Screens and widgets
# =============================================================================


class HelpScreen(ModalScreen):
    """Key reference. Closed through the reducer like every other mode change."""

    def compose(self) -> ComposeResult:
        with Vertical(id="help-modal"):
            yield Static("[bold]peeplab keys[/bold]", classes="modal-title")
            yield Static(render_help(), id="help-content")

    def on_key(self, event: events.Key) -> None:
        event.stop()
        self.app.handle_key(event)


class LogView(Static):
    """Log viewport; reports its height so scrolling can be clamped."""

    def on_resize(self, event: events.Resize) -> None:
        self.app.dispatch(a.SetViewportHeight(event.size.height))


# =============================================================================
# App
# =============================================================================


class PeeplabApp(App):
    """
    Terminal dashboard for GitLab merge requests.

    Shows tracked MRs, their pipelines and jobs, comments, and job logs.
    """

    TITLE = "peeplab"
    CSS_PATH = "styles/app.tcss"

    BINDINGS = [
        Binding("ctrl+c", "quit_app", "Quit", priority=True, show=False),
    ]

    def __init__(
        self,
        client: GitLabClient,
        state: AppState,
        settings: Optional[Settings] = None,
    ) -> None:
        """
        Initialize the app.

        Args:
            client: GitLab API client used by effect workers
            state: Initial application state
            settings: Loaded configuration (defaults when omitted)
        """
        super().__init__()
        self.client = client
        self.state = state
        self.settings = settings or Settings(gitlab=GitLabConfig(token=""))
        self._tick_timer = None

    def compose(self) -> ComposeResult:
        """Compose the app layout."""
        yield Header()
        yield Static(id="mr-tabs")
        with Horizontal(id="dashboard"):
            yield Static(id="pipelines")
            with Vertical(id="side-panel"):
                yield Static(id="jobs")
                yield Static(id="comments")
                yield Static(id="mr-picker")
        with Vertical(id="log-panel"):
            yield Static(id="log-header")
            yield LogView(id="log-view")
            yield Static(id="search-bar")
        yield Static(id="status-bar")

    def on_mount(self) -> None:
        """Apply settings, start the tick timer and load merge requests."""
        self.theme = "textual-light" if self.settings.ui.theme == "light" else "textual-dark"
        self.sub_title = f"project {self.state.project_id}"
        self._tick_timer = self.set_interval(float(self.settings.app.refresh_interval), self._on_tick)
        self.dispatch(a.Start())

    def _on_tick(self) -> None:
        self.dispatch(a.Tick())

    # -------------------------------------------------------------------------
    # Action loop
    # -------------------------------------------------------------------------

    def dispatch(self, action: a.Action) -> None:
        """Reduce one action, start its effects and re-render."""
        get_logger().action(action.name)
        effects = update(self.state, action)
        for effect in effects:
            self._run_effect(effect)

        if self.state.should_quit:
            self.exit()
            return
        self._render_state()

    def on_action_message(self, message: ActionMessage) -> None:
        self.dispatch(message.action)

    def handle_key(self, event: events.Key) -> None:
        action = map_key(event.key, event.character, self.state)
        if action is None:
            return
        event.prevent_default()
        event.stop()
        self.dispatch(action)

    def on_key(self, event: events.Key) -> None:
        """Route key presses through the per-mode key map."""
        self.handle_key(event)

    def action_quit_app(self) -> None:
        self.dispatch(a.Quit())

    # -------------------------------------------------------------------------
    # Effects
    # -------------------------------------------------------------------------

    def _run_effect(self, effect: a.Effect) -> None:
        if is_api_effect(effect):
            self._fetch(effect)
        elif isinstance(effect, a.OpenUrl):
            self._open_url(effect.url)
        elif isinstance(effect, a.OpenInEditor):
            # Runs on the UI thread: the terminal is handed to the editor
            self.call_later(self._open_editor, effect.text)

    @work(thread=True)
    def _fetch(self, effect: a.Effect) -> None:
        """Run one API effect in a background thread and post its result."""
        self.post_message(ActionMessage(execute_effect(effect, self.client)))

    @work(thread=True)
    def _open_url(self, url: str) -> None:
        try:
            opened = webbrowser.open(url)
        except webbrowser.Error as e:
            get_logger().error("open_url", str(e))
            self.post_message(ActionMessage(a.ApiError(f"Failed to open browser: {e}")))
            return
        if not opened:
            self.post_message(ActionMessage(a.ApiError(f"No browser available for {url}")))

    def _open_editor(self, text: str) -> None:
        try:
            open_in_editor(text, suspend=self.suspend, editor=self.settings.editor.custom_editor)
        except (PeeplabError, OSError) as e:
            self.dispatch(a.ApiError(str(e)))
            return
        except SuspendNotSupported:
            self.dispatch(a.ApiError("Terminal cannot be suspended for the editor"))
            return
        self.refresh()

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    def _render_state(self) -> None:
        state = self.state
        relative = self.settings.ui.relative_timestamps

        self._sync_help_screen()
        # Panels live on the base screen, under any modal
        main = self.screen_stack[0]

        viewing_log = state.mode is Mode.VIEWING_LOG
        main.query_one("#dashboard").display = not viewing_log
        main.query_one("#mr-tabs").display = not viewing_log
        main.query_one("#log-panel").display = viewing_log

        if viewing_log:
            log = state.log
            main.query_one("#log-header", Static).update(render_log_header(log))
            main.query_one("#log-view", LogView).update(render_log(log))
            main.query_one("#search-bar", Static).update(render_search_bar(log))
        else:
            picking = state.mode is Mode.SELECTING_MR
            commenting = state.mode is Mode.VIEWING_COMMENTS
            main.query_one("#mr-tabs", Static).update(render_mr_tabs(state))
            main.query_one("#pipelines", Static).update(render_pipelines(state.selected_mr, relative))

            jobs = main.query_one("#jobs", Static)
            comments = main.query_one("#comments", Static)
            picker = main.query_one("#mr-picker", Static)
            jobs.display = not (picking or commenting)
            comments.display = commenting
            picker.display = picking
            if picking:
                picker.update(render_mr_picker(state))
            elif commenting:
                comments.update(render_comments(state.selected_mr, relative))
            else:
                jobs.update(render_jobs(state))

        main.query_one("#status-bar", Static).update(render_status(state))

    def _sync_help_screen(self) -> None:
        showing = isinstance(self.screen, HelpScreen)
        if self.state.mode is Mode.SHOWING_HELP and not showing:
            self.push_screen(HelpScreen())
        elif self.state.mode is not Mode.SHOWING_HELP and showing:
            self.pop_screen()


def run_app(client: GitLabClient, state: AppState, settings: Optional[Settings] = None) -> None:
    """
    Run the TUI application.

    Args:
        client: GitLab API client
        state: Initial application state
        settings: Loaded configuration
    """
    app = PeeplabApp(client, state, settings)
    app.run()
