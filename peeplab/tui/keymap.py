#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Key bindings per mode.

``map_key`` turns one key press into an Action (or None) for the current
mode. Printable keys are matched on the character typed, so ``N`` and
``?`` do not depend on how the terminal names shifted keys.
"""

from typing import Dict, List, Optional, Tuple

from peeplab.tui import actions as a
from peeplab.tui.app_state import AppState, Mode

KeyMap = Dict[str, a.Action]

NORMAL_KEYS: KeyMap = {
    "q": a.Quit(),
    "?": a.ShowHelp(),
    "h": a.PrevMr(),
    "left": a.PrevMr(),
    "l": a.NextMr(),
    "right": a.NextMr(),
    "tab": a.NextMr(),
    "k": a.PrevJob(),
    "up": a.PrevJob(),
    "j": a.NextJob(),
    "down": a.NextJob(),
    "[": a.PrevPipeline(),
    "]": a.NextPipeline(),
    "enter": a.OpenSelectedJobLog(),
    "d": a.RemoveCurrentMr(),
    "c": a.ToggleCommentsView(),
    "o": a.OpenMrInBrowser(),
    "s": a.SelectMr(),
}

COMMENTS_KEYS: KeyMap = {
    "q": a.Quit(),
    "?": a.ShowHelp(),
    "c": a.ToggleCommentsView(),
    "escape": a.ToggleCommentsView(),
    "k": a.PrevNote(),
    "up": a.PrevNote(),
    "j": a.NextNote(),
    "down": a.NextNote(),
    "h": a.PrevMr(),
    "left": a.PrevMr(),
    "l": a.NextMr(),
    "right": a.NextMr(),
    "o": a.OpenMrInBrowser(),
}

LOG_KEYS: KeyMap = {
    "q": a.CloseLogViewer(),
    "escape": a.CloseLogViewer(),
    "?": a.ShowHelp(),
    "k": a.ScrollLogUp(),
    "up": a.ScrollLogUp(),
    "j": a.ScrollLogDown(),
    "down": a.ScrollLogDown(),
    "pageup": a.ScrollLogPageUp(),
    "b": a.ScrollLogPageUp(),
    "pagedown": a.ScrollLogPageDown(),
    "space": a.ScrollLogPageDown(),
    "home": a.ScrollLogHome(),
    "g": a.ScrollLogHome(),
    "end": a.ScrollLogEnd(),
    "G": a.ScrollLogEnd(),
    "t": a.ToggleTimestampMode(),
    "e": a.OpenLogInEditor(),
    "/": a.StartSearch(),
    "n": a.NextMatch(),
    "N": a.PrevMatch(),
}

SEARCH_KEYS: KeyMap = {
    "enter": a.ExecuteSearch(),
    "escape": a.CancelSearch(),
    "backspace": a.SearchBackspace(),
}

HELP_KEYS: KeyMap = {
    "escape": a.HideHelp(),
    "?": a.HideHelp(),
    "q": a.HideHelp(),
}

SELECT_KEYS: KeyMap = {
    "escape": a.CancelSelection(),
    "q": a.CancelSelection(),
}

MODE_KEYS: Dict[Mode, KeyMap] = {
    Mode.NORMAL: NORMAL_KEYS,
    Mode.VIEWING_COMMENTS: COMMENTS_KEYS,
    Mode.VIEWING_LOG: LOG_KEYS,
    Mode.SHOWING_HELP: HELP_KEYS,
    Mode.SELECTING_MR: SELECT_KEYS,
}

# Shown in the help screen, per mode
HELP_SECTIONS: List[Tuple[str, List[Tuple[str, str]]]] = [
    (
        "Merge requests",
        [
            ("h/l ←/→", "Previous / next merge request"),
            ("s", "Select merge request by number"),
            ("d", "Stop tracking merge request"),
            ("o", "Open merge request in browser"),
            ("c", "Toggle comments"),
            ("r", "Refresh"),
        ],
    ),
    (
        "Pipelines and jobs",
        [
            ("[ / ]", "Previous / next pipeline"),
            ("j/k ↓/↑", "Next / previous job"),
            ("Enter", "Open job log"),
        ],
    ),
    (
        "Job log",
        [
            ("j/k", "Scroll line"),
            ("PgUp/PgDn", "Scroll page"),
            ("Home/End", "Top / bottom"),
            ("t", "Cycle timestamps"),
            ("/", "Search"),
            ("n/N", "Next / previous match"),
            ("e", "Open in editor"),
            ("q/Esc", "Close log"),
        ],
    ),
    (
        "General",
        [
            ("?", "Toggle help"),
            ("q", "Quit"),
        ],
    ),
]


def key_token(key: str, character: Optional[str]) -> str:
    """Name a key press by its printable character when it has one."""
    if character and len(character) == 1 and character.isprintable() and character != " ":
        return character
    return key


def map_key(key: str, character: Optional[str], state: AppState) -> Optional[a.Action]:
    """Translate a key press into an Action for the current mode."""
    if key == "ctrl+c":
        return a.Quit()

    token = key_token(key, character)

    if state.mode is Mode.VIEWING_LOG and state.log.searching:
        action = SEARCH_KEYS.get(key)
        if action is not None:
            return action
        if character and character.isprintable():
            return a.SearchInput(character)
        return None

    if state.mode is Mode.SELECTING_MR and token.isdigit():
        # Picker lists merge requests from 1
        return a.ChooseMr(int(token) - 1)

    if token == "r" and state.mode in (Mode.NORMAL, Mode.VIEWING_COMMENTS):
        return a.Refresh()

    return MODE_KEYS.get(state.mode, {}).get(token)
