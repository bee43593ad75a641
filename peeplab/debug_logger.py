#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Structured debug logging for peeplab.

Events are appended to a JSON-lines file so they never interfere with the
terminal UI. Each line carries ``event``, ``level``, ``timestamp`` and
``pid`` plus event-specific keys.

Debug levels:
    0 - disabled (default)
    1 - lifecycle and errors
    2 - plus dispatched effects
    3 - plus every reduced action
"""

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

LEVEL_OFF = 0
LEVEL_INFO = 1
LEVEL_EFFECTS = 2
LEVEL_TRACE = 3


def get_state_dir() -> Path:
    """Get the directory holding peeplab's mutable state (debug.log).

    Uses PEEPLAB_STATE if set, otherwise the XDG state directory
    (~/.local/state/peeplab).
    """
    explicit_state = os.environ.get("PEEPLAB_STATE")
    if explicit_state:
        return Path(explicit_state)

    xdg_state = os.environ.get("XDG_STATE_HOME") or (Path.home() / ".local" / "state")
    return Path(xdg_state) / "peeplab"


def get_default_log_path() -> Path:
    return get_state_dir() / "debug.log"


def _level_from_env() -> Optional[int]:
    value = os.environ.get("PEEPLAB_DEBUG")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return LEVEL_INFO if value.lower() in ("true", "yes", "on") else LEVEL_OFF


class DebugLogger:
    """Append-only JSON-lines logger.

    Writes are best-effort: an unwritable state directory disables the
    logger for the rest of the session instead of raising into the UI.
    """

    def __init__(self, log_path: Optional[Path] = None, level: int = LEVEL_OFF) -> None:
        self.log_path = log_path or get_default_log_path()
        env_level = _level_from_env()
        self.level = env_level if env_level is not None else level
        self._broken = False

    def set_level(self, level: int) -> None:
        """Apply the configured level unless PEEPLAB_DEBUG overrides it."""
        if _level_from_env() is None:
            self.level = level

    def enabled(self, level: int = LEVEL_INFO) -> bool:
        return not self._broken and self.level >= level

    def _write(self, event: str, level: str, data: Dict[str, Any]) -> None:
        record = {
            "event": event,
            "level": level,
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "pid": os.getpid(),
            **data,
        }
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a") as f:
                f.write(json.dumps(record, default=str) + "\n")
        except OSError:
            self._broken = True

    def session_start(self, project_id: int, branch: Optional[str], focus_branch: bool) -> None:
        if self.enabled(LEVEL_INFO):
            self._write(
                "session_start",
                "info",
                {"project_id": project_id, "branch": branch, "focus_branch": focus_branch},
            )

    def action(self, name: str, details: Optional[Dict[str, Any]] = None) -> None:
        if self.enabled(LEVEL_TRACE):
            self._write("action", "debug", {"action": name, **(details or {})})

    def effect(self, name: str, details: Optional[Dict[str, Any]] = None) -> None:
        if self.enabled(LEVEL_EFFECTS):
            self._write("effect", "debug", {"effect": name, **(details or {})})

    def api_error(self, effect: str, err: str) -> None:
        if self.enabled(LEVEL_INFO):
            self._write("api_error", "error", {"effect": effect, "err": err})

    def editor_launch(self, editor: str, ok: bool, err: str = "") -> None:
        if self.enabled(LEVEL_INFO):
            self._write("editor_launch", "info" if ok else "error", {"editor": editor, "ok": ok, "err": err})

    def error(self, op: str, err: str) -> None:
        if self.enabled(LEVEL_INFO):
            self._write("error", "error", {"op": op, "err": err})


_logger: Optional[DebugLogger] = None


def get_logger() -> DebugLogger:
    """Get the process-wide debug logger, creating it on first use."""
    global _logger
    if _logger is None:
        _logger = DebugLogger()
    return _logger


def reset_logger() -> None:
    """Drop the cached logger so the next get_logger() re-reads the environment."""
    global _logger
    _logger = None
