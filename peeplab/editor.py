#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
External editor handoff.

The editor runs in the foreground, so the terminal UI must give up the
terminal first. ``suspend`` is a context manager factory (normally
``App.suspend``) that releases raw mode and the alternate screen on entry
and reacquires them on exit, including when the editor fails to start.
"""

import os
import shlex
import subprocess
import tempfile
from contextlib import AbstractContextManager
from pathlib import Path
from typing import Callable, Optional

from peeplab.debug_logger import get_logger
from peeplab.exceptions import EditorLaunchError

DEFAULT_EDITOR = "vim"


def resolve_editor(custom_editor: Optional[str] = None) -> str:
    """Pick the editor command: config, then $EDITOR, then $VISUAL, then vim."""
    return custom_editor or os.environ.get("EDITOR") or os.environ.get("VISUAL") or DEFAULT_EDITOR


def write_temp_file(content: str) -> Path:
    with tempfile.NamedTemporaryFile(
        "w", prefix="peeplab_job_log_", suffix=".txt", delete=False, encoding="utf-8"
    ) as f:
        f.write(content)
        f.flush()
        os.fsync(f.fileno())
        return Path(f.name)


def open_in_editor(
    content: str,
    suspend: Callable[[], AbstractContextManager],
    editor: Optional[str] = None,
) -> None:
    """Write content to a temp file and open it in the user's editor.

    Blocks until the editor exits. The temp file is removed afterwards on
    every path. Errors are raised only after ``suspend``
    has restored the terminal.

    Raises:
        EditorLaunchError: if the editor cannot be started or exits non-zero.
        OSError: if the temp file cannot be written.
    """
    command = resolve_editor(editor)
    argv = shlex.split(command)
    if not argv:
        raise EditorLaunchError("No editor configured")

    temp_path = write_temp_file(content)
    logger = get_logger()
    try:
        with suspend():
            try:
                result = subprocess.run([*argv, str(temp_path)])
            except OSError as e:
                raise EditorLaunchError(f"Failed to launch {command}: {e}") from e
        if result.returncode != 0:
            raise EditorLaunchError(f"Editor exited with non-zero status {result.returncode}")
    except EditorLaunchError as e:
        logger.editor_launch(command, ok=False, err=str(e))
        raise
    finally:
        temp_path.unlink(missing_ok=True)

    logger.editor_launch(command, ok=True)
