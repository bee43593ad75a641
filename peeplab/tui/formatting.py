#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Shared formatting utilities for TUI components.

Status colors, relative/absolute time display and job durations used by
the dashboard panels.
"""

import platform
import subprocess
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional

from peeplab.models import JobStatus, PipelineStatus


@lru_cache(maxsize=1)
def _get_time_format() -> str:
    """Get the strftime format for absolute times.

    On macOS the AppleICUForce24HourTime preference picks 24h vs 12h;
    elsewhere the locale decides.
    """
    if platform.system() != "Darwin":
        return "%Y-%m-%d %X"

    try:
        result = subprocess.run(
            ["defaults", "read", "NSGlobalDomain", "AppleICUForce24HourTime"],
            capture_output=True,
            text=True,
            timeout=1,
        )
        if result.returncode == 0 and result.stdout.strip() == "1":
            return "%Y-%m-%d %H:%M:%S"
    except (subprocess.TimeoutExpired, FileNotFoundError, OSError):
        pass

    return "%Y-%m-%d %r"


# Semantic color mapping for Rich markup (color names, not ANSI codes)
PIPELINE_STATUS_COLORS = {
    PipelineStatus.SUCCESS: "green",
    PipelineStatus.FAILED: "bold red",
    PipelineStatus.RUNNING: "cyan",
    PipelineStatus.PENDING: "yellow",
    PipelineStatus.CREATED: "yellow",
    PipelineStatus.PREPARING: "yellow",
    PipelineStatus.WAITING_FOR_RESOURCE: "yellow",
    PipelineStatus.CANCELED: "dim",
    PipelineStatus.CANCELING: "dim",
    PipelineStatus.SKIPPED: "dim",
    PipelineStatus.MANUAL: "magenta",
    PipelineStatus.SCHEDULED: "blue",
}

JOB_STATUS_COLORS = {
    JobStatus.SUCCESS: "green",
    JobStatus.FAILED: "bold red",
    JobStatus.RUNNING: "cyan",
    JobStatus.PENDING: "yellow",
    JobStatus.CREATED: "yellow",
    JobStatus.PREPARING: "yellow",
    JobStatus.WAITING_FOR_RESOURCE: "yellow",
    JobStatus.CANCELED: "dim",
    JobStatus.CANCELING: "dim",
    JobStatus.SKIPPED: "dim",
    JobStatus.MANUAL: "magenta",
    JobStatus.SCHEDULED: "blue",
}


def pipeline_status_markup(status: PipelineStatus) -> str:
    color = PIPELINE_STATUS_COLORS.get(status, "white")
    return f"[{color}]{status.symbol} {status.value}[/{color}]"


def job_status_markup(status: JobStatus) -> str:
    color = JOB_STATUS_COLORS.get(status, "white")
    return f"[{color}]{status.symbol}[/{color}]"


def format_relative_time(dt: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Format a timestamp as "just now", "5m ago", "3h ago" or "2d ago".

    Args:
        dt: Aware datetime (naive values are taken as UTC)
        now: Reference time, defaults to the current UTC time

    Returns:
        Short relative time, or "-" if dt is None
    """
    if dt is None:
        return "-"
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)

    seconds = int((now - dt).total_seconds())
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def format_absolute_time(dt: Optional[datetime]) -> str:
    """Format a timestamp in local time using the system time preference."""
    if dt is None:
        return "-"
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone().strftime(_get_time_format())


def format_time(dt: Optional[datetime], relative: bool, now: Optional[datetime] = None) -> str:
    return format_relative_time(dt, now) if relative else format_absolute_time(dt)


def format_duration(seconds: Optional[float]) -> str:
    """Format a job duration: "45s", "3m 05s", "1h 02m"."""
    if seconds is None:
        return ""
    total = int(seconds)
    if total < 60:
        return f"{total}s"
    if total < 3600:
        return f"{total // 60}m {total % 60:02d}s"
    return f"{total // 3600}h {(total % 3600) // 60:02d}m"


def truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 1] + "…"
