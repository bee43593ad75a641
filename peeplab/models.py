#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Data models for GitLab resources.

Plain dataclasses built from REST API JSON via ``from_dict``. Missing or
malformed required fields raise KeyError/ValueError/TypeError, which the
client turns into SerializationError.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 API timestamp into an aware UTC datetime."""
    if value is None:
        return None
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# =============================================================================
# Enums
# =============================================================================


class PipelineStatus(str, Enum):
    CREATED = "created"
    WAITING_FOR_RESOURCE = "waiting_for_resource"
    PREPARING = "preparing"
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELED = "canceled"
    CANCELING = "canceling"
    SKIPPED = "skipped"
    MANUAL = "manual"
    SCHEDULED = "scheduled"

    @property
    def symbol(self) -> str:
        if self is PipelineStatus.SUCCESS:
            return "✓"
        if self is PipelineStatus.FAILED:
            return "✗"
        if self is PipelineStatus.RUNNING:
            return "⟳"
        if self in (PipelineStatus.PENDING, PipelineStatus.CREATED, PipelineStatus.PREPARING):
            return "○"
        if self is PipelineStatus.CANCELED:
            return "⊘"
        if self is PipelineStatus.SKIPPED:
            return "⊝"
        return "•"


class JobStatus(str, Enum):
    CREATED = "created"
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELED = "canceled"
    SKIPPED = "skipped"
    MANUAL = "manual"
    # Reported by newer GitLab versions; sorted after the fixed table
    PREPARING = "preparing"
    WAITING_FOR_RESOURCE = "waiting_for_resource"
    SCHEDULED = "scheduled"
    CANCELING = "canceling"

    @property
    def symbol(self) -> str:
        return _JOB_SYMBOLS.get(self, "•")


_JOB_SYMBOLS = {
    JobStatus.SUCCESS: "✓",
    JobStatus.FAILED: "✗",
    JobStatus.RUNNING: "⟳",
    JobStatus.PENDING: "○",
    JobStatus.CREATED: "○",
    JobStatus.CANCELED: "⊘",
    JobStatus.SKIPPED: "⊝",
    JobStatus.MANUAL: "⊙",
}

# Job list ordering: most actionable first
JOB_STATUS_PRIORITY = {
    JobStatus.FAILED: 0,
    JobStatus.RUNNING: 1,
    JobStatus.PENDING: 2,
    JobStatus.CANCELED: 3,
    JobStatus.CREATED: 4,
    JobStatus.MANUAL: 5,
    JobStatus.SUCCESS: 6,
    JobStatus.SKIPPED: 7,
}
UNRANKED_JOB_PRIORITY = len(JOB_STATUS_PRIORITY)


def job_priority(status: JobStatus) -> int:
    return JOB_STATUS_PRIORITY.get(status, UNRANKED_JOB_PRIORITY)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class User:
    id: int
    username: str
    name: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(id=int(data["id"]), username=data["username"], name=data.get("name") or data["username"])


@dataclass
class Project:
    id: int
    name: str
    path: str
    path_with_namespace: str
    web_url: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        return cls(
            id=int(data["id"]),
            name=data["name"],
            path=data["path"],
            path_with_namespace=data["path_with_namespace"],
            web_url=data["web_url"],
        )


@dataclass
class MergeRequest:
    """An open merge request. ``iid`` is its project-scoped identifier."""

    id: int
    iid: int
    title: str
    author: User
    state: str
    web_url: str
    created_at: datetime
    updated_at: datetime
    source_branch: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MergeRequest":
        return cls(
            id=int(data["id"]),
            iid=int(data["iid"]),
            title=data["title"],
            author=User.from_dict(data["author"]),
            state=data["state"],
            web_url=data["web_url"],
            created_at=parse_datetime(data["created_at"]),
            updated_at=parse_datetime(data["updated_at"]),
            source_branch=data.get("source_branch", ""),
        )


@dataclass
class Pipeline:
    id: int
    iid: int
    status: PipelineStatus
    ref_name: str
    created_at: datetime
    updated_at: datetime
    web_url: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Pipeline":
        return cls(
            id=int(data["id"]),
            iid=int(data["iid"]),
            status=PipelineStatus(data["status"]),
            ref_name=data["ref"],
            created_at=parse_datetime(data["created_at"]),
            updated_at=parse_datetime(data["updated_at"]),
            web_url=data["web_url"],
        )


@dataclass
class Job:
    id: int
    name: str
    status: JobStatus
    stage: str
    created_at: datetime
    web_url: str
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    duration: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Job":
        duration = data.get("duration")
        return cls(
            id=int(data["id"]),
            name=data["name"],
            status=JobStatus(data["status"]),
            stage=data["stage"],
            created_at=parse_datetime(data["created_at"]),
            web_url=data["web_url"],
            started_at=parse_datetime(data.get("started_at")),
            finished_at=parse_datetime(data.get("finished_at")),
            duration=float(duration) if duration is not None else None,
        )


@dataclass
class Note:
    """A merge request comment. System notes are generated by GitLab itself."""

    id: int
    body: str
    author: User
    created_at: datetime
    system: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Note":
        return cls(
            id=int(data["id"]),
            body=data.get("body") or "",
            author=User.from_dict(data["author"]),
            created_at=parse_datetime(data["created_at"]),
            system=bool(data.get("system", False)),
        )
