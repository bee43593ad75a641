"""
Pytest configuration and fixtures for peeplab tests.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

# Ensure project root is in sys.path for 'peeplab' imports
# This must happen before any imports from peeplab
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import pytest


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks integration tests")
    config.addinivalue_line("markers", "tui: marks TUI tests")


@pytest.fixture
def temp_state_dir(tmp_path_factory, monkeypatch) -> Path:
    """Create and return a temporary state directory.

    Sets PEEPLAB_STATE env var and resets debug logger.
    """
    state_dir = tmp_path_factory.mktemp("state") / ".local" / "state" / "peeplab"
    state_dir.mkdir(parents=True)
    monkeypatch.setenv("PEEPLAB_STATE", str(state_dir))
    monkeypatch.delenv("PEEPLAB_DEBUG", raising=False)

    # Reset the debug logger so it picks up the new path
    from peeplab.debug_logger import reset_logger
    reset_logger()

    return state_dir


@pytest.fixture(autouse=True)
def isolate_state_dir(temp_state_dir: Path):
    """Autouse fixture that keeps tests away from the real debug.log."""
    yield temp_state_dir

    from peeplab.debug_logger import reset_logger
    reset_logger()


# --- Model builders ---

T0 = datetime(2026, 1, 12, 10, 0, 0, tzinfo=timezone.utc)


def make_user(username: str = "alice"):
    from peeplab.models import User

    return User(id=hash(username) % 1000, username=username, name=username.title())


def make_mr(iid: int, title: str = "", source_branch: str = "feature"):
    from peeplab.models import MergeRequest

    return MergeRequest(
        id=1000 + iid,
        iid=iid,
        title=title or f"MR {iid}",
        author=make_user(),
        state="opened",
        web_url=f"https://gitlab.example.com/group/proj/-/merge_requests/{iid}",
        created_at=T0,
        updated_at=T0,
        source_branch=source_branch,
    )


def make_pipeline(pipeline_id: int, status: str = "success"):
    from peeplab.models import Pipeline, PipelineStatus

    return Pipeline(
        id=pipeline_id,
        iid=pipeline_id,
        status=PipelineStatus(status),
        ref_name="feature",
        created_at=T0,
        updated_at=T0,
        web_url=f"https://gitlab.example.com/group/proj/-/pipelines/{pipeline_id}",
    )


def make_job(job_id: int, status: str = "success", name: str = ""):
    from peeplab.models import Job, JobStatus

    return Job(
        id=job_id,
        name=name or f"job-{job_id}",
        status=JobStatus(status),
        stage="test",
        created_at=T0,
        web_url=f"https://gitlab.example.com/group/proj/-/jobs/{job_id}",
    )


def make_note(note_id: int, body: str = "", system: bool = False):
    from peeplab.models import Note

    return Note(id=note_id, body=body or f"note {note_id}", author=make_user("bob"), created_at=T0, system=system)
