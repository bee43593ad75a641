#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Command-line entry point for peeplab.

Resolves the configuration, GitLab project and current branch, then starts
the dashboard. Any startup failure is reported on stderr with exit status 1
before the terminal UI takes over.

Usage:
    peeplab                       # MRs for the current branch of ./ (origin remote)
    peeplab --all-branches        # every open MR of the project
    peeplab --project-id 12345    # skip git remote detection
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from peeplab._version import __version__
from peeplab.config import EXAMPLE_CONFIG, Settings, get_config_path, load_config
from peeplab.debug_logger import get_logger
from peeplab.exceptions import ConfigError, PeeplabError
from peeplab.git import detect_project_from_git, get_current_branch
from peeplab.gitlab_client import GitLabClient


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="peeplab",
        description="peeplab - terminal dashboard for GitLab merge requests and pipelines",
    )
    parser.add_argument("--version", action="version", version=f"peeplab {__version__}")
    parser.add_argument("--config", "-c", type=Path, help="Path to config.toml")
    parser.add_argument("--project-id", "-p", type=int, help="GitLab project ID (overrides config and git remote)")
    parser.add_argument("--branch", "-b", help="Focus on merge requests from this source branch")
    parser.add_argument(
        "--all-branches", "-a", action="store_true", help="Show all open merge requests, not just the current branch"
    )
    return parser


def resolve_project_id(settings: Settings, client: GitLabClient, override: Optional[int] = None) -> int:
    """Project ID from the CLI, the config file, or the origin remote."""
    if override is not None:
        return override
    if settings.gitlab.default_project_id is not None:
        return settings.gitlab.default_project_id

    project = detect_project_from_git()
    return client.get_project_by_path(project.path()).id


def resolve_branch(settings: Settings, args: argparse.Namespace) -> Tuple[Optional[str], bool]:
    """Return (branch, focus_current_branch).

    An explicit --branch always focuses. Failure to detect the branch
    falls back to showing all merge requests.
    """
    if args.branch:
        return args.branch, True
    if args.all_branches or not settings.app.focus_current_branch:
        return None, False
    try:
        return get_current_branch(), True
    except ConfigError as e:
        get_logger().error("detect_branch", str(e))
        return None, False


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        settings = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        if not (args.config or get_config_path()).exists():
            print(f"\nExample config:\n\n{EXAMPLE_CONFIG}", file=sys.stderr)
        return 1

    logger = get_logger()
    logger.set_level(settings.app.debug_level)

    try:
        client = GitLabClient(
            settings.gitlab.instance_url,
            settings.gitlab.token,
            timeout=float(settings.app.request_timeout),
        )
        project_id = resolve_project_id(settings, client, args.project_id)
    except (PeeplabError, ValueError) as e:
        logger.error("startup", str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    branch, focus = resolve_branch(settings, args)
    logger.session_start(project_id, branch, focus)

    # Deferred so --help and startup errors do not pay for textual
    from peeplab.tui.app import run_app
    from peeplab.tui.app_state import AppState

    state = AppState(
        project_id=project_id,
        current_branch=branch,
        focus_current_branch=focus,
        auto_refresh_interval=settings.auto_refresh_seconds,
        max_tracked_mrs=settings.app.max_tracked_mrs,
    )
    run_app(client, state, settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
