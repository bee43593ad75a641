#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Git repository inspection: GitLab project from the origin remote, and the
current branch name.
"""

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from peeplab.exceptions import ConfigError

GIT_TIMEOUT = 5


@dataclass
class GitLabProject:
    namespace: str
    name: str
    host: str

    def path(self) -> str:
        return f"{self.namespace}/{self.name}"

    def url_encoded_path(self) -> str:
        return self.path().replace("/", "%2F")


def _run_git(args: list, cwd: Optional[Path] = None) -> str:
    try:
        result = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT,
            cwd=cwd,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError, OSError) as e:
        raise ConfigError(f"Could not run git: {e}") from e
    if result.returncode != 0:
        raise ConfigError(result.stderr.strip() or f"git {' '.join(args)} failed")
    return result.stdout.strip()


def _split_path(path: str) -> tuple:
    path = path.strip("/")
    if path.endswith(".git"):
        path = path[: -len(".git")]
    parts = path.split("/")
    if len(parts) < 2 or not all(parts):
        raise ConfigError("Could not parse namespace/project from URL")
    # Subgroups belong to the namespace
    return "/".join(parts[:-1]), parts[-1]


def parse_gitlab_url(git_url: str) -> GitLabProject:
    """Parse an SSH (git@host:ns/proj.git) or HTTPS remote URL."""
    if git_url.startswith("git@"):
        host, sep, path = git_url[len("git@"):].partition(":")
        if not sep or not host:
            raise ConfigError("Invalid SSH URL format")
        namespace, name = _split_path(path)
        return GitLabProject(namespace=namespace, name=name, host=host)

    if git_url.startswith(("http://", "https://", "ssh://")):
        parsed = urlparse(git_url)
        if not parsed.hostname:
            raise ConfigError("No host in URL")
        namespace, name = _split_path(parsed.path)
        return GitLabProject(namespace=namespace, name=name, host=parsed.hostname)

    raise ConfigError(f"Unsupported git remote URL format: {git_url}")


def detect_project_from_git(cwd: Optional[Path] = None) -> GitLabProject:
    """Detect the GitLab project from the ``origin`` remote."""
    url = _run_git(["remote", "get-url", "origin"], cwd=cwd)
    return parse_gitlab_url(url)


def get_current_branch(cwd: Optional[Path] = None) -> str:
    branch = _run_git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=cwd)
    if not branch or branch == "HEAD":
        raise ConfigError("Could not determine branch name (detached HEAD?)")
    return branch
