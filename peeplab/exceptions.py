#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Exception hierarchy for peeplab.

Every failure the GitLab client, config loader or editor handoff can raise
derives from PeeplabError, so callers can surface them uniformly as a
status-line message.
"""

from typing import Optional


class PeeplabError(Exception):
    """Base exception for all peeplab errors."""

    pass


class ConfigError(PeeplabError):
    """Raised when the configuration file is missing or invalid."""

    pass


class GitLabAPIError(PeeplabError):
    """Raised when a GitLab API request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(GitLabAPIError):
    """Raised when the token is rejected (401)."""

    def __init__(self, message: str = "Invalid GitLab token or insufficient permissions"):
        super().__init__(message, status_code=401)


class NotFoundError(GitLabAPIError):
    """Raised when a resource is not found (404)."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class RateLimitedError(GitLabAPIError):
    """Raised when the API rate limit is exceeded (429)."""

    def __init__(self, message: str = "API rate limit exceeded. Please try again later."):
        super().__init__(message, status_code=429)


class NetworkError(GitLabAPIError):
    """Raised on transport failures and unexpected HTTP errors."""

    pass


class SerializationError(PeeplabError):
    """Raised when an API response cannot be decoded into models."""

    pass


class EditorLaunchError(PeeplabError):
    """Raised when the external editor cannot be started or fails."""

    pass
