#!/usr/bin/env python3
"""Shared wrapper for lookups that may degrade to an empty result."""

from __future__ import annotations

import logging
from typing import Callable, Any, Tuple, Type

from clients.git_client import GitError
from clients.github_client import GithubApiError, GithubAuthError

logger = logging.getLogger(__name__)

LOOKUP_ERRORS: Tuple[Type[Exception], ...] = (GithubApiError, GithubAuthError, GitError)


def degraded_or_raise(primary: Callable[[], Any], fallback: Any, *, enable: bool, what: str) -> Any:
    """Run a lookup; on an external failure return `fallback` if degrading is enabled.

    Only errors from the git and GitHub clients are degraded; anything else
    propagates. A lookup that legitimately finds nothing is not an error and
    never reaches this path.
    """
    if not enable:
        return primary()
    try:
        return primary()
    except LOOKUP_ERRORS as e:
        logger.warning(f"{what} failed, treating as empty: {e}")
        return fallback
