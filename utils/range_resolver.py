#!/usr/bin/env python3
"""Commit range resolution for daily and release builds.

Daily (trunk) builds cover everything since the last successful run of the
build workflow on the main branch. Release builds cover either everything
since the latest release, or the span between the two most recent release
tags. Every lookup that comes back empty falls back to a defined range.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from utils.wrap import degraded_or_raise

logger = logging.getLogger(__name__)

DAILY_MODES = {"daily", "trunk"}
RELEASE_MODE = "release"
RELEASE_VARIANTS = {"latest", "last-two"}


@dataclass(frozen=True)
class CommitRange:
    # None means no lower bound: every commit reachable from end_ref
    start_ref: Optional[str]
    end_ref: str
    # Release tag the range starts from, when one was found
    release_tag: Optional[str] = None

    def as_spec(self) -> str:
        if self.start_ref is None:
            return self.end_ref
        return f"{self.start_ref}..{self.end_ref}"


class RangeResolver:
    """Resolve (start_ref, end_ref) for a build.

    Args:
        git: Version-control port (root_commit, commit_count)
        github: Hosting-API port (get_last_successful_run_sha, list_release_tags)
        workflow: Workflow whose last successful run bounds daily builds
        main_branch: Branch the daily workflow runs on
        window: Commit window used when no release tags exist in 'last-two'
        tolerate_errors: Treat failed lookups as empty instead of raising
    """

    def __init__(self, git, github, *, workflow: str = "build.yml", main_branch: str = "main", window: int = 10, tolerate_errors: bool = False):
        self.git = git
        self.github = github
        self.workflow = workflow
        self.main_branch = main_branch
        self.window = window
        self.tolerate_errors = tolerate_errors

    def resolve(self, mode: str, variant: str = "latest") -> CommitRange:
        mode = (mode or "").strip().lower()
        if mode in DAILY_MODES:
            return self._daily()
        if mode == RELEASE_MODE:
            if variant == "latest":
                return self._since_latest_release()
            if variant == "last-two":
                return self._between_last_two_tags()
            raise ValueError(f"Unknown release range variant: {variant!r} (expected one of {sorted(RELEASE_VARIANTS)})")
        raise ValueError(f"Unknown build mode: {mode!r} (expected daily, trunk or release)")

    def _daily(self) -> CommitRange:
        logger.info(f"Daily build: getting last successful '{self.workflow}' run on {self.main_branch}")
        start = degraded_or_raise(
            lambda: self.github.get_last_successful_run_sha(self.workflow, self.main_branch),
            None,
            enable=self.tolerate_errors,
            what="Workflow run lookup",
        )
        if not start:
            logger.info("Daily build: no previous successful run, falling back to root commit")
            start = self.git.root_commit()
        return CommitRange(start, "HEAD")

    def _since_latest_release(self) -> CommitRange:
        tags = degraded_or_raise(
            lambda: self.github.list_release_tags(1),
            [],
            enable=self.tolerate_errors,
            what="Release lookup",
        )
        if tags:
            logger.info(f"Release build: generating notes from {tags[0]} to HEAD")
            return CommitRange(tags[0], "HEAD", release_tag=tags[0])
        logger.info("Release build: no previous releases found, using entire history")
        return CommitRange(self.git.root_commit(), "HEAD")

    def _between_last_two_tags(self) -> CommitRange:
        tags = degraded_or_raise(
            lambda: self.github.list_release_tags(2),
            [],
            enable=self.tolerate_errors,
            what="Release lookup",
        )
        if len(tags) >= 2:
            logger.info(f"Release build: commits between {tags[1]} and {tags[0]}")
            return CommitRange(tags[1], tags[0], release_tag=tags[0])
        if len(tags) == 1:
            logger.info("Release build: only one tag found, using commits from first commit to that tag")
            return CommitRange(self.git.root_commit(), tags[0], release_tag=tags[0])
        logger.info(f"Release build: no tags found, using last {self.window} commits as fallback")
        if self.git.commit_count("HEAD") > self.window:
            return CommitRange(f"HEAD~{self.window}", "HEAD")
        return CommitRange(None, "HEAD")


def resolve_range(mode: str, resolver: RangeResolver, variant: str = "latest") -> CommitRange:
    """Convenience wrapper around RangeResolver.resolve."""
    return resolver.resolve(mode, variant)
