#!/usr/bin/env python3
"""Classify commits into stories and defects with branch provenance.

Branch resolution order is fixed: the pull request a commit belongs to wins,
then containment in the main line, then develop, then any other remote
branch, and finally 'unknown'.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from utils.notes_models import ClassifiedCommit, CommitRecord, DefectMatch
from utils.wrap import degraded_or_raise

logger = logging.getLogger(__name__)

SKIP_CI_MARKER = "[skip ci]"
DEFECT_KEYWORD = "defect"
UNKNOWN_BRANCH = "unknown"


def should_skip(subject: str) -> bool:
    return SKIP_CI_MARKER in (subject or "").casefold()


def is_defect(subject: str, policy: DefectMatch) -> bool:
    """Return True if the subject marks a defect under the given policy.

    'contains' matches DEFECT anywhere, case-insensitively; 'prefix' requires
    the subject to start with it.
    """
    text = (subject or "").casefold()
    if policy == "contains":
        return DEFECT_KEYWORD in text
    if policy == "prefix":
        return text.lstrip().startswith(DEFECT_KEYWORD)
    raise ValueError(f"Unknown defect match policy: {policy!r} (expected 'contains' or 'prefix')")


def strip_remote(ref: str, remote: str) -> str:
    prefix = f"{remote}/"
    if ref.startswith(prefix):
        return ref[len(prefix):]
    # Other remotes: drop the first path segment
    return ref.split("/", 1)[1] if "/" in ref else ref


class BranchResolver:
    """Resolve the branch a commit came from.

    Args:
        git: Version-control port (remote_branches_containing)
        github: Hosting-API port (get_pull_request_branch), may be None
        main_branch: Name of the main line
        develop_branch: Name of the integration branch
        remote: Remote name prefix of remote-tracking branches
        tolerate_errors: Treat failed lookups as empty instead of raising
    """

    def __init__(self, git, github, *, main_branch: str = "main", develop_branch: str = "develop", remote: str = "origin", tolerate_errors: bool = False):
        self.git = git
        self.github = github
        self.main_branch = main_branch
        self.develop_branch = develop_branch
        self.remote = remote
        self.tolerate_errors = tolerate_errors

    def _pr_branch(self, sha: str) -> Optional[str]:
        if self.github is None:
            return None
        return degraded_or_raise(
            lambda: self.github.get_pull_request_branch(sha),
            None,
            enable=self.tolerate_errors,
            what=f"Pull request lookup for {sha}",
        )

    def resolve(self, sha: str) -> str:
        branch = self._pr_branch(sha)
        if branch:
            return branch

        logger.debug(f"PR branch not found for {sha}, checking remote branches")
        remote_branches = degraded_or_raise(
            lambda: self.git.remote_branches_containing(sha),
            [],
            enable=self.tolerate_errors,
            what=f"Remote branch lookup for {sha}",
        )
        for candidate in (self.main_branch, self.develop_branch):
            if f"{self.remote}/{candidate}" in remote_branches:
                return candidate

        logger.debug(f"{sha} not found in {self.remote}/{self.main_branch} or {self.remote}/{self.develop_branch}")
        if remote_branches:
            return strip_remote(remote_branches[0], self.remote) or UNKNOWN_BRANCH
        return UNKNOWN_BRANCH


class CommitClassifier:
    """Split an ordered commit list into stories and defects."""

    def __init__(self, branch_resolver: BranchResolver, policy: DefectMatch):
        if policy not in ("contains", "prefix"):
            raise ValueError(f"Unknown defect match policy: {policy!r} (expected 'contains' or 'prefix')")
        self.branch_resolver = branch_resolver
        self.policy = policy

    def classify(self, commits: Iterable[CommitRecord]) -> Tuple[List[ClassifiedCommit], List[ClassifiedCommit]]:
        """Classify commits, preserving input order within each bucket.

        Args:
            commits: Commit records in the resolved range

        Returns:
            Tuple of (stories, defects)
        """
        stories: List[ClassifiedCommit] = []
        defects: List[ClassifiedCommit] = []

        for commit in commits:
            if should_skip(commit.subject):
                logger.info(f"Skipping commit with {SKIP_CI_MARKER}: {commit.hash}")
                continue

            branch = self.branch_resolver.resolve(commit.hash)
            logger.info(f"{commit.hash} is in branch: {branch}")

            entry = ClassifiedCommit(description=commit.subject, branch=branch, author=commit.author)
            if is_defect(commit.subject, self.policy):
                logger.debug("  -> Categorized as DEFECT")
                defects.append(entry)
            else:
                logger.debug("  -> Categorized as STORY")
                stories.append(entry)

        logger.info(f"Categorized: {len(stories)} stories, {len(defects)} defects")
        return stories, defects
