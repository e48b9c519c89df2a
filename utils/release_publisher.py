#!/usr/bin/env python3
"""Create or update a GitHub release with artifacts and commit-log release notes.

The release body is the list of commit subjects since the latest published
release. Bodies over the size limit are uploaded as a log attachment instead,
and the body points at that attachment.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from clients.github_client import GithubApiError

logger = logging.getLogger(__name__)

NOTES_MAX_CHARS = 125000
NOTES_LOG_NAME = "release-notes.log"


class ReleasePublishError(Exception):
    def __init__(self, message: str, code: str = "UNKNOWN"):
        super().__init__(message)
        self.code = code


@dataclass
class PublishOutcome:
    release_id: int
    tag_name: str
    html_url: str
    created: bool
    notes_chars: int
    notes_attached: bool
    notes_path: str


def parse_prerelease(value: Union[bool, str, None]) -> bool:
    if isinstance(value, bool):
        return value
    if value is None or not str(value).strip():
        raise ReleasePublishError("Prerelease flag is required.", code="VALIDATION")
    low = str(value).strip().lower()
    if low in ("true", "1", "yes"):
        return True
    if low in ("false", "0", "no"):
        return False
    raise ReleasePublishError(f"Prerelease flag must be true or false, got: {value!r}", code="VALIDATION")


def validate_publish_args(release_name, target_branch, artifact_bundle, is_prerelease) -> bool:
    """Check the required publish arguments; returns the parsed prerelease flag."""
    if not release_name:
        raise ReleasePublishError("Release name is required.", code="VALIDATION")
    if not target_branch:
        raise ReleasePublishError("Branch name is required.", code="VALIDATION")
    if not artifact_bundle:
        raise ReleasePublishError("Artifacts zip file is required.", code="VALIDATION")
    prerelease = parse_prerelease(is_prerelease)
    if not os.path.isfile(artifact_bundle):
        raise ReleasePublishError(f"Artifacts file not found: {artifact_bundle}", code="VALIDATION")
    return prerelease


def attachment_placeholder(log_name: str) -> str:
    return f"Release notes added as attachment - {log_name}"


class ReleasePublisher:
    def __init__(self, github, git, *, notes_dir: str = ".", notes_log_name: str = NOTES_LOG_NAME, max_chars: int = NOTES_MAX_CHARS):
        self.github = github
        self.git = git
        self.notes_dir = notes_dir
        self.notes_log_name = notes_log_name
        self.max_chars = max_chars

    # -------- Public API --------
    def publish(
        self,
        release_name: Optional[str],
        target_branch: Optional[str],
        artifact_bundle: Optional[str],
        is_prerelease: Union[bool, str, None],
    ) -> PublishOutcome:
        """Create (or update) the release, upload artifacts and set the notes.

        Raises:
            ReleasePublishError: code VALIDATION when an argument is missing, before any remote call
            GithubApiError: on hosting API failures other than an existing release
        """
        prerelease = validate_publish_args(release_name, target_branch, artifact_bundle, is_prerelease)
        # Must precede create: a new non-prerelease release becomes /releases/latest
        since_tag = self.latest_release_tag()
        logger.info(f"Creating release {release_name}.")

        release, created = self._create_or_get(release_name, target_branch, prerelease)

        logger.info(f"Adding {release_name} artifact(s).")
        self.github.upload_release_asset(release, artifact_bundle)

        logger.info("Creating release notes")
        notes = self.build_notes(target_branch, since_tag)
        notes_path = self._write_notes(notes)

        attached = len(notes) > self.max_chars
        if attached:
            logger.info("Release notes character count exceeds GitHub releases maximum. Adding as attachment")
            self.github.update_release(release["id"], body=attachment_placeholder(self.notes_log_name))
            # Refresh assets so a previous log gets replaced
            current = self.github.find_release(release_name) or release
            self.github.upload_release_asset(current, notes_path, name=self.notes_log_name)
        else:
            self.github.update_release(release["id"], body=notes)

        return PublishOutcome(
            release_id=int(release["id"]),
            tag_name=release.get("tag_name", release_name),
            html_url=release.get("html_url", ""),
            created=created,
            notes_chars=len(notes),
            notes_attached=attached,
            notes_path=notes_path,
        )

    def latest_release_tag(self) -> str:
        latest = self.github.get_latest_release()
        latest_tag = (latest or {}).get("tag_name") or ""
        logger.info(f"Latest release tag {latest_tag}")
        return latest_tag

    def build_notes(self, target_branch: str, latest_tag: Optional[str] = None) -> str:
        """Return commit subject lines from the latest release tag (if any) to the target branch."""
        if latest_tag is None:
            latest_tag = self.latest_release_tag()
        ref_range = f"{latest_tag}..{target_branch}" if latest_tag else target_branch
        return self.git.subject_log(ref_range)

    # -------- Internals --------
    def _create_or_get(self, tag: str, target: str, prerelease: bool) -> Tuple[Dict[str, Any], bool]:
        try:
            release = self.github.create_release(tag, target=target, prerelease=prerelease)
            logger.info(f"Release {tag} created successfully.")
            return release, True
        except GithubApiError as e:
            if e.code != "CONFLICT":
                raise
            logger.info(f"Release {tag} already exists. Updating with new artifacts and release notes.")
        release = self.github.find_release(tag)
        if release is None:
            raise ReleasePublishError(f"Release {tag} reported as existing but could not be fetched", code="NOT_FOUND")
        return release, False

    def _write_notes(self, notes: str) -> str:
        os.makedirs(self.notes_dir, exist_ok=True)
        path = os.path.join(self.notes_dir, self.notes_log_name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(notes)
            f.write("\n")
        return path
