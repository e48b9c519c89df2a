#!/usr/bin/env python3
"""Pydantic models for build release notes.

These models define the records produced while classifying commits and the
rolling history document persisted between runs.
"""

from datetime import datetime, timezone
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

InsertPolicy = Literal["prepend", "append"]
DefectMatch = Literal["contains", "prefix"]


class CommitRecord(BaseModel):
    """A commit as listed by version control for a range."""

    hash: str = Field(..., description="Full commit SHA")
    author: str = Field(..., description="Author name")
    subject: str = Field(..., description="First line of the commit message")

    model_config = ConfigDict(frozen=True)


class ClassifiedCommit(BaseModel):
    """One entry under stories or defects in a build record."""

    description: str = Field(..., description="Verbatim commit subject")
    branch: str = Field(..., description="Branch the commit was resolved to")
    author: str = Field(..., description="Commit author name")

    model_config = ConfigDict(extra="allow")


class BuildRecord(BaseModel):
    """Snapshot of the commits that went into one build."""

    timestamp: str = Field(..., description="ISO-8601 UTC timestamp")
    revision: str = Field(..., description="Head SHA or release version")
    stories: List[ClassifiedCommit] = Field(default_factory=list)
    defects: List[ClassifiedCommit] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")

    @classmethod
    def create(
        cls,
        revision: str,
        stories: List[ClassifiedCommit],
        defects: List[ClassifiedCommit],
        now: Optional[datetime] = None,
    ) -> "BuildRecord":
        """Create a build record stamped with the current UTC time.

        Args:
            revision: Head commit SHA (daily builds) or version string (release builds)
            stories: Commits classified as stories
            defects: Commits classified as defects
            now: Optional clock override

        Returns:
            New BuildRecord
        """
        moment = now or datetime.now(timezone.utc)
        return cls(
            timestamp=moment.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT),
            revision=revision,
            stories=list(stories),
            defects=list(defects),
        )


class ReleaseNotesHistory(BaseModel):
    """Rolling, bounded list of build records."""

    builds: List[BuildRecord] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")
