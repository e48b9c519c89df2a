#!/usr/bin/env python3
"""Bounded build history: merge a new build and persist the JSON document (atomic)."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from utils.notes_models import BuildRecord, InsertPolicy, ReleaseNotesHistory

logger = logging.getLogger(__name__)

MAX_BUILDS = 50


class HistoryStoreError(Exception):
    def __init__(self, message: str, code: str = "UNKNOWN"):
        super().__init__(message)
        self.code = code


def accumulate(
    existing: Optional[ReleaseNotesHistory],
    new_build: BuildRecord,
    policy: InsertPolicy,
    max_builds: int = MAX_BUILDS,
) -> ReleaseNotesHistory:
    """Insert a build into the history and bound its length.

    'prepend' puts the newest build first and keeps the first `max_builds`;
    'append' puts it last and keeps the last `max_builds`. The input history
    is left untouched.
    """
    if max_builds < 1:
        raise ValueError(f"max_builds must be positive, got {max_builds}")
    base = existing if existing is not None else ReleaseNotesHistory()
    builds = list(base.builds)
    if policy == "prepend":
        builds = ([new_build] + builds)[:max_builds]
    elif policy == "append":
        builds = (builds + [new_build])[-max_builds:]
    else:
        raise ValueError(f"Unknown insert policy: {policy!r} (expected 'prepend' or 'append')")
    return base.model_copy(update={"builds": builds})


def load_history(path: str) -> Optional[ReleaseNotesHistory]:
    """Load the history document; return None if the file does not exist.

    Raises:
        HistoryStoreError: If the file exists but is not a valid history document
    """
    p = Path(path)
    if not p.exists():
        return None
    try:
        raw = p.read_text(encoding="utf-8")
        if not raw.strip():
            logger.warning(f"History file {p} is empty, starting fresh")
            return None
        return ReleaseNotesHistory.model_validate_json(raw)
    except ValidationError as e:
        raise HistoryStoreError(f"History file {p} is malformed: {e}", code="INVALID") from e
    except OSError as e:
        raise HistoryStoreError(f"Failed to read history file {p}: {e}", code="IO") from e


def dump_history(history: ReleaseNotesHistory) -> str:
    return json.dumps(history.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"


def save_history(path: str, history: ReleaseNotesHistory) -> Path:
    """Persist the history atomically, creating parent directories.

    Uses fsync + atomic replace so readers never see a partial file.
    """
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_suffix(p.suffix + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        f.write(dump_history(history))
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp, p)
    logger.info(f"Release notes saved to {p} ({len(history.builds)} builds)")
    return p
