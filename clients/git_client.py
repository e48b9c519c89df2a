#!/usr/bin/env python3
from __future__ import annotations

import logging
import subprocess
from typing import Callable, List, Optional, Sequence

from utils.notes_models import CommitRecord

logger = logging.getLogger(__name__)

# Unit/record separators keep '|' and newlines in subjects harmless
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
NOTES_LOG_FORMAT = "%s by %aN in %h"


class GitError(Exception):
	def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = "") -> None:
		super().__init__(message)
		self.returncode = returncode
		self.stderr = stderr


Runner = Callable[..., subprocess.CompletedProcess]


class GitClient:
	"""Read-only queries against a local git checkout."""

	def __init__(self, cwd: Optional[str] = None, runner: Optional[Runner] = None) -> None:
		self.cwd = cwd
		self._runner = runner or subprocess.run

	def _git(self, args: Sequence[str]) -> str:
		cmd = ["git", *args]
		logger.debug(f"Running: {' '.join(cmd)}")
		try:
			proc = self._runner(cmd, cwd=self.cwd, capture_output=True, text=True, check=False)
		except FileNotFoundError as e:
			raise GitError(f"git executable not found: {e}") from e
		if proc.returncode != 0:
			stderr = (proc.stderr or "").strip()
			raise GitError(f"git {' '.join(args)} failed ({proc.returncode}): {stderr}", returncode=proc.returncode, stderr=stderr)
		return proc.stdout or ""

	def head(self) -> str:
		return self._git(["rev-parse", "HEAD"]).strip()

	def root_commits(self) -> List[str]:
		return [line.strip() for line in self._git(["rev-list", "--max-parents=0", "HEAD"]).splitlines() if line.strip()]

	def root_commit(self) -> str:
		"""Return the repository's root commit.

		With several roots (merged unrelated histories) the last one listed,
		i.e. the oldest, is returned.
		"""
		roots = self.root_commits()
		if not roots:
			raise GitError("No root commit found; is HEAD valid?")
		if len(roots) > 1:
			logger.warning(f"Found {len(roots)} root commits, using oldest: {roots[-1]}")
		return roots[-1]

	def commit_count(self, ref: str = "HEAD") -> int:
		return int(self._git(["rev-list", "--count", ref]).strip() or "0")

	def list_commits(self, start_ref: Optional[str], end_ref: str) -> List[CommitRecord]:
		"""List non-merge commits in start_ref..end_ref, newest first.

		With no start_ref every commit reachable from end_ref is listed.
		"""
		fmt = f"--format=%H{_FIELD_SEP}%an{_FIELD_SEP}%s{_RECORD_SEP}"
		rev = f"{start_ref}..{end_ref}" if start_ref else end_ref
		raw = self._git(["log", "--no-merges", fmt, rev])
		commits = []
		for chunk in raw.split(_RECORD_SEP):
			chunk = chunk.strip("\n")
			if not chunk.strip():
				continue
			parts = chunk.split(_FIELD_SEP)
			if len(parts) != 3 or not parts[0].strip():
				logger.warning(f"Skipping unparsable log record: {chunk!r}")
				continue
			sha, author, subject = parts
			commits.append(CommitRecord(hash=sha.strip(), author=author, subject=subject))
		return commits

	def remote_branches_containing(self, sha: str) -> List[str]:
		"""Return remote-tracking branches containing a commit, e.g. ['origin/main'].

		Symbolic entries such as 'origin/HEAD -> origin/main' are skipped.
		"""
		out = self._git(["branch", "-r", "--contains", sha])
		branches = []
		for line in out.splitlines():
			name = line.strip()
			if not name or "->" in name:
				continue
			branches.append(name)
		return branches

	def subject_log(self, ref_range: str) -> str:
		"""Return '<subject> by <author> in <short sha>' lines for non-merge commits."""
		return self._git(["log", ref_range, f"--pretty=format:{NOTES_LOG_FORMAT}", "--no-merges"])
