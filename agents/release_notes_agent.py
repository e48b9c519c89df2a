#!/usr/bin/env python3
"""Release notes agent for daily and release build notes.

This agent resolves the commit range for a build, classifies each commit as a
story or defect with its source branch, and records the build in a rolling
JSON history. It also exposes the release publisher as a subcommand.
"""

import json
import logging
import os
import sys
from datetime import datetime
from typing import Optional, Tuple

from dotenv import find_dotenv, load_dotenv

# Load environment variables from .env file
load_dotenv()

from clients.git_client import GitClient, GitError
from clients.github_client import GithubApiError, GithubAuthError, GithubClient
from configs.config import Config
from utils.commit_classifier import BranchResolver, CommitClassifier
from utils.history_store import HistoryStoreError, accumulate, load_history, save_history
from utils.metrics import MetricsLog
from utils.notes_models import BuildRecord, ReleaseNotesHistory
from utils.range_resolver import DAILY_MODES, RELEASE_MODE, CommitRange, RangeResolver
from utils.release_publisher import ReleasePublishError, ReleasePublisher, validate_publish_args
from utils.wrap import degraded_or_raise

# Set up logging
logger = logging.getLogger(__name__)


class ReleaseNotesError(Exception):
	def __init__(self, message: str, code: str = "UNKNOWN") -> None:
		super().__init__(message)
		self.code = code


class ReleaseNotesAgent:
	"""Agent that turns a commit range into a build record in the notes history."""

	def __init__(self, git, github, *, metrics: Optional[MetricsLog] = None, tolerate_errors: Optional[bool] = None):
		"""Initialize the release notes agent.

		Args:
			git: Version-control port (GitClient or a fake with the same methods)
			github: Hosting-API port (GithubClient or a fake with the same methods)
			metrics: Optional metrics sink; defaults to one built from Config
			tolerate_errors: Degrade failed lookups to empty results (defaults to Config)
		"""
		self.git = git
		self.github = github
		self.metrics = metrics or MetricsLog()
		self.tolerate_errors = Config.TOLERATE_LOOKUP_ERRORS if tolerate_errors is None else tolerate_errors
		branch_config = Config.get_branch_config()
		self.resolver = RangeResolver(
			git,
			github,
			workflow=Config.WORKFLOW_FILE,
			main_branch=branch_config["main_branch"],
			window=Config.FALLBACK_COMMIT_WINDOW,
			tolerate_errors=self.tolerate_errors,
		)
		self.branch_resolver = BranchResolver(
			git,
			github,
			main_branch=branch_config["main_branch"],
			develop_branch=branch_config["develop_branch"],
			remote=branch_config["remote"],
			tolerate_errors=self.tolerate_errors,
		)
		logger.info("Release notes agent initialized")

	def build_record(
		self,
		build_type: str,
		*,
		release_range: str = "latest",
		release_version: Optional[str] = None,
		defect_match: str = "contains",
		now: Optional[datetime] = None,
	) -> Tuple[BuildRecord, CommitRange]:
		"""Resolve the range, classify its commits and wrap them in a build record.

		Args:
			build_type: 'daily', 'trunk' or 'release'
			release_range: Release variant, 'latest' or 'last-two'
			release_version: Revision recorded for release builds
			defect_match: Classification policy, 'contains' or 'prefix'
			now: Optional clock override

		Returns:
			Tuple of (build record, resolved range)

		Raises:
			ReleaseNotesError: If a release build has no release version
		"""
		mode = (build_type or "").strip().lower()
		if mode == RELEASE_MODE and not release_version:
			raise ReleaseNotesError("RELEASE_VERSION is required for release builds", code="VALIDATION")

		commit_range = self.resolver.resolve(mode, release_range)
		logger.info(f"Commit range: {commit_range.as_spec()}")

		commits = self.git.list_commits(commit_range.start_ref, commit_range.end_ref)
		logger.debug(f"✓ Listed {len(commits)} non-merge commits")

		classifier = CommitClassifier(self.branch_resolver, defect_match)
		with self.metrics.timed("notes.classify", build_type=mode):
			stories, defects = classifier.classify(commits)

		revision = release_version if mode == RELEASE_MODE else self.git.head()
		build = BuildRecord.create(revision, stories, defects, now=now)
		self.metrics.record_build(mode, revision, len(stories), len(defects))
		return build, commit_range

	def load_existing(
		self,
		build_type: str,
		output_path: str,
		commit_range: CommitRange,
		asset_name: str,
		release_range: str = "latest",
	) -> Optional[ReleaseNotesHistory]:
		"""Load the history the new build is merged into.

		Daily builds and 'last-two' release builds read the local file. 'latest'
		release builds download the history asset from the release tag the range
		was resolved against; no release or no asset means starting fresh.
		"""
		if build_type in DAILY_MODES or release_range == "last-two":
			return load_history(output_path)

		if not commit_range.release_tag:
			logger.info(f"No previous release found, creating new {asset_name}")
			return None

		logger.info(f"Downloading {asset_name} from release {commit_range.release_tag}")
		release = degraded_or_raise(
			lambda: self.github.get_release_by_tag(commit_range.release_tag),
			None,
			enable=self.tolerate_errors,
			what="Release lookup",
		)
		downloaded = None
		if release:
			downloaded = degraded_or_raise(
				lambda: self.github.download_release_asset(release, asset_name, output_path),
				None,
				enable=self.tolerate_errors,
				what=f"Download of {asset_name}",
			)
		if downloaded is None:
			logger.info(f"No {asset_name} found in {commit_range.release_tag}, creating new")
			return None
		logger.info(f"Downloaded existing {asset_name} from {commit_range.release_tag}")
		return load_history(str(downloaded))

	def generate(
		self,
		build_type: str,
		output_path: str,
		*,
		policy: str = "prepend",
		max_builds: int = 50,
		release_range: str = "latest",
		release_version: Optional[str] = None,
		defect_match: str = "contains",
		asset_name: str = "prod-release-notes.json",
		now: Optional[datetime] = None,
	) -> ReleaseNotesHistory:
		"""Run the full pipeline and persist the updated history.

		Returns:
			The history as written to output_path
		"""
		logger.info(f"Starting release notes generation of type: {build_type}")
		mode = (build_type or "").strip().lower()
		build, commit_range = self.build_record(
			mode,
			release_range=release_range,
			release_version=release_version,
			defect_match=defect_match,
			now=now,
		)
		existing = self.load_existing(mode, output_path, commit_range, asset_name, release_range)
		updated = accumulate(existing, build, policy, max_builds=max_builds)
		save_history(output_path, updated)
		return updated


def publish_release(github, git, args) -> int:
	"""Run the release publisher for parsed CLI arguments."""
	release_config = Config.get_release_config()
	publisher = ReleasePublisher(
		github,
		git,
		notes_dir=release_config["log_dir"],
		notes_log_name=release_config["log_name"],
		max_chars=release_config["max_chars"],
	)
	outcome = publisher.publish(args.name, args.target, args.artifacts, args.prerelease)
	action = "created" if outcome.created else "updated"
	where = "attachment" if outcome.notes_attached else "body"
	print(f"Release {outcome.tag_name} {action}; {outcome.notes_chars} chars of notes in {where}")
	if outcome.html_url:
		print(f"URL: {outcome.html_url}")
	return 0


def _build_parser():
	import argparse

	parser = argparse.ArgumentParser(
		description="Release Notes Agent - Classify build commits and publish releases",
		formatter_class=argparse.RawDescriptionHelpFormatter,
		epilog="""
Examples:
  BUILD_TYPE=daily OUTPUT_FILE=dev-release-notes.json python -m agents.release_notes_agent
  python -m agents.release_notes_agent generate --build-type release --release-version 1.4.0
  python -m agents.release_notes_agent publish-release --name v1.4.0 --target main --artifacts dist.zip --prerelease false
		"""
	)
	parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
	sub = parser.add_subparsers(dest="command")

	gen = sub.add_parser("generate", help="Classify commits and update the notes history (default)")
	gen.add_argument("--build-type", default=Config.BUILD_TYPE, choices=["daily", "trunk", "release"])
	gen.add_argument("--release-range", default=Config.RELEASE_RANGE, choices=["latest", "last-two"])
	gen.add_argument("--release-version", default=Config.RELEASE_VERSION or None)
	gen.add_argument("--output", default=None, help="History file (defaults to OUTPUT_DIR/OUTPUT_FILE)")
	gen.add_argument("--policy", default=Config.HISTORY_POLICY, choices=["prepend", "append"])
	gen.add_argument("--defect-match", default=Config.DEFECT_MATCH, choices=["contains", "prefix"])
	gen.add_argument("--json", action="store_true", help="Print the new build record as JSON")

	pub = sub.add_parser("publish-release", help="Create or update a GitHub release with artifacts and notes")
	pub.add_argument("--name", help="Release name / tag")
	pub.add_argument("--target", help="Branch the release targets")
	pub.add_argument("--artifacts", help="Archive to upload to the release")
	pub.add_argument("--prerelease", help="true or false")
	return parser


def main(argv=None):
	"""CLI entry point for the release notes agent."""
	# A .env in the working directory applies even when Config was imported first
	load_dotenv(find_dotenv(usecwd=True))
	Config.reload()
	parser = _build_parser()
	argv = list(sys.argv[1:] if argv is None else argv)
	args = parser.parse_args(argv)
	if args.command is None:
		# Environment-driven invocation: behave like generate with defaults
		args = parser.parse_args(argv + ["generate"])

	# Set up logging
	log_level = logging.DEBUG if args.verbose else logging.INFO
	logging.basicConfig(
		level=log_level,
		format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
	)

	# Suppress verbose logs from libraries unless in debug mode
	if not args.verbose:
		logging.getLogger("urllib3").setLevel(logging.WARNING)
		logging.getLogger("clients.git_client").setLevel(logging.WARNING)

	github = None
	try:
		if args.command == "publish-release":
			validate_publish_args(args.name, args.target, args.artifacts, args.prerelease)
		git = GitClient()
		github = GithubClient()

		if args.command == "publish-release":
			sys.exit(publish_release(github, git, args))

		history_config = Config.get_history_config()
		output_path = args.output or history_config["path"]
		agent = ReleaseNotesAgent(git, github)
		history = agent.generate(
			args.build_type,
			output_path,
			policy=args.policy,
			max_builds=history_config["max_builds"],
			release_range=args.release_range,
			release_version=args.release_version,
			defect_match=args.defect_match,
			asset_name=history_config["asset_name"],
		)
		newest = history.builds[0] if args.policy == "prepend" else history.builds[-1]
		if args.json:
			print(json.dumps(newest.model_dump(mode="json"), indent=2))
		else:
			print(f"Release notes saved to {os.path.abspath(output_path)}: "
				  f"{len(newest.stories)} stories, {len(newest.defects)} defects")
		sys.exit(0)

	except ReleasePublishError as e:
		print(f"ERROR :: {e}", file=sys.stderr)
		sys.exit(1)
	except (ReleaseNotesError, HistoryStoreError, GithubAuthError, GithubApiError, GitError, ValueError) as e:
		print(f"Error: {e}", file=sys.stderr)
		sys.exit(1)
	finally:
		if github is not None:
			github.close()


if __name__ == "__main__":
	main()
