from typing import Dict, List

import pytest

from configs.config import Config
from utils.notes_models import CommitRecord


class FakeGit:
    """In-memory stand-in for GitClient."""

    def __init__(self, commits=None, roots=("root0",), head="head0", branches=None, count=100, log=""):
        self.commits = list(commits or [])
        self.roots = list(roots)
        self._head = head
        self.branches: Dict[str, List[str]] = dict(branches or {})
        self.count = count
        self.log = log
        self.ranges = []
        self.log_ranges = []
        self.branch_queries = []

    def head(self):
        return self._head

    def root_commit(self):
        return self.roots[-1]

    def commit_count(self, ref="HEAD"):
        return self.count

    def list_commits(self, start_ref, end_ref):
        self.ranges.append((start_ref, end_ref))
        return list(self.commits)

    def remote_branches_containing(self, sha):
        self.branch_queries.append(sha)
        return list(self.branches.get(sha, []))

    def subject_log(self, ref_range):
        self.log_ranges.append(ref_range)
        return self.log


class FakeGithub:
    """In-memory stand-in for GithubClient.

    `fail` maps a method name to an exception raised when it is called.
    """

    def __init__(self, run_sha=None, tags=(), pulls=None, latest=None, releases=None, fail=None, existing_tags=()):
        self.run_sha = run_sha
        self.tags = list(tags)
        self.pulls: Dict[str, str] = dict(pulls or {})
        self.latest = latest
        self.releases: Dict[str, dict] = dict(releases or {})
        self.fail = dict(fail or {})
        self.existing_tags = set(existing_tags)
        self.calls = []
        self.uploads = []
        self.bodies = []
        self.asset_content: Dict[str, str] = {}

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.fail:
            raise self.fail[name]

    def get_last_successful_run_sha(self, workflow, branch):
        self._record("get_last_successful_run_sha", workflow, branch)
        return self.run_sha

    def list_release_tags(self, limit, include_prereleases=True):
        self._record("list_release_tags", limit)
        return self.tags[:limit]

    def get_pull_request_branch(self, sha):
        self._record("get_pull_request_branch", sha)
        return self.pulls.get(sha)

    def get_latest_release(self):
        self._record("get_latest_release")
        return self.latest

    def get_release_by_tag(self, tag):
        self._record("get_release_by_tag", tag)
        release = self.releases.get(tag)
        if release and release.get("draft"):
            return None
        return release

    def find_release(self, tag):
        self._record("find_release", tag)
        return self.releases.get(tag)

    def create_release(self, tag, *, target, prerelease, name=None):
        self._record("create_release", tag, target, prerelease)
        if tag in self.existing_tags:
            from clients.github_client import GithubApiError
            raise GithubApiError("Validation Failed", code="CONFLICT", status=422)
        release = {"id": 42, "tag_name": tag, "html_url": f"https://github.com/o/r/releases/tag/{tag}", "assets": []}
        self.releases[tag] = release
        return release

    def update_release(self, release_id, *, body):
        self._record("update_release", release_id)
        self.bodies.append(body)
        return {"id": release_id}

    def upload_release_asset(self, release, path, name=None):
        self._record("upload_release_asset", release["id"], path, name)
        self.uploads.append((path, name))
        return {"id": len(self.uploads)}

    def download_release_asset(self, release, name, dest):
        self._record("download_release_asset", release.get("tag_name"), name)
        content = self.asset_content.get(name)
        if content is None:
            return None
        from pathlib import Path
        p = Path(dest)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content, encoding="utf-8")
        return p

    def close(self):
        self.calls.append(("close",))


def commit(sha: str, author: str, subject: str) -> CommitRecord:
    return CommitRecord(hash=sha, author=author, subject=subject)


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path, monkeypatch):
    # main() reloads Config from the environment; undo that after each test
    for name in Config.settings():
        monkeypatch.setattr(Config, name, getattr(Config, name))
    monkeypatch.setenv("METRICS_ROOT", str(tmp_path / "metrics"))
    monkeypatch.setenv("METRICS_ENABLED", "1")
    monkeypatch.setattr(Config, "METRICS_ROOT", str(tmp_path / "metrics"))
    monkeypatch.setattr(Config, "METRICS_ENABLED", True)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def fake_git():
    return FakeGit()


@pytest.fixture
def fake_github():
    return FakeGithub()
