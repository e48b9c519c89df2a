import subprocess

import pytest

from clients.git_client import GitClient, GitError


class FakeRunner:
    def __init__(self, outputs, returncode=0, stderr=""):
        self.outputs = outputs
        self.returncode = returncode
        self.stderr = stderr
        self.commands = []

    def __call__(self, cmd, **kwargs):
        self.commands.append(cmd)
        key = " ".join(cmd[1:3])
        return subprocess.CompletedProcess(cmd, self.returncode, stdout=self.outputs.get(key, ""), stderr=self.stderr)


def test_list_commits_parses_records():
    raw = (
        "a1\x1fAl\x1fAdd widget | with pipe\x1e\n"
        "b2\x1fBo Smith\x1fFix DEFECT-9 crash\x1e\n"
    )
    runner = FakeRunner({"log --no-merges": raw})
    commits = GitClient(runner=runner).list_commits("r0", "HEAD")

    assert [(c.hash, c.author, c.subject) for c in commits] == [
        ("a1", "Al", "Add widget | with pipe"),
        ("b2", "Bo Smith", "Fix DEFECT-9 crash"),
    ]
    assert runner.commands[0][-1] == "r0..HEAD"


def test_list_commits_empty_range():
    assert GitClient(runner=FakeRunner({})).list_commits("a", "b") == []


def test_list_commits_without_lower_bound_logs_whole_history():
    runner = FakeRunner({"log --no-merges": "a1\x1fAl\x1fInit\x1e\n"})
    commits = GitClient(runner=runner).list_commits(None, "HEAD")
    assert [c.hash for c in commits] == ["a1"]
    assert runner.commands[0][-1] == "HEAD"


def test_remote_branches_skip_symbolic_refs():
    out = "  origin/HEAD -> origin/main\n  origin/main\n  origin/feature/x\n"
    git = GitClient(runner=FakeRunner({"branch -r": out}))
    assert git.remote_branches_containing("a1") == ["origin/main", "origin/feature/x"]


def test_root_commit_prefers_oldest_of_many():
    git = GitClient(runner=FakeRunner({"rev-list --max-parents=0": "newroot\noldroot\n"}))
    assert git.root_commit() == "oldroot"


def test_head_and_count():
    git = GitClient(runner=FakeRunner({"rev-parse HEAD": "abc\n", "rev-list --count": "12\n"}))
    assert git.head() == "abc"
    assert git.commit_count() == 12


def test_subject_log_uses_notes_format():
    runner = FakeRunner({"log v1.0..main": "Add by Al in a1b2c3d"})
    assert GitClient(runner=runner).subject_log("v1.0..main") == "Add by Al in a1b2c3d"
    assert "--pretty=format:%s by %aN in %h" in runner.commands[0]
    assert "--no-merges" in runner.commands[0]


def test_failure_raises_git_error():
    runner = FakeRunner({}, returncode=128, stderr="fatal: bad revision")
    with pytest.raises(GitError) as exc:
        GitClient(runner=runner).head()
    assert exc.value.returncode == 128
    assert "bad revision" in exc.value.stderr
