"""Tests for git helpers, run against a throwaway repository."""

import shutil
import subprocess

import pytest

from commitguard_core.git import (
    GitError,
    binary_staged_files,
    detect_base_branch,
    pr_files,
    read_content,
    repo_root,
    staged_files,
)

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def _git(repo, *args):
    subprocess.run(
        ["git", "-c", "user.name=Test", "-c", "user.email=test@example.com", *args],
        cwd=repo,
        check=True,
        capture_output=True,
    )


@pytest.fixture
def repo(tmp_path):
    _git(tmp_path, "init", "-q")
    _git(tmp_path, "symbolic-ref", "HEAD", "refs/heads/main")
    (tmp_path / "README.md").write_text("# project\n")
    _git(tmp_path, "add", "README.md")
    _git(tmp_path, "commit", "-q", "-m", "initial")
    return tmp_path


class TestStagedFiles:
    def test_lists_added_and_modified(self, repo):
        (repo / "new.py").write_text("x = 1\n")
        (repo / "README.md").write_text("# project\nmore\n")
        _git(repo, "add", "new.py", "README.md")

        assert sorted(staged_files(cwd=str(repo))) == ["README.md", "new.py"]

    def test_deleted_files_excluded(self, repo):
        _git(repo, "rm", "-q", "README.md")
        assert staged_files(cwd=str(repo)) == []

    def test_unstaged_changes_ignored(self, repo):
        (repo / "scratch.py").write_text("x = 1\n")
        assert staged_files(cwd=str(repo)) == []

    def test_binary_detected_from_numstat(self, repo):
        (repo / "logo.bin").write_bytes(b"\x89PNG\x00\x00\x01")
        (repo / "app.py").write_text("print('hi')\n")
        _git(repo, "add", "logo.bin", "app.py")

        assert binary_staged_files(cwd=str(repo)) == {"logo.bin"}


class TestReadContent:
    def test_staged_content_not_working_tree(self, repo):
        (repo / "app.py").write_text("staged = True\n")
        _git(repo, "add", "app.py")
        (repo / "app.py").write_text("staged = False\n")

        assert read_content("app.py", use_staged=True, cwd=str(repo)) == b"staged = True\n"
        assert read_content("app.py", use_staged=False, cwd=str(repo)) == b"staged = False\n"

    def test_missing_file_returns_none(self, repo):
        assert read_content("nope.py", use_staged=True, cwd=str(repo)) is None
        assert read_content("nope.py", use_staged=False, cwd=str(repo)) is None


class TestPullRequestMode:
    def test_detects_main(self, repo):
        assert detect_base_branch(cwd=str(repo)) == "main"

    def test_no_candidate_branch(self, mocker):
        mocker.patch("commitguard_core.git._git_text", return_value="* feature/login\n  release\n")
        with pytest.raises(GitError, match="Could not detect base branch"):
            detect_base_branch()

    def test_files_changed_since_base(self, repo):
        _git(repo, "checkout", "-q", "-b", "feature")
        (repo / "feature.py").write_text("def f():\n    pass\n")
        _git(repo, "add", "feature.py")
        _git(repo, "commit", "-q", "-m", "feature")

        assert pr_files("main", cwd=str(repo)) == ["feature.py"]
        assert pr_files(cwd=str(repo)) == ["feature.py"]


def test_repo_root(repo):
    assert repo_root(cwd=str(repo)).resolve() == repo.resolve()


def test_git_failure_raises(tmp_path):
    with pytest.raises(GitError):
        staged_files(cwd=str(tmp_path))
