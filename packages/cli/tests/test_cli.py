"""Tests for the CLI entry point."""

from unittest.mock import MagicMock

import yaml
from click.testing import CliRunner

from commitguard_cli import cli
from commitguard_cli.cli import _build_cache, main
from commitguard_core.config import DEFAULT_CONFIG
from commitguard_core.models import Finding, ReviewStatus, ReviewVerdict
from commitguard_core.reviewer import BatchOutcome, ReviewSummary
from commitguard_store.file import FileCache
from commitguard_store.noop import NoOpCache


def _make_config(**overrides):
    config = {**DEFAULT_CONFIG, "config_path": ".commitguard.yml", **overrides}
    config["file_patterns"] = list(config["file_patterns"])
    config["exclude_patterns"] = list(config["exclude_patterns"])
    return config


def _patch_common(mocker, config=None):
    """Patch load_config and _build_cache for most tests."""
    cfg = config or _make_config()
    mocker.patch("commitguard_core.config.load_config", return_value=cfg)
    mock_cache = MagicMock(spec=FileCache)
    mock_cache.stats.return_value = {"total": 3, "passed": 2, "failed": 1, "path": "/tmp/cache.json"}
    mocker.patch("commitguard_cli.cli._build_cache", return_value=mock_cache)
    return cfg, mock_cache


def _summary(passed=True, findings=()):
    verdict = ReviewVerdict(
        status=ReviewStatus.PASSED if passed else ReviewStatus.FAILED,
        findings=list(findings),
    )
    outcome = BatchOutcome(files=["src/app.ts"], verdict=verdict, passed=passed, provider="claude", attempts=1)
    return ReviewSummary(passed=passed, reviewed_files=["src/app.ts"], batches=[outcome])


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


class TestRunCommand:
    def test_reviews_staged_files_by_default(self, mocker):
        _, mock_cache = _patch_common(mocker)
        mocker.patch("commitguard_cli.commands.run.staged_files", return_value=["src/app.ts"])
        mock_run = mocker.patch("commitguard_cli.commands.run.run_review", return_value=_summary())

        result = CliRunner().invoke(main, ["run"])

        assert result.exit_code == 0
        kwargs = mock_run.call_args.kwargs
        assert kwargs["files"] == ["src/app.ts"]
        assert kwargs["use_staged"] is True
        assert kwargs["cache"] is mock_cache
        assert kwargs["base_branch"] is None

    def test_failed_review_exits_1(self, mocker):
        _patch_common(mocker)
        mocker.patch("commitguard_cli.commands.run.staged_files", return_value=["src/app.ts"])
        finding = Finding(index=1, file_ref="src/app.ts:3", raw_line="#1 src/app.ts:3 - bad")
        mocker.patch("commitguard_cli.commands.run.run_review", return_value=_summary(False, [finding]))

        result = CliRunner().invoke(main, ["run"])

        assert result.exit_code == 1

    def test_explicit_files_skip_git(self, mocker):
        _patch_common(mocker)
        staged = mocker.patch("commitguard_cli.commands.run.staged_files")
        mock_run = mocker.patch("commitguard_cli.commands.run.run_review", return_value=_summary())

        CliRunner().invoke(main, ["run", "a.py", "b.py"])

        staged.assert_not_called()
        assert mock_run.call_args.kwargs["files"] == ["a.py", "b.py"]

    def test_nothing_staged(self, mocker):
        _patch_common(mocker)
        mocker.patch("commitguard_cli.commands.run.staged_files", return_value=[])
        mock_run = mocker.patch("commitguard_cli.commands.run.run_review")

        result = CliRunner().invoke(main, ["run"])

        assert result.exit_code == 0
        mock_run.assert_not_called()

    def test_provider_flags_override_config(self, mocker):
        _patch_common(mocker)
        mock_run = mocker.patch("commitguard_cli.commands.run.run_review", return_value=_summary())

        CliRunner().invoke(main, ["run", "--provider", "ollama:llama3", "--fallback", "claude", "a.py"])

        config = mock_run.call_args.kwargs["config"]
        assert config["provider"] == "ollama:llama3"
        assert config["fallback_provider"] == "claude"

    def test_pr_mode_uses_branch_diff(self, mocker):
        _patch_common(mocker)
        mocker.patch("commitguard_cli.commands.run.detect_base_branch", return_value="main")
        pr_files = mocker.patch("commitguard_cli.commands.run.pr_files", return_value=["src/app.ts"])
        mock_run = mocker.patch("commitguard_cli.commands.run.run_review", return_value=_summary())

        CliRunner().invoke(main, ["run", "--pr-mode"])

        pr_files.assert_called_once_with("main")
        kwargs = mock_run.call_args.kwargs
        assert kwargs["use_staged"] is False
        assert kwargs["base_branch"] == "main"

    def test_no_cache_flag(self, mocker):
        _patch_common(mocker)
        mock_run = mocker.patch("commitguard_cli.commands.run.run_review", return_value=_summary())

        CliRunner().invoke(main, ["run", "--no-cache", "a.py"])

        assert cli._build_cache.call_args.kwargs == {"no_cache": True}
        mock_run.assert_called_once()

    def test_missing_rules_is_clean_error(self, mocker):
        _patch_common(mocker)
        mocker.patch(
            "commitguard_cli.commands.run.run_review",
            side_effect=FileNotFoundError("Rules file not found: REVIEW_RULES.md"),
        )

        result = CliRunner().invoke(main, ["run", "a.py"])

        assert result.exit_code == 1
        assert "Rules file not found" in result.output


# ---------------------------------------------------------------------------
# ignore
# ---------------------------------------------------------------------------


class TestIgnoreCommand:
    def test_add_then_list(self, mocker, tmp_path):
        ignore_file = tmp_path / ".commitguard-ignore"
        _patch_common(mocker, config=_make_config(ignore_file=str(ignore_file)))
        runner = CliRunner()

        result = runner.invoke(main, ["ignore", "add", "lib/q.sql:42", "--reason", "known-safe"])
        assert result.exit_code == 0
        assert ignore_file.read_text().endswith("lib/q.sql:42  # known-safe\n")

        result = runner.invoke(main, ["ignore", "list"])
        assert result.exit_code == 0
        assert "lib/q.sql:42" in result.output
        assert "known-safe" in result.output

    def test_add_duplicate_is_noop(self, mocker, tmp_path):
        ignore_file = tmp_path / ".commitguard-ignore"
        ignore_file.write_text("lib/q.sql:42  # known-safe\n")
        _patch_common(mocker, config=_make_config(ignore_file=str(ignore_file)))

        result = CliRunner().invoke(main, ["ignore", "add", "lib/q.sql:42"])

        assert result.exit_code == 0
        assert ignore_file.read_text().count("lib/q.sql:42") == 1

    def test_list_empty(self, mocker, tmp_path):
        _patch_common(mocker, config=_make_config(ignore_file=str(tmp_path / "missing")))
        result = CliRunner().invoke(main, ["ignore", "list"])
        assert result.exit_code == 0
        assert "No dismissed findings" in result.output

    def test_clear(self, mocker, tmp_path):
        ignore_file = tmp_path / ".commitguard-ignore"
        ignore_file.write_text("a.py:1\n")
        _patch_common(mocker, config=_make_config(ignore_file=str(ignore_file)))

        result = CliRunner().invoke(main, ["ignore", "clear", "--yes"])

        assert result.exit_code == 0
        assert not ignore_file.exists()


# ---------------------------------------------------------------------------
# cache
# ---------------------------------------------------------------------------


class TestCacheCommand:
    def test_status(self, mocker):
        _, mock_cache = _patch_common(mocker)
        result = CliRunner().invoke(main, ["cache", "status"])
        assert result.exit_code == 0
        mock_cache.stats.assert_called_once()
        assert "Passed" in result.output

    def test_clear(self, mocker):
        _, mock_cache = _patch_common(mocker)
        result = CliRunner().invoke(main, ["cache", "clear"])
        assert result.exit_code == 0
        mock_cache.clear.assert_called_once()

    def test_disabled_cache_is_usage_error(self, mocker):
        _patch_common(mocker)
        mocker.patch("commitguard_cli.cli._build_cache", return_value=NoOpCache())
        result = CliRunner().invoke(main, ["cache", "status"])
        assert result.exit_code != 0
        assert "Caching is disabled" in result.output


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------


class TestInitCommand:
    def test_writes_config_and_rules(self, mocker, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        _patch_common(mocker)

        result = CliRunner().invoke(main, ["init", "--provider", "ollama:llama3"], input="\n")

        assert result.exit_code == 0
        config = yaml.safe_load((tmp_path / ".commitguard.yml").read_text())
        assert config == {"provider": "ollama:llama3"}
        assert (tmp_path / "REVIEW_RULES.md").exists()

    def test_prompts_for_model_when_required(self, mocker, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        _patch_common(mocker)

        result = CliRunner().invoke(main, ["init"], input="github\ngpt-4o-mini\nclaude\n")

        assert result.exit_code == 0
        config = yaml.safe_load((tmp_path / ".commitguard.yml").read_text())
        assert config["provider"] == "github:gpt-4o-mini"
        assert config["fallback_provider"] == "claude"

    def test_existing_keys_preserved(self, mocker, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".commitguard.yml").write_text("timeout: 600\n")
        (tmp_path / "REVIEW_RULES.md").write_text("# mine\n")
        _patch_common(mocker)

        CliRunner().invoke(main, ["init", "--provider", "claude"], input="\n")

        config = yaml.safe_load((tmp_path / ".commitguard.yml").read_text())
        assert config == {"timeout": 600, "provider": "claude"}
        assert (tmp_path / "REVIEW_RULES.md").read_text() == "# mine\n"


# ---------------------------------------------------------------------------
# _build_cache
# ---------------------------------------------------------------------------


class TestBuildCache:
    def test_disabled_in_config(self):
        assert isinstance(_build_cache(_make_config(cache=False)), NoOpCache)

    def test_no_cache_flag(self):
        assert isinstance(_build_cache(_make_config(), no_cache=True), NoOpCache)

    def test_file_cache_keyed_by_repo_root(self, mocker, tmp_path):
        mocker.patch("commitguard_core.git.repo_root", return_value=tmp_path)
        cache = _build_cache(_make_config(cache_dir=str(tmp_path / "cache")))
        assert isinstance(cache, FileCache)
        assert cache.path.is_relative_to(tmp_path / "cache")

    def test_outside_git_uses_cwd(self, mocker, tmp_path, monkeypatch):
        from commitguard_core.git import GitError

        monkeypatch.chdir(tmp_path)
        mocker.patch("commitguard_core.git.repo_root", side_effect=GitError("not a repo"))
        cache = _build_cache(_make_config(cache_dir=str(tmp_path / "cache")))
        assert isinstance(cache, FileCache)

