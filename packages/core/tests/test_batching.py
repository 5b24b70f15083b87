"""Tests for prompt batching."""

import pytest

from commitguard_core.batching import (
    BASE_PROMPT_OVERHEAD,
    PER_FILE_OVERHEAD,
    estimate,
    flatten,
    overhead,
    pack,
)


def _sizer(sizes):
    return lambda path: sizes[path]


class TestPack:
    def test_empty_input(self):
        assert pack([], 1000, sizer=_sizer({})) == []

    @pytest.mark.parametrize("budget", [0, None])
    def test_no_budget_yields_single_batch(self, budget):
        sizes = {"a.py": 5000, "b.py": 9000, "c.py": 1}
        batches = pack(list(sizes), budget, sizer=_sizer(sizes))
        assert len(batches) == 1
        assert batches[0].files == ("a.py", "b.py", "c.py")

    def test_greedy_packing_in_input_order(self):
        # budget 1000 - 700 fixed overhead leaves 300 for file sections
        sizes = {"a.py": 100, "b.py": 150, "c.py": 100, "d.py": 40}
        batches = pack(list(sizes), 1000, sizer=_sizer(sizes))
        assert [b.files for b in batches] == [("a.py", "b.py"), ("c.py", "d.py")]
        assert [b.size for b in batches] == [250, 140]

    def test_rules_text_reduces_available_space(self):
        sizes = {"a.py": 100, "b.py": 100}
        assert len(pack(list(sizes), 1000, rules_text="", sizer=_sizer(sizes))) == 1
        assert len(pack(list(sizes), 1000, rules_text="r" * 150, sizer=_sizer(sizes))) == 2

    def test_oversized_file_gets_its_own_batch(self):
        sizes = {"a.py": 50, "huge.sql": 5000, "c.py": 50}
        batches = pack(list(sizes), 1000, sizer=_sizer(sizes))
        assert [b.files for b in batches] == [("a.py",), ("huge.sql",), ("c.py",)]

    def test_budget_below_overhead_puts_each_file_alone(self):
        sizes = {"a.py": 10, "b.py": 10, "c.py": 10}
        batches = pack(list(sizes), 500, sizer=_sizer(sizes))
        assert [b.files for b in batches] == [("a.py",), ("b.py",), ("c.py",)]

    def test_exact_fit_stays_in_one_batch(self):
        sizes = {"a.py": 200, "b.py": 100}
        assert len(pack(list(sizes), 1000, sizer=_sizer(sizes))) == 1

    def test_files_never_reordered_by_size(self):
        sizes = {"big.py": 250, "small.py": 10, "mid.py": 100}
        assert flatten(pack(list(sizes), 1000, sizer=_sizer(sizes))) == ["big.py", "small.py", "mid.py"]

    @pytest.mark.parametrize("budget", [1, 701, 800, 1000, 2500, 10**6])
    def test_batches_partition_input(self, budget):
        sizes = {f"src/f{i}.ts": (i * 37) % 400 + 1 for i in range(40)}
        files = list(sizes)
        batches = pack(files, budget, sizer=_sizer(sizes))
        assert flatten(batches) == files
        assert all(len(b) >= 1 for b in batches)

    def test_batch_iterates_its_files(self):
        sizes = {"a.py": 1, "b.py": 1}
        (batch,) = pack(list(sizes), 0, sizer=_sizer(sizes))
        assert list(batch) == ["a.py", "b.py"]
        assert len(batch) == 2


class TestEstimate:
    def test_counts_content_and_framing(self, tmp_path):
        (tmp_path / "app.py").write_bytes(b"x" * 120)
        assert estimate("app.py", cwd=str(tmp_path)) == 120 + PER_FILE_OVERHEAD + len("app.py")

    def test_missing_file_counts_framing_only(self, tmp_path):
        assert estimate("gone.py", cwd=str(tmp_path)) == PER_FILE_OVERHEAD + len("gone.py")

    def test_overhead_counts_utf8_bytes(self):
        assert overhead("") == BASE_PROMPT_OVERHEAD
        assert overhead("é") == BASE_PROMPT_OVERHEAD + 2
