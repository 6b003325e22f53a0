"""Tests for chunked resolution, retries and the deterministic merge."""

import os

import pytest

from common.errors import ResolutionFailed
from oracle.chunked import ChunkedResolver, chunk_path, merge_ledger_lines, split_chunks
from oracle.runner import FailureKind, OracleResult


def ledger_line(identifier):
    name, version = identifier.rsplit("@", 1)
    return f"npm/npmjs/-/{name}/{version}, MIT, approved, clearlydefined"


class FakeRunner:
    """Stands in for OracleRunner; fails the chunks listed in ``failing``."""

    def __init__(self, failing=(), fail_times=None, kind=FailureKind.TIMEOUT):
        self.failing = set(failing)
        self.fail_times = fail_times
        self.kind = kind
        self.calls = []

    def run(self, identifiers, output_path):
        self.calls.append((list(identifiers), output_path))
        index = int(output_path.rsplit(".chunk", 1)[1].split(".")[0])
        attempts = sum(1 for _, p in self.calls if p == output_path)
        if index in self.failing and (self.fail_times is None or attempts <= self.fail_times):
            return OracleResult(output_path, 1, message="HTTP 524", failure=self.kind)
        with open(output_path, "w", encoding="utf-8") as fh:
            fh.write("\n".join(ledger_line(i) for i in reversed(list(identifiers))) + "\n")
        return OracleResult(output_path, 0, entries=len(identifiers))


class TestHelpers:
    """Pure helpers."""

    def test_split_chunks_last_smaller(self):
        assert split_chunks(["a", "b", "c", "d", "e"], 2) == [["a", "b"], ["c", "d"], ["e"]]

    def test_split_chunks_rejects_zero(self):
        with pytest.raises(ValueError):
            split_chunks(["a"], 0)

    def test_chunk_path(self):
        assert chunk_path("/w/DEPENDENCIES", 3) == "/w/DEPENDENCIES.chunk3.tmp"

    def test_merge_sorted_and_deduplicated(self):
        merged = merge_ledger_lines(["b, MIT\na, MIT\n", "  a, MIT  \n\nc, MIT\n"])
        assert merged == ["a, MIT", "b, MIT", "c, MIT"]

    def test_merge_order_independent(self):
        parts = ["x, 1\ny, 2\n", "z, 3\nx, 1\n", "w, 4\n"]
        assert merge_ledger_lines(parts) == merge_ledger_lines(list(reversed(parts)))


class TestChunkedResolver:
    """End-to-end resolver behavior with a fake oracle."""

    def test_all_chunks_succeed(self, tmp_path):
        out = tmp_path / "DEPENDENCIES"
        runner = FakeRunner()
        resolver = ChunkedResolver(runner, str(out), batch_size=2, sleep=lambda s: None)
        text = resolver.resolve(["c@1", "a@1", "b@1", "d@1", "e@1"])

        assert len(runner.calls) == 3
        assert [len(c[0]) for c in runner.calls] == [2, 2, 1]
        lines = out.read_text(encoding="utf-8").splitlines()
        assert lines == sorted(lines)
        assert len(lines) == 5
        assert text == out.read_text(encoding="utf-8")
        assert not list(tmp_path.glob("*.tmp"))

    def test_chunk_two_failure_aborts(self, tmp_path):
        out = tmp_path / "DEPENDENCIES"
        runner = FakeRunner(failing={2})
        sleeps = []
        resolver = ChunkedResolver(runner, str(out), batch_size=2, max_retries=3,
                                   retry_delay=7, sleep=sleeps.append)

        with pytest.raises(ResolutionFailed) as excinfo:
            resolver.resolve(["a@1", "b@1", "c@1", "d@1", "e@1", "f@1"])

        assert excinfo.value.chunk_index == 2
        assert excinfo.value.total_chunks == 3
        assert excinfo.value.attempts == 3
        attempted = {os.path.basename(p) for _, p in runner.calls}
        assert "DEPENDENCIES.chunk3.tmp" not in attempted
        assert len(runner.calls) == 1 + 3
        assert sleeps == [7, 7]
        assert not out.exists()

    def test_retry_then_success(self, tmp_path):
        out = tmp_path / "DEPENDENCIES"
        runner = FakeRunner(failing={1}, fail_times=2, kind=FailureKind.RATE_LIMIT)
        resolver = ChunkedResolver(runner, str(out), batch_size=10, max_retries=3, sleep=lambda s: None)
        resolver.resolve(["a@1"])
        assert len(runner.calls) == 3
        assert out.read_text(encoding="utf-8").strip() == ledger_line("a@1")

    def test_launch_failure_is_not_retried(self, tmp_path):
        runner = FakeRunner(failing={1}, kind=FailureKind.LAUNCH)
        resolver = ChunkedResolver(runner, str(tmp_path / "D"), max_retries=5, sleep=lambda s: None)
        with pytest.raises(ResolutionFailed) as excinfo:
            resolver.resolve(["a@1"])
        assert excinfo.value.attempts == 1
        assert len(runner.calls) == 1

    def test_stale_ledger_removed_on_failure(self, tmp_path):
        out = tmp_path / "DEPENDENCIES"
        out.write_text("old, MIT, approved, x\n")
        resolver = ChunkedResolver(FakeRunner(failing={1}), str(out), max_retries=1, sleep=lambda s: None)
        with pytest.raises(ResolutionFailed):
            resolver.resolve(["a@1"])
        assert not out.exists()

    def test_debug_keeps_chunk_files(self, tmp_path):
        out = tmp_path / "DEPENDENCIES"
        resolver = ChunkedResolver(FakeRunner(), str(out), batch_size=1, debug=True, sleep=lambda s: None)
        resolver.resolve(["a@1", "b@1"])
        assert sorted(p.name for p in tmp_path.glob("*.tmp")) == [
            "DEPENDENCIES.chunk1.tmp", "DEPENDENCIES.chunk2.tmp"]

    def test_empty_input_writes_empty_ledger(self, tmp_path):
        out = tmp_path / "DEPENDENCIES"
        runner = FakeRunner()
        assert ChunkedResolver(runner, str(out)).resolve([]) == ""
        assert out.read_text() == ""
        assert runner.calls == []

    def test_repeated_runs_are_byte_identical(self, tmp_path):
        ids = ["z@1", "m@2", "a@3", "@s/b@1", "m@2"]
        first = ChunkedResolver(FakeRunner(), str(tmp_path / "one"), batch_size=2).resolve(ids)
        second = ChunkedResolver(FakeRunner(), str(tmp_path / "two"), batch_size=3).resolve(list(reversed(ids)))
        assert first == second
        assert (tmp_path / "one").read_bytes() == (tmp_path / "two").read_bytes()

    def test_rejects_zero_retries(self, tmp_path):
        with pytest.raises(ValueError):
            ChunkedResolver(FakeRunner(), str(tmp_path / "D"), max_retries=0)
