"""Tests for the oracle subprocess wrapper."""

import subprocess
from unittest.mock import patch

import pytest

from oracle.runner import FailureKind, OracleRunner, classify_failure


def _fake_run(output_text=None, returncode=0, stderr="", stdout=""):
    """Build a subprocess.run replacement that writes the -summary file."""
    def _run(cmd, **kwargs):
        if output_text is not None:
            out = cmd[cmd.index("-summary") + 1]
            with open(out, "w", encoding="utf-8") as fh:
                fh.write(output_text)
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr=stderr)
    return _run


class TestClassifyFailure:
    """Message-based failure classification."""

    @pytest.mark.parametrize("message,kind", [
        ("HTTP 524 from server", FailureKind.TIMEOUT),
        ("Read timeout", FailureKind.TIMEOUT),
        ("status 429 Too Many Requests", FailureKind.RATE_LIMIT),
        ("502 Bad Gateway", FailureKind.BAD_GATEWAY),
        ("upstream said bad gateway", FailureKind.BAD_GATEWAY),
        ("NullPointerException", FailureKind.ERROR),
        ("", FailureKind.ERROR),
    ])
    def test_kinds(self, message, kind):
        assert classify_failure(message) is kind


class TestOracleRunner:
    """One oracle invocation."""

    def test_build_command(self):
        runner = OracleRunner(jar="/opt/dash.jar", batch_size=50)
        assert runner.build_command("/tmp/out") == [
            "java", "-jar", "/opt/dash.jar", "-batch", "50", "-summary", "/tmp/out", "-",
        ]

    def test_custom_command_template(self):
        runner = OracleRunner(command=["dash", "{output}"])
        assert runner.build_command("x") == ["dash", "x"]

    def test_success_with_nonzero_exit(self, tmp_path):
        out = tmp_path / "chunk"
        runner = OracleRunner()
        with patch("oracle.runner.subprocess.run",
                   side_effect=_fake_run("a, MIT, approved, clearlydefined\nb, GPL, restricted, none\n",
                                         returncode=3)) as run:
            result = runner.run(["a@1", "b@2"], str(out))
        assert result.ok
        assert result.returncode == 3
        assert result.entries == 2
        assert run.call_args.kwargs["input"] == "a@1\nb@2\n"

    def test_zero_exit_without_output_fails(self, tmp_path):
        runner = OracleRunner()
        with patch("oracle.runner.subprocess.run", side_effect=_fake_run(None, returncode=0)):
            result = runner.run(["a@1"], str(tmp_path / "chunk"))
        assert not result.ok
        assert result.failure is FailureKind.NO_OUTPUT

    def test_empty_output_file_fails(self, tmp_path):
        runner = OracleRunner()
        with patch("oracle.runner.subprocess.run",
                   side_effect=_fake_run("", returncode=1, stderr="HTTP 429")):
            result = runner.run(["a@1"], str(tmp_path / "chunk"))
        assert result.failure is FailureKind.RATE_LIMIT

    def test_stale_output_removed_before_run(self, tmp_path):
        out = tmp_path / "chunk"
        out.write_text("stale, MIT, approved, x\n")
        runner = OracleRunner()
        with patch("oracle.runner.subprocess.run", side_effect=_fake_run(None, returncode=1)):
            result = runner.run(["a@1"], str(out))
        assert not result.ok
        assert not out.exists()

    def test_process_timeout(self, tmp_path):
        runner = OracleRunner(timeout=5)
        with patch("oracle.runner.subprocess.run",
                   side_effect=subprocess.TimeoutExpired(cmd="java", timeout=5)):
            result = runner.run(["a@1"], str(tmp_path / "chunk"))
        assert result.failure is FailureKind.TIMEOUT
        assert result.returncode is None

    def test_launch_failure(self, tmp_path):
        runner = OracleRunner()
        with patch("oracle.runner.subprocess.run", side_effect=FileNotFoundError("java")):
            result = runner.run(["a@1"], str(tmp_path / "chunk"))
        assert result.failure is FailureKind.LAUNCH
