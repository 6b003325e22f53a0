"""Subprocess wrapper around the license oracle (Eclipse dash-licenses).

The oracle reads identifiers on stdin and writes a summary ledger to the file
named by ``-summary``. Its exit status multiplexes "some entries unresolved"
and "some entries restricted" with real failures, so callers judge success by
the output file, never by the exit status alone.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from constants import Constants
from common.logging_utils import Timer, extra_context, is_debug_enabled

logger = logging.getLogger(__name__)


class FailureKind(Enum):
    """Transport/availability failure classes recognized in oracle output."""
    TIMEOUT = "Timeout (HTTP 524)"
    RATE_LIMIT = "Rate limit (HTTP 429)"
    BAD_GATEWAY = "Bad gateway (HTTP 502)"
    NO_OUTPUT = "Output file not created or empty"
    LAUNCH = "Oracle could not be started"
    ERROR = "Error"


def classify_failure(message: str) -> FailureKind:
    """Classify an oracle failure from its message text."""
    text = (message or "").lower()
    if "524" in text or "timeout" in text or "timed out" in text:
        return FailureKind.TIMEOUT
    if "429" in text:
        return FailureKind.RATE_LIMIT
    if "502" in text or "bad gateway" in text:
        return FailureKind.BAD_GATEWAY
    return FailureKind.ERROR


@dataclass
class OracleResult:
    """Outcome of one oracle invocation."""
    output_path: str
    returncode: Optional[int]
    entries: int = 0
    message: str = ""
    failure: Optional[FailureKind] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


def output_ready(path: str) -> bool:
    """Return True when ``path`` exists and is non-empty."""
    return os.path.isfile(path) and os.path.getsize(path) > 0


def count_entries(path: str, encoding: str = Constants.ENCODING) -> int:
    with open(path, "r", encoding=encoding) as fh:
        return sum(1 for line in fh if line.strip())


class OracleRunner:
    """Invokes the oracle command for one chunk of identifiers."""

    def __init__(
        self,
        jar: str = Constants.DASH_LICENSES_JAR,
        batch_size: int = Constants.BATCH_SIZE,
        timeout: Optional[float] = Constants.ORACLE_TIMEOUT_SEC,
        command: Optional[Sequence[str]] = None,
        encoding: str = Constants.ENCODING,
    ):
        self.jar = jar
        self.batch_size = batch_size
        self.timeout = timeout
        self.command_template = list(command or Constants.ORACLE_COMMAND)
        self.encoding = encoding

    def build_command(self, output_path: str) -> List[str]:
        """Expand the command template for one chunk."""
        values = {
            "jar": self.jar,
            "batch_size": str(self.batch_size),
            "output": output_path,
        }
        return [part.format(**values) for part in self.command_template]

    def run(self, identifiers: Sequence[str], output_path: str) -> OracleResult:
        """Feed ``identifiers`` to the oracle and check the summary file.

        Never raises for oracle-side problems; the failure is described in the
        returned result so the caller can decide whether to retry.
        """
        cmd = self.build_command(output_path)
        payload = "\n".join(identifiers) + "\n"
        if os.path.exists(output_path):
            os.unlink(output_path)

        with Timer() as t:
            try:
                proc = subprocess.run(  # noqa: S603
                    cmd,
                    input=payload,
                    capture_output=True,
                    text=True,
                    encoding=self.encoding,
                    timeout=self.timeout,
                    check=False,
                )
            except subprocess.TimeoutExpired:
                return OracleResult(
                    output_path=output_path,
                    returncode=None,
                    message=f"oracle timed out after {self.timeout} seconds",
                    failure=FailureKind.TIMEOUT,
                )
            except OSError as exc:
                return OracleResult(
                    output_path=output_path,
                    returncode=None,
                    message=str(exc),
                    failure=FailureKind.LAUNCH,
                )

        if is_debug_enabled(logger):
            logger.debug(
                "Oracle finished",
                extra=extra_context(
                    event="oracle_exit",
                    component="oracle",
                    action="run",
                    returncode=proc.returncode,
                    duration_ms=t.duration_ms(),
                    count=len(identifiers),
                ),
            )

        message = "\n".join(s for s in (proc.stderr, proc.stdout) if s).strip()
        if output_ready(output_path):
            if proc.returncode:
                # Non-zero with output means some entries need review
                logger.debug("  oracle exit code %s (some items need review)", proc.returncode)
            return OracleResult(
                output_path=output_path,
                returncode=proc.returncode,
                entries=count_entries(output_path, self.encoding),
                message=message,
            )

        kind = classify_failure(message)
        if kind is FailureKind.ERROR:
            kind = FailureKind.NO_OUTPUT if proc.returncode == 0 else FailureKind.ERROR
        return OracleResult(
            output_path=output_path,
            returncode=proc.returncode,
            message=message or FailureKind.NO_OUTPUT.value,
            failure=kind,
        )
