"""Chunked resolution of identifiers against the license oracle."""

from __future__ import annotations

import logging
import os
import time
from typing import Callable, List, Optional, Sequence

from constants import Constants
from common.errors import ResolutionFailed
from common.logging_utils import Timer, extra_context, is_debug_enabled

from .runner import FailureKind, OracleResult, OracleRunner

logger = logging.getLogger(__name__)


def split_chunks(items: Sequence[str], size: int) -> List[List[str]]:
    """Split ``items`` into consecutive chunks of at most ``size`` entries."""
    if size < 1:
        raise ValueError(f"batch size must be positive, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def chunk_path(output_file: str, index: int) -> str:
    """Temp file for chunk ``index`` (1-based)."""
    return f"{output_file}.chunk{index}.tmp"


def merge_ledger_lines(chunk_texts: Sequence[str]) -> List[str]:
    """Merge chunk outputs into a sorted list of unique, non-empty lines."""
    merged = set()
    for text in chunk_texts:
        for line in text.splitlines():
            line = line.strip()
            if line:
                merged.add(line)
    return sorted(merged)


class ChunkedResolver:
    """Resolve identifiers chunk by chunk and write the merged ledger.

    Chunks run strictly in order. A chunk that keeps failing after
    ``max_retries`` attempts aborts the whole resolution: later chunks are
    not attempted and no merged ledger is written.
    """

    def __init__(
        self,
        runner: OracleRunner,
        output_file: str,
        batch_size: int = Constants.BATCH_SIZE,
        max_retries: int = Constants.MAX_RETRIES,
        retry_delay: float = Constants.RETRY_DELAY_SEC,
        debug: bool = False,
        encoding: str = Constants.ENCODING,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")
        self.runner = runner
        self.output_file = output_file
        self.batch_size = batch_size
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.debug = debug
        self.encoding = encoding
        self._sleep = sleep
        self._temp_files: List[str] = []

    def resolve(self, identifiers: Sequence[str]) -> str:
        """Resolve ``identifiers`` and return the merged ledger text.

        Raises:
            ResolutionFailed: a chunk exhausted its retries.
        """
        self._temp_files = []
        if os.path.exists(self.output_file):
            os.unlink(self.output_file)

        if not identifiers:
            logger.warning("No dependencies to resolve; writing an empty ledger to %s", self.output_file)
            self._write("")
            return ""

        chunks = split_chunks(identifiers, self.batch_size)
        total = len(chunks)
        logger.info("Processing %d dependencies in %d chunk(s) of up to %d",
                    len(identifiers), total, self.batch_size)

        chunk_texts: List[str] = []
        try:
            with Timer() as t:
                for index, chunk in enumerate(chunks, start=1):
                    result = self._resolve_chunk(chunk, index, total)
                    with open(result.output_path, "r", encoding=self.encoding) as fh:
                        chunk_texts.append(fh.read())
        finally:
            self._cleanup()

        lines = merge_ledger_lines(chunk_texts)
        text = "\n".join(lines) + "\n" if lines else ""
        self._write(text)
        logger.info("Merged %d unique ledger entries into %s", len(lines), self.output_file)
        if is_debug_enabled(logger):
            logger.debug(
                "Resolution complete",
                extra=extra_context(
                    event="resolve_done",
                    component="oracle",
                    action="resolve",
                    outcome="success",
                    chunks=total,
                    count=len(lines),
                    duration_ms=t.duration_ms(),
                ),
            )
        return text

    def _resolve_chunk(self, chunk: Sequence[str], index: int, total: int) -> OracleResult:
        path = chunk_path(self.output_file, index)
        self._temp_files.append(path)
        logger.info("Chunk %d/%d (%d dependencies)", index, total, len(chunk))

        result: Optional[OracleResult] = None
        for attempt in range(1, self.max_retries + 1):
            result = self.runner.run(chunk, path)
            if result.ok:
                logger.info("  chunk %d done: %d entries", index, result.entries)
                return result

            logger.warning(
                "  chunk %d attempt %d/%d failed: %s",
                index, attempt, self.max_retries, result.failure.value,
            )
            if result.message:
                logger.debug("  %s", result.message[:Constants.MAX_LOGGED_OUTPUT])
            if result.failure is FailureKind.LAUNCH:
                raise ResolutionFailed(index, total, attempt, result.failure.value)
            if attempt < self.max_retries:
                logger.info("  retrying in %ss", self.retry_delay)
                self._sleep(self.retry_delay)

        logger.error("Chunk %d of %d failed after %d attempt(s)", index, total, self.max_retries)
        raise ResolutionFailed(
            index, total, self.max_retries,
            result.failure.value if result is not None and result.failure else None,
        )

    def _write(self, text: str) -> None:
        parent = os.path.dirname(self.output_file)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(self.output_file, "w", encoding=self.encoding) as fh:
            fh.write(text)

    def _cleanup(self) -> None:
        if self.debug:
            if self._temp_files:
                logger.debug("Keeping chunk files: %s", ", ".join(self._temp_files))
            return
        for path in self._temp_files:
            try:
                os.unlink(path)
            except FileNotFoundError:
                pass
