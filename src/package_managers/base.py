"""Shared processing flow for package-manager adapters.

An adapter only knows how to talk to its package manager: it returns the
production and development identifiers, the lines to feed the oracle and an
optional license side-channel. Resolution, reconciliation, drift checking and
the exit code are handled here for all of them.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Set

from constants import Constants, ExitCodes
from common.errors import AdapterError, LedgerMissingOrEmpty, LicenseGateError
from common.logging_utils import Timer, extra_context, is_debug_enabled
from identity.models import LicenseRecord
from oracle import ChunkedResolver, OracleRunner
from pipeline import PipelineResult, WorkPaths, process_and_generate_documents, write_error_document
from report import has_drift

logger = logging.getLogger(__name__)

REPORT_FILES = (Constants.PROD_MD, Constants.DEV_MD, Constants.PROBLEMS_MD)


@dataclass
class OracleInput:
    """Lines fed to the oracle and the ledger file they resolve into."""

    ledger_name: str
    lines: List[str]


@dataclass
class CollectedDependencies:
    """Everything an adapter extracts from its package manager."""

    prod: List[str]
    dev: List[str]
    oracle_inputs: List[OracleInput]
    licenses: Dict[str, LicenseRecord] = field(default_factory=dict)
    collisions: Dict[str, Set[str]] = field(default_factory=dict)


@dataclass
class RunSettings:
    """Resolved runtime settings for one invocation."""

    project_dir: str = "."
    deps_dir: Optional[str] = None
    batch_size: int = Constants.BATCH_SIZE
    max_retries: int = Constants.MAX_RETRIES
    retry_delay: float = Constants.RETRY_DELAY_SEC
    oracle_timeout: Optional[float] = Constants.ORACLE_TIMEOUT_SEC
    oracle_jar: str = Constants.DASH_LICENSES_JAR
    oracle_command: Optional[List[str]] = None
    encoding: str = Constants.ENCODING
    check: bool = False
    debug: bool = False

    @property
    def resolved_deps_dir(self) -> str:
        return self.deps_dir or os.path.join(self.project_dir, Constants.DEPS_DIR_NAME)


def run_command(cmd: Sequence[str], cwd: str, allow_failure: bool = False) -> str:
    """Run a package-manager command and return its stdout.

    Raises:
        AdapterError: If the command cannot be started, or exits non-zero
            while ``allow_failure`` is False.
    """
    logger.debug("Running %s in %s", " ".join(cmd), cwd)
    try:
        proc = subprocess.run(  # noqa: S603
            list(cmd),
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise AdapterError(f"Could not run {cmd[0]}: {exc}") from exc
    if proc.returncode != 0:
        detail = (proc.stderr or proc.stdout or "").strip()[:Constants.MAX_LOGGED_OUTPUT]
        if not allow_failure:
            raise AdapterError(f"{' '.join(cmd)} exited with {proc.returncode}: {detail}")
        logger.warning("%s exited with %s", " ".join(cmd), proc.returncode)
        logger.debug("  %s", detail)
    return proc.stdout or ""


class PackageManagerBase:
    """Template for one package-manager run.

    Subclasses set ``name``, ``project_file`` and optionally ``lock_file``,
    and implement :meth:`collect`.
    """

    name = ""
    project_file = ""
    lock_file: Optional[str] = None
    allow_empty_ledgers = False

    def __init__(
        self,
        settings: RunSettings,
        runner: Optional[OracleRunner] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings
        self.runner = runner or OracleRunner(
            jar=settings.oracle_jar,
            batch_size=settings.batch_size,
            timeout=settings.oracle_timeout,
            command=settings.oracle_command,
            encoding=settings.encoding,
        )
        self._sleep = sleep
        self.paths: Optional[WorkPaths] = None

    @property
    def project_dir(self) -> str:
        return self.settings.project_dir

    def project_path(self, *parts: str) -> str:
        return os.path.join(self.project_dir, *parts)

    def validate_project(self) -> None:
        """Require the project file and, when the adapter needs one, the lock file."""
        if not os.path.isfile(self.project_path(self.project_file)):
            raise AdapterError(
                f"Can't find {self.project_file} file in the project directory. "
                "Commit it and then try again."
            )
        if self.lock_file and not os.path.isfile(self.project_path(self.lock_file)):
            raise AdapterError(
                f"Can't find {self.lock_file} file. Generate and commit the lock file "
                "and then try again."
            )

    def collect(self, work_dir: str) -> CollectedDependencies:
        """Query the package manager; implemented by each adapter."""
        raise NotImplementedError

    def resolve(self, collected: CollectedDependencies, paths: WorkPaths) -> List[str]:
        """Run the oracle for each input; return the ledgers to reconcile."""
        ledgers = []
        for oracle_input in collected.oracle_inputs:
            ledger_path = paths.ledger(oracle_input.ledger_name)
            logger.info("Generating %s (batch size: %d)...",
                        oracle_input.ledger_name, self.settings.batch_size)
            resolver = ChunkedResolver(
                self.runner,
                ledger_path,
                batch_size=self.settings.batch_size,
                max_retries=self.settings.max_retries,
                retry_delay=self.settings.retry_delay,
                debug=self.settings.debug,
                encoding=self.settings.encoding,
                sleep=self._sleep,
            )
            resolver.resolve(oracle_input.lines)
            if not oracle_input.lines and self.allow_empty_ledgers:
                logger.info("No dependencies for %s", oracle_input.ledger_name)
                continue
            self.verify_ledger(ledger_path)
            ledgers.append(ledger_path)
        return ledgers

    def verify_ledger(self, path: str) -> None:
        if not os.path.isfile(path):
            raise LedgerMissingOrEmpty(path, missing=True)
        if os.path.getsize(path) < 1:
            raise LedgerMissingOrEmpty(path, missing=False)

    def process(self, collected: CollectedDependencies, ledgers: List[str], paths: WorkPaths) -> PipelineResult:
        return process_and_generate_documents(
            collected.prod,
            collected.dev,
            paths,
            ledgers=ledgers,
            licenses=collected.licenses,
            collisions=collected.collisions,
            encoding=self.settings.encoding,
        )

    def check_drift(self, paths: WorkPaths) -> bool:
        deps_dir = paths.deps_dir
        drift = False
        for name, label in ((Constants.PROD_MD, "production"), (Constants.DEV_MD, "development")):
            logger.info("Looking for changes in %s dependencies list...", label)
            if has_drift(os.path.join(deps_dir, name), os.path.join(paths.work_dir, name),
                         self.settings.encoding):
                logger.error(
                    "The list of %s dependencies is outdated. Please run the following "
                    "command and commit changes:\n%s", label, Constants.INFO_MSG,
                )
                drift = True
        return drift

    def publish(self, paths: WorkPaths, names: Sequence[str] = REPORT_FILES) -> None:
        """Copy generated reports into the deps dir."""
        os.makedirs(paths.deps_dir, exist_ok=True)
        for name in names:
            src = os.path.join(paths.work_dir, name)
            dest = os.path.join(paths.deps_dir, name)
            if os.path.isfile(src):
                shutil.copyfile(src, dest)
            elif name == Constants.PROBLEMS_MD and os.path.isfile(dest):
                os.unlink(dest)
                logger.info("Removed stale %s", dest)

    def keep_work_dir(self, paths: WorkPaths) -> None:
        dest = os.path.join(paths.deps_dir, Constants.TMP_DIR_NAME)
        logger.info("Copy work dir to %s...", dest)
        try:
            shutil.copytree(paths.work_dir, dest, dirs_exist_ok=True)
        except OSError as exc:
            logger.warning("Could not copy all work files: %s", exc)

    def run(self) -> int:
        """Execute the whole flow and return the process exit code."""
        deps_dir = self.settings.resolved_deps_dir
        work_dir = tempfile.mkdtemp(prefix="licensegate-")
        paths = WorkPaths(deps_dir=deps_dir, work_dir=work_dir)
        self.paths = paths
        if is_debug_enabled(logger):
            logger.debug(
                "Run start",
                extra=extra_context(event="function_entry", component="package_manager",
                                    action="run", package_manager=self.name, target=self.project_dir),
            )
        try:
            with Timer() as t:
                self.validate_project()
                collected = self.collect(work_dir)
                ledgers = self.resolve(collected, paths)
                result = self.process(collected, ledgers, paths)
        except LicenseGateError as exc:
            logger.error("%s", exc)
            write_error_document(paths, f"Error: {exc}", self.settings.encoding)
            if not self.settings.check:
                self.publish(paths, names=(Constants.PROBLEMS_MD,))
            if self.settings.debug:
                self.keep_work_dir(paths)
            self._cleanup(paths)
            return ExitCodes.FAILURE.value

        drift = self.check_drift(paths) if self.settings.check else False
        if not self.settings.check:
            self.publish(paths)
        if self.settings.debug:
            self.keep_work_dir(paths)
        self._cleanup(paths)

        if is_debug_enabled(logger):
            logger.debug(
                "Run complete",
                extra=extra_context(event="function_exit", component="package_manager", action="run",
                                    outcome="fail" if result.unresolved or drift else "success",
                                    unresolved=result.unresolved, duration_ms=t.duration_ms()),
            )
        if result.unresolved:
            logger.error("Restricted or unresolved dependencies are found in the project.")
            return ExitCodes.FAILURE.value
        if drift:
            return ExitCodes.FAILURE.value
        logger.info("All found licenses are approved to use.")
        return ExitCodes.SUCCESS.value

    def _cleanup(self, paths: WorkPaths) -> None:
        shutil.rmtree(paths.work_dir, ignore_errors=True)
