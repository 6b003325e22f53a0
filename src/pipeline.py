"""Reconciliation pipeline shared by every package manager.

Exclusions are loaded first, then the ledger(s) are parsed into the same
approval map, then the production and development reports are classified
against it. All state for the run lives in the maps and the AnalysisContext
passed through here.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set

from constants import Constants
from common.errors import LedgerMissingOrEmpty
from identity.models import LicenseRecord
from ledger import load_exclusions_file, parse_ledger
from report import AnalysisContext, classify, render_error_document
from report.context import COLLIDING_IDENTIFIERS

logger = logging.getLogger(__name__)


@dataclass
class WorkPaths:
    """File layout of one run.

    ``deps_dir`` holds the committed reports and the EXCLUDED overrides;
    ``work_dir`` receives everything generated by the run.
    """

    deps_dir: str
    work_dir: str

    @property
    def exclusions_dir(self) -> str:
        return os.path.join(self.deps_dir, Constants.EXCLUSIONS_DIR_NAME)

    @property
    def excluded_prod_md(self) -> str:
        return os.path.join(self.exclusions_dir, Constants.PROD_MD)

    @property
    def excluded_dev_md(self) -> str:
        return os.path.join(self.exclusions_dir, Constants.DEV_MD)

    @property
    def prod_md(self) -> str:
        return os.path.join(self.work_dir, Constants.PROD_MD)

    @property
    def dev_md(self) -> str:
        return os.path.join(self.work_dir, Constants.DEV_MD)

    @property
    def problems_md(self) -> str:
        return os.path.join(self.work_dir, Constants.PROBLEMS_MD)

    def ledger(self, name: str = Constants.DEPENDENCIES_FILE) -> str:
        return os.path.join(self.work_dir, name)


@dataclass
class PipelineResult:
    """Documents and accounting produced by one reconciliation."""

    prod_document: str
    dev_document: str
    prod_count: int
    dev_count: int
    context: AnalysisContext = field(default_factory=AnalysisContext)
    problems_document: Optional[str] = None

    @property
    def unresolved(self) -> int:
        return self.context.unresolved_count


def read_ledger(path: str, encoding: str = Constants.ENCODING) -> str:
    """Read a ledger produced by the oracle.

    Raises:
        LedgerMissingOrEmpty: If the file is absent or has no records.
    """
    if not os.path.isfile(path):
        raise LedgerMissingOrEmpty(path, missing=True)
    with open(path, "r", encoding=encoding) as fh:
        text = fh.read()
    if not text.strip():
        raise LedgerMissingOrEmpty(path, missing=False)
    return text


def write_text(path: str, text: str, encoding: str = Constants.ENCODING) -> None:
    with open(path, "w", encoding=encoding) as fh:
        fh.write(text)


def write_error_document(paths: WorkPaths, message: str, encoding: str = Constants.ENCODING) -> None:
    """Replace problems.md with a single fatal error message."""
    try:
        os.makedirs(paths.work_dir, exist_ok=True)
        write_text(paths.problems_md, render_error_document(message), encoding)
    except OSError as exc:
        logger.warning("Could not write %s: %s", paths.problems_md, exc)


def process_and_generate_documents(
    prod_deps: Sequence[str],
    dev_deps: Sequence[str],
    paths: WorkPaths,
    ledgers: Optional[Iterable[str]] = None,
    licenses: Optional[Dict[str, LicenseRecord]] = None,
    context: Optional[AnalysisContext] = None,
    collisions: Optional[Dict[str, Set[str]]] = None,
    allow_empty_ledgers: bool = False,
    encoding: str = Constants.ENCODING,
) -> PipelineResult:
    """Reconcile dependencies against exclusions and ledger(s), write reports.

    Args:
        prod_deps: Production dependency identifiers.
        dev_deps: Development dependency identifiers.
        paths: Run file layout; reports are written to ``paths.work_dir``.
        ledgers: Ledger files to parse; defaults to the single DEPENDENCIES file.
        licenses: License side-channel from the package manager, augmented here.
        context: Diagnostics accumulator; a fresh one is created when omitted.
        collisions: identifier -> groupIds claimed by more than one group.
        allow_empty_ledgers: Accept empty ledgers (an empty dependency scope).
        encoding: Encoding for every file read and written.

    Returns:
        PipelineResult: documents plus the cumulative unresolved count.

    Raises:
        LedgerMissingOrEmpty: When a ledger is missing, or empty while not allowed.
    """
    context = context if context is not None else AnalysisContext()
    licenses = licenses if licenses is not None else {}
    ledger_paths: List[str] = list(ledgers) if ledgers is not None else [paths.ledger()]
    approvals: Dict[str, str] = {}

    # Overrides must be in the map before any ledger is parsed
    load_exclusions_file(paths.excluded_prod_md, approvals, encoding)
    load_exclusions_file(paths.excluded_dev_md, approvals, encoding)
    preseeded = set(approvals)

    for ledger_path in ledger_paths:
        try:
            text = read_ledger(ledger_path, encoding)
        except LedgerMissingOrEmpty as exc:
            if allow_empty_ledgers and not exc.missing:
                logger.info("Ledger %s is empty", ledger_path)
                continue
            raise
        parse_ledger(text, approvals, licenses, context, preseeded)

    for identifier in sorted(collisions or {}):
        context.add_item(COLLIDING_IDENTIFIERS, identifier)

    os.makedirs(paths.work_dir, exist_ok=True)
    prod_document, _ = classify(Constants.PROD_TITLE, prod_deps, approvals, licenses, context)
    write_text(paths.prod_md, prod_document, encoding)
    logger.info("Generated %s (%d dependencies)", paths.prod_md, len(set(prod_deps)))

    dev_document, _ = classify(Constants.DEV_TITLE, dev_deps, approvals, licenses, context)
    write_text(paths.dev_md, dev_document, encoding)
    logger.info("Generated %s (%d dependencies)", paths.dev_md, len(set(dev_deps)))

    result = PipelineResult(
        prod_document=prod_document,
        dev_document=dev_document,
        prod_count=len(set(prod_deps)),
        dev_count=len(set(dev_deps)),
        context=context,
    )
    if context.has_problems:
        result.problems_document = context.render_problems()
        write_text(paths.problems_md, result.problems_document, encoding)
        logger.info("%s", context.render_logs().strip("\n"))
    elif os.path.exists(paths.problems_md):
        os.unlink(paths.problems_md)
        logger.info("All checks passed. Removed old %s", paths.problems_md)

    if result.unresolved:
        logger.error("Found %d unresolved dependencies. See %s for details.",
                     result.unresolved, Constants.PROBLEMS_MD)
    return result
