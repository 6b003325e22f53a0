"""Markdown report generation and per-dependency classification."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from common.errors import InvalidArgument
from identity.models import LicenseRecord

from .context import AnalysisContext

logger = logging.getLogger(__name__)

TABLE_HEADER = "| Packages | License | Resolved CQs |\n| --- | --- | --- |\n"


class Classification(Enum):
    APPROVED = "approved"
    UNRESOLVED = "unresolved"


def classify_one(identifier: str, approvals: Dict[str, str]) -> Classification:
    if identifier in approvals:
        return Classification.APPROVED
    return Classification.UNRESOLVED


def format_package(identifier: str, record: Optional[LicenseRecord]) -> str:
    lib = f"`{identifier}`"
    if record is not None and record.url:
        lib = f"[{lib}]({record.url})"
    return lib


def format_row(identifier: str, approvals: Dict[str, str], licenses: Dict[str, LicenseRecord]) -> str:
    record = licenses.get(identifier)
    license_expr = record.license if record is not None else ""
    cq = approvals.get(identifier, "")
    return f"| {format_package(identifier, record)} | {license_expr} | {cq} |\n"


def classify(
    title: str,
    identifiers: Iterable[str],
    approvals: Dict[str, str],
    licenses: Dict[str, LicenseRecord],
    context: AnalysisContext,
) -> Tuple[str, int]:
    """Render one report and account for every dependency in it.

    Identifiers are deduplicated and sorted. Each one becomes exactly one table
    row; a row without an approval reference is unresolved and is recorded
    under ``UNRESOLVED <title>`` in ``context``.

    Returns:
        (document, number of unresolved rows in this report)

    Raises:
        InvalidArgument: If the arguments have the wrong types.
    """
    if not isinstance(title, str):
        raise InvalidArgument("title must be a string")
    if isinstance(identifiers, (str, bytes)) or not isinstance(identifiers, Iterable):
        raise InvalidArgument("identifiers must be an iterable of strings")
    if not isinstance(approvals, dict):
        raise InvalidArgument("approvals must be a dict")
    if not isinstance(licenses, dict):
        raise InvalidArgument("licenses must be a dict")
    if not isinstance(context, AnalysisContext):
        raise InvalidArgument("context must be an AnalysisContext")

    ordered: List[str] = sorted(set(identifiers))
    parts = [f"# {title}\n\n", TABLE_HEADER]
    unresolved = 0
    for identifier in ordered:
        if classify_one(identifier, approvals) is Classification.UNRESOLVED:
            unresolved += 1
            context.record_unresolved(title, identifier)
        parts.append(format_row(identifier, approvals, licenses))

    if unresolved:
        logger.warning("%s: %d of %d dependencies unresolved", title, unresolved, len(ordered))
    else:
        logger.info("%s: all %d dependencies resolved", title, len(ordered))
    return "".join(parts), unresolved
