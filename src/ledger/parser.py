"""Parser for the oracle summary ledger.

Each record is ``<coordinate>, <license>, <status>, <approval source>``. Every
record with a license feeds the license map; only ``approved`` records feed
the approval map.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Set

from constants import Constants, LedgerStatus
from common.errors import InvalidArgument, MalformedCoordinate
from identity.models import LedgerCoordinate, LicenseRecord
from identity.normalizer import ledger_identifier, parse_ledger_coordinate
from report.context import UNUSED_EXCLUDES, AnalysisContext

logger = logging.getLogger(__name__)

_LINE_SPLIT_RE = re.compile(r"\r?\n")
_FIELD_SPLIT_RE = re.compile(r",\s?")

LICENSE_FIELDS = 2
APPROVAL_FIELDS = 4


def split_records(text: str) -> List[List[str]]:
    """Split ledger text into non-empty records of trimmed fields."""
    records = []
    for line in _LINE_SPLIT_RE.split(text):
        if not line.strip():
            continue
        records.append([f.strip() for f in _FIELD_SPLIT_RE.split(line)])
    return records


def clearlydefined_link(coord: LedgerCoordinate) -> str:
    """Approval reference pointing at the contribution tracker definition."""
    path = "/".join(
        (coord.type, coord.provider, coord.namespace, coord.name, coord.revision)
    )
    return f"[{Constants.CLEARLYDEFINED_SOURCE}]({Constants.CLEARLYDEFINED_URL}/{path})"


def approval_reference(coord: LedgerCoordinate, source: str) -> str:
    if source == Constants.CLEARLYDEFINED_SOURCE:
        return clearlydefined_link(coord)
    return source


def _check_containers(text, approvals, licenses) -> None:
    if not isinstance(text, str):
        raise InvalidArgument("ledger text must be a string")
    if not isinstance(approvals, dict):
        raise InvalidArgument("approvals must be a dict")
    if licenses is not None and not isinstance(licenses, dict):
        raise InvalidArgument("licenses must be a dict or None")


def parse_ledger(
    text: str,
    approvals: Dict[str, str],
    licenses: Optional[Dict[str, LicenseRecord]] = None,
    context: Optional[AnalysisContext] = None,
    preseeded: Optional[Set[str]] = None,
) -> int:
    """Merge ledger ``text`` into ``approvals`` and ``licenses``.

    Approved identifiers found in ``preseeded`` came from exclusion files;
    they are reported as unused excludes and their manual entry is kept.
    Reported identifiers are removed from ``preseeded`` so that parsing
    several ledgers against the same set reports each one once. An approved
    record with a blank approval source is not an approval.

    Args:
        text: Ledger contents.
        approvals: identifier -> approval reference, mutated in place.
        licenses: Optional identifier -> LicenseRecord, mutated in place.
        context: Receives the unused-exclude diagnostics.
        preseeded: Identifiers loaded from exclusion files, mutated in place.
            Defaults to the keys of ``approvals`` when the call starts.

    Returns:
        int: Number of unused excludes found.

    Raises:
        InvalidArgument: If the containers have the wrong types.
    """
    _check_containers(text, approvals, licenses)

    if preseeded is None:
        preseeded = set(approvals)

    unused = 0
    for record in split_records(text):
        try:
            coord = parse_ledger_coordinate(record[0])
            identifier = ledger_identifier(coord)
        except MalformedCoordinate as exc:
            logger.debug("Skipping ledger line %r: %s", ", ".join(record), exc)
            continue

        if licenses is not None and len(record) >= LICENSE_FIELDS:
            entry = licenses.get(identifier)
            if entry is None:
                licenses[identifier] = LicenseRecord(identifier, record[1])
            else:
                entry.merge(record[1])

        if len(record) < APPROVAL_FIELDS or record[2] != LedgerStatus.APPROVED.value:
            continue
        if not record[3]:
            logger.debug("Approved ledger line for %s has no approval source", identifier)
            continue
        if identifier in preseeded:
            preseeded.discard(identifier)
            unused += 1
            if context is not None:
                context.add_item(UNUSED_EXCLUDES, identifier)
            logger.debug("Exclusion for %s is no longer needed", identifier)
            continue
        if identifier in approvals:
            continue
        approvals[identifier] = approval_reference(coord, record[3])

    if unused:
        logger.warning("%d exclusion(s) are now resolved by the oracle", unused)
    return unused


def parse_ledger_file(
    path: str,
    approvals: Dict[str, str],
    licenses: Optional[Dict[str, LicenseRecord]] = None,
    context: Optional[AnalysisContext] = None,
    encoding: str = Constants.ENCODING,
) -> int:
    with open(path, "r", encoding=encoding) as fh:
        return parse_ledger(fh.read(), approvals, licenses, context)
