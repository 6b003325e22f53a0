"""Manually curated exclusion tables.

An exclusion file is free Markdown. Only table rows shaped like::

    | `identifier` | justification |

are overrides; headings, prose and the table header/separator are ignored.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Dict, Iterable, Optional, Tuple

from constants import Constants
from common.errors import InvalidArgument

logger = logging.getLogger(__name__)

ROW_PATTERN = re.compile(r"^\| `([^|^ ]+)` \| ([^|]+) \|$")


def match_row(line: str) -> Optional[Tuple[str, str]]:
    """Return (identifier, justification) for an override row, else None."""
    match = ROW_PATTERN.match(line.rstrip("\r"))
    if match is None:
        return None
    return match.group(1), match.group(2)


def iter_rows(markdown: str) -> Iterable[Tuple[str, str]]:
    for line in markdown.splitlines():
        row = match_row(line)
        if row is not None:
            yield row


def load_exclusions(markdown: str, approvals: Dict[str, str]) -> int:
    """Overlay exclusion rows from ``markdown`` onto ``approvals``.

    Returns:
        int: Number of rows loaded.

    Raises:
        InvalidArgument: If the arguments have the wrong types.
    """
    if not isinstance(markdown, str):
        raise InvalidArgument("exclusion markdown must be a string")
    if not isinstance(approvals, dict):
        raise InvalidArgument("approvals must be a dict")

    count = 0
    for identifier, justification in iter_rows(markdown):
        approvals[identifier] = justification
        count += 1
    return count


def load_exclusions_file(
    path: str,
    approvals: Dict[str, str],
    encoding: str = Constants.ENCODING,
) -> int:
    """Load ``path`` when it exists; a missing file contributes nothing."""
    if not os.path.isfile(path):
        logger.debug("No exclusions file at %s", path)
        return 0
    with open(path, "r", encoding=encoding) as fh:
        count = load_exclusions(fh.read(), approvals)
    logger.info("Loaded %d exclusion(s) from %s", count, path)
    return count
