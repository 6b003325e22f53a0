"""Compare freshly generated reports with the committed ones."""

from __future__ import annotations

import logging
import os
from typing import List, Set

from constants import Constants

logger = logging.getLogger(__name__)


def _line_set(path: str, encoding: str) -> Set[str]:
    with open(path, "r", encoding=encoding) as fh:
        return {line.rstrip("\r\n") for line in fh if line.strip()}


def diff_lines(committed: str, generated: str, encoding: str = Constants.ENCODING) -> List[str]:
    """Lines present in only one of the two files, sorted.

    A missing committed file counts as drift for every generated line.
    """
    new = _line_set(generated, encoding) if os.path.isfile(generated) else set()
    if not os.path.isfile(committed):
        return sorted(new) or [f"<missing {os.path.basename(committed)}>"]
    return sorted(_line_set(committed, encoding) ^ new)


def has_drift(committed: str, generated: str, encoding: str = Constants.ENCODING) -> bool:
    delta = diff_lines(committed, generated, encoding)
    if delta:
        logger.error("%s is out of date (%d differing line(s))", committed, len(delta))
        for line in delta[:Constants.MAX_LOGGED_OUTPUT]:
            logger.debug("  %s", line)
        return True
    return False
