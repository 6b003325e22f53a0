"""Ledger package.

- parser.py: oracle summary ledger -> approval and license maps
- exclusions.py: curated Markdown overrides pre-seeded into the approval map
"""

from .parser import clearlydefined_link, parse_ledger, parse_ledger_file, split_records
from .exclusions import load_exclusions, load_exclusions_file, match_row

__all__ = [
    "clearlydefined_link",
    "parse_ledger",
    "parse_ledger_file",
    "split_records",
    "load_exclusions",
    "load_exclusions_file",
    "match_row",
]
