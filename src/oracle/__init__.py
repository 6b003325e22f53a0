"""License oracle package.

- runner.py: one subprocess invocation of the oracle per chunk
- chunked.py: chunking, retries and the deterministic merge of chunk outputs
"""

from .runner import FailureKind, OracleResult, OracleRunner, classify_failure
from .chunked import ChunkedResolver, chunk_path, merge_ledger_lines, split_chunks

__all__ = [
    "FailureKind",
    "OracleResult",
    "OracleRunner",
    "classify_failure",
    "ChunkedResolver",
    "chunk_path",
    "merge_ledger_lines",
    "split_chunks",
]
