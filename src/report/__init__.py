"""Report package.

- context.py: per-run diagnostics and the cumulative unresolved counter
- document.py: dependency classification and the Markdown report tables
- drift.py: comparison against the committed reports in check mode
"""

from .context import AnalysisContext, render_error_document
from .document import Classification, classify
from .drift import diff_lines, has_drift

__all__ = [
    "AnalysisContext",
    "render_error_document",
    "Classification",
    "classify",
    "diff_lines",
    "has_drift",
]
