"""Per-run diagnostics accumulator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from constants import Constants

UNUSED_EXCLUDES = "UNUSED Excludes"
COLLIDING_IDENTIFIERS = "COLLIDING Identifiers"


def unresolved_heading(title: str) -> str:
    return f"UNRESOLVED {title}"


@dataclass
class AnalysisContext:
    """Diagnostics sections and the cumulative unresolved counter for one run.

    Sections keep insertion order; each is rendered as a 1-based numbered list
    of backtick-quoted identifiers.
    """

    sections: Dict[str, List[str]] = field(default_factory=dict)
    messages: List[str] = field(default_factory=list)
    unresolved_count: int = 0

    def add_item(self, heading: str, identifier: str) -> int:
        """Append ``identifier`` under ``heading``; return its 1-based position."""
        items = self.sections.setdefault(heading, [])
        items.append(identifier)
        return len(items)

    def add_message(self, message: str) -> None:
        self.messages.append(message)

    def record_unresolved(self, title: str, identifier: str) -> None:
        self.add_item(unresolved_heading(title), identifier)
        self.unresolved_count += 1

    def items(self, heading: str) -> List[str]:
        return list(self.sections.get(heading, []))

    @property
    def has_problems(self) -> bool:
        return any(self.sections.values()) or bool(self.messages)

    def render_logs(self) -> str:
        out = []
        for heading, items in self.sections.items():
            if not items:
                continue
            out.append(f"\n## {heading}\n")
            out.extend(f"\n{n}. `{item}`" for n, item in enumerate(items, start=1))
            out.append("\n")
        for message in self.messages:
            out.append(f"\n{message}\n")
        return "".join(out)

    def render_problems(self, title: str = Constants.PROBLEMS_TITLE) -> str:
        """Render the diagnostics document."""
        return f"# {title}\n{self.render_logs()}"


def render_error_document(message: str, title: str = Constants.PROBLEMS_TITLE) -> str:
    """Diagnostics document for a fatal error."""
    return f"# {title}\n\n{message}\n"
