"""Tests for the exclusion override grammar."""

import pytest

from common.errors import InvalidArgument
from ledger.exclusions import load_exclusions, load_exclusions_file, match_row

EXCLUDED_MD = """# Manually approved production dependencies

These packages are not resolvable by the oracle and were reviewed by hand.
See the contribution guide for the process.

| Packages | Resolved CQs |
| --- | --- |
| `@eclipse-che/api@7.0.0` | https://gitlab.eclipse.org/eclipsefdn/emo-team/iplab/-/issues/1234 |
| `left-pad@1.3.0` | Reviewed manually, MIT |
| `bad row@1.0.0` | has a space in the identifier |
| `pipe@1.0.0` | a | b |
"""


class TestMatchRow:
    """The single row pattern."""

    def test_matches_row(self):
        assert match_row("| `left-pad@1.3.0` | Reviewed |") == ("left-pad@1.3.0", "Reviewed")

    @pytest.mark.parametrize("line", [
        "# Heading",
        "Some prose | with a pipe",
        "| Packages | Resolved CQs |",
        "| --- | --- |",
        "|  `x@1` | leading space |",
        "| `x@1` | trailing text | ",
        "| `x^y@1` | caret not allowed |",
        "",
    ])
    def test_ignores_non_rows(self, line):
        assert match_row(line) is None

    def test_tolerates_crlf(self):
        assert match_row("| `a@1` | ok |\r") == ("a@1", "ok")


class TestLoadExclusions:
    """Overlaying overrides onto the approval map."""

    def test_prose_tolerated(self):
        approvals = {}
        count = load_exclusions(EXCLUDED_MD, approvals)
        assert count == 2
        assert approvals == {
            "@eclipse-che/api@7.0.0": "https://gitlab.eclipse.org/eclipsefdn/emo-team/iplab/-/issues/1234",
            "left-pad@1.3.0": "Reviewed manually, MIT",
        }

    def test_prod_and_dev_share_map(self):
        approvals = {}
        load_exclusions("| `a@1.0.0` | prod reason |\n", approvals)
        load_exclusions("| `b@2.0.0` | dev reason |\n", approvals)
        assert set(approvals) == {"a@1.0.0", "b@2.0.0"}

    def test_empty_text(self):
        approvals = {}
        assert load_exclusions("", approvals) == 0
        assert approvals == {}

    def test_invalid_types(self):
        with pytest.raises(InvalidArgument):
            load_exclusions(None, {})
        with pytest.raises(InvalidArgument):
            load_exclusions("", [])

    def test_missing_file_contributes_nothing(self, tmp_path):
        approvals = {}
        assert load_exclusions_file(str(tmp_path / "nope.md"), approvals) == 0
        assert approvals == {}

    def test_file(self, tmp_path):
        path = tmp_path / "prod.md"
        path.write_text(EXCLUDED_MD, encoding="utf-8")
        approvals = {}
        assert load_exclusions_file(str(path), approvals) == 2
