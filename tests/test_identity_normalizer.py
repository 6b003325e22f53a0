"""Tests for identifier normalization across ecosystems."""

import pytest

from common.errors import MalformedCoordinate
from identity.normalizer import (
    make_identifier,
    normalize_ledger_coordinate,
    normalize_maven_line,
    normalize_maven_lines,
    normalize_yarn_key,
    parse_ledger_coordinate,
    parse_maven_line,
    parse_npm_identifier,
    parse_yarn_alias,
    rewrite_yarn_suffixes,
    split_identifier,
)


class TestIdentifierGrammar:
    """Splitting and joining identifiers."""

    def test_split_unscoped(self):
        assert split_identifier("lodash@4.17.21") == ("lodash", "4.17.21")

    def test_split_scoped_uses_last_at(self):
        assert split_identifier("@types/node@18.0.0") == ("@types/node", "18.0.0")

    @pytest.mark.parametrize("bad", ["", "lodash", "@types/node", "lodash@"])
    def test_split_malformed(self, bad):
        with pytest.raises(MalformedCoordinate):
            split_identifier(bad)

    def test_make_identifier_requires_both_parts(self):
        with pytest.raises(MalformedCoordinate):
            make_identifier("lodash", "")

    def test_malformed_is_value_error(self):
        with pytest.raises(ValueError):
            split_identifier("nope")


class TestLedgerCoordinates:
    """New and legacy ledger layouts share one extraction."""

    def test_maven_new_format(self):
        assert normalize_ledger_coordinate("maven/mavencentral/com.google.guava/guava/32.1.2-jre") == "guava@32.1.2-jre"

    def test_maven_legacy_format(self):
        assert normalize_ledger_coordinate("cq/maven/mavencentral/com.google.guava/guava/32.1.2-jre") == "guava@32.1.2-jre"

    def test_npm_unscoped(self):
        assert normalize_ledger_coordinate("npm/npmjs/-/react/18.0.0") == "react@18.0.0"

    def test_npm_scoped(self):
        assert normalize_ledger_coordinate("npm/npmjs/@babel/core/7.28.4") == "@babel/core@7.28.4"

    def test_legacy_and_new_are_equivalent(self):
        legacy = parse_ledger_coordinate("cq/npm/npmjs/@babel/core/7.28.4")
        new = parse_ledger_coordinate("npm/npmjs/@babel/core/7.28.4")
        assert legacy.legacy is True
        assert new.legacy is False
        assert (legacy.type, legacy.namespace, legacy.name, legacy.revision) == (
            new.type, new.namespace, new.name, new.revision)

    @pytest.mark.parametrize("bad", ["npm/npmjs/-/react", "cq/npm/npmjs/-/react", "react@18.0.0", ""])
    def test_too_few_segments(self, bad):
        with pytest.raises(MalformedCoordinate):
            parse_ledger_coordinate(bad)

    def test_version_kept_verbatim(self):
        assert normalize_ledger_coordinate("npm/npmjs/-/pkg/1.0.0-beta.1+build.5") == "pkg@1.0.0-beta.1+build.5"


class TestMavenToolOutput:
    """Raw ``mvn dependency:list`` coordinates."""

    def test_round_trip_with_ledger(self):
        raw = normalize_maven_line("com.google.guava:guava:jar:32.1.2-jre:compile")
        ledger = normalize_ledger_coordinate("maven/mavencentral/com.google.guava/guava/32.1.2-jre")
        assert raw == ledger == "guava@32.1.2-jre"

    def test_classifier_form_uses_second_to_last_field(self):
        coord = parse_maven_line("io.netty:netty-transport-native-epoll:jar:linux-x86_64:4.1.100.Final:runtime")
        assert coord.version == "4.1.100.Final"
        assert coord.classifier == "linux-x86_64"
        assert coord.scope == "runtime"

    def test_scope_suffix_stripped(self):
        coord = parse_maven_line("org.slf4j:slf4j-api:jar:2.0.9:compile (optional)")
        assert coord.scope == "compile"

    def test_too_few_fields(self):
        with pytest.raises(MalformedCoordinate):
            parse_maven_line("org.slf4j:slf4j-api:2.0.9")

    def test_batch_skips_malformed_and_dedupes(self):
        identifiers, collisions = normalize_maven_lines([
            "org.slf4j:slf4j-api:jar:2.0.9:compile",
            "garbage",
            "",
            "org.slf4j:slf4j-api:jar:2.0.9:compile",
            "junit:junit:jar:4.13.2:test",
        ])
        assert identifiers == ["slf4j-api@2.0.9", "junit@4.13.2"]
        assert collisions == {}

    def test_batch_reports_group_collisions(self):
        identifiers, collisions = normalize_maven_lines([
            "org.one:core:jar:1.0:compile",
            "org.two:core:jar:1.0:compile",
        ])
        assert identifiers == ["core@1.0"]
        assert collisions == {"core@1.0": {"org.one", "org.two"}}


class TestNpmAndYarn:
    """npm identifiers and yarn protocol suffixes."""

    def test_parse_scoped(self):
        coord = parse_npm_identifier("@types/node@18.0.0")
        assert coord.scope == "@types"
        assert coord.name == "node"
        assert coord.version == "18.0.0"

    def test_parse_unscoped(self):
        coord = parse_npm_identifier("lodash@4.17.21")
        assert coord.scope is None

    def test_invalid_scope(self):
        with pytest.raises(MalformedCoordinate):
            parse_npm_identifier("@types@1.0.0")

    def test_rewrite_npm_suffix(self):
        assert rewrite_yarn_suffixes("lodash@npm:4.17.21") == "lodash@4.17.21"

    def test_rewrite_virtual_suffix(self):
        assert rewrite_yarn_suffixes("@emotion/react@virtual:abc123#npm:11.11.1") == "@emotion/react@11.11.1"

    def test_alias_parts(self):
        alias = parse_yarn_alias("@emotion/react@virtual:abc123#npm:11.11.1")
        assert alias.real_name == "@emotion/react"
        assert alias.real_version == "11.11.1"
        assert alias.alias_prefix == "virtual:abc123#npm:"

    def test_plain_key_has_no_alias(self):
        assert parse_yarn_alias("lodash@4.17.21") is None

    def test_normalize_yarn_key(self):
        assert normalize_yarn_key("@types/node@npm:18.0.0") == "@types/node@18.0.0"
        assert normalize_yarn_key("lodash@4.17.21") == "lodash@4.17.21"
