"""Canonical identifier normalization across Maven, npm and yarn coordinates.

Every ecosystem is reduced to the same identifier grammar:

    name@version            (unscoped npm package, Maven artifactId)
    @scope/name@version     (scoped npm package)

Versions are opaque: everything after the separator is kept verbatim.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional, Set, Tuple

from common.errors import MalformedCoordinate

from .models import LedgerCoordinate, MavenCoordinate, NpmCoordinate, YarnAlias

logger = logging.getLogger(__name__)

LEGACY_PREFIX = "cq"
LEDGER_SEGMENTS = 5
MAVEN_MIN_FIELDS = 5

_YARN_VIRTUAL_RE = re.compile(r"@(virtual:[^#\s]+#npm:)")
_YARN_NPM_RE = re.compile(r"@(npm:)")


def make_identifier(name: str, version: str) -> str:
    """Join a package name and version into an identifier."""
    if not name or not version:
        raise MalformedCoordinate(f"{name}@{version}", "name and version are required")
    return f"{name}@{version}"


def split_identifier(identifier: str) -> Tuple[str, str]:
    """Split ``[@scope/]name@version`` at the last ``@`` into (name, version)."""
    if not isinstance(identifier, str) or not identifier:
        raise MalformedCoordinate(str(identifier), "identifier must be a non-empty string")
    at = identifier.rfind("@")
    if at <= 0 or at == len(identifier) - 1:
        raise MalformedCoordinate(identifier, "invalid identifier format")
    return identifier[:at], identifier[at + 1:]


# ---------- Ledger coordinates ----------


def parse_ledger_coordinate(coordinate: str) -> LedgerCoordinate:
    """Parse ``[cq/]type/provider/namespace/name/revision``.

    The legacy layout carries one extra leading ``cq`` segment; it is detected
    here and stripped so both layouts share the same field positions.
    """
    segments = coordinate.strip().split("/")
    legacy = bool(segments) and segments[0] == LEGACY_PREFIX
    if legacy:
        segments = segments[1:]
    if len(segments) < LEDGER_SEGMENTS:
        raise MalformedCoordinate(coordinate, "too few coordinate segments")
    ctype, provider, namespace, name, revision = segments[:LEDGER_SEGMENTS]
    if not name or not revision:
        raise MalformedCoordinate(coordinate, "missing name or revision")
    return LedgerCoordinate(
        legacy=legacy,
        type=ctype,
        provider=provider,
        namespace=namespace or "-",
        name=name,
        revision=revision,
    )


def ledger_identifier(coord: LedgerCoordinate) -> str:
    """Extract the canonical identifier from a parsed ledger coordinate."""
    if coord.scoped:
        return make_identifier(f"{coord.namespace}/{coord.name}", coord.revision)
    # Unscoped npm ("-") and Maven (namespace is the groupId) both key on name
    return make_identifier(coord.name, coord.revision)


def normalize_ledger_coordinate(coordinate: str) -> str:
    """Normalize a ledger coordinate string straight to an identifier."""
    return ledger_identifier(parse_ledger_coordinate(coordinate))


# ---------- Maven tool output ----------


def parse_maven_line(line: str) -> MavenCoordinate:
    """Parse ``groupId:artifactId:packaging[:classifier]:version:scope``."""
    parts = [p.strip() for p in line.strip().split(":")]
    if len(parts) < MAVEN_MIN_FIELDS:
        raise MalformedCoordinate(line, "expected at least 5 colon-separated fields")
    scope_field = parts[-1].split()
    classifier = parts[3] if len(parts) > MAVEN_MIN_FIELDS else None
    coord = MavenCoordinate(
        group_id=parts[0],
        artifact_id=parts[1],
        packaging=parts[2],
        version=parts[-2],
        scope=scope_field[0] if scope_field else "",
        classifier=classifier,
    )
    if not coord.artifact_id or not coord.version:
        raise MalformedCoordinate(line, "missing artifactId or version")
    return coord


def normalize_maven_coordinate(coord: MavenCoordinate) -> str:
    return make_identifier(coord.artifact_id, coord.version)


def normalize_maven_line(line: str) -> str:
    return normalize_maven_coordinate(parse_maven_line(line))


def normalize_maven_lines(lines: Iterable[str]) -> Tuple[List[str], Dict[str, Set[str]]]:
    """Normalize many Maven entries, skipping malformed ones.

    Returns:
        (identifiers in input order without duplicates,
         identifier -> groupIds for identifiers claimed by several groups)
    """
    identifiers: List[str] = []
    groups: Dict[str, Set[str]] = {}
    for line in lines:
        if not line or not line.strip():
            continue
        try:
            coord = parse_maven_line(line)
        except MalformedCoordinate as exc:
            logger.debug("Skipping Maven entry: %s", exc)
            continue
        identifier = normalize_maven_coordinate(coord)
        if identifier not in groups:
            identifiers.append(identifier)
            groups[identifier] = set()
        groups[identifier].add(coord.group_id)
    collisions = {k: v for k, v in groups.items() if len(v) > 1}
    for identifier, group_ids in sorted(collisions.items()):
        logger.warning(
            "Identifier %s is claimed by several Maven groups: %s",
            identifier,
            ", ".join(sorted(group_ids)),
        )
    return identifiers, collisions


# ---------- npm / yarn ----------


def parse_npm_identifier(identifier: str) -> NpmCoordinate:
    """Split ``[@scope/]name@version`` into its npm parts."""
    full_name, version = split_identifier(identifier)
    if full_name.startswith("@"):
        scope, sep, name = full_name.partition("/")
        if not sep or not name or scope == "@":
            raise MalformedCoordinate(identifier, "invalid scoped package name")
        return NpmCoordinate(scope=scope, name=name, version=version)
    return NpmCoordinate(scope=None, name=full_name, version=version)


def normalize_npm_coordinate(coord: NpmCoordinate) -> str:
    if coord.scope:
        scope = coord.scope if coord.scope.startswith("@") else f"@{coord.scope}"
        return make_identifier(f"{scope}/{coord.name}", coord.version)
    return make_identifier(coord.name, coord.version)


def rewrite_yarn_suffixes(text: str) -> str:
    """Rewrite ``@npm:`` and ``@virtual:<hash>#npm:`` suffixes to a plain ``@``."""
    return _YARN_NPM_RE.sub("@", _YARN_VIRTUAL_RE.sub("@", text))


def parse_yarn_alias(key: str) -> Optional[YarnAlias]:
    """Return the alias parts of a yarn key, or None when it has no npm suffix."""
    for pattern in (_YARN_VIRTUAL_RE, _YARN_NPM_RE):
        matches = list(pattern.finditer(key))
        if not matches:
            continue
        match = matches[-1]
        real_name = key[:match.start()]
        real_version = key[match.end():]
        if not real_name or not real_version:
            raise MalformedCoordinate(key, "invalid yarn package key")
        return YarnAlias(alias_prefix=match.group(1), real_name=real_name, real_version=real_version)
    return None


def normalize_yarn_key(key: str) -> str:
    """Normalize a yarn package key (with or without protocol suffix)."""
    alias = parse_yarn_alias(key.strip())
    if alias is not None:
        return make_identifier(alias.real_name, alias.real_version)
    return normalize_npm_coordinate(parse_npm_identifier(key.strip()))
