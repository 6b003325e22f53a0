"""Maven adapter (pom.xml, ``mvn dependency:list``)."""

from __future__ import annotations

import logging
import re
from typing import List, Tuple

from constants import Constants
from common.errors import MalformedCoordinate
from identity.normalizer import normalize_maven_lines, parse_maven_line

from .base import CollectedDependencies, OracleInput, PackageManagerBase, run_command

logger = logging.getLogger(__name__)

PROD_SCOPES = frozenset({"compile", "system", "provided", "runtime"})
DEV_SCOPES = frozenset({"test"})

_LOG_PREFIX_RE = re.compile(r"^.*?\[INFO\]\s*")
_MODULE_SUFFIX_RE = re.compile(r" -- .*$")


def clean_line(line: str) -> str:
    """Strip the ``[INFO]`` prefix and the `` -- module`` suffix."""
    return _MODULE_SUFFIX_RE.sub("", _LOG_PREFIX_RE.sub("", line)).strip()


def split_by_scope(output: str) -> Tuple[List[str], List[str]]:
    """Split ``mvn dependency:list`` output into (prod, dev) coordinate lines.

    Lines are cleaned, deduplicated and sorted; anything that is not a
    dependency coordinate with a known scope is dropped.
    """
    prod, dev = set(), set()
    for raw in output.splitlines():
        line = clean_line(raw)
        if not line:
            continue
        try:
            coord = parse_maven_line(line)
        except MalformedCoordinate:
            continue
        if coord.scope in PROD_SCOPES:
            prod.add(line)
        elif coord.scope in DEV_SCOPES:
            dev.add(line)
    return sorted(prod), sorted(dev)


class MvnProcessor(PackageManagerBase):
    """Maven projects, single or multi-module."""

    name = "mvn"
    project_file = Constants.POM_XML_FILE
    allow_empty_ledgers = True

    def list_dependencies(self) -> str:
        return run_command(["mvn", "dependency:list"], cwd=self.project_dir)

    def collect(self, work_dir: str) -> CollectedDependencies:
        logger.info("Generating list of dependencies using mvn (recursively)...")
        prod_lines, dev_lines = split_by_scope(self.list_dependencies())
        logger.info("Found %d production and %d development dependencies.",
                    len(prod_lines), len(dev_lines))
        if not prod_lines and not dev_lines:
            logger.warning("No dependencies found. This might indicate an issue with Maven configuration.")

        prod, prod_collisions = normalize_maven_lines(prod_lines)
        dev, dev_collisions = normalize_maven_lines(dev_lines)
        collisions = dict(prod_collisions)
        for identifier, groups in dev_collisions.items():
            collisions.setdefault(identifier, set()).update(groups)

        return CollectedDependencies(
            prod=prod,
            dev=dev,
            oracle_inputs=[
                OracleInput(Constants.PROD_DEPENDENCIES_FILE, prod_lines),
                OracleInput(Constants.DEV_DEPENDENCIES_FILE, dev_lines),
            ],
            collisions=collisions,
        )
