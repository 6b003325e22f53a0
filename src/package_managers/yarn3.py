"""Yarn 3 (berry) adapter.

Relies on the yarn-plugin-licenses plugin for ``yarn licenses list``.
"""

from __future__ import annotations

import json
import logging
from typing import Dict, List

from constants import Constants
from common.errors import AdapterError, MalformedCoordinate
from identity.models import LicenseRecord
from identity.normalizer import normalize_yarn_key, rewrite_yarn_suffixes

from .base import CollectedDependencies, OracleInput, PackageManagerBase, run_command

logger = logging.getLogger(__name__)

NPM_MARKERS = ("@npm:", "@virtual:")


def is_npm_key(key: str) -> bool:
    return any(marker in key for marker in NPM_MARKERS)


def parse_info_names(output: str) -> List[str]:
    """Oracle input from ``yarn info --name-only ... --json``.

    Quotes are stripped and npm suffixes rewritten; entries resolved through
    any other protocol (workspace:, patch:, link:, ...) are dropped.
    """
    names: Dict[str, None] = {}
    for line in output.splitlines():
        entry = rewrite_yarn_suffixes(line.strip().replace('"', ""))
        if not entry or ":" in entry:
            continue
        names[entry] = None
    return list(names)


def parse_licenses_ndjson(output: str) -> Dict[str, LicenseRecord]:
    """Parse ``yarn licenses list -R --json`` into identifier -> LicenseRecord.

    Each line is ``{"value": <license>, "children": {<key>: {"children": {"url": ...}}}}``.

    Raises:
        AdapterError: If a line is not valid JSON.
    """
    records: Dict[str, LicenseRecord] = {}
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            event = json.loads(line)
        except json.JSONDecodeError as exc:
            raise AdapterError(f"Unexpected yarn licenses output: {line[:Constants.MAX_LOGGED_OUTPUT]}") from exc
        license_expr = event.get("value") or ""
        for key, child in (event.get("children") or {}).items():
            if not is_npm_key(key):
                continue
            try:
                identifier = normalize_yarn_key(key)
            except MalformedCoordinate as exc:
                logger.debug("Skipping yarn key: %s", exc)
                continue
            url = ((child or {}).get("children") or {}).get("url")
            records[identifier] = LicenseRecord(identifier, license_expr, url or None)
    return records


class Yarn3Processor(PackageManagerBase):
    """Yarn berry projects."""

    name = "yarn3"
    project_file = Constants.PACKAGE_JSON_FILE
    lock_file = Constants.YARN_LOCK_FILE

    def info_names(self) -> str:
        return run_command(
            ["yarn", "info", "--name-only", "--all", "--recursive", "--dependents", "--json"],
            cwd=self.project_dir,
        )

    def licenses_list(self, production: bool) -> str:
        cmd = ["yarn", "licenses", "list", "-R", "--json"]
        if production:
            cmd.insert(4, "--production")
        return run_command(cmd, cwd=self.project_dir)

    def collect(self, work_dir: str) -> CollectedDependencies:
        oracle_lines = parse_info_names(self.info_names())
        licenses = parse_licenses_ndjson(self.licenses_list(production=False))
        if not licenses:
            raise AdapterError("yarn licenses list returned no dependencies")
        prod = sorted(parse_licenses_ndjson(self.licenses_list(production=True)))
        prod_set = set(prod)
        dev = [identifier for identifier in sorted(licenses) if identifier not in prod_set]
        logger.info("Found %d production and %d development dependencies.", len(prod), len(dev))
        return CollectedDependencies(
            prod=prod,
            dev=dev,
            oracle_inputs=[OracleInput(Constants.DEPENDENCIES_FILE, oracle_lines)],
            licenses=licenses,
        )
