"""Yarn v1 (classic) adapter."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterator, List

from constants import Constants
from common.errors import AdapterError, MalformedCoordinate
from identity.models import LicenseRecord
from identity.normalizer import make_identifier, rewrite_yarn_suffixes

from .base import CollectedDependencies, OracleInput, PackageManagerBase, run_command

logger = logging.getLogger(__name__)

UNKNOWN_URL = "Unknown"
YARN_FLAGS = ["--ignore-engines", "--json", "--depth=0", "--no-progress"]


def iter_json_events(output: str) -> Iterator[Dict[str, Any]]:
    """Yield the JSON objects of yarn's line-delimited ``--json`` output."""
    for line in output.splitlines():
        line = line.strip()
        if not line.startswith("{"):
            continue
        try:
            event = json.loads(line)
        except json.JSONDecodeError:
            logger.debug("Skipping non-JSON yarn output: %s", line[:Constants.MAX_LOGGED_OUTPUT])
            continue
        if isinstance(event, dict):
            yield event


def parse_licenses_table(output: str) -> Dict[str, LicenseRecord]:
    """Parse ``yarn licenses list --json`` into identifier -> LicenseRecord.

    Raises:
        AdapterError: If the output holds no license table.
    """
    for event in iter_json_events(output):
        if event.get("type") != "table":
            continue
        data = event.get("data") or {}
        head = data.get("head") or []
        try:
            name_i, version_i = head.index("Name"), head.index("Version")
            license_i, url_i = head.index("License"), head.index("URL")
        except ValueError as exc:
            raise AdapterError(f"Unexpected yarn licenses table header: {head}") from exc
        records: Dict[str, LicenseRecord] = {}
        for row in data.get("body") or []:
            try:
                identifier = rewrite_yarn_suffixes(make_identifier(row[name_i], row[version_i]))
                license_expr, url = row[license_i], row[url_i]
            except (MalformedCoordinate, IndexError, TypeError) as exc:
                logger.debug("Skipping yarn row %r: %s", row, exc)
                continue
            records[identifier] = LicenseRecord(
                identifier, license_expr or "", url if url != UNKNOWN_URL else None
            )
        return records
    raise AdapterError("yarn licenses list produced no license table")


def parse_list_tree(output: str) -> List[str]:
    """Identifiers from ``yarn list --json`` (``data.trees[].name``), sorted."""
    names = set()
    for event in iter_json_events(output):
        if event.get("type") != "tree":
            continue
        for entry in (event.get("data") or {}).get("trees") or []:
            name = entry.get("name") if isinstance(entry, dict) else None
            if name:
                names.add(rewrite_yarn_suffixes(name))
    return sorted(names)


class YarnProcessor(PackageManagerBase):
    """Yarn classic projects."""

    name = "yarn"
    project_file = Constants.PACKAGE_JSON_FILE
    lock_file = Constants.YARN_LOCK_FILE

    def licenses_list(self) -> str:
        return run_command(
            ["yarn", "licenses", "list", *YARN_FLAGS, "--network-timeout", "300000"],
            cwd=self.project_dir,
        )

    def list_tree(self, production: bool) -> str:
        cmd = ["yarn", "list", *YARN_FLAGS]
        if production:
            cmd.append("--prod")
        return run_command(cmd, cwd=self.project_dir)

    def collect(self, work_dir: str) -> CollectedDependencies:
        logger.info("Generating all dependencies info using yarn...")
        licenses = parse_licenses_table(self.licenses_list())
        prod = parse_list_tree(self.list_tree(production=True))
        every = parse_list_tree(self.list_tree(production=False))
        prod_set = set(prod)
        dev = [identifier for identifier in every if identifier not in prod_set]
        logger.info("Found %d production and %d development dependencies.", len(prod), len(dev))
        return CollectedDependencies(
            prod=prod,
            dev=dev,
            oracle_inputs=[OracleInput(Constants.DEPENDENCIES_FILE, sorted(licenses))],
            licenses=licenses,
        )
