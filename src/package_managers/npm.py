"""npm adapter (package-lock.json plus installed node_modules metadata)."""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, Dict, List, Optional, Tuple

from constants import Constants
from common.errors import AdapterError, MalformedCoordinate
from identity.models import LicenseRecord
from identity.normalizer import make_identifier, split_identifier

from .base import CollectedDependencies, OracleInput, PackageManagerBase

logger = logging.getLogger(__name__)

_NODE_MODULES_SEP = "node_modules/"
_GIT_PREFIX_RE = re.compile(r"^git\+")
_GIT_SUFFIX_RE = re.compile(r"\.git$")


def _package_name_from_path(path: str) -> str:
    """Return the package name from a lockfile key (last node_modules segment)."""
    idx = path.rfind(_NODE_MODULES_SEP)
    if idx == -1:
        return path
    return path[idx + len(_NODE_MODULES_SEP):]


def parse_package_lock(lock: Dict[str, Any]) -> Tuple[List[str], List[str]]:
    """Split a package-lock ``packages`` map into (prod, dev) identifiers.

    The root entry and entries without a version (workspace links) are
    skipped. Order follows the lockfile, duplicates removed.
    """
    packages = lock.get("packages")
    if not isinstance(packages, dict):
        raise AdapterError("package-lock.json has no 'packages' section (lockfileVersion >= 2 required)")

    prod: Dict[str, None] = {}
    dev: Dict[str, None] = {}
    for key, meta in packages.items():
        if not key or not isinstance(meta, dict):
            continue
        version = meta.get("version")
        name = _package_name_from_path(key)
        if not isinstance(version, str) or not version or not name:
            logger.debug("Skipping lockfile entry without version: %s", key)
            continue
        identifier = make_identifier(name, version)
        if meta.get("dev") is True:
            dev[identifier] = None
        else:
            prod[identifier] = None
    return list(prod), list(dev)


def repository_url(repository: Any) -> Optional[str]:
    url = repository if isinstance(repository, str) else (
        repository.get("url") if isinstance(repository, dict) else None
    )
    if not url:
        return None
    return _GIT_SUFFIX_RE.sub("", _GIT_PREFIX_RE.sub("", url))


def license_from_manifest(manifest: Dict[str, Any], identifier: str) -> LicenseRecord:
    """Build a LicenseRecord from an installed package's package.json."""
    record = LicenseRecord(identifier)
    lic = manifest.get("license")
    if isinstance(lic, str):
        record.merge(lic)
    elif isinstance(lic, dict):
        record.merge(lic.get("type") or "")
    homepage = manifest.get("homepage")
    record.merge(url=homepage if isinstance(homepage, str) and homepage else repository_url(manifest.get("repository")))
    return record


class NpmProcessor(PackageManagerBase):
    """npm projects with a v2/v3 package-lock.json."""

    name = "npm"
    project_file = Constants.PACKAGE_JSON_FILE
    lock_file = Constants.PACKAGE_LOCK_FILE

    def read_json(self, path: str) -> Dict[str, Any]:
        try:
            with open(path, "r", encoding=self.settings.encoding) as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            raise AdapterError(f"Could not read {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise AdapterError(f"{path} does not contain a JSON object")
        return data

    def installed_license(self, identifier: str) -> LicenseRecord:
        """License metadata from node_modules/<name>/package.json, if installed."""
        try:
            name, _ = split_identifier(identifier)
        except MalformedCoordinate:
            return LicenseRecord(identifier)
        manifest_path = self.project_path(Constants.NODE_MODULES_DIR, name, Constants.PACKAGE_JSON_FILE)
        if not os.path.isfile(manifest_path):
            return LicenseRecord(identifier)
        try:
            with open(manifest_path, "r", encoding=self.settings.encoding) as fh:
                manifest = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            logger.debug("Unreadable manifest %s: %s", manifest_path, exc)
            return LicenseRecord(identifier)
        if not isinstance(manifest, dict):
            return LicenseRecord(identifier)
        return license_from_manifest(manifest, identifier)

    def collect(self, work_dir: str) -> CollectedDependencies:
        lock = self.read_json(self.project_path(Constants.PACKAGE_LOCK_FILE))
        prod, dev = parse_package_lock(lock)
        logger.info("Found %d production and %d development dependencies.", len(prod), len(dev))
        licenses = {identifier: self.installed_license(identifier) for identifier in prod + dev}
        return CollectedDependencies(
            prod=prod,
            dev=dev,
            oracle_inputs=[OracleInput(Constants.DEPENDENCIES_FILE, list(dict.fromkeys(prod + dev)))],
            licenses=licenses,
        )
