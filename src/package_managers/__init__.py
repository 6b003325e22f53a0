"""Package-manager adapters.

- base.py: shared run flow (resolve, reconcile, drift check, exit code)
- mvn.py, npm.py, yarn.py, yarn3.py: one adapter per package manager
"""

import os
from typing import Optional

from constants import Constants, PackageManagers
from common.errors import AdapterError

from .base import CollectedDependencies, OracleInput, PackageManagerBase, RunSettings, run_command
from .mvn import MvnProcessor
from .npm import NpmProcessor
from .yarn import YarnProcessor
from .yarn3 import Yarn3Processor

ADAPTERS = {
    PackageManagers.MAVEN.value: MvnProcessor,
    PackageManagers.NPM.value: NpmProcessor,
    PackageManagers.YARN.value: YarnProcessor,
    PackageManagers.YARN3.value: Yarn3Processor,
}


def detect_package_manager(project_dir: str) -> Optional[str]:
    """Guess the package manager from the files present in ``project_dir``."""
    def exists(name: str) -> bool:
        return os.path.isfile(os.path.join(project_dir, name))

    if exists(Constants.POM_XML_FILE):
        return PackageManagers.MAVEN.value
    if exists(Constants.YARN_LOCK_FILE):
        if exists(Constants.YARNRC_YML_FILE):
            return PackageManagers.YARN3.value
        return PackageManagers.YARN.value
    if exists(Constants.PACKAGE_JSON_FILE):
        return PackageManagers.NPM.value
    return None


def get_adapter(name: str):
    """Return the adapter class for ``name``."""
    try:
        return ADAPTERS[name]
    except KeyError as exc:
        raise AdapterError(f"Unsupported package manager: {name}") from exc


__all__ = [
    "ADAPTERS",
    "detect_package_manager",
    "get_adapter",
    "CollectedDependencies",
    "OracleInput",
    "PackageManagerBase",
    "RunSettings",
    "run_command",
    "MvnProcessor",
    "NpmProcessor",
    "YarnProcessor",
    "Yarn3Processor",
]
