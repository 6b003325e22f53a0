"""Constants used in the project."""

import logging
import os
from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FAILURE = 1
    USAGE_ERROR = 2


class PackageManagers(Enum):
    """Package managers supported by the program.

    Args:
        Enum (string): Package managers supported by the program.
    """

    MAVEN = "mvn"
    NPM = "npm"
    YARN = "yarn"
    YARN3 = "yarn3"


class LedgerStatus(Enum):
    """Status values written by the license oracle into the ledger."""

    APPROVED = "approved"
    RESTRICTED = "restricted"
    UNMAPPED = "unmapped"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    SUPPORTED_PACKAGES = [
        PackageManagers.MAVEN.value,
        PackageManagers.NPM.value,
        PackageManagers.YARN.value,
        PackageManagers.YARN3.value,
    ]
    ENCODING = "utf-8"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
    LOG_LEVEL_ENV = "LICENSEGATE_LOG_LEVEL"

    # Project files
    POM_XML_FILE = "pom.xml"
    PACKAGE_JSON_FILE = "package.json"
    PACKAGE_LOCK_FILE = "package-lock.json"
    YARN_LOCK_FILE = "yarn.lock"
    YARNRC_YML_FILE = ".yarnrc.yml"
    NODE_MODULES_DIR = "node_modules"

    # Layout of the .deps directory
    DEPS_DIR_NAME = ".deps"
    EXCLUSIONS_DIR_NAME = "EXCLUDED"
    TMP_DIR_NAME = "tmp"
    PROD_MD = "prod.md"
    DEV_MD = "dev.md"
    PROBLEMS_MD = "problems.md"
    DEPENDENCIES_FILE = "DEPENDENCIES"
    PROD_DEPENDENCIES_FILE = "PROD_DEPENDENCIES"
    DEV_DEPENDENCIES_FILE = "DEV_DEPENDENCIES"

    # Report titles
    PROD_TITLE = "Production dependencies"
    DEV_TITLE = "Development dependencies"
    PROBLEMS_TITLE = "Dependency analysis"

    # Oracle (Eclipse dash-licenses) tunables
    BATCH_SIZE = 500
    MAX_RETRIES = 3
    RETRY_DELAY_SEC = 10
    ORACLE_TIMEOUT_SEC = 1800
    DASH_LICENSES_JAR = "dash-licenses.jar"
    ORACLE_COMMAND = [
        "java", "-jar", "{jar}",
        "-batch", "{batch_size}",
        "-summary", "{output}",
        "-",
    ]
    CLEARLYDEFINED_URL = "https://clearlydefined.io/definitions"
    CLEARLYDEFINED_SOURCE = "clearlydefined"

    # Package-manager subprocess output cap in the logs
    MAX_LOGGED_OUTPUT = 200

    CONFIG_FILE_LOCATIONS = [
        "licensegate.yml",
        ".licensegate.yml",
        os.path.join("~", ".config", "licensegate", "licensegate.yml"),
    ]

    INFO_MSG = (
        "docker run \\\n"
        "    -v $(pwd):/workspace/project \\\n"
        "    quay.io/che-incubator/dash-licenses:next"
    )


def _load_yaml_config():
    """Return the first default YAML config found, or an empty dict."""
    # pylint: disable=import-outside-toplevel
    import yaml

    for candidate in Constants.CONFIG_FILE_LOCATIONS:
        path = os.path.expanduser(candidate)
        if not os.path.isfile(path):
            continue
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh) or {}
        except (OSError, yaml.YAMLError) as exc:
            logging.getLogger(__name__).warning("Ignoring unreadable config %s: %s", path, exc)
            continue
        if isinstance(data, dict):
            logging.getLogger(__name__).debug("Loaded default config from %s", path)
            return data
    return {}
