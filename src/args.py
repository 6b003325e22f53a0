"""Argument parsing functionality for LicenseGate."""

import argparse
from constants import Constants


def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="licensegate",
        description=(
            "LicenseGate - Dependency license reconciliation against the Eclipse dash-licenses oracle"
        ),
        add_help=True,
    )

    parser.add_argument("-t", "--type",
                        dest="PACKAGE_TYPE",
                        help="Package Manager Type, i.e: mvn, npm, yarn, yarn3 (default: auto-detect)",
                        action="store", type=str,
                        choices=Constants.SUPPORTED_PACKAGES)
    parser.add_argument("-d", "--project-dir",
                        dest="PROJECT_DIR",
                        help="Project directory to analyze (default: current directory)",
                        action="store",
                        type=str)
    parser.add_argument("--deps-dir",
                        dest="DEPS_DIR",
                        help="Directory holding the committed reports and EXCLUDED overrides (default: <project>/.deps)",
                        action="store",
                        type=str)

    parser.add_argument("-b", "--batch-size",
                        dest="BATCH_SIZE",
                        help=f"Identifiers per oracle invocation (default: {Constants.BATCH_SIZE})",
                        action="store",
                        type=int)
    parser.add_argument("--max-retries",
                        dest="MAX_RETRIES",
                        help=f"Attempts per chunk before aborting (default: {Constants.MAX_RETRIES})",
                        action="store",
                        type=int)
    parser.add_argument("--retry-delay",
                        dest="RETRY_DELAY",
                        help=f"Seconds to wait between attempts (default: {Constants.RETRY_DELAY_SEC})",
                        action="store",
                        type=float)
    parser.add_argument("--oracle-timeout",
                        dest="ORACLE_TIMEOUT",
                        help=f"Seconds before one oracle invocation is killed (default: {Constants.ORACLE_TIMEOUT_SEC})",
                        action="store",
                        type=float)
    parser.add_argument("--dash-licenses",
                        dest="DASH_LICENSES",
                        help="Path to the dash-licenses jar",
                        action="store",
                        type=str)

    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML)",
                        action="store",
                        type=str)

    parser.add_argument("--check",
                        dest="CHECK",
                        help="Verify the committed reports instead of rewriting them.",
                        action="store_true")
    parser.add_argument("--debug",
                        dest="DEBUG",
                        help="Keep intermediate files in <deps-dir>/tmp and log at DEBUG level.",
                        action="store_true")

    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
