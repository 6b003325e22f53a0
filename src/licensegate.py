"""LicenseGate: dependency license reconciliation CLI.

Resolves a project's dependencies against the Eclipse dash-licenses oracle,
overlays the curated exclusions and writes the production/development reports
and the diagnostics document.
"""

import logging
import sys

from args import parse_args
from cli_config import build_settings, load_config, resolve_package_manager
from common.errors import LicenseGateError
from common.logging_utils import add_file_handler, configure_logging, extra_context, is_debug_enabled
from constants import ExitCodes
from package_managers import detect_package_manager, get_adapter


def main(argv=None):
    """Main function of the program."""
    logger = logging.getLogger(__name__)

    args = parse_args(argv)
    configure_logging("DEBUG" if args.DEBUG else args.LOG_LEVEL)
    if args.LOG_FILE:
        add_file_handler(args.LOG_FILE)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main")
        )

    try:
        config = load_config(args.CONFIG)
        settings = build_settings(args, config=config)
        package_manager = resolve_package_manager(args, config) or detect_package_manager(settings.project_dir)
        if package_manager is None:
            logger.error("Could not detect the package manager in %s; use --type.", settings.project_dir)
            sys.exit(ExitCodes.FAILURE.value)
        logger.info("Package manager: %s", package_manager)
        adapter = get_adapter(package_manager)(settings)
        code = adapter.run()
    except LicenseGateError as exc:
        logger.error("%s", exc)
        sys.exit(ExitCodes.FAILURE.value)

    sys.exit(code)


if __name__ == "__main__":
    main()
