#!/usr/bin/env python3
"""Extract the styles of one server version into ./styles/<version>/."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence

from server_styles.config import StylesConfig
from server_styles.exceptions import ConfigValidationError, MissingVersionArgument
from server_styles.logging_config import add_logging_args, configure_logging
from server_styles.pipeline import run_pipeline

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_MISSING_VERSION = 1
EXIT_FAILED = 2


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Extract compiled styles, icons and theme images of a server version.",
    )
    parser.add_argument(
        "version",
        nargs="?",
        default="",
        help="Server version or branch to extract (e.g. 28.0 or master).",
    )
    add_logging_args(parser)
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(level=args.log_level, fmt=args.log_format)

    version = (args.version or "").strip()
    try:
        config = StylesConfig.from_env(version) if version else None
        result = run_pipeline(version, config=config)
    except MissingVersionArgument as exc:
        logger.error("%s", exc.message)
        return EXIT_MISSING_VERSION
    except ConfigValidationError as exc:
        logger.error("%s", exc.message)
        return EXIT_FAILED

    if result.is_ok:
        logger.info("Styles written to %s", result.extras.get("output_dir"))
        return EXIT_OK
    logger.error("Extraction failed (%s): %s", result.error, result.message)
    return EXIT_FAILED


if __name__ == "__main__":
    raise SystemExit(main())
