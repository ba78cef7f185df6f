#!/usr/bin/env python3
# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Print the configuration a process would run with.

This is the reference entry point for the builder: it is the only place that
turns a failed build into a non-zero exit.

Usage:
    flowctl -p 0 -n 2 -h node01:2101 node02:2101
    flowctl -n 4 --local --myappflag 5
"""

import logging
import sys
from typing import Optional, Sequence

import yaml

from flowctl.core.builder import build, print_usage
from flowctl.core.config import Configuration
from flowctl.core.errors import ConfigurationError
from flowctl.core.settings import load_settings


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def render_configuration(config: Configuration, remaining_args: Sequence[str]) -> str:
    """Render a configuration and its pass-through args as YAML."""
    document = {
        "configuration": config.to_dict(),
        "remaining_args": list(remaining_args),
    }
    return yaml.safe_dump(document, default_flow_style=False, sort_keys=False)


def main(argv: Optional[Sequence[str]] = None) -> int:
    setup_logging()
    args = list(sys.argv[1:] if argv is None else argv)

    try:
        settings = load_settings()
    except ConfigurationError as e:
        logging.error(f"Error: {e}")
        sys.exit(1)

    result = build(args, settings=settings)
    if not result.ok:
        # The builder has already logged the error
        if result.error.show_usage:
            print_usage()
        sys.exit(1)

    sys.stdout.write(render_configuration(result.configuration, result.remaining_args))
    return 0


if __name__ == "__main__":
    main()
