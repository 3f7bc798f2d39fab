#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .app import StoreezApp
from .config import load_config, setup_logging, widget_configuration

logger = logging.getLogger("storeez")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Storeez stories widget")
    parser.add_argument("--widget-id", type=str, help="Widget identifier to load")
    parser.add_argument("--api-base-url", type=str, help="Override the Storeez API base URL")
    parser.add_argument(
        "--intercept-external-links",
        action="store_true",
        default=None,
        help="Open links to other sites in the system browser",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


# --- Entrypoint ---
def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    debug_path = setup_logging(args.debug)
    if debug_path:
        print(f"Debug logging enabled: {debug_path}", file=sys.stderr)

    config = load_config()
    if args.api_base_url:
        config["api_base_url"] = args.api_base_url

    widget_id = args.widget_id or config.get("widget_id")
    if not widget_id:
        print("No widget id given; pass --widget-id or set widget_id in the config.", file=sys.stderr)
        return 2

    configuration = widget_configuration(config).with_overrides(
        intercept_external_links=args.intercept_external_links
    )
    logger.info("Starting widget %s", widget_id)

    try:
        app = StoreezApp(widget_id, config=config, configuration=configuration)
        app.run()
    except Exception as e:
        logger.exception("Application crashed: %s", e)
        print(f"Application crashed: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
