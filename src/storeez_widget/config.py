from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from typing import Any, Dict, Optional

from .datamodels import WidgetConfiguration

# --- Configuration ---
API_BASE_URL = "https://api.storeez.app/widget/"
HOME_URL = "https://google.com"
CLOSE_WINDOW_MESSAGE = "closeWindow"
MESSAGE_SCHEME = "storeez"
CLOSE_WINDOW_URL = f"{MESSAGE_SCHEME}://{CLOSE_WINDOW_MESSAGE}"
HTTP_TIMEOUT = 15

CONFIG_PATH = os.path.expanduser("~/.config/storeez/config.json")

REQUEST_HEADERS = {
    "User-Agent": "StoreezWidget/0.1 (+https://storeez.app)",
    "Accept": "application/json",
}
PAGE_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:115.0) "
        "Gecko/20100101 Firefox/115.0"
    )
}

# --- Logging ---
logger = logging.getLogger("storeez")


def setup_logging(debug: bool = False) -> Optional[str]:
    """Configure logging."""
    if not debug:
        logging.basicConfig(level=logging.CRITICAL, handlers=[logging.NullHandler()])
        return None

    ts = datetime.now().strftime("%Y%m%dT%H%M%S")
    pid = os.getpid()
    debug_path = f"/tmp/storeez_debug_{ts}_{pid}.log"

    logging.basicConfig(
        level=logging.DEBUG,
        filename=debug_path,
        filemode="a",
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )

    logger.debug("Debug logging enabled to %s", debug_path)
    return debug_path


def load_config(path: str = CONFIG_PATH) -> Dict[str, Any]:
    """Load the configuration file, returning an empty config if it is unusable."""
    if not os.path.exists(path):
        logger.info("No config file at %s, using defaults.", path)
        return {}
    try:
        with open(path, "r") as f:
            config = json.load(f)
    except (IOError, json.JSONDecodeError) as e:
        logger.error("Failed to load config from %s: %s", path, e)
        return {}
    if not isinstance(config, dict):
        logger.error("Config in %s is not an object, ignoring it.", path)
        return {}
    logger.info("Loaded config from %s", path)
    return config


def widget_configuration(config: Dict[str, Any]) -> WidgetConfiguration:
    """Build the widget appearance from the ``widget`` block of the config."""
    widget_block = config.get("widget", {})
    if not isinstance(widget_block, dict):
        logger.warning("Ignoring malformed 'widget' config block: %r", widget_block)
        return WidgetConfiguration()
    try:
        return WidgetConfiguration.from_dict(widget_block)
    except (TypeError, ValueError) as e:
        logger.warning("Invalid widget configuration, using defaults: %s", e)
        return WidgetConfiguration()
