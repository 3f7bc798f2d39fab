from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import quote

import requests

from .config import API_BASE_URL, HTTP_TIMEOUT, REQUEST_HEADERS
from .datamodels import Story, WidgetResponse

logger = logging.getLogger("storeez")


def create_session() -> requests.Session:
    s = requests.Session()
    s.headers.update(REQUEST_HEADERS)
    return s


class StoryFetcher:
    """Fetches the stories configured for a widget.

    Every failure (transport, HTTP status, undecodable or wrongly shaped body)
    is logged and reported as ``None``; callers treat that as "no data".
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        base_url: str = API_BASE_URL,
        timeout: float = HTTP_TIMEOUT,
    ):
        self.session = session or create_session()
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = timeout

    def endpoint_for(self, widget_id: str) -> str:
        if not widget_id or not widget_id.strip():
            raise ValueError("widget_id must be a non-empty identifier")
        return self.base_url + quote(widget_id, safe="")

    def fetch(self, widget_id: str) -> Optional[List[Story]]:
        url = self.endpoint_for(widget_id)
        try:
            logger.debug("Fetching widget %s from %s", widget_id, url)
            resp = self.session.get(url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.warning("Fetching widget %s failed: %s", widget_id, e)
            return None

        try:
            payload = resp.json()
        except ValueError as e:
            logger.error("Error decoding JSON for widget %s: %s", widget_id, e)
            return None

        try:
            response = WidgetResponse.from_api(payload)
        except ValueError as e:
            logger.error("Unexpected response shape for widget %s: %s", widget_id, e)
            return None

        logger.debug("Fetched %d stories for widget %s", len(response.stories), widget_id)
        return list(response.stories)

    def fetch_preview(self, url: str) -> Optional[bytes]:
        """Download a preview image; ``None`` if it is unreachable or not an image."""
        try:
            resp = self.session.get(url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.debug("Preview %s failed: %s", url, e)
            return None
        content_type = resp.headers.get("Content-Type", "")
        if not content_type.startswith("image/"):
            logger.debug("Preview %s is not an image (%s)", url, content_type)
            return None
        return resp.content
