from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urljoin, urlparse

import requests
from bs4 import BeautifulSoup

from .config import CLOSE_WINDOW_URL, HTTP_TIMEOUT, MESSAGE_SCHEME, PAGE_HEADERS
from .datamodels import Page

logger = logging.getLogger("storeez")


class NavigationAction(str, Enum):
    LOAD_IN_PLACE = "load_in_place"
    OPEN_EXTERNAL = "open_external"
    CLOSE = "close"
    IGNORE = "ignore"


def parse_host_message(url: str) -> Optional[Dict[str, Any]]:
    """Decode a ``storeez://<name>?...`` message posted by page content.

    Returns ``{"name": ..., "url": ...}`` or ``None`` for ordinary URLs.
    """
    parsed = urlparse(url)
    if parsed.scheme.lower() != MESSAGE_SCHEME:
        return None
    name = parsed.netloc or parsed.path.lstrip("/")
    params = parse_qs(parsed.query)
    target = params.get("url", [None])[0]
    return {"name": name, "url": target}


def is_close_request(url: str) -> bool:
    return url.split("?", 1)[0] == CLOSE_WINDOW_URL


def decide_navigation(
    current_url: str, target_url: str, intercept_external_links: bool
) -> NavigationAction:
    if is_close_request(target_url):
        return NavigationAction.CLOSE
    message = parse_host_message(target_url)
    if message is not None:
        logger.debug("Ignoring unknown host message %r", message["name"])
        return NavigationAction.IGNORE
    target = urlparse(urljoin(current_url, target_url))
    if target.scheme.lower() not in ("http", "https"):
        return NavigationAction.OPEN_EXTERNAL
    if intercept_external_links:
        current_host = (urlparse(current_url).hostname or "").lower()
        if (target.hostname or "").lower() != current_host:
            return NavigationAction.OPEN_EXTERNAL
    return NavigationAction.LOAD_IN_PLACE


class PageLoader:
    """Fetches pages for the in-app browser and flattens them to Markdown."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = HTTP_TIMEOUT):
        if session is None:
            session = requests.Session()
            session.headers.update(PAGE_HEADERS)
        self.session = session
        self.timeout = timeout

    def load(self, url: str) -> Page:
        try:
            logger.debug("Loading page %s", url)
            resp = self.session.get(url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.warning("Failed to load page %s: %s", url, e)
            return Page(url=url, ok=False, content=f"Unable to load page: {e}")
        final_url = getattr(resp, "url", None) or url
        try:
            return html_to_page(resp.content, final_url)
        except Exception as e:
            logger.error("Failed to parse page %s: %s", url, e)
            return Page(url=final_url, ok=False, content="Could not render this page.")


def html_to_page(content: bytes, url: str) -> Page:
    soup = BeautifulSoup(content, "lxml")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()

    for el in soup.select("[data-storeez-message]"):
        name = el.get("data-storeez-message", "").strip()
        if not name:
            continue
        target = f"{MESSAGE_SCHEME}://{name}"
        text = el.get_text(" ", strip=True) or name
        if el.find_parent(["p", "li", "blockquote"]) is None:
            replacement = soup.new_tag("p")
            replacement.string = f"[{text}]({target})"
        else:
            replacement = soup.new_string(f"[{text}]({target})")
        el.replace_with(replacement)

    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        if not href or href.startswith("#") or href.lower().startswith("javascript:"):
            a.unwrap()
            continue
        target = href if parse_host_message(href) else urljoin(url, href)
        text = a.get_text(" ", strip=True) or target
        a.replace_with(soup.new_string(f"[{text}]({target})"))

    title = soup.title.get_text(strip=True) if soup.title else ""
    body = soup.body or soup
    parts: List[str] = []
    if title:
        parts.append(f"# {title}")
    for el in body.find_all(["h1", "h2", "h3", "p", "li", "blockquote"]):
        text = el.get_text(" ", strip=True)
        if not text:
            continue
        if el.name == "h1" and text == title:
            continue
        prefix = {
            "h1": "# ",
            "h2": "## ",
            "h3": "### ",
            "li": "- ",
            "blockquote": "> ",
        }.get(el.name, "")
        parts.append(prefix + text)

    if len(parts) <= 1:
        text = body.get_text("\n", strip=True)
        if text:
            parts.append(text)

    return Page(url=url, ok=True, title=title, content="\n\n".join(parts))
