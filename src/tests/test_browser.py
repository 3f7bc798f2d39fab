from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from storeez_widget.browser import (
    NavigationAction,
    PageLoader,
    decide_navigation,
    html_to_page,
    is_close_request,
    parse_host_message,
)

PAGE = "https://stories.test/s/1"


@pytest.mark.parametrize(
    "target, intercept, expected",
    [
        ("https://stories.test/s/2", False, NavigationAction.LOAD_IN_PLACE),
        ("https://stories.test/s/2", True, NavigationAction.LOAD_IN_PLACE),
        ("/s/3", True, NavigationAction.LOAD_IN_PLACE),
        ("https://shop.test/item", False, NavigationAction.LOAD_IN_PLACE),
        ("https://shop.test/item", True, NavigationAction.OPEN_EXTERNAL),
        ("mailto:hi@stories.test", False, NavigationAction.OPEN_EXTERNAL),
        ("storeez://closeWindow", False, NavigationAction.CLOSE),
        ("storeez://closeWindow?url=https://shop.test", True, NavigationAction.CLOSE),
        ("storeez://openCart?url=https://shop.test", True, NavigationAction.IGNORE),
        ("storeez://openCart", False, NavigationAction.IGNORE),
    ],
)
def test_decide_navigation(target, intercept, expected):
    assert decide_navigation(PAGE, target, intercept) is expected


def test_parse_host_message():
    assert parse_host_message("https://stories.test") is None
    assert parse_host_message("storeez://closeWindow?url=https%3A%2F%2Fshop.test%2Fa") == {
        "name": "closeWindow",
        "url": "https://shop.test/a",
    }
    assert not is_close_request("storeez://somethingElse")


def test_html_to_page_resolves_links_and_messages():
    html = b"""
        <html><head><title>Spring sale</title><script>var x = 1;</script></head>
        <body>
            <h1>Spring sale</h1>
            <h2>Shoes</h2>
            <p>See the <a href="/catalog">catalog</a> or <a href="#top">top</a>.</p>
            <ul><li>Boots</li></ul>
            <button data-storeez-message="closeWindow">Done</button>
        </body></html>
    """
    page = html_to_page(html, "https://stories.test/s/1")
    assert page.ok
    assert page.title == "Spring sale"
    assert page.content.startswith("# Spring sale")
    assert "## Shoes" in page.content
    assert "[catalog](https://stories.test/catalog)" in page.content
    assert "- Boots" in page.content
    assert "var x" not in page.content
    assert "[Done](storeez://closeWindow)" in page.content


def test_page_loader_failure_is_a_page():
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("offline")
    page = PageLoader(session=session).load("https://stories.test/s/1")
    assert page.ok is False
    assert "offline" in page.content


def test_page_loader_uses_final_url():
    session = MagicMock()
    resp = MagicMock()
    resp.url = "https://stories.test/final"
    resp.content = b"<html><body><p>Hello there</p><a href='next'>next</a></body></html>"
    session.get.return_value = resp
    page = PageLoader(session=session).load("https://stories.test/start")
    assert page.url == "https://stories.test/final"
    assert "[next](https://stories.test/next)" in page.content
