from __future__ import annotations

import logging
import webbrowser
from typing import Callable, List, Optional
from urllib.parse import urljoin

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, VerticalScroll
from textual.screen import Screen
from textual.widgets import Button, Footer, Header, LoadingIndicator, Markdown, Static
from textual.worker import Worker, WorkerState

from .browser import NavigationAction, PageLoader, decide_navigation, parse_host_message
from .datamodels import Page

logger = logging.getLogger("storeez")


# --- In-app browser ---
class BrowserScreen(Screen[str]):
    """Full screen page viewer with its own link navigation and history.

    Dismisses with the URL that was on screen when it closed.
    """

    DEFAULT_CSS = """
    BrowserScreen #browser-toolbar {
        height: 3;
    }
    BrowserScreen #browser-location {
        width: 1fr;
        content-align: left middle;
        padding: 0 1;
    }
    BrowserScreen #browser-loading {
        height: 3;
    }
    """

    BINDINGS = [
        Binding("escape", "close", "Close"),
        Binding("backspace", "back", "Back"),
        Binding("r", "reload", "Reload"),
        Binding("o", "open_external", "Open in browser"),
    ]

    def __init__(
        self,
        url: str,
        loader: Optional[PageLoader] = None,
        intercept_external_links: bool = False,
        open_external: Callable[[str], object] = webbrowser.open,
    ):
        super().__init__()
        self.url = url
        self.loader = loader or PageLoader()
        self.intercept_external_links = intercept_external_links
        self.open_external = open_external
        self.history: List[str] = []
        self.page: Optional[Page] = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="browser-toolbar"):
            yield Static(self.url, id="browser-location")
            yield Button("Close", id="browser-close")
        yield LoadingIndicator(id="browser-loading")
        yield VerticalScroll(
            Markdown("", id="page-markdown", open_links=False),
            id="page-scroll",
        )
        yield Footer()

    def on_mount(self) -> None:
        logger.debug("Browser opened at %s", self.url)
        self.title = self.url
        self.navigate(self.url, remember=False)

    def navigate(self, url: str, remember: bool = True) -> None:
        if remember and self.url != url:
            self.history.append(self.url)
        self.url = url
        self.query_one("#browser-location", Static).update(url)
        self.query_one("#browser-loading", LoadingIndicator).display = True
        self.query_one("#page-scroll").display = False
        self.run_worker(
            lambda: (url, self.loader.load(url)),
            name="page_loader",
            group="browser-pages",
            exclusive=True,
            thread=True,
        )

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if getattr(event.worker, "name", None) != "page_loader":
            return
        if event.state is WorkerState.SUCCESS:
            requested, page = event.worker.result
            if requested != self.url:
                return
            self._show_page(page)
        elif event.state is WorkerState.ERROR:
            logger.error("Page loader worker failed: %s", event.worker.error)
            self._show_page(Page(url=self.url, ok=False, content="Unable to load page."))

    def _show_page(self, page: Page) -> None:
        self.page = page
        self.query_one("#browser-loading", LoadingIndicator).display = False
        self.query_one("#page-scroll").display = True
        md = self.query_one("#page-markdown", Markdown)
        if page.ok:
            self.title = page.title or page.url
            md.update(page.content)
        else:
            md.update(f"**{page.content}**")

    def on_markdown_link_clicked(self, event: Markdown.LinkClicked) -> None:
        event.stop()
        self.follow_link(event.href)

    def follow_link(self, href: str) -> NavigationAction:
        current = self.page.url if self.page else self.url
        action = decide_navigation(current, href, self.intercept_external_links)
        if action is NavigationAction.CLOSE:
            message = parse_host_message(href) or {}
            if self.intercept_external_links and message.get("url"):
                self.open_external(message["url"])
            self.dismiss(self.url)
        elif action is NavigationAction.OPEN_EXTERNAL:
            target = urljoin(current, href)
            logger.debug("Handing %s to the external browser", target)
            self.open_external(target)
        elif action is NavigationAction.LOAD_IN_PLACE:
            self.navigate(urljoin(current, href))
        return action

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "browser-close":
            event.stop()
            self.action_close()

    def action_close(self) -> None:
        self.dismiss(self.url)

    def action_back(self) -> None:
        if self.history:
            self.navigate(self.history.pop(), remember=False)

    def action_reload(self) -> None:
        self.navigate(self.url, remember=False)

    def action_open_external(self) -> None:
        self.open_external(self.url)
