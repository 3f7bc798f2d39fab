from __future__ import annotations

from typing import Any, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Header, Static

from .config import API_BASE_URL, logger, widget_configuration
from .datamodels import WidgetConfiguration, WidgetPhase
from .fetcher import StoryFetcher
from .widgets import StatusBar, StoreezWidget

PHASE_STATUS = {
    WidgetPhase.LOADING: "Loading stories...",
    WidgetPhase.LOADED: "",
    WidgetPhase.ERROR: "Error loading stories.",
    WidgetPhase.BROWSER_OPEN: "",
}


class StoreezApp(App):
    """Host application that embeds a single story strip."""

    TITLE = "Storeez"
    SUB_TITLE = "Stories widget"

    CSS = """
    .pane-title {
        padding: 0 1;
        text-style: bold;
    }
    StatusBar {
        dock: bottom;
        height: 1;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("ctrl+r", "refresh", "Refresh"),
    ]

    def __init__(
        self,
        widget_id: str,
        config: Optional[dict[str, Any]] = None,
        fetcher: Optional[StoryFetcher] = None,
        configuration: Optional[WidgetConfiguration] = None,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.config = config or {}
        self.widget_id = widget_id
        self.fetcher = fetcher or StoryFetcher(
            base_url=self.config.get("api_base_url") or API_BASE_URL
        )
        self.configuration = configuration or widget_configuration(self.config)

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static("Stories", classes="pane-title")
        yield StoreezWidget(
            self.widget_id,
            fetcher=self.fetcher,
            configuration=self.configuration,
            id="storeez",
        )
        yield StatusBar()

    def on_mount(self) -> None:
        self.query_one(StatusBar).set_keybindings(
            "[b]click/enter[/] to open, [b]ctrl+r[/] to refresh, [b]q[/] to quit"
        )

    def on_storeez_widget_state_changed(self, event: StoreezWidget.StateChanged) -> None:
        state = event.state
        status = PHASE_STATUS[state.phase]
        if state.phase is WidgetPhase.LOADED:
            status = f"{len(state.items)} stories" if state.items else "No stories."
        self.query_one(StatusBar).loading_status = status
        logger.debug("Widget %s is %s", self.widget_id, state.phase.value)

    def action_refresh(self) -> None:
        self.query_one("#storeez", StoreezWidget).reload()
