from __future__ import annotations

import logging
import textwrap
from enum import Enum
from typing import Dict, List, Optional

from rich.text import Text
from textual import events
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, HorizontalScroll, Vertical
from textual.message import Message
from textual.reactive import reactive
from textual.widgets import Button, LoadingIndicator, Static
from textual.worker import Worker, WorkerState

from .browser import PageLoader
from .datamodels import (
    InvalidStoryURL,
    Story,
    WidgetConfiguration,
    WidgetPhase,
    WidgetState,
)
from .fetcher import StoryFetcher
from .screens import BrowserScreen
from .viewmodel import WidgetViewModel

logger = logging.getLogger("storeez")

CAPTION_MAX_LINES = 2


def truncate_caption(title: str, width: int, max_lines: int = CAPTION_MAX_LINES) -> str:
    """Wrap ``title`` to ``width`` columns, keeping at most ``max_lines`` lines."""
    lines = textwrap.wrap(title, width=max(width, 1)) or [""]
    if len(lines) <= max_lines:
        return "\n".join(lines)
    kept = lines[:max_lines]
    last = kept[-1]
    if len(last) >= width:
        last = last[: max(width - 1, 0)]
    kept[-1] = last.rstrip() + "…"
    return "\n".join(kept)


class ImagePhase(str, Enum):
    PENDING = "pending"
    LOADED = "loaded"
    FAILED = "failed"


# --- UI Widgets ---
class StoryPreview(Static):
    """Preview badge of a story; pending and failed loads show the placeholder."""

    DEFAULT_CSS = """
    StoryPreview {
        content-align: center middle;
    }
    """

    phase = reactive(ImagePhase.PENDING)

    def __init__(self, story: Story, fetcher: StoryFetcher, configuration: WidgetConfiguration):
        super().__init__(classes="story-preview")
        self.story = story
        self.fetcher = fetcher
        self.configuration = configuration

    def on_mount(self) -> None:
        size = self.configuration.image_size
        self.styles.width = size
        self.styles.height = max(3, size // 2)
        self.styles.border = ("round", self.configuration.stroke_color)
        self.update(self.render_phase(self.phase))
        self.run_worker(
            lambda: self.fetcher.fetch_preview(self.story.preview_url),
            name="preview_loader",
            thread=True,
        )

    def render_phase(self, phase: ImagePhase) -> Text:
        if phase is ImagePhase.LOADED:
            return Text("●", style=f"bold {self.configuration.stroke_color}")
        return Text(self.configuration.placeholder_asset, style="dim")

    def watch_phase(self, phase: ImagePhase) -> None:
        self.set_class(phase is ImagePhase.LOADED, "loaded")
        self.update(self.render_phase(phase))

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if getattr(event.worker, "name", None) != "preview_loader":
            return
        event.stop()
        if event.state is WorkerState.SUCCESS:
            self.phase = ImagePhase.LOADED if event.worker.result else ImagePhase.FAILED
        elif event.state in (WorkerState.ERROR, WorkerState.CANCELLED):
            self.phase = ImagePhase.FAILED


class StoryCell(Vertical):
    """One tappable story: preview and caption act as a single target."""

    DEFAULT_CSS = """
    StoryCell {
        width: auto;
        height: auto;
        padding: 0 1;
    }
    StoryCell:focus {
        background: $boost;
    }
    StoryCell .story-caption {
        text-align: center;
    }
    """

    can_focus = True

    BINDINGS = [Binding("enter,space", "select", "Open story", show=False)]

    class Selected(Message):
        def __init__(self, story: Story) -> None:
            self.story = story
            super().__init__()

    def __init__(self, story: Story, fetcher: StoryFetcher, configuration: WidgetConfiguration):
        super().__init__(classes="story-cell")
        self.story = story
        self.fetcher = fetcher
        self.configuration = configuration

    def compose(self) -> ComposeResult:
        yield StoryPreview(self.story, self.fetcher, self.configuration)
        caption = Static(
            truncate_caption(self.story.title, self.configuration.text_width),
            classes="story-caption",
        )
        caption.styles.width = self.configuration.text_width
        caption.styles.max_height = CAPTION_MAX_LINES
        yield caption

    def on_click(self, event: events.Click) -> None:
        event.stop()
        self.action_select()

    def action_select(self) -> None:
        self.post_message(self.Selected(self.story))


class ErrorMessage(Static):
    def __init__(self, message: str, **kwargs):
        super().__init__(Text(message, style="bold red"), **kwargs)


class StatusBar(Static):
    loading_status = reactive("")
    keybinding_hint = reactive("")

    def on_mount(self) -> None:
        self.update_display()

    def set_keybindings(self, hint: str) -> None:
        """Set the keybinding hint text."""
        self.keybinding_hint = hint

    def update_display(self) -> None:
        status_items = []
        if self.loading_status:
            status_items.append(self.loading_status)
        if self.keybinding_hint:
            status_items.append(self.keybinding_hint)
        self.update(" | ".join(status_items))

    def watch_loading_status(self, loading_status: str) -> None:
        self.update_display()

    def watch_keybinding_hint(self, keybinding_hint: str) -> None:
        self.update_display()


def render_state(
    state: WidgetState, fetcher: StoryFetcher, configuration: WidgetConfiguration
) -> List[StoryCell]:
    """Cells for the strip, one per item in state order."""
    return [StoryCell(story, fetcher, configuration) for story in state.items]


class StoreezWidget(Vertical):
    """Horizontally scrolling strip of stories backed by a ``WidgetViewModel``."""

    DEFAULT_CSS = """
    StoreezWidget {
        height: auto;
    }
    StoreezWidget #storeez-loading {
        height: 3;
    }
    StoreezWidget #storeez-error {
        height: auto;
    }
    StoreezWidget #storeez-strip {
        height: auto;
    }
    """

    BINDINGS = [Binding("r", "retry", "Retry")]

    class StateChanged(Message):
        def __init__(self, state: WidgetState) -> None:
            self.state = state
            super().__init__()

    def __init__(
        self,
        widget_id: str,
        fetcher: Optional[StoryFetcher] = None,
        configuration: Optional[WidgetConfiguration] = None,
        page_loader: Optional[PageLoader] = None,
        **kwargs,
    ):
        if not widget_id or not widget_id.strip():
            raise ValueError("widget_id must be a non-empty identifier")
        super().__init__(**kwargs)
        self.widget_id = widget_id
        self.fetcher = fetcher or StoryFetcher()
        self.configuration = configuration or WidgetConfiguration()
        self.page_loader = page_loader
        self.view_model = WidgetViewModel(widget_id)
        self._worker_tokens: Dict[Worker, int] = {}
        self._rendered_items: Optional[tuple] = None
        self._browser_shown = False

    @property
    def state(self) -> WidgetState:
        return self.view_model.state

    def compose(self) -> ComposeResult:
        yield LoadingIndicator(id="storeez-loading")
        with Horizontal(id="storeez-error"):
            yield ErrorMessage("Couldn't load stories.")
            yield Button("Retry", id="storeez-retry")
        yield HorizontalScroll(id="storeez-strip")

    def on_mount(self) -> None:
        self.view_model.subscribe(self._apply_state)
        self.reload()

    def reload(self) -> None:
        """Remount: start a fresh fetch; older in-flight results are discarded."""
        token = self.view_model.on_mount()
        worker = self.run_worker(
            lambda: self.fetcher.fetch(self.widget_id),
            name="stories_loader",
            group="storeez-stories",
            exclusive=True,
            thread=True,
        )
        self._worker_tokens[worker] = token

    def action_retry(self) -> None:
        if self.view_model.state.phase is not WidgetPhase.ERROR:
            return
        self.reload()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "storeez-retry":
            event.stop()
            self.action_retry()

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if getattr(event.worker, "name", None) != "stories_loader":
            return
        if event.state in (WorkerState.PENDING, WorkerState.RUNNING):
            return
        token = self._worker_tokens.pop(event.worker, None)
        if token is None:
            return
        if event.state is WorkerState.SUCCESS:
            self.view_model.on_fetch_result(token, event.worker.result)
        elif event.state is WorkerState.ERROR:
            logger.error("Stories worker failed: %s", event.worker.error)
            self.view_model.on_fetch_result(token, None)

    def on_story_cell_selected(self, event: StoryCell.Selected) -> None:
        event.stop()
        try:
            self.view_model.on_story_selected(event.story)
        except InvalidStoryURL as e:
            logger.warning("Refusing to open story %s: %s", event.story.id, e)
            self.app.notify(f"Can't open this story: {e}", severity="error")

    def _apply_state(self, state: WidgetState) -> None:
        self.query_one("#storeez-loading").display = state.phase is WidgetPhase.LOADING
        self.query_one("#storeez-error").display = state.phase is WidgetPhase.ERROR
        strip = self.query_one("#storeez-strip", HorizontalScroll)
        strip.display = state.phase in (WidgetPhase.LOADED, WidgetPhase.BROWSER_OPEN)

        if state.items is not self._rendered_items:
            self._rendered_items = state.items
            strip.remove_children()
            strip.mount_all(render_state(state, self.fetcher, self.configuration))

        if state.browser_visible and not self._browser_shown:
            self._browser_shown = True
            self.app.push_screen(
                BrowserScreen(
                    state.selected_url,
                    loader=self.page_loader,
                    intercept_external_links=self.configuration.intercept_external_links,
                ),
                self._on_browser_dismissed,
            )

        self.post_message(self.StateChanged(state))

    def _on_browser_dismissed(self, last_url: Optional[str] = None) -> None:
        logger.debug("Browser closed at %s", last_url)
        self._browser_shown = False
        self.view_model.on_browser_closed()
