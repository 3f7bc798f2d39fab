from __future__ import annotations

from typing import List, Optional

import pytest
from textual.app import App, ComposeResult
from textual.widgets import Static

from storeez_widget.datamodels import Page, Story, WidgetConfiguration, WidgetPhase
from storeez_widget.screens import BrowserScreen
from storeez_widget.widgets import (
    ImagePhase,
    StoreezWidget,
    StoryCell,
    StoryPreview,
    truncate_caption,
)

STORY = Story("1", "https://x.test", "T1", "https://img/1.png")


class FakeFetcher:
    def __init__(self, stories: Optional[List[Story]], preview: Optional[bytes] = None):
        self.stories = stories
        self.preview = preview
        self.calls: List[str] = []

    def fetch(self, widget_id: str) -> Optional[List[Story]]:
        self.calls.append(widget_id)
        return self.stories

    def fetch_preview(self, url: str) -> Optional[bytes]:
        return self.preview


class FakeLoader:
    def __init__(self):
        self.loaded: List[str] = []

    def load(self, url: str) -> Page:
        self.loaded.append(url)
        return Page(url=url, ok=True, title="Story", content="# Story\n\n[next](https://x.test/next)")


class WidgetApp(App):
    def __init__(self, widget: StoreezWidget):
        super().__init__()
        self.widget = widget

    def compose(self) -> ComposeResult:
        yield self.widget


async def settle(app: App, pilot) -> None:
    # Results mount new widgets that start workers of their own.
    for _ in range(3):
        await app.workers.wait_for_complete()
        await pilot.pause()


def test_truncate_caption():
    assert truncate_caption("T1", 10) == "T1"
    assert truncate_caption("one two three", 8) == "one two\nthree"
    caption = truncate_caption("alpha beta gamma delta epsilon", 10)
    lines = caption.split("\n")
    assert len(lines) == 2
    assert lines[-1].endswith("…")
    assert all(len(line) <= 10 for line in lines)


def test_widget_requires_an_id():
    with pytest.raises(ValueError):
        StoreezWidget("  ", fetcher=FakeFetcher([]))


async def test_fetch_renders_cells_and_selection_opens_browser():
    fetcher = FakeFetcher([STORY])
    loader = FakeLoader()
    widget = StoreezWidget("abc123", fetcher=fetcher, page_loader=loader)
    app = WidgetApp(widget)
    async with app.run_test() as pilot:
        await settle(app, pilot)
        assert fetcher.calls == ["abc123"]
        assert widget.state.phase is WidgetPhase.LOADED
        cells = list(widget.query(StoryCell))
        assert len(cells) == 1
        caption = cells[0].query_one(".story-caption", Static)
        assert caption.render_line(0).text.strip() == "T1"
        assert caption.render_line(1).text.strip() == ""

        cells[0].action_select()
        await settle(app, pilot)
        assert widget.state.browser_visible is True
        assert widget.state.selected_url == "https://x.test"
        assert isinstance(app.screen, BrowserScreen)
        assert loader.loaded == ["https://x.test"]

        await pilot.press("escape")
        await settle(app, pilot)
        assert not isinstance(app.screen, BrowserScreen)
        assert widget.state.phase is WidgetPhase.LOADED
        assert widget.state.items == (STORY,)


async def test_clicking_a_cell_selects_the_story():
    widget = StoreezWidget("abc123", fetcher=FakeFetcher([STORY]), page_loader=FakeLoader())
    app = WidgetApp(widget)
    async with app.run_test() as pilot:
        await settle(app, pilot)
        await pilot.click(StoryCell)
        await settle(app, pilot)
        assert widget.state.phase is WidgetPhase.BROWSER_OPEN


async def test_duplicate_ids_render_once():
    duplicate = Story("1", "https://dup.test", "Dup", "https://img/dup.png")
    widget = StoreezWidget("abc123", fetcher=FakeFetcher([STORY, duplicate]))
    app = WidgetApp(widget)
    async with app.run_test() as pilot:
        await settle(app, pilot)
        assert [c.story for c in widget.query(StoryCell)] == [STORY]


async def test_failed_fetch_shows_error_and_retry_recovers():
    fetcher = FakeFetcher(None)
    widget = StoreezWidget("abc123", fetcher=fetcher)
    app = WidgetApp(widget)
    async with app.run_test() as pilot:
        await settle(app, pilot)
        assert widget.state.phase is WidgetPhase.ERROR
        assert widget.state.items == ()
        assert widget.query_one("#storeez-error").display is True
        assert widget.query_one("#storeez-strip").display is False
        assert not list(widget.query(StoryCell))

        fetcher.stories = [STORY]
        widget.action_retry()
        await settle(app, pilot)
        assert widget.state.phase is WidgetPhase.LOADED
        assert fetcher.calls == ["abc123", "abc123"]
        assert widget.query_one("#storeez-error").display is False


async def test_reload_failing_behind_browser_shows_error_after_close():
    fetcher = FakeFetcher([STORY])
    widget = StoreezWidget("abc123", fetcher=fetcher, page_loader=FakeLoader())
    app = WidgetApp(widget)
    async with app.run_test() as pilot:
        await settle(app, pilot)
        widget.query_one(StoryCell).action_select()
        await settle(app, pilot)

        fetcher.stories = None
        widget.reload()
        await settle(app, pilot)
        assert widget.state.phase is WidgetPhase.BROWSER_OPEN

        await pilot.press("escape")
        await settle(app, pilot)
        assert widget.state.phase is WidgetPhase.ERROR
        assert widget.query_one("#storeez-error").display is True

        fetcher.stories = [STORY]
        widget.action_retry()
        await settle(app, pilot)
        assert widget.state.phase is WidgetPhase.LOADED


async def test_invalid_story_url_keeps_browser_closed():
    bad = Story("7", "not-a-url", "Broken", "https://img/7.png")
    widget = StoreezWidget("abc123", fetcher=FakeFetcher([bad]))
    app = WidgetApp(widget)
    async with app.run_test() as pilot:
        await settle(app, pilot)
        widget.query_one(StoryCell).action_select()
        await settle(app, pilot)
        assert widget.state.browser_visible is False
        assert not isinstance(app.screen, BrowserScreen)


async def test_preview_phases():
    configuration = WidgetConfiguration(placeholder_asset="no image")
    widget = StoreezWidget("abc123", fetcher=FakeFetcher([STORY]), configuration=configuration)
    app = WidgetApp(widget)
    async with app.run_test() as pilot:
        await settle(app, pilot)
        preview = widget.query_one(StoryPreview)
        assert preview.phase is ImagePhase.FAILED
        assert preview.render_phase(preview.phase).plain == "no image"
        assert preview.render_phase(ImagePhase.PENDING).plain == "no image"

    widget = StoreezWidget("abc123", fetcher=FakeFetcher([STORY], preview=b"\x89PNG"))
    app = WidgetApp(widget)
    async with app.run_test() as pilot:
        await settle(app, pilot)
        preview = widget.query_one(StoryPreview)
        assert preview.phase is ImagePhase.LOADED
        assert preview.has_class("loaded")
