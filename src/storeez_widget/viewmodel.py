from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional, Tuple

from .config import HOME_URL
from .datamodels import (
    Story,
    WidgetPhase,
    WidgetState,
    validate_story_url,
)

logger = logging.getLogger("storeez")

StateListener = Callable[[WidgetState], None]


def unique_by_id(stories: Iterable[Story]) -> Tuple[Story, ...]:
    """Drop stories whose id was already seen, keeping the first one."""
    seen = set()
    out: List[Story] = []
    for s in stories:
        if s.id in seen:
            logger.debug("Dropping duplicate story id %s", s.id)
            continue
        seen.add(s.id)
        out.append(s)
    return tuple(out)


class WidgetViewModel:
    """Presentation state of one widget and the transitions between its phases.

    All methods must be called from the UI context. Fetch results are tagged
    with the generation token returned by ``on_mount`` so that a result from a
    superseded request never overwrites newer state.
    """

    def __init__(self, widget_id: str, home_url: str = HOME_URL):
        self.widget_id = widget_id
        self._phase = WidgetPhase.LOADING
        self._items: Tuple[Story, ...] = ()
        self._selected_url = home_url
        self._browser_visible = False
        self._generation = 0
        self._listeners: List[StateListener] = []

    @property
    def state(self) -> WidgetState:
        phase = WidgetPhase.BROWSER_OPEN if self._browser_visible else self._phase
        return WidgetState(
            phase=phase,
            items=self._items,
            selected_url=self._selected_url,
            browser_visible=self._browser_visible,
        )

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        state = self.state
        for listener in list(self._listeners):
            listener(state)

    def on_mount(self) -> int:
        self._generation += 1
        self._phase = WidgetPhase.LOADING
        logger.debug("Widget %s loading (generation %d)", self.widget_id, self._generation)
        self._notify()
        return self._generation

    def on_fetch_result(self, token: int, stories: Optional[Iterable[Story]]) -> bool:
        if token != self._generation:
            logger.debug(
                "Discarding stale result for widget %s (token %d, current %d)",
                self.widget_id,
                token,
                self._generation,
            )
            return False
        if stories is None:
            self._items = ()
            self._phase = WidgetPhase.ERROR
            logger.info("Widget %s has no data", self.widget_id)
        else:
            self._items = unique_by_id(stories)
            self._phase = WidgetPhase.LOADED
        self._notify()
        return True

    def on_story_selected(self, story: Story) -> None:
        # Raises InvalidStoryURL before any state changes.
        url = validate_story_url(story.url)
        self._selected_url = url
        self._browser_visible = True
        logger.debug("Opening story %s at %s", story.id, url)
        self._notify()

    def on_browser_closed(self) -> None:
        # Phase underneath the browser is kept (LOADED, or ERROR/LOADING after a reload).
        self._browser_visible = False
        self._notify()

    def retry(self) -> int:
        if self.state.phase is not WidgetPhase.ERROR:
            raise RuntimeError(f"Cannot retry from phase {self.state.phase.value}")
        return self.on_mount()
