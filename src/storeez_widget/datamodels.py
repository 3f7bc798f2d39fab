from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Mapping, Tuple
from urllib.parse import urlparse

from textual.color import Color, ColorParseError


class InvalidStoryURL(ValueError):
    """Raised when a story URL cannot be shown in the browser surface."""


def validate_story_url(url: str) -> str:
    if not isinstance(url, str) or not url.strip():
        raise InvalidStoryURL("Story URL is empty")
    parsed = urlparse(url.strip())
    if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
        raise InvalidStoryURL(f"Not an absolute http(s) URL: {url!r}")
    return url.strip()


# --- Data models ---
@dataclass(frozen=True)
class Story:
    id: str
    url: str
    title: str
    preview_url: str

    @classmethod
    def from_api(cls, data: Any) -> Story:
        """Build a story from one element of the ``stories`` array."""
        if not isinstance(data, dict):
            raise ValueError(f"Story entry is not an object: {data!r}")
        values = {}
        for key, wire_key in (
            ("id", "id"),
            ("url", "url"),
            ("title", "title"),
            ("preview_url", "previewUrl"),
        ):
            value = data.get(wire_key)
            if not isinstance(value, str):
                raise ValueError(f"Story field '{wire_key}' missing or not a string")
            values[key] = value
        return cls(**values)


@dataclass(frozen=True)
class WidgetResponse:
    stories: Tuple[Story, ...] = ()

    @classmethod
    def from_api(cls, payload: Any) -> WidgetResponse:
        if not isinstance(payload, dict):
            raise ValueError("Widget response is not an object")
        stories = payload.get("stories")
        if not isinstance(stories, list):
            raise ValueError("Widget response has no 'stories' list")
        return cls(stories=tuple(Story.from_api(s) for s in stories))


class WidgetPhase(str, Enum):
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"
    BROWSER_OPEN = "browser_open"


@dataclass(frozen=True)
class WidgetState:
    phase: WidgetPhase
    items: Tuple[Story, ...]
    selected_url: str
    browser_visible: bool = False


@dataclass(frozen=True)
class WidgetConfiguration:
    """Appearance and behaviour knobs shared by every widget instance."""

    image_size: int = 12
    stroke_color: str = "blue"
    text_width: int = 16
    placeholder_asset: str = "ico_placeholder"
    intercept_external_links: bool = False

    def __post_init__(self) -> None:
        if self.image_size <= 0 or self.text_width <= 0:
            raise ValueError("image_size and text_width must be positive")
        if not isinstance(self.stroke_color, str):
            raise ValueError("stroke_color must be a colour name or hex string")
        try:
            Color.parse(self.stroke_color)
        except ColorParseError as e:
            raise ValueError(f"Invalid stroke_color {self.stroke_color!r}: {e}") from e

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> WidgetConfiguration:
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {k: v for k, v in data.items() if k in known}
        return cls(**kwargs)

    def with_overrides(self, **overrides: Any) -> WidgetConfiguration:
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return WidgetConfiguration(**values)


@dataclass
class Page:
    url: str
    ok: bool
    title: str = ""
    content: str = ""
