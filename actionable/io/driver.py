"""
Page driver protocol (abstraction).

This Protocol is the opaque RPC boundary between the action engine and the
browser. The engine never assumes a wire format: it asks the driver for
element references, element facts, hit tests and raw input primitives, and
decides everything else (waiting, retrying, strictness) itself.

Notes:
- `ctx` represents an execution context for a sequence of actions.
  In the Playwright implementation it is a `Page` created via `new_context()`.
- Element references are opaque objects returned by `query_all()`; the engine
  only passes them back to the driver.
- Primitives never wait for actionability. Failures surface as ProtocolError,
  except that probing calls on an element whose document went away report the
  element as gone (None facts, no boxes, scroll_into_view False, an unattached
  HitTarget) so the scheduler retries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol, Sequence

from pydantic import BaseModel


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Box:
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    def offset(self, position: Point) -> Point:
        return Point(self.x + position.x, self.y + position.y)


@dataclass(frozen=True)
class ElementFacts:
    """Everything the prober needs about one node, read in a single round trip."""

    tag: str
    visible: bool
    enabled: bool
    editable: bool
    box: Box | None = None
    input_type: str | None = None
    checked: bool | None = None  # None when the element is not checkable
    multiple: bool = False
    content_editable: bool = False


@dataclass(frozen=True)
class HitTarget:
    """
    Result of hit-testing the action point; interceptor is None when the element
    receives it. attached is False when the element went away mid-probe.
    """

    point: Point
    interceptor: str | None = None
    attached: bool = True


class FilePayload(BaseModel):
    """In-memory file for set_input_files."""

    name: str
    mime_type: str = "application/octet-stream"
    buffer: bytes = b""


class SelectOption(BaseModel):
    """
    Option match criteria. Given fields must all match; value_or_label is set
    when the caller passed a plain string and matches either attribute.
    """

    value: str | None = None
    value_or_label: str | None = None
    label: str | None = None
    index: int | None = None


class CDPChannel(Protocol):
    """Raw protocol channel returned by PageDriver.new_cdp_session()."""

    async def send(self, method: str, params: dict[str, Any] | None = None) -> Any: ...
    def on(self, event: str, handler: Callable[[Any], Any]) -> Any: ...
    def remove_listener(self, event: str, handler: Callable[[Any], Any]) -> Any: ...
    async def detach(self) -> None: ...


class PageDriver(Protocol):
    # -------- lifecycle --------
    async def start(self) -> None: ...
    async def stop(self) -> None: ...
    async def new_context(self) -> Any: ...
    async def close_context(self, ctx: Any) -> None: ...

    # -------- navigation --------
    async def goto(self, ctx: Any, url: str, *, timeout_ms: float | None = None) -> None: ...
    def navigation_count(self, ctx: Any) -> int: ...
    async def wait_for_navigation(
        self, ctx: Any, after: int, *, state: str = "load", timeout_ms: float | None = None
    ) -> None: ...

    # -------- resolution --------
    async def query_all(self, ctx: Any, selector: str, *, root: Any | None = None) -> list[Any]: ...
    async def dispose(self, ctx: Any, ref: Any) -> None: ...

    # -------- probing --------
    async def element_facts(self, ctx: Any, ref: Any) -> ElementFacts | None: ...
    async def frame_boxes(self, ctx: Any, ref: Any) -> tuple[Box | None, Box | None]: ...
    async def scroll_into_view(self, ctx: Any, ref: Any) -> bool: ...
    async def hit_test(self, ctx: Any, ref: Any, position: Point | None = None) -> HitTarget: ...

    # -------- raw input --------
    async def mouse_move(self, ctx: Any, x: float, y: float) -> None: ...
    async def mouse_down(self, ctx: Any, *, button: str = "left", click_count: int = 1) -> None: ...
    async def mouse_up(self, ctx: Any, *, button: str = "left", click_count: int = 1) -> None: ...
    async def mouse_wheel(self, ctx: Any, delta_x: float, delta_y: float) -> None: ...
    async def tap(self, ctx: Any, x: float, y: float) -> None: ...
    async def key_down(self, ctx: Any, key: str) -> None: ...
    async def key_up(self, ctx: Any, key: str) -> None: ...
    async def insert_text(self, ctx: Any, text: str) -> None: ...
    async def focus(self, ctx: Any, ref: Any) -> None: ...

    # -------- value assignment --------
    async def set_value(self, ctx: Any, ref: Any, value: str) -> None: ...
    async def select_options(
        self, ctx: Any, ref: Any, criteria: Sequence[SelectOption], option_refs: Sequence[Any]
    ) -> list[str] | None: ...
    async def set_input_files(self, ctx: Any, ref: Any, files: Sequence[FilePayload]) -> None: ...

    # -------- reads --------
    async def text_content(self, ctx: Any, ref: Any) -> str | None: ...
    async def inner_text(self, ctx: Any, ref: Any) -> str: ...
    async def get_attribute(self, ctx: Any, ref: Any, name: str) -> str | None: ...
    async def input_value(self, ctx: Any, ref: Any) -> str: ...
    async def input_files(self, ctx: Any, ref: Any) -> list[str]: ...
    async def evaluate(self, ctx: Any, ref: Any, expression: str, arg: Any = None) -> Any: ...

    # -------- utilities --------
    async def screenshot(self, ctx: Any, path: str, *, full_page: bool = True) -> None: ...
    async def new_cdp_session(self, ctx: Any) -> CDPChannel: ...
