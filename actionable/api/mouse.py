"""
Mouse: raw pointer input in page coordinates. Like the keyboard there is no
target element, so nothing waits for actionability.

Unknown buttons or a click_count below 1 raise ValueError (pydantic) before
any input is dispatched.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..engine.options import RawClickOptions, RawMouseOptions, RawMoveOptions
from ..engine.performer import Performer
from ..io.driver import Point

if TYPE_CHECKING:
    from .page import Page


class Mouse:
    def __init__(self, page: Page) -> None:
        self._page = page
        # last point this facade moved to; move(steps=N) interpolates from it
        self.position = Point(0, 0)

    async def move(self, x: float, y: float, **options: Any) -> None:
        o = RawMoveOptions.model_validate(options)
        start = self.position
        for i in range(1, o.steps + 1):
            px = start.x + (x - start.x) * i / o.steps
            py = start.y + (y - start.y) * i / o.steps
            await self._page.driver.mouse_move(self._page.ctx, px, py)
        self.position = Point(x, y)

    async def down(self, **options: Any) -> None:
        o = RawMouseOptions.model_validate(options)
        await self._page.driver.mouse_down(self._page.ctx, button=o.button, click_count=o.click_count)

    async def up(self, **options: Any) -> None:
        o = RawMouseOptions.model_validate(options)
        await self._page.driver.mouse_up(self._page.ctx, button=o.button, click_count=o.click_count)

    async def click(self, x: float, y: float, **options: Any) -> None:
        o = RawClickOptions.model_validate(options)
        performer = Performer(self._page.driver, self._page.ctx)
        await performer.click_at(Point(x, y), button=o.button, click_count=o.click_count, delay=o.delay)
        self.position = Point(x, y)

    async def dblclick(self, x: float, y: float, **options: Any) -> None:
        if "click_count" in options:
            raise ValueError("dblclick does not take click_count")
        await self.click(x, y, click_count=2, **options)

    async def wheel(self, delta_x: float, delta_y: float) -> None:
        await self._page.driver.mouse_wheel(self._page.ctx, delta_x, delta_y)
