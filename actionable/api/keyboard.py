"""
Keyboard: raw key input on the focused element. No actionability applies
because there is no target element.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..engine.performer import Performer, resolve_modifier

if TYPE_CHECKING:
    from .page import Page


class Keyboard:
    def __init__(self, page: Page) -> None:
        self._page = page

    @property
    def _performer(self) -> Performer:
        return Performer(self._page.driver, self._page.ctx)

    async def down(self, key: str) -> None:
        await self._page.driver.key_down(self._page.ctx, resolve_modifier(key))

    async def up(self, key: str) -> None:
        await self._page.driver.key_up(self._page.ctx, resolve_modifier(key))

    async def press(self, key: str, *, delay: float = 0) -> None:
        """Key combos such as "Control+A" hold the modifiers around the main key."""
        await self._performer.press_key(key, delay=delay)

    async def type(self, text: str, *, delay: float = 0) -> None:
        await self._performer.type_text(text, delay=delay)

    async def insert_text(self, text: str) -> None:
        await self._page.driver.insert_text(self._page.ctx, text)
