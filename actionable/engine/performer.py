"""
Action performer: turns a ready element into exactly one input primitive.

Nothing here waits or retries. A failure while acting is final for the action;
the scheduler never re-enters its loop after the performer started.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any, Sequence

from ..core.errors import (
    ActionExecutionError,
    DetachedElementError,
    ElementNotActionable,
    NotActionableReason,
)
from ..io.driver import FilePayload, PageDriver, Point, SelectOption
from .options import ClickOptions, DblclickOptions, Modifier, PointerOptions
from .state import ActionabilityState

logger = logging.getLogger(__name__)

_MODIFIER_KEYS = {"Alt", "Control", "Meta", "Shift", "ControlOrMeta"}


def resolve_modifier(key: str) -> str:
    if key == "ControlOrMeta":
        return "Meta" if sys.platform == "darwin" else "Control"
    return key


def split_key_combo(key: str) -> tuple[list[str], str]:
    """'Control+Shift+T' -> (['Control', 'Shift'], 'T'); a trailing '+' is the plus key."""
    if not key:
        raise ValueError("key must not be empty")
    if key == "+":
        return [], "+"
    if key.endswith("++"):
        head, main = key[:-2], "+"
        parts = [p for p in head.split("+") if p]
    else:
        parts = key.split("+")
        if any(p == "" for p in parts):
            raise ValueError(f"malformed key combination: {key!r}")
        main = parts.pop()
    modifiers = [resolve_modifier(p) for p in parts]
    unknown = [p for p in parts if p not in _MODIFIER_KEYS]
    if unknown:
        raise ValueError(f"unknown modifier(s) {unknown} in {key!r}")
    return modifiers, main


class Performer:
    def __init__(self, driver: PageDriver, ctx: Any) -> None:
        self.driver = driver
        self.ctx = ctx

    # ---------------- pointer ----------------

    async def action_point(
        self, action: str, ref: Any, state: ActionabilityState | None, position: Point | None
    ) -> Point:
        """Hit-tested point from the last probe, or computed fresh for forced actions."""
        if state is not None and state.point is not None:
            return state.point
        await self.driver.scroll_into_view(self.ctx, ref)
        facts = await self.driver.element_facts(self.ctx, ref)
        if facts is None:
            raise DetachedElementError(action)
        if facts.box is None:
            raise ElementNotActionable(action, NotActionableReason.NOT_VISIBLE)
        return facts.box.offset(position) if position is not None else facts.box.center

    async def _press_modifiers(self, modifiers: Sequence[Modifier]) -> list[str]:
        pressed = []
        for m in modifiers:
            key = resolve_modifier(m)
            await self.driver.key_down(self.ctx, key)
            pressed.append(key)
        return pressed

    async def _release_modifiers(self, pressed: list[str]) -> None:
        for key in reversed(pressed):
            await self.driver.key_up(self.ctx, key)

    async def click(
        self,
        action: str,
        ref: Any,
        state: ActionabilityState | None,
        opts: ClickOptions | DblclickOptions,
        *,
        click_count: int = 1,
    ) -> None:
        point = await self.action_point(action, ref, state, opts.position)
        button, delay = opts.button, opts.delay
        pressed = await self._press_modifiers(opts.modifiers)
        try:
            await self.click_at(point, button=button, click_count=click_count, delay=delay)
        finally:
            await self._release_modifiers(pressed)

    async def click_at(
        self, point: Point, *, button: str = "left", click_count: int = 1, delay: float = 0
    ) -> None:
        """Move, then one down/up pair per click with click_count counting up."""
        await self.driver.mouse_move(self.ctx, point.x, point.y)
        for n in range(1, click_count + 1):
            await self.driver.mouse_down(self.ctx, button=button, click_count=n)
            if delay:
                await asyncio.sleep(delay / 1000)
            await self.driver.mouse_up(self.ctx, button=button, click_count=n)

    async def hover(
        self, action: str, ref: Any, state: ActionabilityState | None, opts: PointerOptions
    ) -> None:
        point = await self.action_point(action, ref, state, opts.position)
        pressed = await self._press_modifiers(opts.modifiers)
        try:
            await self.driver.mouse_move(self.ctx, point.x, point.y)
        finally:
            await self._release_modifiers(pressed)

    async def tap(
        self, action: str, ref: Any, state: ActionabilityState | None, opts: PointerOptions
    ) -> None:
        point = await self.action_point(action, ref, state, opts.position)
        pressed = await self._press_modifiers(opts.modifiers)
        try:
            await self.driver.tap(self.ctx, point.x, point.y)
        finally:
            await self._release_modifiers(pressed)

    async def set_checked(
        self,
        action: str,
        ref: Any,
        state: ActionabilityState | None,
        checked: bool,
        position: Point | None,
    ) -> None:
        point = await self.action_point(action, ref, state, position)
        await self.driver.mouse_move(self.ctx, point.x, point.y)
        await self.driver.mouse_down(self.ctx)
        await self.driver.mouse_up(self.ctx)
        facts = await self.driver.element_facts(self.ctx, ref)
        if facts is None:
            raise DetachedElementError(action)
        if facts.checked is not checked:
            raise ActionExecutionError(action, "clicking the checkbox did not change its state")

    async def drag(
        self,
        action: str,
        ref: Any,
        state: ActionabilityState | None,
        target_ref: Any,
        source_position: Point | None,
        target_position: Point | None,
    ) -> None:
        start = await self.action_point(action, ref, state, source_position)
        await self.driver.mouse_move(self.ctx, start.x, start.y)
        await self.driver.mouse_down(self.ctx)
        try:
            # the source scroll may have moved the drop target
            hit = await self.driver.hit_test(self.ctx, target_ref, target_position)
            await self.driver.mouse_move(self.ctx, hit.point.x, hit.point.y)
        finally:
            await self.driver.mouse_up(self.ctx)

    # ---------------- keyboard ----------------

    async def press_key(self, key: str, *, delay: float = 0) -> None:
        modifiers, main = split_key_combo(key)
        for m in modifiers:
            await self.driver.key_down(self.ctx, m)
        try:
            await self.driver.key_down(self.ctx, main)
            if delay:
                await asyncio.sleep(delay / 1000)
            await self.driver.key_up(self.ctx, main)
        finally:
            for m in reversed(modifiers):
                await self.driver.key_up(self.ctx, m)

    async def type_text(self, text: str, *, delay: float = 0) -> None:
        for i, ch in enumerate(text):
            if i and delay:
                await asyncio.sleep(delay / 1000)
            if ch == "\n":
                await self.press_key("Enter")
            elif ch.isascii() and ch.isprintable():
                await self.driver.key_down(self.ctx, ch)
                await self.driver.key_up(self.ctx, ch)
            else:
                await self.driver.insert_text(self.ctx, ch)

    async def press(self, ref: Any, key: str, *, delay: float = 0) -> None:
        await self.driver.focus(self.ctx, ref)
        await self.press_key(key, delay=delay)

    async def press_sequentially(self, ref: Any, text: str, *, delay: float = 0) -> None:
        await self.driver.focus(self.ctx, ref)
        await self.type_text(text, delay=delay)

    # ---------------- values ----------------

    async def fill(self, ref: Any, value: str) -> None:
        await self.driver.focus(self.ctx, ref)
        await self.driver.set_value(self.ctx, ref, value)

    async def select(
        self,
        action: str,
        ref: Any,
        criteria: Sequence[SelectOption],
        option_refs: Sequence[Any],
    ) -> list[str]:
        selected = await self.driver.select_options(self.ctx, ref, criteria, option_refs)
        if selected is None:
            raise ActionExecutionError(
                action,
                "no option matched the requested values",
                details={"criteria": [c.model_dump(exclude_none=True) for c in criteria]},
            )
        return selected

    async def set_files(self, ref: Any, files: Sequence[FilePayload]) -> None:
        await self.driver.set_input_files(self.ctx, ref, files)
