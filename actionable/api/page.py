"""
Page: entry point of the action surface.

Owns the driver context, the timeout defaults and the scheduler that every
Locator and ElementHandle created from it runs through.
"""
# @file purpose: Page facade over a PageDriver context.

from __future__ import annotations

import logging
from typing import Any

from ..engine.deadline import Deadline, TimeoutSettings
from ..engine.options import WaitForSelectorOptions
from ..engine.resolver import LocatorTarget, SelectorChain, resolve_all
from ..engine.scheduler import ActionPlan, Scheduler
from ..engine.state import SelectorState
from ..io.driver import PageDriver
from .cdp_session import CDPSession
from .element_handle import ElementHandle
from .keyboard import Keyboard
from .locator import Locator
from .mouse import Mouse
from .waits import selector_state_predicates

logger = logging.getLogger(__name__)


class Page:
    def __init__(self, driver: PageDriver, ctx: Any, *, timeouts: TimeoutSettings | None = None) -> None:
        self.driver = driver
        self.ctx = ctx
        self.timeouts = TimeoutSettings(parent=timeouts)
        self.scheduler = Scheduler(driver, ctx)
        self.keyboard = Keyboard(self)
        self.mouse = Mouse(self)
        self.url: str | None = None

    @classmethod
    async def open(cls, driver: PageDriver) -> Page:
        """Create a fresh driver context and wrap it."""
        ctx = await driver.new_context()
        return cls(driver, ctx)

    async def close(self) -> None:
        await self.driver.close_context(self.ctx)

    # ---------------- timeouts ----------------

    def set_default_timeout(self, timeout_ms: float) -> None:
        self.timeouts.default_timeout = timeout_ms

    def set_default_navigation_timeout(self, timeout_ms: float) -> None:
        self.timeouts.default_navigation_timeout = timeout_ms

    def deadline(self, timeout_ms: float | None = None) -> Deadline:
        return Deadline(self.timeouts.timeout(timeout_ms))

    # ---------------- navigation ----------------

    async def goto(self, url: str, *, timeout: float | None = None) -> None:
        timeout_ms = self.timeouts.navigation_timeout(timeout)
        logger.debug("goto %s (timeout=%sms)", url, timeout_ms)
        await self.driver.goto(self.ctx, url, timeout_ms=timeout_ms)
        self.url = url

    # ---------------- queries ----------------

    def locator(self, selector: str, *, has_text: str | None = None) -> Locator:
        return Locator(self, SelectorChain.parse(selector, has_text=has_text))

    async def query_selector(self, selector: str) -> ElementHandle | None:
        refs = await resolve_all(self.driver, self.ctx, SelectorChain.parse(selector))
        for extra in refs[1:]:
            await self.driver.dispose(self.ctx, extra)
        return ElementHandle(self, refs[0], description=selector) if refs else None

    async def query_selector_all(self, selector: str) -> list[ElementHandle]:
        refs = await resolve_all(self.driver, self.ctx, SelectorChain.parse(selector))
        return [ElementHandle(self, r, description=selector) for r in refs]

    async def wait_for_selector(self, selector: str, **options: Any) -> ElementHandle | None:
        """
        Wait for `selector` to reach `state` (default "visible").

        Returns a handle for attached/visible and None for hidden/detached,
        which an empty match satisfies at once. With strict=True more than one
        match raises StrictModeViolation.
        """
        o = WaitForSelectorOptions.model_validate(options)
        target = LocatorTarget(SelectorChain.parse(selector), strict=o.strict)
        plan: ActionPlan[Any] = ActionPlan(
            name="wait_for_selector",
            target=target,
            required=selector_state_predicates(o.state),
            timeout=o.timeout,
            check_kind=False,
        )
        try:
            ref = await self.scheduler.run(plan, self.deadline(o.timeout))
        except BaseException:
            await target.release(self.driver, self.ctx)
            raise
        if o.state in (SelectorState.HIDDEN, SelectorState.DETACHED) or ref is None:
            await target.release(self.driver, self.ctx)
            return None
        return ElementHandle(self, ref, description=selector)

    # ---------------- selector shortcuts ----------------

    async def press(self, selector: str, key: str, **options: Any) -> None:
        await self.locator(selector).press(key, **options)

    async def click(self, selector: str, **options: Any) -> None:
        await self.locator(selector).click(**options)

    async def fill(self, selector: str, value: str, **options: Any) -> None:
        await self.locator(selector).fill(value, **options)

    # ---------------- utilities ----------------

    async def screenshot(self, path: str, *, full_page: bool = True) -> None:
        await self.driver.screenshot(self.ctx, path, full_page=full_page)

    async def new_cdp_session(self) -> CDPSession:
        return CDPSession(await self.driver.new_cdp_session(self.ctx))

