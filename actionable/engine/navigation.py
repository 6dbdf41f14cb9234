"""
Navigation waiter: after an action that may navigate, wait for the navigation
it started to reach a load state, bounded by the action's deadline. The
navigation count is marked before the input is sent; when nothing new shows up
within the grace window the action is treated as non-navigating.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..core.errors import TimeoutError
from ..core.settings import settings
from ..io.driver import PageDriver
from .deadline import Deadline

logger = logging.getLogger(__name__)

_GRACE_STEP = 0.01


def is_navigation_capable(action: str) -> bool:
    return action in settings.navigation_actions


class NavigationWaiter:
    def __init__(self, state: str = "load") -> None:
        self.state = state

    def mark(self, driver: PageDriver, ctx: Any) -> int:
        return driver.navigation_count(ctx)

    async def started(self, driver: PageDriver, ctx: Any, before: int, deadline: Deadline) -> bool:
        """
        True once a navigation newer than `before` is seen. The request event of a
        navigation the input caused can arrive after the input call returns, so
        the count is watched for a short grace window, never past the deadline.
        """
        loop = asyncio.get_running_loop()
        grace = deadline.clamp(settings.navigation_grace_ms / 1000)
        ends = loop.time() + grace
        await asyncio.sleep(0)
        while driver.navigation_count(ctx) <= before:
            left = ends - loop.time()
            if left <= 0:
                return False
            await asyncio.sleep(min(_GRACE_STEP, left))
        return True

    async def wait(
        self,
        driver: PageDriver,
        ctx: Any,
        before: int,
        deadline: Deadline,
        *,
        action: str,
        selector: str | None = None,
    ) -> bool:
        """Returns True when a navigation was awaited."""
        if not await self.started(driver, ctx, before, deadline):
            return False
        if deadline.expired():
            raise TimeoutError(
                action,
                f"timeout {deadline.timeout_ms:.0f}ms exceeded while waiting for navigation",
                selector=selector,
            )
        logger.debug("%s triggered a navigation; waiting for '%s'", action, self.state)
        try:
            await driver.wait_for_navigation(
                ctx, before, state=self.state, timeout_ms=deadline.remaining_ms()
            )
        except TimeoutError as e:
            raise TimeoutError(
                action,
                f"timeout {deadline.timeout_ms:.0f}ms exceeded while waiting for navigation",
                selector=selector,
                details={"state": self.state},
                cause=e,
            ) from e
        return True
