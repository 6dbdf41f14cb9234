"""
Web-first assertions: expect(locator).to_be_visible() and friends.

Each matcher re-reads the locator on the scheduler's poll cadence until it
holds or the expect timeout (settings.expect_timeout_ms, 0 = no limit) runs
out, then raises AssertionError:

    Locator expected to have text: 'Saved'
    Received: 'Saving...'

`.not_` flips every matcher. Reads never wait for actionability; a locator
that matches nothing counts as hidden, not attached and having no text.
More than one match raises StrictModeViolation at once.
"""
# @file purpose: Polling assertions over Locator snapshots.

from __future__ import annotations

import asyncio
import logging
import re
from re import Pattern
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

from ..core.errors import InvalidElementType
from ..core.settings import settings
from ..engine.deadline import Deadline
from ..engine.scheduler import poll_intervals
from ..io.driver import ElementFacts

if TYPE_CHECKING:
    from .locator import Locator

logger = logging.getLogger(__name__)

Expected = Union[str, Pattern[str]]
Check = Callable[[], Awaitable["tuple[bool, Any]"]]

_WS = re.compile(r"\s+")


def _normalize(text: str) -> str:
    return _WS.sub(" ", text).strip()


def _matches(expected: Expected, actual: str | None, *, substring: bool) -> bool:
    if actual is None:
        return False
    if isinstance(expected, re.Pattern):
        return expected.search(actual) is not None
    if substring:
        return _normalize(expected) in _normalize(actual)
    return _normalize(expected) == _normalize(actual)


def _show(value: Any) -> str:
    if isinstance(value, re.Pattern):
        return f"/{value.pattern}/"
    return repr(value)


def expect(locator: Locator, *, timeout: float | None = None) -> LocatorAssertions:
    return LocatorAssertions(locator, timeout=timeout)


class LocatorAssertions:
    def __init__(self, locator: Locator, *, timeout: float | None = None, is_not: bool = False) -> None:
        self._locator = locator
        self._timeout = timeout
        self._is_not = is_not

    @property
    def not_(self) -> LocatorAssertions:
        return LocatorAssertions(self._locator, timeout=self._timeout, is_not=not self._is_not)

    # ---------------- polling core ----------------

    async def _snapshot(self, name: str, read: Callable[[Any], Awaitable[Any]]) -> tuple[bool, Any]:
        """(attached, value) for the single match right now."""
        page = self._locator._page
        ref = await self._locator._single_now(name)
        if ref is None:
            return False, None
        try:
            return True, await read(ref)
        finally:
            await page.driver.dispose(page.ctx, ref)

    async def _facts(self, name: str) -> ElementFacts | None:
        page = self._locator._page
        _, facts = await self._snapshot(name, lambda ref: page.driver.element_facts(page.ctx, ref))
        return facts

    async def _poll(self, message: str, expected: Any, check: Check, timeout: float | None) -> None:
        if self._is_not:
            message = message.replace("expected to", "expected not to")
        if timeout is None:
            timeout = self._timeout
        deadline = Deadline(settings.expect_timeout_ms if timeout is None else timeout)
        intervals = poll_intervals()
        received: Any = None
        while True:
            ok, received = await check()
            if ok is not self._is_not:
                return
            if deadline.expired():
                break
            await asyncio.sleep(deadline.clamp(next(intervals)))

        text = message if expected is None else f"{message}: {_show(expected)}"
        logger.debug("assertion failed after %.0fms: %s", deadline.elapsed_ms(), text)
        raise AssertionError(
            f"{text}\nReceived: {_show(received)}\n"
            f"Locator: {self._locator.chain}\nTimeout: {deadline.timeout_ms:.0f}ms"
        )

    def _state(self, name: str, pick: Callable[[ElementFacts], bool]) -> Check:
        async def check() -> tuple[bool, Any]:
            facts = await self._facts(name)
            if facts is None:
                return False, "<element not found>"
            value = pick(facts)
            return value, value

        return check

    # ---------------- state matchers ----------------

    async def to_be_attached(self, *, attached: bool = True, timeout: float | None = None) -> None:
        async def check() -> tuple[bool, Any]:
            present = await self._facts("to_be_attached") is not None
            return present is attached, "attached" if present else "detached"

        await self._poll(
            "Locator expected to be " + ("attached" if attached else "detached"), None, check, timeout
        )

    async def to_be_visible(self, *, visible: bool = True, timeout: float | None = None) -> None:
        async def check() -> tuple[bool, Any]:
            facts = await self._facts("to_be_visible")
            shown = facts is not None and facts.visible
            return shown is visible, "visible" if shown else "hidden"

        await self._poll(
            "Locator expected to be " + ("visible" if visible else "hidden"), None, check, timeout
        )

    async def to_be_hidden(self, *, timeout: float | None = None) -> None:
        await self.to_be_visible(visible=False, timeout=timeout)

    async def to_be_enabled(self, *, enabled: bool = True, timeout: float | None = None) -> None:
        state = self._state("to_be_enabled", lambda f: f.enabled is enabled)
        await self._poll(
            "Locator expected to be " + ("enabled" if enabled else "disabled"), None, state, timeout
        )

    async def to_be_disabled(self, *, timeout: float | None = None) -> None:
        await self.to_be_enabled(enabled=False, timeout=timeout)

    async def to_be_editable(self, *, editable: bool = True, timeout: float | None = None) -> None:
        state = self._state("to_be_editable", lambda f: (f.editable and f.enabled) is editable)
        await self._poll(
            "Locator expected to be " + ("editable" if editable else "readonly"), None, state, timeout
        )

    async def to_be_checked(self, *, checked: bool = True, timeout: float | None = None) -> None:
        async def check() -> tuple[bool, Any]:
            facts = await self._facts("to_be_checked")
            if facts is None:
                return False, "<element not found>"
            if facts.checked is None:
                raise InvalidElementType(
                    "to_be_checked", "element is not a checkbox or radio",
                    selector=str(self._locator.chain),
                )
            return facts.checked is checked, "checked" if facts.checked else "unchecked"

        await self._poll(
            "Locator expected to be " + ("checked" if checked else "unchecked"), None, check, timeout
        )

    # ---------------- value matchers ----------------

    async def to_have_text(
        self, expected: Expected, *, use_inner_text: bool = False, timeout: float | None = None
    ) -> None:
        """Strings compare whole text with whitespace collapsed; patterns use search()."""
        await self._text("to_have_text", "Locator expected to have text", expected, use_inner_text,
                         substring=False, timeout=timeout)

    async def to_contain_text(
        self, expected: Expected, *, use_inner_text: bool = False, timeout: float | None = None
    ) -> None:
        await self._text("to_contain_text", "Locator expected to contain text", expected,
                         use_inner_text, substring=True, timeout=timeout)

    async def _text(
        self, name: str, message: str, expected: Expected, use_inner_text: bool,
        *, substring: bool, timeout: float | None,
    ) -> None:
        page = self._locator._page

        async def read(ref: Any) -> str | None:
            if use_inner_text:
                return await page.driver.inner_text(page.ctx, ref)
            return await page.driver.text_content(page.ctx, ref)

        async def check() -> tuple[bool, Any]:
            _, actual = await self._snapshot(name, read)
            return _matches(expected, actual, substring=substring), actual

        await self._poll(message, expected, check, timeout)

    async def to_have_value(self, expected: Expected, *, timeout: float | None = None) -> None:
        page = self._locator._page

        async def check() -> tuple[bool, Any]:
            _, actual = await self._snapshot(
                "to_have_value", lambda ref: page.driver.input_value(page.ctx, ref)
            )
            return _matches(expected, actual, substring=False), actual

        await self._poll("Locator expected to have value", expected, check, timeout)

    async def to_have_attribute(
        self, name: str, expected: Expected, *, timeout: float | None = None
    ) -> None:
        page = self._locator._page

        async def check() -> tuple[bool, Any]:
            _, actual = await self._snapshot(
                "to_have_attribute", lambda ref: page.driver.get_attribute(page.ctx, ref, name)
            )
            return _matches(expected, actual, substring=False), actual

        await self._poll(f"Locator expected to have attribute '{name}'", expected, check, timeout)

    async def to_have_count(self, count: int, *, timeout: float | None = None) -> None:
        async def check() -> tuple[bool, Any]:
            actual = await self._locator.count()
            return actual == count, actual

        await self._poll("Locator expected to have count", count, check, timeout)
