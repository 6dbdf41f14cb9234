"""
Element resolution.

A SelectorChain is the immutable descriptor behind a Locator: each step is a
selector evaluated inside every match of the previous step, optionally
filtered by contained text and narrowed to one index. Nothing is cached;
every call queries the live document again.

Two target strategies feed the scheduler:
- LocatorTarget re-resolves the chain on every tick
- HandleTarget stays bound to one element reference
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import Any, Protocol, Sequence

from ..core.errors import StrictModeViolation
from ..io.driver import PageDriver

logger = logging.getLogger(__name__)

_WS = re.compile(r"\s+")


def _normalize_text(text: str) -> str:
    return _WS.sub(" ", text).strip().lower()


def _split_chain(selector: str) -> list[str]:
    """Split on `>>` outside of quoted text."""
    parts: list[str] = []
    start = 0
    quote: str | None = None
    i = 0
    while i < len(selector):
        ch = selector[i]
        if quote is not None:
            if ch == "\\":
                i += 1
            elif ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
        elif selector.startswith(">>", i):
            parts.append(selector[start:i])
            i += 2
            start = i
            continue
        i += 1
    parts.append(selector[start:])
    return [p.strip() for p in parts if p.strip()]


@dataclass(frozen=True)
class SelectorStep:
    selector: str
    has_text: str | None = None
    nth: int | None = None

    def __str__(self) -> str:
        out = self.selector
        if self.has_text is not None:
            out += f' >> has-text="{self.has_text}"'
        if self.nth is not None:
            out += f" >> nth={self.nth}"
        return out


@dataclass(frozen=True)
class SelectorChain:
    steps: tuple[SelectorStep, ...]

    @classmethod
    def parse(cls, selector: str, *, has_text: str | None = None) -> "SelectorChain":
        if not selector or not selector.strip():
            raise ValueError("selector must be a non-empty string")
        steps = tuple(SelectorStep(p) for p in _split_chain(selector))
        chain = cls(steps)
        return chain.filter(has_text) if has_text is not None else chain

    def chain(self, other: "str | SelectorChain") -> "SelectorChain":
        tail = SelectorChain.parse(other) if isinstance(other, str) else other
        return SelectorChain(self.steps + tail.steps)

    def nth(self, index: int) -> "SelectorChain":
        last = self.steps[-1]
        if last.nth is not None:
            # nth on an already indexed step narrows the single remaining match
            return SelectorChain(self.steps + (SelectorStep(":scope", nth=index),))
        return SelectorChain(self.steps[:-1] + (replace(last, nth=index),))

    def filter(self, has_text: str | None) -> "SelectorChain":
        if has_text is None:
            return self
        last = self.steps[-1]
        if last.has_text is not None or last.nth is not None:
            return SelectorChain(self.steps + (SelectorStep(":scope", has_text=has_text),))
        return SelectorChain(self.steps[:-1] + (replace(last, has_text=has_text),))

    def __str__(self) -> str:
        return " >> ".join(str(s) for s in self.steps)


async def _narrow(driver: PageDriver, ctx: Any, step: SelectorStep, matches: list[Any]) -> list[Any]:
    if step.has_text is not None:
        needle = _normalize_text(step.has_text)
        kept = []
        for m in matches:
            text = await driver.text_content(ctx, m)
            if text is not None and needle in _normalize_text(text):
                kept.append(m)
        matches = kept
    if step.nth is not None:
        try:
            matches = [matches[step.nth]]
        except IndexError:
            matches = []
    return matches


async def dispose_refs(
    driver: PageDriver,
    ctx: Any,
    refs: Sequence[Any],
    *,
    keep: Sequence[Any] = (),
    root: Any | None = None,
) -> None:
    """Dispose every reference not kept; the caller's root is never ours to dispose."""
    skip = {id(k) for k in keep}
    for ref in refs:
        if ref is None or ref is root or id(ref) in skip:
            continue
        skip.add(id(ref))
        await driver.dispose(ctx, ref)


async def resolve_all(
    driver: PageDriver, ctx: Any, chain: SelectorChain, *, root: Any | None = None
) -> list[Any]:
    """
    Evaluate the chain against the live document; zero matches is not an error.
    References from intermediate steps and filtered-out matches are disposed.
    """
    roots: list[Any] = [root]
    for step in chain.steps:
        matches: list[Any] = []
        try:
            for r in roots:
                if step.selector == ":scope" and r is not None:
                    matches.append(r)
                else:
                    matches.extend(await driver.query_all(ctx, step.selector, root=r))
            kept = await _narrow(driver, ctx, step, matches)
        except BaseException:
            await dispose_refs(driver, ctx, roots + matches, root=root)
            raise
        await dispose_refs(driver, ctx, roots + matches, keep=kept, root=root)
        roots = kept
        if not roots:
            break
    return [r for r in roots if r is not None]


@dataclass(frozen=True)
class Resolution:
    ref: Any | None = None
    detached: bool = False


class Target(Protocol):
    """What an action runs against."""

    rebinds: bool

    def describe(self) -> str: ...
    async def resolve(self, driver: PageDriver, ctx: Any, action: str) -> Resolution: ...
    async def release(self, driver: PageDriver, ctx: Any) -> None: ...


class HandleTarget:
    """Bound to one element reference; detachment is final."""

    rebinds = False

    def __init__(self, ref: Any, description: str = "element handle") -> None:
        self.ref = ref
        self.description = description

    def describe(self) -> str:
        return self.description

    async def resolve(self, driver: PageDriver, ctx: Any, action: str) -> Resolution:
        return Resolution(ref=self.ref)

    async def release(self, driver: PageDriver, ctx: Any) -> None:
        return None


class LocatorTarget:
    """
    Re-resolves the chain on every tick.

    If an element was found earlier and the chain now matches nothing while that
    element is no longer connected, the target reports detachment. A chain that
    never matched simply keeps waiting.
    """

    rebinds = True

    def __init__(
        self, chain: SelectorChain, *, root: Any | None = None, strict: bool = True
    ) -> None:
        self.chain = chain
        self.root = root
        self.strict = strict
        self._last: Any | None = None

    def describe(self) -> str:
        return str(self.chain)

    async def resolve(self, driver: PageDriver, ctx: Any, action: str) -> Resolution:
        refs = await resolve_all(driver, ctx, self.chain, root=self.root)
        if len(refs) > 1 and self.strict:
            await dispose_refs(driver, ctx, refs)
            raise StrictModeViolation(action, len(refs), selector=self.describe())
        if refs:
            chosen = refs[0]
            for extra in refs[1:]:
                await driver.dispose(ctx, extra)
            if self._last is not None and self._last is not chosen:
                await driver.dispose(ctx, self._last)
            self._last = chosen
            return Resolution(ref=chosen)
        if self._last is not None and await driver.element_facts(ctx, self._last) is None:
            logger.debug("%s: previously resolved element detached", self.describe())
            return Resolution(detached=True)
        return Resolution()

    async def release(self, driver: PageDriver, ctx: Any) -> None:
        if self._last is not None:
            last, self._last = self._last, None
            await driver.dispose(ctx, last)
