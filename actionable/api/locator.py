"""
Locator: a restartable query. Every action re-resolves the selector chain on
each tick, so DOM replacement between ticks is tolerated. Single-target
actions are strict: two or more matches raise StrictModeViolation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..core.errors import StrictModeViolation
from ..engine.options import ActionOptions, WaitForOptions
from ..engine.resolver import LocatorTarget, SelectorChain, Target, dispose_refs, resolve_all
from ..engine.state import SelectorState
from .element_handle import ElementHandle
from .surface import ActionSurface
from .waits import selector_state_predicates

if TYPE_CHECKING:
    from .page import Page


class Locator(ActionSurface):
    def __init__(self, page: Page, chain: SelectorChain, *, root: Any | None = None) -> None:
        super().__init__(page)
        self.chain = chain
        self._root = root

    def __repr__(self) -> str:
        return f"Locator({self.chain})"

    def _target(self) -> Target:
        return LocatorTarget(self.chain, root=self._root, strict=True)

    # ---------------- derivations (never mutate) ----------------

    def locator(self, selector: str, *, has_text: str | None = None) -> Locator:
        return Locator(
            self._page, self.chain.chain(SelectorChain.parse(selector, has_text=has_text)),
            root=self._root,
        )

    def filter(self, *, has_text: str | None = None) -> Locator:
        return Locator(self._page, self.chain.filter(has_text), root=self._root)

    def nth(self, index: int) -> Locator:
        return Locator(self._page, self.chain.nth(index), root=self._root)

    @property
    def first(self) -> Locator:
        return self.nth(0)

    @property
    def last(self) -> Locator:
        return self.nth(-1)

    # ---------------- multi-target queries ----------------

    async def _resolve(self) -> list[Any]:
        return await resolve_all(self._page.driver, self._page.ctx, self.chain, root=self._root)

    async def count(self) -> int:
        refs = await self._resolve()
        for r in refs:
            await self._page.driver.dispose(self._page.ctx, r)
        return len(refs)

    async def all(self) -> list[Locator]:
        return [self.nth(i) for i in range(await self.count())]

    async def element_handles(self) -> list[ElementHandle]:
        return [
            ElementHandle(self._page, r, description=str(self.chain))
            for r in await self._resolve()
        ]

    async def all_text_contents(self) -> list[str]:
        out = []
        for r in await self._resolve():
            out.append(await self._page.driver.text_content(self._page.ctx, r) or "")
            await self._page.driver.dispose(self._page.ctx, r)
        return out

    # ---------------- single-target ----------------

    async def element_handle(self, **options: Any) -> ElementHandle:
        o = ActionOptions.model_validate(options)
        ref = await self._run(
            "element_handle",
            o,
            required=selector_state_predicates(SelectorState.ATTACHED),
            check_kind=False,
            release=False,
        )
        return ElementHandle(self._page, ref, description=str(self.chain))

    async def wait_for(self, **options: Any) -> None:
        """Wait until the locator satisfies `state` (default "visible")."""
        o = WaitForOptions.model_validate(options)
        await self._run(
            "wait_for", o, required=selector_state_predicates(o.state), check_kind=False
        )

    async def _single_now(self, action: str) -> Any | None:
        refs = await self._resolve()
        if len(refs) > 1:
            await dispose_refs(self._page.driver, self._page.ctx, refs)
            raise StrictModeViolation(action, len(refs), selector=str(self.chain))
        return refs[0] if refs else None

    async def is_visible(self) -> bool:
        """No waiting: a locator matching nothing is not visible."""
        ref = await self._single_now("is_visible")
        if ref is None:
            return False
        try:
            facts = await self._page.driver.element_facts(self._page.ctx, ref)
        finally:
            await self._page.driver.dispose(self._page.ctx, ref)
        return facts is not None and facts.visible

    async def is_hidden(self) -> bool:
        return not await self.is_visible()
