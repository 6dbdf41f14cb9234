"""
ElementHandle: the action surface bound to one element reference.

Unlike Locator it never re-resolves: once the node leaves the document every
action fails with DetachedElementError (except waits for "hidden").
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..engine.options import ActionOptions, WaitForOptions
from ..engine.resolver import HandleTarget, LocatorTarget, SelectorChain, Target, resolve_all
from ..engine.state import ELEMENT_STATE_PREDICATES, ElementState, SelectorState
from .surface import ActionSurface
from .waits import selector_state_predicates

if TYPE_CHECKING:
    from .page import Page


class ElementHandle(ActionSurface):
    def __init__(self, page: Page, ref: Any, *, description: str = "element handle") -> None:
        super().__init__(page)
        self.ref = ref
        self._description = description

    def __repr__(self) -> str:
        return f"ElementHandle({self._description})"

    def _target(self) -> Target:
        return HandleTarget(self.ref, self._description)

    async def dispose(self) -> None:
        await self._page.driver.dispose(self._page.ctx, self.ref)

    async def is_visible(self) -> bool:
        facts = await self._page.driver.element_facts(self._page.ctx, self.ref)
        return facts is not None and facts.visible

    async def is_hidden(self) -> bool:
        return not await self.is_visible()

    async def wait_for_element_state(self, state: ElementState | str, **options: Any) -> None:
        """
        Return once the element satisfies `state`.

        Raises DetachedElementError if the node detaches while waiting, except
        for "hidden", which detachment satisfies.
        """
        o = ActionOptions.model_validate(options)
        state = ElementState(state)
        await self._run(
            "wait_for_element_state",
            o,
            required=ELEMENT_STATE_PREDICATES[state],
            check_kind=False,
        )

    # ---------------- scoped queries ----------------

    async def query_selector(self, selector: str) -> ElementHandle | None:
        refs = await resolve_all(
            self._page.driver, self._page.ctx, SelectorChain.parse(selector), root=self.ref
        )
        for extra in refs[1:]:
            await self._page.driver.dispose(self._page.ctx, extra)
        return ElementHandle(self._page, refs[0], description=selector) if refs else None

    async def query_selector_all(self, selector: str) -> list[ElementHandle]:
        refs = await resolve_all(
            self._page.driver, self._page.ctx, SelectorChain.parse(selector), root=self.ref
        )
        return [ElementHandle(self._page, r, description=selector) for r in refs]

    async def wait_for_selector(self, selector: str, **options: Any) -> ElementHandle | None:
        o = WaitForOptions.model_validate(options)
        target = LocatorTarget(SelectorChain.parse(selector), root=self.ref, strict=False)
        ref = await self._run(
            "wait_for_selector",
            o,
            required=selector_state_predicates(o.state),
            check_kind=False,
            release=False,
            target=target,
        )
        if o.state in (SelectorState.HIDDEN, SelectorState.DETACHED) or ref is None:
            await target.release(self._page.driver, self._page.ctx)
            return None
        return ElementHandle(self._page, ref, description=selector)
