"""
Actionability prober.

probe() evaluates only the predicates an action needs, in a fixed order, and
stops at the first failure so a not-ready tick costs as few round trips as
possible. Element kind requirements (checkbox for check, <select> for
select_option, ...) are not predicates: they never become true by waiting, so
they raise InvalidElementType straight away.
"""

from __future__ import annotations

import logging
from typing import AbstractSet, Any

from ..core.errors import InvalidElementType
from ..io.driver import ElementFacts, PageDriver, Point
from .state import DETACHED_STATE, ActionabilityState, Predicate

logger = logging.getLogger(__name__)

_POINTER = frozenset(
    {Predicate.ATTACHED, Predicate.VISIBLE, Predicate.STABLE, Predicate.RECEIVES_EVENTS}
)
_POINTER_ENABLED = _POINTER | {Predicate.ENABLED}

# required predicates per action name
REQUIREMENTS: dict[str, frozenset[Predicate]] = {
    "click": _POINTER_ENABLED,
    "dblclick": _POINTER_ENABLED,
    "tap": _POINTER_ENABLED,
    "check": _POINTER_ENABLED,
    "uncheck": _POINTER_ENABLED,
    "set_checked": _POINTER_ENABLED,
    "drag_to": _POINTER,
    "hover": _POINTER,
    "fill": frozenset(
        {Predicate.ATTACHED, Predicate.VISIBLE, Predicate.ENABLED, Predicate.EDITABLE}
    ),
    "clear": frozenset(
        {Predicate.ATTACHED, Predicate.VISIBLE, Predicate.ENABLED, Predicate.EDITABLE}
    ),
    "select_option": frozenset({Predicate.ATTACHED, Predicate.VISIBLE, Predicate.ENABLED}),
    "press": frozenset({Predicate.ATTACHED}),
    "press_sequentially": frozenset({Predicate.ATTACHED}),
    "focus": frozenset({Predicate.ATTACHED}),
    "set_input_files": frozenset({Predicate.ATTACHED}),
    "scroll_into_view_if_needed": frozenset(
        {Predicate.ATTACHED, Predicate.VISIBLE, Predicate.STABLE}
    ),
}

_FILLABLE_INPUT_TYPES = {
    "",
    "text",
    "email",
    "number",
    "password",
    "search",
    "tel",
    "url",
    "date",
    "time",
    "datetime-local",
    "month",
    "week",
    "color",
    "range",
}


def check_element_kind(action: str, facts: ElementFacts, *, selector: str | None = None) -> None:
    """Raise InvalidElementType when the element can never accept this action."""
    if action in ("check", "uncheck", "set_checked"):
        if facts.checked is None:
            raise InvalidElementType(
                action, "not a checkbox or radio button", selector=selector,
                details={"tag": facts.tag, "type": facts.input_type},
            )
    elif action in ("fill", "clear"):
        if facts.tag == "input":
            if (facts.input_type or "") not in _FILLABLE_INPUT_TYPES:
                raise InvalidElementType(
                    action, f'input of type "{facts.input_type}" cannot be filled',
                    selector=selector,
                )
        elif facts.tag != "textarea" and not facts.content_editable:
            raise InvalidElementType(
                action, "element is not an <input>, <textarea> or [contenteditable] element",
                selector=selector, details={"tag": facts.tag},
            )
    elif action == "select_option":
        if facts.tag != "select":
            raise InvalidElementType(
                action, "element is not a <select> element", selector=selector,
                details={"tag": facts.tag},
            )
    elif action == "set_input_files":
        if facts.tag != "input" or facts.input_type != "file":
            raise InvalidElementType(
                action, 'node is not an <input type="file"> element', selector=selector,
                details={"tag": facts.tag, "type": facts.input_type},
            )


class Prober:
    """Counts its ticks so callers (and tests) can tell whether polling happened."""

    def __init__(self) -> None:
        self.ticks = 0

    async def probe(
        self,
        driver: PageDriver,
        ctx: Any,
        ref: Any,
        required: AbstractSet[Predicate],
        *,
        position: Point | None = None,
        facts: ElementFacts | None = None,
    ) -> ActionabilityState:
        self.ticks += 1
        if facts is None:
            facts = await driver.element_facts(ctx, ref)
        if facts is None:
            return DETACHED_STATE

        state = ActionabilityState(
            attached=True,
            visible=facts.visible,
            enabled=facts.enabled,
            editable=facts.editable and facts.enabled,
        )
        failure = state.first_failure(required - {Predicate.STABLE, Predicate.RECEIVES_EVENTS})
        if failure is not None:
            return state

        stable: bool | None = None
        if Predicate.STABLE in required:
            before, after = await driver.frame_boxes(ctx, ref)
            if before is None and after is None:
                return DETACHED_STATE
            stable = before is not None and before == after
            if not stable:
                return ActionabilityState(
                    attached=True, visible=facts.visible, stable=False,
                    enabled=state.enabled, editable=state.editable,
                )

        if Predicate.RECEIVES_EVENTS not in required:
            return ActionabilityState(
                attached=True, visible=facts.visible, stable=stable,
                enabled=state.enabled, editable=state.editable,
            )

        if not await driver.scroll_into_view(ctx, ref):
            return DETACHED_STATE
        hit = await driver.hit_test(ctx, ref, position)
        if not hit.attached:
            return DETACHED_STATE
        if hit.interceptor is not None:
            logger.debug("hit test at %s intercepted by %s", hit.point, hit.interceptor)
        return ActionabilityState(
            attached=True,
            visible=facts.visible,
            stable=stable,
            enabled=state.enabled,
            editable=state.editable,
            receives_events=hit.interceptor is None,
            interceptor=hit.interceptor,
            point=hit.point,
        )
