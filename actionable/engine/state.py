"""
Actionability vocabulary: predicates, element/selector states and the
per-tick ActionabilityState snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet

from ..core.errors import NotActionableReason
from ..io.driver import Point


class Predicate(str, Enum):
    ATTACHED = "attached"
    VISIBLE = "visible"
    STABLE = "stable"
    ENABLED = "enabled"
    EDITABLE = "editable"
    RECEIVES_EVENTS = "receives_events"
    # negated predicates used only by element-state waits
    HIDDEN = "hidden"
    DETACHED = "detached"
    DISABLED = "disabled"


# evaluation order; cheap checks first, hit testing last
PREDICATE_ORDER: tuple[Predicate, ...] = (
    Predicate.ATTACHED,
    Predicate.DETACHED,
    Predicate.VISIBLE,
    Predicate.HIDDEN,
    Predicate.STABLE,
    Predicate.ENABLED,
    Predicate.DISABLED,
    Predicate.EDITABLE,
    Predicate.RECEIVES_EVENTS,
)

REASONS: dict[Predicate, NotActionableReason] = {
    Predicate.ATTACHED: NotActionableReason.NOT_ATTACHED,
    Predicate.VISIBLE: NotActionableReason.NOT_VISIBLE,
    Predicate.STABLE: NotActionableReason.NOT_STABLE,
    Predicate.ENABLED: NotActionableReason.DISABLED,
    Predicate.EDITABLE: NotActionableReason.NOT_EDITABLE,
    Predicate.RECEIVES_EVENTS: NotActionableReason.OBSCURED,
}


class ElementState(str, Enum):
    """States accepted by ElementHandle.wait_for_element_state()."""

    VISIBLE = "visible"
    HIDDEN = "hidden"
    STABLE = "stable"
    ENABLED = "enabled"
    DISABLED = "disabled"
    EDITABLE = "editable"


class SelectorState(str, Enum):
    """States accepted by wait_for_selector() and Locator.wait_for()."""

    ATTACHED = "attached"
    DETACHED = "detached"
    VISIBLE = "visible"
    HIDDEN = "hidden"


ELEMENT_STATE_PREDICATES: dict[ElementState, frozenset[Predicate]] = {
    ElementState.VISIBLE: frozenset({Predicate.ATTACHED, Predicate.VISIBLE}),
    ElementState.HIDDEN: frozenset({Predicate.HIDDEN}),
    ElementState.STABLE: frozenset({Predicate.ATTACHED, Predicate.VISIBLE, Predicate.STABLE}),
    ElementState.ENABLED: frozenset({Predicate.ATTACHED, Predicate.ENABLED}),
    ElementState.DISABLED: frozenset({Predicate.ATTACHED, Predicate.DISABLED}),
    ElementState.EDITABLE: frozenset({Predicate.ATTACHED, Predicate.EDITABLE}),
}


@dataclass(frozen=True)
class ActionabilityState:
    """
    One probe of one element at one instant.

    Predicates that were not evaluated stay None. `point` is the hit-tested
    action point when receives_events was checked.
    """

    attached: bool
    visible: bool | None = None
    stable: bool | None = None
    enabled: bool | None = None
    editable: bool | None = None
    receives_events: bool | None = None
    interceptor: str | None = None
    point: Point | None = None

    def holds(self, predicate: Predicate) -> bool:
        if predicate is Predicate.HIDDEN:
            return not self.attached or self.visible is False
        if predicate is Predicate.DETACHED:
            return not self.attached
        if predicate is Predicate.DISABLED:
            return self.enabled is False
        return bool(getattr(self, predicate.value))

    def first_failure(self, required: AbstractSet[Predicate]) -> Predicate | None:
        for predicate in PREDICATE_ORDER:
            if predicate in required and not self.holds(predicate):
                return predicate
        return None

    def ready(self, required: AbstractSet[Predicate]) -> bool:
        return self.first_failure(required) is None


DETACHED_STATE = ActionabilityState(attached=False)
