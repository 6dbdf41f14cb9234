from __future__ import annotations

from ..engine.state import Predicate, SelectorState

SELECTOR_STATE_PREDICATES: dict[SelectorState, frozenset[Predicate]] = {
    SelectorState.ATTACHED: frozenset({Predicate.ATTACHED}),
    SelectorState.DETACHED: frozenset({Predicate.DETACHED}),
    SelectorState.VISIBLE: frozenset({Predicate.ATTACHED, Predicate.VISIBLE}),
    SelectorState.HIDDEN: frozenset({Predicate.HIDDEN}),
}


def selector_state_predicates(state: SelectorState | str) -> frozenset[Predicate]:
    return SELECTOR_STATE_PREDICATES[SelectorState(state)]
