"""
Retry/timeout scheduler: the probe-then-act loop every action goes through.

    RESOLVING -> PROBING -> READY -> ACTING -> WAITING -> DONE
                         -> NOT_READY -> SLEEP -> PROBING
                         -> DEADLINE_EXCEEDED -> FAILED
                         -> DETACHED -> FAILED (or DONE for hidden waits)

One Deadline covers the loop and the navigation wait. Predicate failures stay
inside the loop; only the deadline turns them into a TimeoutError. Logical
errors (strict mode, wrong element kind, protocol failures) escape at once.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Iterator, TypeVar

from ..core.errors import DetachedElementError, TimeoutError
from ..core.settings import settings
from ..io.driver import ElementFacts, PageDriver, Point
from .deadline import Deadline
from .navigation import NavigationWaiter, is_navigation_capable
from .prober import Prober, check_element_kind
from .resolver import Target
from .state import ActionabilityState, Predicate

logger = logging.getLogger(__name__)

T = TypeVar("T")

_ABSENCE_OK = frozenset({Predicate.HIDDEN, Predicate.DETACHED})


class Phase(str, Enum):
    RESOLVING = "resolving"
    PROBING = "probing"
    NOT_READY = "not_ready"
    SLEEP = "sleep"
    READY = "ready"
    ACTING = "acting"
    WAITING = "waiting"
    DONE = "done"
    DETACHED = "detached"
    DEADLINE_EXCEEDED = "deadline_exceeded"
    FAILED = "failed"


@dataclass
class ActionPlan(Generic[T]):
    """
    Everything the scheduler needs to run one action.

    perform is None for pure waits; the scheduler then returns the resolved
    reference (or None once a hidden/detached wait is satisfied; for those
    waits detachment counts as success).
    already_done lets an action finish without acting (check() on a checked box).
    """

    name: str
    target: Target
    required: frozenset[Predicate]
    perform: Callable[[Any, ActionabilityState | None], Awaitable[T]] | None = None
    timeout: float | None = None
    force: bool = False
    trial: bool = False
    no_wait_after: bool = False
    position: Point | None = None
    check_kind: bool = True
    already_done: Callable[[ElementFacts], bool] | None = None

    @property
    def waits_for_navigation(self) -> bool:
        return (
            self.perform is not None
            and not self.trial
            and not self.no_wait_after
            and is_navigation_capable(self.name)
        )


@dataclass
class _Tick:
    phase: Phase
    ref: Any | None = None
    state: ActionabilityState | None = None
    failure: Predicate | None = None


@dataclass
class RunTrace:
    """Phases visited by the last run; useful when diagnosing flaky waits."""

    phases: list[Phase] = field(default_factory=list)
    ticks: int = 0

    def enter(self, action: str, phase: Phase) -> None:
        prev = self.phases[-1] if self.phases else None
        self.phases.append(phase)
        logger.debug("%s: %s -> %s", action, prev.value if prev else "start", phase.value)


def poll_intervals() -> Iterator[float]:
    """Backoff in seconds; the last configured value repeats forever."""
    steps = settings.poll_intervals_ms or [100]
    for ms in steps:
        yield ms / 1000
    yield from itertools.repeat(steps[-1] / 1000)


class Scheduler:
    def __init__(
        self,
        driver: PageDriver,
        ctx: Any,
        *,
        prober: Prober | None = None,
        navigation: NavigationWaiter | None = None,
    ) -> None:
        self.driver = driver
        self.ctx = ctx
        self.prober = prober or Prober()
        self.navigation = navigation or NavigationWaiter()
        self.last_trace = RunTrace()

    async def run(self, plan: ActionPlan[T], deadline: Deadline | None = None) -> Any:
        deadline = deadline or Deadline.from_options(plan.timeout)
        trace = self.last_trace = RunTrace()
        selector = plan.target.describe()
        last: _Tick | None = None

        for delay in poll_intervals():
            if trace.ticks:
                if deadline.expired():
                    break
                trace.enter(plan.name, Phase.SLEEP)
                await asyncio.sleep(deadline.clamp(delay))
                if deadline.expired():
                    break
            trace.ticks += 1
            trace.enter(plan.name, Phase.RESOLVING)
            try:
                tick = await asyncio.wait_for(self._tick(plan, trace), deadline.remaining())
            except asyncio.TimeoutError:
                # the probe in flight is discarded
                break
            last = tick

            if tick.phase is Phase.DONE:
                trace.enter(plan.name, Phase.DONE)
                return None
            if tick.phase is Phase.DETACHED:
                trace.enter(plan.name, Phase.DETACHED)
                if plan.required & _ABSENCE_OK:
                    trace.enter(plan.name, Phase.DONE)
                    return None
                trace.enter(plan.name, Phase.FAILED)
                raise DetachedElementError(plan.name, selector=selector)
            if tick.phase is Phase.READY:
                trace.enter(plan.name, Phase.READY)
                return await self._act(plan, tick, deadline, trace)
            trace.enter(plan.name, Phase.NOT_READY)
            logger.debug(
                "%s: waiting for %s (tick %d)",
                plan.name,
                tick.failure.value if tick.failure else "element",
                trace.ticks,
            )

        trace.enter(plan.name, Phase.DEADLINE_EXCEEDED)
        trace.enter(plan.name, Phase.FAILED)
        details: dict[str, Any] = {"ticks": trace.ticks}
        if last is not None and last.failure is not None:
            details["waiting_for"] = last.failure.value
            if last.state is not None and last.state.interceptor:
                details["intercepted_by"] = last.state.interceptor
        raise TimeoutError(
            plan.name,
            f"timeout {deadline.timeout_ms:.0f}ms exceeded",
            selector=selector,
            details=details,
        )

    async def _tick(self, plan: ActionPlan[Any], trace: RunTrace) -> _Tick:
        resolution = await plan.target.resolve(self.driver, self.ctx, plan.name)
        if resolution.detached:
            return _Tick(Phase.DETACHED)
        ref = resolution.ref
        if ref is None:
            if plan.required & _ABSENCE_OK:
                return _Tick(Phase.READY)
            return _Tick(Phase.NOT_READY, failure=Predicate.ATTACHED)

        facts = await self.driver.element_facts(self.ctx, ref)
        if facts is None:
            if plan.required & _ABSENCE_OK:
                return _Tick(Phase.READY)
            phase = Phase.NOT_READY if plan.target.rebinds else Phase.DETACHED
            return _Tick(phase, failure=Predicate.ATTACHED)
        if plan.check_kind:
            check_element_kind(plan.name, facts, selector=plan.target.describe())
        if plan.already_done is not None and plan.already_done(facts):
            return _Tick(Phase.DONE, ref=ref)
        if plan.force:
            return _Tick(Phase.READY, ref=ref)

        trace.enter(plan.name, Phase.PROBING)
        state = await self.prober.probe(
            self.driver, self.ctx, ref, plan.required, position=plan.position, facts=facts
        )
        failure = state.first_failure(plan.required)
        if failure is None:
            return _Tick(Phase.READY, ref=ref, state=state)
        return _Tick(Phase.NOT_READY, ref=ref, state=state, failure=failure)

    async def _act(
        self, plan: ActionPlan[T], tick: _Tick, deadline: Deadline, trace: RunTrace
    ) -> Any:
        if plan.perform is None:
            trace.enter(plan.name, Phase.DONE)
            return tick.ref
        if plan.trial:
            logger.debug("%s: trial run, skipping the action", plan.name)
            trace.enter(plan.name, Phase.DONE)
            return None

        before = self.navigation.mark(self.driver, self.ctx) if plan.waits_for_navigation else 0
        trace.enter(plan.name, Phase.ACTING)
        # acting is atomic once started; cancellation must not cut it in half
        result = await asyncio.shield(plan.perform(tick.ref, tick.state))

        if plan.waits_for_navigation:
            trace.enter(plan.name, Phase.WAITING)
            await self.navigation.wait(
                self.driver,
                self.ctx,
                before,
                deadline,
                action=plan.name,
                selector=plan.target.describe(),
            )
        trace.enter(plan.name, Phase.DONE)
        return result
