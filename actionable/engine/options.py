"""
Per-family action options (Pydantic v2).
One model per action family replaces a builder class per method; each family
extends the one below it, so shared knobs (timeout, force, no_wait_after,
trial) are declared exactly once.

timeout: milliseconds; None -> page/process default; 0 -> no deadline.
"""
# @file purpose: Define option models for engine actions.

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from ..io.driver import Point
from .state import SelectorState

TimeoutMs = Annotated[float, Field(ge=0)]
DelayMs = Annotated[float, Field(ge=0)]
Modifier = Literal["Alt", "Control", "ControlOrMeta", "Meta", "Shift"]
MouseButton = Literal["left", "right", "middle"]


class ActionOptions(BaseModel):
    """Base options: only a timeout."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    timeout: TimeoutMs | None = None


class WaitAfterOptions(ActionOptions):
    no_wait_after: bool = False


class InputOptions(WaitAfterOptions):
    """fill / clear / select_option."""

    force: bool = False


class TrialOptions(InputOptions):
    trial: bool = False


class PointerOptions(TrialOptions):
    """hover / tap."""

    position: Point | None = None
    modifiers: list[Modifier] = Field(default_factory=list)


class ClickOptions(PointerOptions):
    button: MouseButton = "left"
    click_count: Annotated[int, Field(ge=1)] = 1
    delay: DelayMs = 0


class DblclickOptions(PointerOptions):
    button: MouseButton = "left"
    delay: DelayMs = 0


class CheckOptions(TrialOptions):
    """check / uncheck / set_checked."""

    position: Point | None = None


class DragToOptions(TrialOptions):
    source_position: Point | None = None
    target_position: Point | None = None


class KeyOptions(WaitAfterOptions):
    """press / press_sequentially."""

    delay: DelayMs = 0


class SetInputFilesOptions(WaitAfterOptions):
    pass


class WaitForOptions(ActionOptions):
    state: SelectorState = SelectorState.VISIBLE


class WaitForSelectorOptions(WaitForOptions):
    strict: bool = False


class FocusOptions(ActionOptions):
    pass


class RawMouseOptions(BaseModel):
    """Page.mouse: no target element, so no timeout or actionability knobs."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    button: MouseButton = "left"
    click_count: Annotated[int, Field(ge=1)] = 1


class RawClickOptions(RawMouseOptions):
    delay: DelayMs = 0


class RawMoveOptions(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    steps: Annotated[int, Field(ge=1)] = 1
