"""
Action surface shared by Locator and ElementHandle.

Both expose the same methods and run them through the same scheduler; they
differ only in the target strategy they hand it (re-resolving chain vs. bound
reference). Options arrive as keyword arguments and are validated by the
family's options model, so a typo such as `timout=` fails loudly.
"""

from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import TYPE_CHECKING, Any, Sequence, TypeVar, Union

from pydantic import BaseModel

from ..core.errors import DetachedElementError, InvalidElementType
from ..engine.deadline import Deadline
from ..engine.options import (
    ActionOptions,
    CheckOptions,
    ClickOptions,
    DblclickOptions,
    DragToOptions,
    FocusOptions,
    InputOptions,
    KeyOptions,
    PointerOptions,
    SetInputFilesOptions,
)
from ..engine.performer import Performer
from ..engine.prober import REQUIREMENTS
from ..engine.resolver import Target
from ..engine.scheduler import ActionPlan
from ..engine.state import ActionabilityState, Predicate
from ..io.driver import Box, ElementFacts, FilePayload, SelectOption

if TYPE_CHECKING:
    from .element_handle import ElementHandle
    from .page import Page

O = TypeVar("O", bound=BaseModel)

SelectValue = Union[str, SelectOption, "ElementHandle"]
FileInput = Union[str, Path, FilePayload]

_ATTACHED = frozenset({Predicate.ATTACHED})


def normalize_select_values(
    values: SelectValue | Sequence[SelectValue] | None,
) -> tuple[list[SelectOption], list[Any]]:
    """Fold every accepted value shape into (criteria, option references)."""
    from .element_handle import ElementHandle

    if values is None:
        return [], []
    if isinstance(values, (str, SelectOption, ElementHandle, dict)):
        values = [values]
    criteria: list[SelectOption] = []
    refs: list[Any] = []
    for v in values:
        if isinstance(v, str):
            criteria.append(SelectOption(value_or_label=v))
        elif isinstance(v, SelectOption):
            criteria.append(v)
        elif isinstance(v, ElementHandle):
            refs.append(v.ref)
        elif isinstance(v, dict):
            criteria.append(SelectOption.model_validate(v))
        else:
            raise TypeError(f"unsupported select_option value: {v!r}")
    return criteria, refs


def normalize_files(files: FileInput | Sequence[FileInput]) -> list[FilePayload]:
    if isinstance(files, (str, Path, FilePayload, dict)):
        files = [files]
    out: list[FilePayload] = []
    for f in files:
        if isinstance(f, FilePayload):
            out.append(f)
        elif isinstance(f, dict):
            out.append(FilePayload.model_validate(f))
        else:
            p = Path(f)
            if not p.is_file():
                raise FileNotFoundError(f"set_input_files(): file not found: {p}")
            mime, _ = mimetypes.guess_type(p.name)
            out.append(
                FilePayload(
                    name=p.name,
                    mime_type=mime or "application/octet-stream",
                    buffer=p.read_bytes(),
                )
            )
    return out


class ActionSurface:
    def __init__(self, page: Page) -> None:
        self._page = page

    @property
    def page(self) -> Page:
        return self._page

    def _target(self) -> Target:
        raise NotImplementedError

    @property
    def _performer(self) -> Performer:
        return Performer(self._page.driver, self._page.ctx)

    async def _run(
        self,
        name: str,
        opts: ActionOptions,
        *,
        perform: Any = None,
        required: frozenset[Predicate] | None = None,
        position: Any = None,
        check_kind: bool = True,
        already_done: Any = None,
        release: bool = True,
        target: Target | None = None,
        deadline: Deadline | None = None,
        probe_only: bool = False,
    ) -> Any:
        target = target or self._target()
        plan: ActionPlan[Any] = ActionPlan(
            name=name,
            target=target,
            required=required if required is not None else REQUIREMENTS.get(name, _ATTACHED),
            perform=perform,
            timeout=opts.timeout,
            force=getattr(opts, "force", False) and not probe_only,
            trial=getattr(opts, "trial", False) and not probe_only,
            no_wait_after=getattr(opts, "no_wait_after", False),
            position=position,
            check_kind=check_kind,
            already_done=already_done,
        )
        try:
            result = await self._page.scheduler.run(
                plan, deadline or self._page.deadline(opts.timeout)
            )
        except BaseException:
            await target.release(self._page.driver, self._page.ctx)
            raise
        if release:
            await target.release(self._page.driver, self._page.ctx)
        return result

    @staticmethod
    def _opts(model: type[O], options: dict[str, Any]) -> O:
        return model.model_validate(options)

    # ---------------- pointer actions ----------------

    async def click(self, **options: Any) -> None:
        o = self._opts(ClickOptions, options)

        async def perform(ref: Any, state: ActionabilityState | None) -> None:
            await self._performer.click("click", ref, state, o, click_count=o.click_count)

        await self._run("click", o, perform=perform, position=o.position)

    async def dblclick(self, **options: Any) -> None:
        o = self._opts(DblclickOptions, options)

        async def perform(ref: Any, state: ActionabilityState | None) -> None:
            await self._performer.click("dblclick", ref, state, o, click_count=2)

        await self._run("dblclick", o, perform=perform, position=o.position)

    async def hover(self, **options: Any) -> None:
        o = self._opts(PointerOptions, options)

        async def perform(ref: Any, state: ActionabilityState | None) -> None:
            await self._performer.hover("hover", ref, state, o)

        await self._run("hover", o, perform=perform, position=o.position)

    async def tap(self, **options: Any) -> None:
        o = self._opts(PointerOptions, options)

        async def perform(ref: Any, state: ActionabilityState | None) -> None:
            await self._performer.tap("tap", ref, state, o)

        await self._run("tap", o, perform=perform, position=o.position)

    async def set_checked(self, checked: bool, **options: Any) -> None:
        await self._set_checked("set_checked", checked, self._opts(CheckOptions, options))

    async def check(self, **options: Any) -> None:
        await self._set_checked("check", True, self._opts(CheckOptions, options))

    async def uncheck(self, **options: Any) -> None:
        await self._set_checked("uncheck", False, self._opts(CheckOptions, options))

    async def _set_checked(self, name: str, checked: bool, o: CheckOptions) -> None:
        async def perform(ref: Any, state: ActionabilityState | None) -> None:
            await self._performer.set_checked(name, ref, state, checked, o.position)

        def already_done(facts: ElementFacts) -> bool:
            return facts.checked is checked

        await self._run(
            name, o, perform=perform, position=o.position, already_done=already_done
        )

    async def drag_to(self, target: ActionSurface, **options: Any) -> None:
        o = self._opts(DragToOptions, options)
        deadline = self._page.deadline(o.timeout)
        drop_target = target._target()
        try:
            # the drop target must be actionable before the source is grabbed
            drop_ref = await self._run(
                "drag_to",
                o,
                required=_ATTACHED if o.force else REQUIREMENTS["hover"],
                position=o.target_position,
                check_kind=False,
                release=False,
                target=drop_target,
                deadline=deadline,
                probe_only=True,
            )

            async def perform(ref: Any, state: ActionabilityState | None) -> None:
                await self._performer.drag(
                    "drag_to", ref, state, drop_ref, o.source_position, o.target_position
                )

            await self._run(
                "drag_to", o, perform=perform, position=o.source_position, deadline=deadline
            )
        finally:
            await drop_target.release(self._page.driver, self._page.ctx)

    # ---------------- keyboard / value actions ----------------

    async def fill(self, value: str, **options: Any) -> None:
        await self._fill("fill", value, self._opts(InputOptions, options))

    async def clear(self, **options: Any) -> None:
        await self._fill("clear", "", self._opts(InputOptions, options))

    async def _fill(self, name: str, value: str, o: InputOptions) -> None:
        async def perform(ref: Any, state: ActionabilityState | None) -> None:
            await self._performer.fill(ref, value)

        await self._run(name, o, perform=perform)

    async def press(self, key: str, **options: Any) -> None:
        o = self._opts(KeyOptions, options)

        async def perform(ref: Any, state: ActionabilityState | None) -> None:
            await self._performer.press(ref, key, delay=o.delay)

        await self._run("press", o, perform=perform)

    async def press_sequentially(self, text: str, **options: Any) -> None:
        o = self._opts(KeyOptions, options)

        async def perform(ref: Any, state: ActionabilityState | None) -> None:
            await self._performer.press_sequentially(ref, text, delay=o.delay)

        await self._run("press_sequentially", o, perform=perform)

    # kept for callers of the older name
    type = press_sequentially

    async def select_option(
        self, values: SelectValue | Sequence[SelectValue] | None, **options: Any
    ) -> list[str]:
        o = self._opts(InputOptions, options)
        criteria, option_refs = normalize_select_values(values)

        async def perform(ref: Any, state: ActionabilityState | None) -> list[str]:
            return await self._performer.select("select_option", ref, criteria, option_refs)

        return await self._run("select_option", o, perform=perform)

    async def set_input_files(
        self, files: FileInput | Sequence[FileInput], **options: Any
    ) -> None:
        o = self._opts(SetInputFilesOptions, options)
        payloads = normalize_files(files)
        page = self._page

        async def perform(ref: Any, state: ActionabilityState | None) -> None:
            if len(payloads) > 1:
                facts = await page.driver.element_facts(page.ctx, ref)
                if facts is not None and not facts.multiple:
                    raise InvalidElementType(
                        "set_input_files", "non-multiple file input can only accept single file"
                    )
            await self._performer.set_files(ref, payloads)

        await self._run("set_input_files", o, perform=perform)

    async def focus(self, **options: Any) -> None:
        o = self._opts(FocusOptions, options)

        async def perform(ref: Any, state: ActionabilityState | None) -> None:
            await self._page.driver.focus(self._page.ctx, ref)

        await self._run("focus", o, perform=perform, check_kind=False)

    async def scroll_into_view_if_needed(self, **options: Any) -> None:
        o = self._opts(ActionOptions, options)

        async def perform(ref: Any, state: ActionabilityState | None) -> None:
            if not await self._page.driver.scroll_into_view(self._page.ctx, ref):
                raise DetachedElementError("scroll_into_view_if_needed")

        await self._run("scroll_into_view_if_needed", o, perform=perform, check_kind=False)

    # ---------------- reads ----------------

    async def _read(self, name: str, fn: Any, options: dict[str, Any]) -> Any:
        o = self._opts(ActionOptions, options)

        async def perform(ref: Any, state: ActionabilityState | None) -> Any:
            return await fn(self._page.ctx, ref)

        return await self._run(name, o, perform=perform, required=_ATTACHED, check_kind=False)

    async def text_content(self, **options: Any) -> str | None:
        return await self._read("text_content", self._page.driver.text_content, options)

    async def inner_text(self, **options: Any) -> str:
        return await self._read("inner_text", self._page.driver.inner_text, options)

    async def input_value(self, **options: Any) -> str:
        return await self._read("input_value", self._page.driver.input_value, options)

    async def input_files(self, **options: Any) -> list[str]:
        return await self._read("input_files", self._page.driver.input_files, options)

    async def get_attribute(self, name: str, **options: Any) -> str | None:
        driver = self._page.driver

        async def read(ctx: Any, ref: Any) -> str | None:
            return await driver.get_attribute(ctx, ref, name)

        return await self._read("get_attribute", read, options)

    async def evaluate(self, expression: str, arg: Any = None, **options: Any) -> Any:
        driver = self._page.driver

        async def read(ctx: Any, ref: Any) -> Any:
            return await driver.evaluate(ctx, ref, expression, arg)

        return await self._read("evaluate", read, options)

    async def _facts(self, name: str, options: dict[str, Any]) -> ElementFacts:
        driver = self._page.driver

        async def read(ctx: Any, ref: Any) -> ElementFacts:
            facts = await driver.element_facts(ctx, ref)
            if facts is None:
                raise DetachedElementError(name)
            return facts

        return await self._read(name, read, options)

    async def bounding_box(self, **options: Any) -> Box | None:
        return (await self._facts("bounding_box", options)).box

    async def is_checked(self, **options: Any) -> bool:
        facts = await self._facts("is_checked", options)
        if facts.checked is None:
            raise InvalidElementType("is_checked", "not a checkbox or radio button")
        return facts.checked

    async def is_enabled(self, **options: Any) -> bool:
        return (await self._facts("is_enabled", options)).enabled

    async def is_disabled(self, **options: Any) -> bool:
        return not (await self._facts("is_disabled", options)).enabled

    async def is_editable(self, **options: Any) -> bool:
        facts = await self._facts("is_editable", options)
        return facts.editable and facts.enabled
