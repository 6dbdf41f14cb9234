"""
Script action implementations bound to Page:
- open_url / wait_for / click / dblclick / hover / tap
- fill / type / press / check / uncheck / select_option / set_input_files
- extract_text / snapshot

Each action:
  1) Expects a Page + validated params (Pydantic v2)
  2) Returns ActionResult, or raises ActionExecutionError on failure
Typed engine errors (TimeoutError, StrictModeViolation, ...) already are
ActionExecutionErrors and pass through unchanged.
"""

# @file purpose: Implement and register script actions.
from __future__ import annotations

from typing import Any, Awaitable, Callable

from ..api.locator import Locator
from ..api.page import Page
from ..core.errors import ActionExecutionError
from ..core.registry import action
from ..core.result import ActionResult
from .params import (
    CheckParams,
    ClickParams,
    ExtractTextParams,
    FillParams,
    OpenUrlParams,
    PressParams,
    SelectOptionParams,
    SelectorParams,
    SetInputFilesParams,
    SnapshotParams,
    TypeParams,
    WaitForParams,
)


def _locate(page: Page, params: SelectorParams) -> Locator:
    return page.locator(params.selector, has_text=params.has_text)


async def _guard(
    name: str,
    message: str,
    call: Callable[[], Awaitable[Any]],
    *,
    selector: str | None = None,
    url: str | None = None,
) -> Any:
    try:
        return await call()
    except ActionExecutionError:
        raise
    except Exception as e:  # noqa: BLE001
        raise ActionExecutionError(
            action=name,
            message=message,
            selector=selector,
            url=url,
            details={"cause": repr(e)},
            cause=e,
        ) from e


@action("open_url", params_model=OpenUrlParams)
async def open_url(page: Page, params: OpenUrlParams) -> ActionResult:
    """打开 URL，等待 load 事件。"""
    url = str(params.url)
    await _guard(
        "open_url", "failed to open url", lambda: page.goto(url, timeout=params.timeout_ms), url=url
    )
    return ActionResult.success(step="open_url", url=url)


@action("wait_for", params_model=WaitForParams)
async def wait_for(page: Page, params: WaitForParams) -> ActionResult:
    """等待元素达到指定状态（默认 visible）。"""
    await _guard(
        "wait_for",
        f"element did not become {params.state.value} in time",
        lambda: _locate(page, params).wait_for(state=params.state, timeout=params.timeout_ms),
        selector=params.selector,
    )
    return ActionResult.success(step="wait_for", selector=params.selector, state=params.state.value)


def _pointer(name: str) -> Callable[[Page, ClickParams], Awaitable[ActionResult]]:
    async def run(page: Page, params: ClickParams) -> ActionResult:
        loc = _locate(page, params)
        opts: dict[str, Any] = {"timeout": params.timeout_ms, "force": params.force}
        if name in ("click", "dblclick"):
            opts["button"] = params.button
        await _guard(
            name, f"failed to {name} element", lambda: getattr(loc, name)(**opts),
            selector=params.selector,
        )
        return ActionResult.success(step=name, selector=params.selector)

    run.__name__ = f"{name}_action"
    run.__doc__ = f"{name}（先等待元素可操作）。"
    return run


click = action("click", params_model=ClickParams)(_pointer("click"))
dblclick = action("dblclick", params_model=ClickParams)(_pointer("dblclick"))
hover = action("hover", params_model=ClickParams)(_pointer("hover"))
tap = action("tap", params_model=ClickParams)(_pointer("tap"))


@action("fill", params_model=FillParams)
async def fill(page: Page, params: FillParams) -> ActionResult:
    """一次性填入文本（一个 input 事件）。"""
    loc = _locate(page, params)
    await _guard(
        "fill",
        "failed to fill element",
        lambda: loc.fill(params.text, timeout=params.timeout_ms, force=params.force),
        selector=params.selector,
    )
    return ActionResult.success(step="fill", selector=params.selector, length=len(params.text))


@action("type", params_model=TypeParams)
async def type_action(page: Page, params: TypeParams) -> ActionResult:
    """
    逐键输入文本。
    Named type_action to avoid shadowing the built-in `type`; registered as "type".
    """
    loc = _locate(page, params)
    await _guard(
        "type",
        "failed to input text",
        lambda: loc.press_sequentially(params.text, delay=params.delay_ms, timeout=params.timeout_ms),
        selector=params.selector,
    )
    return ActionResult.success(step="type", selector=params.selector, length=len(params.text))


@action("press", params_model=PressParams)
async def press(page: Page, params: PressParams) -> ActionResult:
    """聚焦元素后按键，支持 Control+A 这类组合键。"""
    loc = _locate(page, params)
    await _guard(
        "press",
        f"failed to press {params.key}",
        lambda: loc.press(params.key, timeout=params.timeout_ms),
        selector=params.selector,
    )
    return ActionResult.success(step="press", selector=params.selector, key=params.key)


@action("check", params_model=CheckParams)
async def check_action(page: Page, params: CheckParams) -> ActionResult:
    """勾选 checkbox/radio，已勾选时不做任何操作。"""
    loc = _locate(page, params)
    await _guard(
        "check",
        "failed to check element",
        lambda: loc.check(timeout=params.timeout_ms, force=params.force),
        selector=params.selector,
    )
    return ActionResult.success(step="check", selector=params.selector)


@action("uncheck", params_model=CheckParams)
async def uncheck_action(page: Page, params: CheckParams) -> ActionResult:
    """取消勾选 checkbox。"""
    loc = _locate(page, params)
    await _guard(
        "uncheck",
        "failed to uncheck element",
        lambda: loc.uncheck(timeout=params.timeout_ms, force=params.force),
        selector=params.selector,
    )
    return ActionResult.success(step="uncheck", selector=params.selector)


@action("select_option", params_model=SelectOptionParams)
async def select_option_action(page: Page, params: SelectOptionParams) -> ActionResult:
    """按 value/label/index 选择 <select> 选项。"""
    loc = _locate(page, params)
    selected = await _guard(
        "select_option",
        "failed to select option",
        lambda: loc.select_option(params.values, timeout=params.timeout_ms),
        selector=params.selector,
    )
    return ActionResult.success(step="select_option", selector=params.selector, selected=selected)


@action("set_input_files", params_model=SetInputFilesParams)
async def set_input_files_action(page: Page, params: SetInputFilesParams) -> ActionResult:
    """给 <input type=file> 设置本地文件，空列表表示清空。"""
    loc = _locate(page, params)
    await _guard(
        "set_input_files",
        "failed to set input files",
        lambda: loc.set_input_files(params.files, timeout=params.timeout_ms),
        selector=params.selector,
    )
    return ActionResult.success(
        step="set_input_files", selector=params.selector, files=len(params.files)
    )


@action("extract_text", params_model=ExtractTextParams)
async def extract_text(page: Page, params: ExtractTextParams) -> ActionResult:
    """读取元素文本（去除首尾空白）。"""
    loc = _locate(page, params)
    read = loc.inner_text if params.inner else loc.text_content
    txt = await _guard(
        "extract_text",
        "failed to extract text",
        lambda: read(timeout=params.timeout_ms),
        selector=params.selector,
    )
    txt = txt.strip() if txt is not None else None
    return ActionResult(
        ok=True,
        extracted_content=txt,
        include_in_memory=True,
        meta={"step": "extract_text", "selector": params.selector, "empty": not txt},
    )


@action("snapshot", params_model=SnapshotParams)
async def snapshot_action(page: Page, params: SnapshotParams) -> ActionResult:
    """截图保存到 path。"""
    await _guard(
        "snapshot",
        "failed to take screenshot",
        lambda: page.screenshot(params.path, full_page=params.full_page),
    )
    return ActionResult.success(step="snapshot", path=params.path, full_page=params.full_page)
