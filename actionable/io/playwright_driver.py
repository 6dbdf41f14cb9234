"""
Playwright-based PageDriver implementation.

Conforms to io/driver.py's PageDriver Protocol. Only raw primitives are used
here (element handles, page.mouse, page.keyboard, page.touchscreen and
in-page evaluation); waiting, retrying and strictness stay in the engine.

Notes:
- `ctx` in this implementation is a Playwright `Page`.
- Element references are Playwright `ElementHandle` objects.
- Playwright errors are rethrown as ProtocolError, its timeouts as our TimeoutError.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from playwright.async_api import (
    Browser,
    BrowserContext,
    ElementHandle,
    Error as PwError,
    Page,
    Playwright,
    Request,
    TimeoutError as PwTimeoutError,
    async_playwright,
)

from ..core.errors import ProtocolError, TimeoutError
from ..core.settings import settings
from .driver import Box, ElementFacts, FilePayload, HitTarget, Point, SelectOption

logger = logging.getLogger(__name__)

_FACTS_JS = """
(el) => {
  if (!el.isConnected) return null;
  const tag = el.tagName.toLowerCase();
  const style = el.ownerDocument.defaultView.getComputedStyle(el);
  const rect = el.getBoundingClientRect();
  const visible = rect.width > 0 && rect.height > 0
    && style.visibility !== 'hidden' && style.visibility !== 'collapse';
  const inputType = tag === 'input' ? (el.type || 'text').toLowerCase() : null;
  const role = el.getAttribute('role');
  let checked = null;
  if (tag === 'input' && (inputType === 'checkbox' || inputType === 'radio')) {
    checked = !!el.checked;
  } else if (role === 'checkbox' || role === 'radio' || role === 'switch') {
    checked = el.getAttribute('aria-checked') === 'true';
  }
  const formControl = ['button', 'input', 'select', 'textarea', 'option', 'optgroup'].includes(tag);
  const enabled = !(formControl && el.matches(':disabled'))
    && !el.closest('[aria-disabled="true"]');
  const contentEditable = el.isContentEditable === true;
  const editable = contentEditable
    || (['input', 'textarea', 'select'].includes(tag) && !el.readOnly);
  return {
    tag,
    visible,
    enabled,
    editable,
    box: visible ? {x: rect.x, y: rect.y, width: rect.width, height: rect.height} : null,
    input_type: inputType,
    checked,
    multiple: !!el.multiple,
    content_editable: contentEditable,
  };
}
"""

# two consecutive animation frames; equal boxes mean the element is not moving
_FRAME_BOXES_JS = """
async (el) => {
  const read = () => {
    if (!el.isConnected) return null;
    const r = el.getBoundingClientRect();
    return {x: r.x, y: r.y, width: r.width, height: r.height};
  };
  const frame = () => new Promise((resolve) => requestAnimationFrame(resolve));
  await frame();
  const before = read();
  await frame();
  return [before, read()];
}
"""

_HIT_TEST_JS = """
(el, position) => {
  const r = el.getBoundingClientRect();
  const x = position ? r.x + position.x : r.x + r.width / 2;
  const y = position ? r.y + position.y : r.y + r.height / 2;
  let hit = el.ownerDocument.elementFromPoint(x, y);
  while (hit && hit.shadowRoot) {
    const inner = hit.shadowRoot.elementFromPoint(x, y);
    if (!inner || inner === hit) break;
    hit = inner;
  }
  let interceptor = null;
  if (hit && hit !== el && !el.contains(hit)) {
    interceptor = hit.tagName.toLowerCase()
      + (hit.id ? '#' + hit.id : '')
      + (hit.classList.length ? '.' + Array.from(hit.classList).join('.') : '');
  }
  return {x, y, interceptor};
}
"""

# one "input" event per fill, plus "change"
_SET_VALUE_JS = """
(el, value) => {
  if (el.isContentEditable) {
    el.textContent = value;
  } else {
    el.value = value;
  }
  el.dispatchEvent(new Event('input', {bubbles: true, composed: true}));
  el.dispatchEvent(new Event('change', {bubbles: true}));
}
"""

_SELECT_JS = """
(el, {criteria, optionRefs}) => {
  const options = Array.from(el.options);
  const picked = [];
  for (const ref of optionRefs) {
    if (!options.includes(ref)) return null;
    picked.push(ref);
  }
  for (const c of criteria) {
    const match = options.find((o, i) =>
      (c.value == null || o.value === c.value)
      && (c.label == null || o.label === c.label)
      && (c.index == null || i === c.index)
      && (c.value_or_label == null || o.value === c.value_or_label || o.label === c.value_or_label));
    if (!match) return null;
    picked.push(match);
    if (!el.multiple) break;
  }
  for (const o of options) o.selected = el.multiple ? picked.includes(o) : o === picked[0];
  if (!picked.length) el.selectedIndex = -1;
  el.dispatchEvent(new Event('input', {bubbles: true, composed: true}));
  el.dispatchEvent(new Event('change', {bubbles: true}));
  return options.filter((o) => o.selected).map((o) => o.value);
}
"""


_CONTEXT_LOST = ("Execution context was destroyed", "Cannot find context", "frame was detached")
_HANDLE_GONE = ("disposed", "not attached")


def _first_line(e: BaseException) -> str:
    text = str(e)
    return text.splitlines()[0] if text else "driver call failed"


def _context_lost(e: PwError) -> bool:
    return any(marker in str(e) for marker in _CONTEXT_LOST)


def _raise_unless_gone(action: str, e: PwError) -> None:
    """
    Probing RPCs on a handle from a destroyed document read as "element gone",
    which the scheduler retries; anything else is a protocol failure.
    """
    if not (_context_lost(e) or any(m in str(e) for m in _HANDLE_GONE)):
        raise ProtocolError(action, _first_line(e), cause=e) from e
    logger.debug("%s: element unavailable: %s", action, _first_line(e))


def _box(raw: Optional[Dict[str, float]]) -> Optional[Box]:
    if raw is None:
        return None
    return Box(raw["x"], raw["y"], raw["width"], raw["height"])


class _NavigationTracker:
    """
    Counts main-frame navigations for one page.

    Every navigation request (redirect hops excluded) records how many commits
    had happened when it started; it is settled once a later commit arrives
    or the request fails.
    """

    def __init__(self, page: Page) -> None:
        self.page = page
        self.committed = 0
        self._commit_marks: list[int] = []
        self._failed: set[int] = set()
        self._requests: Dict[Request, int] = {}
        self._changed = asyncio.Event()
        page.on("request", self._on_request)
        page.on("requestfailed", self._on_request_failed)
        page.on("framenavigated", self._on_frame_navigated)

    @property
    def started(self) -> int:
        return len(self._commit_marks)

    def _is_main_navigation(self, request: Request) -> bool:
        return request.is_navigation_request() and request.frame == self.page.main_frame

    def _on_request(self, request: Request) -> None:
        if not self._is_main_navigation(request) or request.redirected_from is not None:
            return
        self._requests[request] = len(self._commit_marks)
        self._commit_marks.append(self.committed)
        self._changed.set()

    def _on_request_failed(self, request: Request) -> None:
        index = self._requests.pop(request, None)
        if index is not None:
            self._failed.add(index)
            self._changed.set()

    def _on_frame_navigated(self, frame: Any) -> None:
        if frame == self.page.main_frame:
            self.committed += 1
            self._changed.set()

    async def wait_committed(self, after: int) -> None:
        """Wait for the first navigation started after `after` to commit or fail."""
        while after < self.started:
            if after in self._failed or self.committed > self._commit_marks[after]:
                return
            self._changed.clear()
            await self._changed.wait()


class PlaywrightDriver:
    """
    A concrete PageDriver based on Playwright Chromium.
    - `ctx` in this implementation is a Playwright `Page`.
    - Each `new_context()` creates an incognito BrowserContext + a new Page.
    """

    def __init__(self, *, headless: Optional[bool] = None, slow_mo_ms: int = 0) -> None:
        self.headless = settings.headless if headless is None else headless
        self.slow_mo_ms = slow_mo_ms

        self._pw: Optional[Playwright] = None  # playwright instance
        self._browser: Optional[Browser] = None
        self._page_to_context: Dict[Page, BrowserContext] = {}
        self._navigations: Dict[Page, _NavigationTracker] = {}

    # ---------------- lifecycle ----------------

    async def start(self) -> None:
        """Launch Playwright and a Chromium browser once."""
        if self._browser is not None:
            return
        pw = await async_playwright().start()
        self._pw = pw
        self._browser = await pw.chromium.launch(headless=self.headless, slow_mo=self.slow_mo_ms)

    async def stop(self) -> None:
        """Close all contexts and stop Playwright."""
        try:
            for page in list(self._page_to_context):
                await self.close_context(page)
            if self._browser is not None:
                await self._browser.close()
        finally:
            if self._pw is not None:
                await self._pw.stop()
            self._pw = None
            self._browser = None

    async def new_context(self) -> Page:
        """
        Create a fresh incognito context + page.
        Returns the Page object to be used as `ctx`.
        """
        self._ensure_started()
        assert self._browser is not None
        ctx = await self._browser.new_context()
        page = await ctx.new_page()
        self._page_to_context[page] = ctx
        self._navigations[page] = _NavigationTracker(page)
        return page

    async def close_context(self, ctx: Any) -> None:
        """Close the page and its owning context."""
        page = self._as_page(ctx)
        context = self._page_to_context.pop(page, None)
        self._navigations.pop(page, None)
        try:
            await page.close()
        except PwError as e:
            logger.debug("page close failed: %s", e)
        finally:
            if context is not None:
                try:
                    await context.close()
                except PwError as e:
                    logger.debug("context close failed: %s", e)

    # ---------------- navigation ----------------

    async def goto(self, ctx: Any, url: str, *, timeout_ms: Optional[float] = None) -> None:
        page = self._as_page(ctx)
        async with self._translate("goto", url=url):
            await page.goto(url, timeout=0 if timeout_ms is None else timeout_ms, wait_until="load")

    def navigation_count(self, ctx: Any) -> int:
        return self._tracker(ctx).started

    async def wait_for_navigation(
        self, ctx: Any, after: int, *, state: str = "load", timeout_ms: Optional[float] = None
    ) -> None:
        page = self._as_page(ctx)
        tracker = self._tracker(ctx)
        loop = asyncio.get_running_loop()
        started = loop.time()
        async with self._translate("wait_for_navigation", url=page.url):
            try:
                await asyncio.wait_for(
                    tracker.wait_committed(after),
                    None if timeout_ms is None else timeout_ms / 1000,
                )
            except asyncio.TimeoutError as e:
                raise TimeoutError(
                    "wait_for_navigation", "navigation did not commit", url=page.url, cause=e
                ) from e
            # playwright reads a timeout of 0 as no limit
            load_timeout = 0.0
            if timeout_ms is not None:
                load_timeout = timeout_ms - (loop.time() - started) * 1000
                if load_timeout <= 0:
                    raise TimeoutError(
                        "wait_for_navigation", f"navigation did not reach '{state}'", url=page.url
                    )
            await page.wait_for_load_state(state, timeout=load_timeout)  # type: ignore[arg-type]

    # ---------------- resolution ----------------

    async def query_all(self, ctx: Any, selector: str, *, root: Any | None = None) -> list[Any]:
        page = self._as_page(ctx)
        scope = root if root is not None else page
        try:
            return list(await scope.query_selector_all(selector))
        except PwError as e:
            if not _context_lost(e):
                raise ProtocolError("query", _first_line(e), selector=selector, cause=e) from e
            # the document is being replaced; nothing matches until it settles
            logger.debug("query during navigation: %s", e)
            return []

    async def dispose(self, ctx: Any, ref: Any) -> None:
        try:
            await self._as_handle(ref).dispose()
        except PwError as e:
            # the page or its context already went away
            logger.debug("dispose failed: %s", e)

    # ---------------- probing ----------------

    async def element_facts(self, ctx: Any, ref: Any) -> Optional[ElementFacts]:
        try:
            raw = await self._as_handle(ref).evaluate(_FACTS_JS)
        except PwError as e:
            _raise_unless_gone("element_facts", e)
            return None
        if raw is None:
            return None
        raw["box"] = _box(raw.get("box"))
        return ElementFacts(**raw)

    async def frame_boxes(self, ctx: Any, ref: Any) -> tuple[Optional[Box], Optional[Box]]:
        try:
            before, after = await self._as_handle(ref).evaluate(_FRAME_BOXES_JS)
        except PwError as e:
            _raise_unless_gone("frame_boxes", e)
            return None, None
        return _box(before), _box(after)

    async def scroll_into_view(self, ctx: Any, ref: Any) -> bool:
        try:
            await self._as_handle(ref).evaluate(
                "(el) => el.scrollIntoView({block: 'center', inline: 'center', behavior: 'instant'})"
            )
        except PwError as e:
            _raise_unless_gone("scroll_into_view", e)
            return False
        return True

    async def hit_test(self, ctx: Any, ref: Any, position: Optional[Point] = None) -> HitTarget:
        arg = None if position is None else {"x": position.x, "y": position.y}
        try:
            raw = await self._as_handle(ref).evaluate(_HIT_TEST_JS, arg)
        except PwError as e:
            _raise_unless_gone("hit_test", e)
            return HitTarget(point=Point(0, 0), attached=False)
        return HitTarget(point=Point(raw["x"], raw["y"]), interceptor=raw["interceptor"])

    # ---------------- raw input ----------------

    async def mouse_move(self, ctx: Any, x: float, y: float) -> None:
        async with self._translate("mouse_move"):
            await self._as_page(ctx).mouse.move(x, y)

    async def mouse_down(self, ctx: Any, *, button: str = "left", click_count: int = 1) -> None:
        async with self._translate("mouse_down"):
            await self._as_page(ctx).mouse.down(button=button, click_count=click_count)  # type: ignore[arg-type]

    async def mouse_up(self, ctx: Any, *, button: str = "left", click_count: int = 1) -> None:
        async with self._translate("mouse_up"):
            await self._as_page(ctx).mouse.up(button=button, click_count=click_count)  # type: ignore[arg-type]

    async def mouse_wheel(self, ctx: Any, delta_x: float, delta_y: float) -> None:
        async with self._translate("mouse_wheel"):
            await self._as_page(ctx).mouse.wheel(delta_x, delta_y)

    async def tap(self, ctx: Any, x: float, y: float) -> None:
        async with self._translate("tap"):
            await self._as_page(ctx).touchscreen.tap(x, y)

    async def key_down(self, ctx: Any, key: str) -> None:
        async with self._translate("key_down"):
            await self._as_page(ctx).keyboard.down(key)

    async def key_up(self, ctx: Any, key: str) -> None:
        async with self._translate("key_up"):
            await self._as_page(ctx).keyboard.up(key)

    async def insert_text(self, ctx: Any, text: str) -> None:
        async with self._translate("insert_text"):
            await self._as_page(ctx).keyboard.insert_text(text)

    async def focus(self, ctx: Any, ref: Any) -> None:
        async with self._translate("focus"):
            await self._as_handle(ref).evaluate("(el) => el.focus()")

    # ---------------- value assignment ----------------

    async def set_value(self, ctx: Any, ref: Any, value: str) -> None:
        async with self._translate("fill"):
            await self._as_handle(ref).evaluate(_SET_VALUE_JS, value)

    async def select_options(
        self,
        ctx: Any,
        ref: Any,
        criteria: Sequence[SelectOption],
        option_refs: Sequence[Any],
    ) -> Optional[list[str]]:
        arg = {
            "criteria": [c.model_dump() for c in criteria],
            "optionRefs": list(option_refs),
        }
        async with self._translate("select_option"):
            return await self._as_handle(ref).evaluate(_SELECT_JS, arg)

    async def set_input_files(self, ctx: Any, ref: Any, files: Sequence[FilePayload]) -> None:
        payloads = [{"name": f.name, "mimeType": f.mime_type, "buffer": f.buffer} for f in files]
        async with self._translate("set_input_files"):
            await self._as_handle(ref).set_input_files(payloads, no_wait_after=True)  # type: ignore[arg-type]

    # ---------------- reads ----------------

    async def text_content(self, ctx: Any, ref: Any) -> Optional[str]:
        async with self._translate("text_content"):
            return await self._as_handle(ref).text_content()

    async def inner_text(self, ctx: Any, ref: Any) -> str:
        async with self._translate("inner_text"):
            return await self._as_handle(ref).evaluate("(el) => el.innerText")

    async def get_attribute(self, ctx: Any, ref: Any, name: str) -> Optional[str]:
        async with self._translate("get_attribute"):
            return await self._as_handle(ref).evaluate("(el, n) => el.getAttribute(n)", name)

    async def input_value(self, ctx: Any, ref: Any) -> str:
        async with self._translate("input_value"):
            return await self._as_handle(ref).evaluate("(el) => el.value ?? ''")

    async def input_files(self, ctx: Any, ref: Any) -> list[str]:
        async with self._translate("input_files"):
            return await self._as_handle(ref).evaluate(
                "(el) => Array.from(el.files || []).map((f) => f.name)"
            )

    async def evaluate(self, ctx: Any, ref: Any, expression: str, arg: Any = None) -> Any:
        async with self._translate("evaluate"):
            return await self._as_handle(ref).evaluate(expression, arg)

    # ---------------- utilities ----------------

    async def screenshot(self, ctx: Any, path: str, *, full_page: bool = True) -> None:
        page = self._as_page(ctx)
        # ensure parent dir exists
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        async with self._translate("screenshot"):
            await page.screenshot(path=path, full_page=full_page)

    async def new_cdp_session(self, ctx: Any) -> Any:
        page = self._as_page(ctx)
        context = self._page_to_context.get(page) or page.context
        async with self._translate("new_cdp_session"):
            return await context.new_cdp_session(page)

    # ---------------- internals ----------------

    def _translate(
        self, action: str, *, selector: Optional[str] = None, url: Optional[str] = None
    ) -> "_ErrorTranslation":
        return _ErrorTranslation(action, selector=selector, url=url)

    def _tracker(self, ctx: Any) -> _NavigationTracker:
        page = self._as_page(ctx)
        tracker = self._navigations.get(page)
        if tracker is None:
            tracker = self._navigations[page] = _NavigationTracker(page)
        return tracker

    def _ensure_started(self) -> None:
        if self._browser is None:
            raise RuntimeError("Browser not started. Call start() first.")

    @staticmethod
    def _as_page(ctx: Any) -> Page:
        if not isinstance(ctx, Page):
            raise TypeError("ctx must be a Playwright Page (returned by new_context()).")
        return ctx

    @staticmethod
    def _as_handle(ref: Any) -> ElementHandle:
        if not isinstance(ref, ElementHandle):
            raise TypeError("ref must be a Playwright ElementHandle (returned by query_all()).")
        return ref


class _ErrorTranslation:
    """Async context manager mapping Playwright errors onto the project taxonomy."""

    def __init__(self, action: str, *, selector: Optional[str], url: Optional[str]) -> None:
        self.action = action
        self.selector = selector
        self.url = url

    async def __aenter__(self) -> None:
        return None

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> bool:
        if exc is None:
            return False
        if isinstance(exc, PwTimeoutError):
            raise TimeoutError(
                self.action, _first_line(exc), selector=self.selector, url=self.url, cause=exc,
            ) from exc
        if isinstance(exc, PwError):
            raise ProtocolError(
                self.action, _first_line(exc),
                selector=self.selector, url=self.url, cause=exc,
            ) from exc
        return False
