"""Binding surface tests: Locator, ElementHandle, Keyboard, CDPSession, Page."""

from pathlib import Path

import pytest

from actionable.api.page import Page
from actionable.core.errors import (
    ActionExecutionError,
    InvalidElementType,
    ProtocolError,
    StrictModeViolation,
    TimeoutError,
)
from actionable.io.driver import Box, SelectOption
from fakes import FakeDriver, FakeNode


def _options(driver: FakeDriver, select: FakeNode, *pairs: tuple[str, str]) -> list[FakeNode]:
    return [select.add(FakeNode("option", text=label, attrs={"value": value})) for value, label in pairs]


# ---------------- locator ----------------


@pytest.mark.asyncio
async def test_locator_chaining_and_filters(driver: FakeDriver, page: Page) -> None:
    ul = driver.add(FakeNode("ul", id="menu"))
    for label in ("Coffee", "Tea", "Milk"):
        ul.add(FakeNode("li", text=label))

    items = page.locator("#menu").locator("li")
    assert await items.count() == 3
    assert await items.all_text_contents() == ["Coffee", "Tea", "Milk"]
    assert await items.nth(1).text_content() == "Tea"
    assert await items.last.text_content() == "Milk"
    assert await items.filter(has_text="milk").text_content() == "Milk"
    assert [await li.text_content() for li in await items.all()] == ["Coffee", "Tea", "Milk"]
    assert await page.locator("li", has_text="coffee").count() == 1


@pytest.mark.asyncio
async def test_is_visible_never_waits(driver: FakeDriver, page: Page) -> None:
    driver.add(FakeNode("div", id="hidden", visible=False))
    driver.add(FakeNode("p", classes=("dup",)))
    driver.add(FakeNode("p", classes=("dup",)))

    assert await page.locator("#missing").is_visible() is False
    assert await page.locator("#missing").is_hidden() is True
    assert await page.locator("#hidden").is_visible() is False
    with pytest.raises(StrictModeViolation):
        await page.locator(".dup").is_visible()


@pytest.mark.asyncio
async def test_reads_wait_for_attachment_only(driver: FakeDriver, page: Page) -> None:
    driver.add(FakeNode("span", id="secret", visible=False, text="42", attrs={"data-x": "1"}))
    loc = page.locator("#secret")

    assert await loc.text_content() == "42"
    assert await loc.get_attribute("data-x") == "1"
    assert await loc.get_attribute("nope") is None
    assert await loc.inner_text() == ""
    assert await loc.evaluate(lambda node, arg: node.tag + arg, "!") == "span!"


@pytest.mark.asyncio
async def test_read_on_missing_element_times_out(page: Page) -> None:
    with pytest.raises(TimeoutError) as exc:
        await page.locator("#nope").text_content(timeout=100)
    assert exc.value.details["waiting_for"] == "attached"


@pytest.mark.asyncio
async def test_state_queries(driver: FakeDriver, page: Page) -> None:
    driver.add(FakeNode("input", id="cb", input_type="checkbox", checked=True, box=Box(0, 0, 5, 5)))
    driver.add(FakeNode("input", id="ro", readonly=True, box=Box(0, 10, 5, 5)))
    driver.add(FakeNode("button", id="off", enabled=False, box=Box(0, 20, 5, 5)))

    assert await page.locator("#cb").is_checked() is True
    assert await page.locator("#ro").is_editable() is False
    assert await page.locator("#off").is_disabled() is True
    assert await page.locator("#off").is_enabled() is False
    assert await page.locator("#off").bounding_box() == Box(0, 20, 5, 5)
    with pytest.raises(InvalidElementType):
        await page.locator("#off").is_checked()


@pytest.mark.asyncio
async def test_wait_for_states(driver: FakeDriver, page: Page) -> None:
    node = driver.add(FakeNode("div", id="toast"))
    driver.later(0.05, node.remove)

    await page.locator("#toast").wait_for(state="detached", timeout=1000)
    await page.locator("#toast").wait_for(state="hidden", timeout=100)

    driver.later(0.05, lambda: driver.add(FakeNode("div", id="toast")))
    await page.locator("#toast").wait_for(state="attached", timeout=1000)


@pytest.mark.asyncio
async def test_element_handle_from_locator(driver: FakeDriver, page: Page) -> None:
    node = driver.add(FakeNode("button", id="ok"))

    handle = await page.locator("#ok").element_handle()

    assert handle.ref is node
    await handle.click()
    assert node.clicks == 1


# ---------------- pointer ----------------


@pytest.mark.asyncio
async def test_dblclick_sends_two_clicks(driver: FakeDriver, page: Page) -> None:
    driver.add(FakeNode("div", id="cell"))

    await page.locator("#cell").dblclick()

    downs = [e for e in driver.events if e[0] == "mouse_down"]
    assert downs == [("mouse_down", "left", 1), ("mouse_down", "left", 2)]


@pytest.mark.asyncio
async def test_click_with_modifiers_and_position(driver: FakeDriver, page: Page) -> None:
    driver.add(FakeNode("a", id="link", box=Box(100, 100, 50, 10)))

    await page.locator("#link").click(modifiers=["Shift"], position={"x": 5, "y": 2})

    kinds = [e[0] for e in driver.events if e[0] in ("key_down", "mouse_move", "key_up")]
    assert kinds == ["key_down", "mouse_move", "key_up"]
    assert ("mouse_move", 105, 102) in driver.events


@pytest.mark.asyncio
async def test_uncheck_and_set_checked(driver: FakeDriver, page: Page) -> None:
    node = driver.add(FakeNode("input", id="news", input_type="checkbox", checked=True))

    await page.locator("#news").uncheck()
    assert node.checked is False
    await page.locator("#news").set_checked(True)
    assert node.checked is True


@pytest.mark.asyncio
async def test_check_that_does_not_toggle_fails(driver: FakeDriver, page: Page) -> None:
    driver.add(FakeNode("input", id="stuck", input_type="checkbox", sticky=True))

    with pytest.raises(ActionExecutionError, match="did not change"):
        await page.locator("#stuck").check()


@pytest.mark.asyncio
async def test_tap(driver: FakeDriver, page: Page) -> None:
    node = driver.add(FakeNode("button", id="t"))

    await page.locator("#t").tap()

    assert driver.count("tap") == 1
    assert node.clicks == 1


@pytest.mark.asyncio
async def test_drag_to(driver: FakeDriver, page: Page) -> None:
    driver.add(FakeNode("div", id="card", box=Box(10, 10, 40, 40)))
    driver.add(FakeNode("div", id="lane", box=Box(300, 10, 100, 200)))

    await page.locator("#card").drag_to(page.locator("#lane"))

    pointer = [e for e in driver.events if e[0] in ("mouse_move", "mouse_down", "mouse_up")]
    assert pointer == [
        ("mouse_move", 30, 30),
        ("mouse_down", "left", 1),
        ("mouse_move", 350, 110),
        ("mouse_up", "left", 1),
    ]


# ---------------- keyboard and values ----------------


@pytest.mark.asyncio
async def test_press_sequentially_types_keys(driver: FakeDriver, page: Page) -> None:
    node = driver.add(FakeNode("input", id="q"))

    await page.locator("#q").press_sequentially("hé\n")

    assert node.value == "hé"
    assert ("insert_text", "é") in driver.events
    assert ("key_down", "Enter") in driver.events


@pytest.mark.asyncio
async def test_keyboard_combo_order(driver: FakeDriver, page: Page) -> None:
    await page.keyboard.press("Control+Shift+K")

    assert driver.events == [
        ("key_down", "Control"),
        ("key_down", "Shift"),
        ("key_down", "K"),
        ("key_up", "K"),
        ("key_up", "Shift"),
        ("key_up", "Control"),
    ]


@pytest.mark.asyncio
async def test_keyboard_type_and_insert(driver: FakeDriver, page: Page) -> None:
    node = driver.add(FakeNode("textarea", id="notes"))
    await page.locator("#notes").focus()

    await page.keyboard.type("ok")
    await page.keyboard.insert_text("!")

    assert node.value == "ok!"


@pytest.mark.asyncio
async def test_fill_rejects_non_fillable(driver: FakeDriver, page: Page) -> None:
    driver.add(FakeNode("input", id="cb", input_type="checkbox"))
    driver.add(FakeNode("div", id="plain", box=Box(0, 100, 5, 5)))

    with pytest.raises(InvalidElementType):
        await page.locator("#cb").fill("x")
    with pytest.raises(InvalidElementType):
        await page.locator("#plain").fill("x")


@pytest.mark.asyncio
async def test_fill_contenteditable(driver: FakeDriver, page: Page) -> None:
    node = driver.add(FakeNode("div", id="editor", content_editable=True))

    await page.locator("#editor").fill("draft")

    assert node.value == "draft"


# ---------------- select_option ----------------


@pytest.mark.asyncio
async def test_select_option_value_shapes(driver: FakeDriver, page: Page) -> None:
    select = driver.add(FakeNode("select", id="color", multiple=True))
    opts = _options(driver, select, ("r", "Red"), ("g", "Green"), ("b", "Blue"))
    loc = page.locator("#color")

    assert await loc.select_option("Green") == ["g"]
    assert await loc.select_option(["r", SelectOption(index=2)]) == ["r", "b"]
    assert await loc.select_option({"label": "Red"}) == ["r"]

    handle = (await page.query_selector_all("option"))[1]
    assert handle.ref is opts[1]
    assert await loc.select_option(handle) == ["g"]
    assert await loc.select_option([]) == []


@pytest.mark.asyncio
async def test_select_option_single_takes_first_match(driver: FakeDriver, page: Page) -> None:
    select = driver.add(FakeNode("select", id="size"))
    _options(driver, select, ("s", "Small"), ("m", "Medium"))

    assert await page.locator("#size").select_option(["m", "s"]) == ["m"]


@pytest.mark.asyncio
async def test_select_option_errors(driver: FakeDriver, page: Page) -> None:
    select = driver.add(FakeNode("select", id="size"))
    _options(driver, select, ("s", "Small"))
    driver.add(FakeNode("input", id="text", box=Box(0, 100, 5, 5)))

    with pytest.raises(ActionExecutionError, match="no option matched") as exc:
        await page.locator("#size").select_option("XL", timeout=1000)
    assert not isinstance(exc.value, TimeoutError)

    with pytest.raises(InvalidElementType):
        await page.locator("#text").select_option("s")


# ---------------- files ----------------


@pytest.mark.asyncio
async def test_set_input_files_from_paths(driver: FakeDriver, page: Page, tmp_path: Path) -> None:
    node = driver.add(FakeNode("input", id="docs", input_type="file", multiple=True))
    a = tmp_path / "a.txt"
    b = tmp_path / "b.pdf"
    a.write_text("a")
    b.write_bytes(b"%PDF")

    await page.locator("#docs").set_input_files([a, str(b)])

    assert node.files == ["a.txt", "b.pdf"]


@pytest.mark.asyncio
async def test_set_input_files_errors(driver: FakeDriver, page: Page, tmp_path: Path) -> None:
    driver.add(FakeNode("input", id="one", input_type="file"))
    driver.add(FakeNode("input", id="name", box=Box(0, 100, 5, 5)))
    a = tmp_path / "a.txt"
    a.write_text("a")

    with pytest.raises(FileNotFoundError):
        await page.locator("#one").set_input_files(tmp_path / "missing.txt")
    with pytest.raises(InvalidElementType):
        await page.locator("#one").set_input_files([a, a])
    with pytest.raises(InvalidElementType):
        await page.locator("#name").set_input_files(a)


# ---------------- element handles and page ----------------


@pytest.mark.asyncio
async def test_handle_scoped_queries(driver: FakeDriver, page: Page) -> None:
    form = driver.add(FakeNode("form", id="login"))
    user = form.add(FakeNode("input", id="user"))
    driver.add(FakeNode("input", id="elsewhere"))

    handle = await page.query_selector("#login")
    assert handle is not None
    inner = await handle.query_selector_all("input")
    assert [h.ref for h in inner] == [user]
    assert (await handle.query_selector("input")).ref is user
    assert await handle.query_selector("button") is None


@pytest.mark.asyncio
async def test_handle_wait_for_selector(driver: FakeDriver, page: Page) -> None:
    form = driver.add(FakeNode("form", id="f"))
    handle = await page.query_selector("#f")
    assert handle is not None
    driver.later(0.05, lambda: form.add(FakeNode("p", id="msg")))

    found = await handle.wait_for_selector("#msg", timeout=1000)

    assert found is not None
    assert found.ref.id == "msg"


@pytest.mark.asyncio
async def test_handle_wait_for_hidden_survives_detach(driver: FakeDriver, page: Page) -> None:
    node = driver.add(FakeNode("div", id="spinner"))
    handle = await page.query_selector("#spinner")
    assert handle is not None
    driver.later(0.05, node.remove)

    await handle.wait_for_element_state("hidden", timeout=1000)


@pytest.mark.asyncio
async def test_handle_action_after_detach_fails(driver: FakeDriver, page: Page) -> None:
    from actionable.core.errors import DetachedElementError

    node = driver.add(FakeNode("button", id="b"))
    handle = await page.query_selector("#b")
    assert handle is not None
    node.remove()

    with pytest.raises(DetachedElementError):
        await handle.click()
    with pytest.raises(DetachedElementError):
        await handle.wait_for_element_state("enabled")


@pytest.mark.asyncio
async def test_page_wait_for_selector(driver: FakeDriver, page: Page) -> None:
    driver.later(0.05, lambda: driver.add(FakeNode("div", id="late")))

    handle = await page.wait_for_selector("#late", timeout=1000)
    assert handle is not None and handle.ref.id == "late"

    driver.add(FakeNode("div", classes=("row",)))
    driver.add(FakeNode("div", classes=("row",)))
    assert await page.wait_for_selector(".row", state="attached") is not None
    with pytest.raises(StrictModeViolation):
        await page.wait_for_selector(".row", state="attached", strict=True)


@pytest.mark.asyncio
async def test_page_goto_uses_navigation_timeout(driver: FakeDriver, page: Page) -> None:
    page.set_default_timeout(1000)
    await page.goto("http://example.test/")
    page.set_default_navigation_timeout(7000)
    await page.goto("http://example.test/next")

    assert [e for e in driver.events if e[0] == "goto"] == [
        ("goto", "http://example.test/", 1000),
        ("goto", "http://example.test/next", 7000),
    ]
    assert page.url == "http://example.test/next"


@pytest.mark.asyncio
async def test_page_open_and_close(driver: FakeDriver) -> None:
    page = await Page.open(driver)
    assert page.ctx == "fake-ctx"
    await page.close()
    assert driver.count("close_context") == 1


# ---------------- cdp ----------------


@pytest.mark.asyncio
async def test_cdp_session_send_and_events(driver: FakeDriver, page: Page) -> None:
    session = await page.new_cdp_session()
    seen: list[object] = []

    result = await session.send("Runtime.evaluate", {"expression": "1+1"})
    session.on("Network.requestWillBeSent", seen.append)
    driver.cdp.emit("Network.requestWillBeSent", {"id": 1})
    session.off("Network.requestWillBeSent", seen.append)
    driver.cdp.emit("Network.requestWillBeSent", {"id": 2})

    assert result == {"method": "Runtime.evaluate", "ok": True}
    assert driver.cdp.sent == [("Runtime.evaluate", {"expression": "1+1"})]
    assert seen == [{"id": 1}]


@pytest.mark.asyncio
async def test_cdp_session_errors(driver: FakeDriver, page: Page) -> None:
    session = await page.new_cdp_session()
    driver.cdp.fail_with = RuntimeError("Target closed")

    with pytest.raises(ProtocolError) as exc:
        await session.send("Page.reload")
    assert isinstance(exc.value.cause, RuntimeError)

    driver.cdp.fail_with = None
    await session.detach()
    assert driver.cdp.detached
    with pytest.raises(ProtocolError, match="detached"):
        await session.send("Page.reload")
