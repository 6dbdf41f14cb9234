import functools
import http.server
import socketserver
import threading
from collections.abc import AsyncIterator, Iterator
from pathlib import Path

import pytest
import pytest_asyncio
from playwright.async_api import Error as PwError
from pydantic import TypeAdapter

import actionable.actions.impl  # noqa: F401  (registers actions)
from actionable.api.assertions import expect
from actionable.api.page import Page
from actionable.core.action import ActionSpec
from actionable.core.controller.runner import Runner
from actionable.core.errors import TimeoutError
from actionable.io.playwright_driver import PlaywrightDriver


@pytest.fixture(scope="session")
def web_server() -> Iterator[str]:
    root = Path(__file__).resolve().parent / "fixtures"
    Handler = functools.partial(http.server.SimpleHTTPRequestHandler, directory=str(root))
    httpd = socketserver.TCPServer(("127.0.0.1", 0), Handler)
    port = httpd.server_address[1]
    t = threading.Thread(target=httpd.serve_forever, daemon=True)
    t.start()
    try:
        yield f"http://127.0.0.1:{port}"
    finally:
        httpd.shutdown()
        httpd.server_close()


@pytest_asyncio.fixture
async def browser_page() -> AsyncIterator[Page]:
    driver = PlaywrightDriver(headless=True)
    try:
        await driver.start()
    except PwError as e:
        await driver.stop()
        pytest.skip(f"no browser available: {e}")
    page = await Page.open(driver)
    try:
        yield page
    finally:
        await page.close()
        await driver.stop()


@pytest.mark.asyncio
async def test_smoke_end_to_end(web_server: str, browser_page: Page) -> None:
    data = [
        {"name": "open_url", "args": {"url": f"{web_server}/smoke.html"}},
        {"name": "fill", "args": {"selector": "#q", "text": "hello"}},
        {"name": "click", "args": {"selector": "#go"}},
        {"name": "wait_for", "args": {"selector": "#result", "timeout_ms": 5000}},
        {"name": "extract_text", "args": {"selector": "#result"}},
        {"name": "check", "args": {"selector": "#agree"}},
        {"name": "select_option", "args": {"selector": "#color", "values": ["Green"]}},
    ]
    specs = TypeAdapter(list[ActionSpec]).validate_python(data)

    rows = await Runner().run(browser_page, specs)

    assert all(r.ok for r in rows), [r.detail for r in rows]
    assert rows[4].extracted == "hello"
    assert await browser_page.locator("#agree").is_checked()
    assert await browser_page.locator("#color").input_value() == "g"


@pytest.mark.asyncio
async def test_click_waits_for_navigation(web_server: str, browser_page: Page) -> None:
    await browser_page.goto(f"{web_server}/smoke.html")

    await browser_page.locator("#next").click()

    # no waiting here: the click returns only after the new document loaded
    assert browser_page.ctx.url.endswith("/next.html")
    heading = await browser_page.query_selector("#heading")
    assert heading is not None
    assert await heading.text_content() == "Arrived"
    await heading.dispose()


@pytest.mark.asyncio
async def test_hidden_result_times_out(web_server: str, browser_page: Page) -> None:
    await browser_page.goto(f"{web_server}/smoke.html")

    with pytest.raises(TimeoutError):
        await browser_page.locator("#result").click(timeout=300)


@pytest.mark.asyncio
async def test_cdp_session_round_trip(web_server: str, browser_page: Page) -> None:
    await browser_page.goto(f"{web_server}/smoke.html")
    session = await browser_page.new_cdp_session()
    try:
        result = await session.send("Runtime.evaluate", {"expression": "1 + 1"})
        assert result["result"]["value"] == 2
    finally:
        await session.detach()


@pytest.mark.asyncio
async def test_mouse_and_expect_against_real_page(web_server: str, browser_page: Page) -> None:
    await browser_page.goto(f"{web_server}/smoke.html")
    # raw mouse input does not wait for the overlay to go away
    await expect(browser_page.locator("#overlay")).to_have_count(0)
    box = await browser_page.locator("#agree").bounding_box()
    assert box is not None

    await browser_page.mouse.click(box.x + box.width / 2, box.y + box.height / 2)

    await expect(browser_page.locator("#agree")).to_be_checked()
    await expect(browser_page.locator("#result")).to_be_hidden()
    await expect(browser_page.locator("#heading")).to_have_count(0)
