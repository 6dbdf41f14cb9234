"""Page.mouse raw input and expect(locator) polling assertions."""

import re

import pytest

from actionable.api.assertions import expect
from actionable.api.page import Page
from actionable.core.errors import InvalidElementType, StrictModeViolation
from actionable.core.settings import settings
from actionable.io.driver import Box
from fakes import FakeDriver, FakeNode


def _moves(driver: FakeDriver) -> list[tuple[float, float]]:
    return [(e[1], e[2]) for e in driver.events if e[0] == "mouse_move"]


# ---------------- mouse ----------------


@pytest.mark.asyncio
async def test_mouse_move_interpolates_steps(driver: FakeDriver, page: Page) -> None:
    await page.mouse.move(40, 20, steps=4)
    assert _moves(driver) == [(10, 5), (20, 10), (30, 15), (40, 20)]

    await page.mouse.move(40, 40)
    assert _moves(driver)[-1] == (40, 40)
    assert page.mouse.position.y == 40


@pytest.mark.asyncio
async def test_mouse_click_and_dblclick_count_up(driver: FakeDriver, page: Page) -> None:
    btn = driver.add(FakeNode("button", box=Box(0, 0, 50, 50)))

    await page.mouse.click(25, 25, button="right")
    assert ("mouse_down", "right", 1) in driver.events
    assert btn.clicks == 1

    driver.events.clear()
    await page.mouse.dblclick(25, 25)
    presses = [e for e in driver.events if e[0] in ("mouse_down", "mouse_up")]
    assert presses == [
        ("mouse_down", "left", 1),
        ("mouse_up", "left", 1),
        ("mouse_down", "left", 2),
        ("mouse_up", "left", 2),
    ]


@pytest.mark.asyncio
async def test_mouse_down_up_and_wheel(driver: FakeDriver, page: Page) -> None:
    await page.mouse.down(button="middle")
    await page.mouse.up(button="middle", click_count=2)
    await page.mouse.wheel(0, 120)

    assert driver.events == [
        ("mouse_down", "middle", 1),
        ("mouse_up", "middle", 2),
        ("mouse_wheel", 0, 120),
    ]


@pytest.mark.asyncio
async def test_mouse_rejects_bad_options(driver: FakeDriver, page: Page) -> None:
    with pytest.raises(ValueError):
        await page.mouse.click(1, 1, button="back")
    with pytest.raises(ValueError):
        await page.mouse.down(click_count=0)
    with pytest.raises(ValueError):
        await page.mouse.move(1, 1, steps=0)
    with pytest.raises(ValueError):
        await page.mouse.dblclick(1, 1, click_count=3)
    assert driver.events == []


# ---------------- expect ----------------


@pytest.mark.asyncio
async def test_to_be_visible_polls_until_shown(driver: FakeDriver, page: Page) -> None:
    node = driver.add(FakeNode("div", id="toast", visible=False))
    driver.later(0.05, lambda: setattr(node, "visible", True))

    await expect(page.locator("#toast")).to_be_visible(timeout=2000)
    assert driver.facts_calls > 1


@pytest.mark.asyncio
async def test_to_have_text_failure_message(driver: FakeDriver, page: Page) -> None:
    driver.add(FakeNode("span", id="status", text="Saving..."))

    with pytest.raises(AssertionError) as ei:
        await expect(page.locator("#status"), timeout=100).to_have_text("Saved")
    msg = str(ei.value)
    assert msg.startswith("Locator expected to have text: 'Saved'\nReceived: 'Saving...'")
    assert "Timeout: 100ms" in msg

    with pytest.raises(AssertionError, match="expected not to have text"):
        await expect(page.locator("#status")).not_.to_have_text("Saving...", timeout=50)


@pytest.mark.asyncio
async def test_text_matchers_normalize_whitespace(driver: FakeDriver, page: Page) -> None:
    driver.add(FakeNode("p", id="greet", text="  Hello \n   world  "))
    loc = page.locator("#greet")

    await expect(loc).to_have_text("Hello world")
    await expect(loc).to_contain_text("lo wor")
    await expect(loc).to_have_text(re.compile(r"Hel+o\s+w"))
    await expect(loc).not_.to_have_text("Hello")
    await expect(loc).not_.to_contain_text(re.compile(r"^bye"))


@pytest.mark.asyncio
async def test_state_matchers(driver: FakeDriver, page: Page) -> None:
    driver.add(FakeNode("input", id="name"))
    driver.add(FakeNode("input", id="ro", readonly=True))
    driver.add(FakeNode("button", id="off", enabled=False))
    driver.add(FakeNode("input", id="agree", input_type="checkbox", checked=True))

    await expect(page.locator("#name")).to_be_editable()
    await expect(page.locator("#ro")).not_.to_be_editable()
    await expect(page.locator("#off")).to_be_disabled()
    await expect(page.locator("#name")).to_be_enabled()
    await expect(page.locator("#agree")).to_be_checked()
    await expect(page.locator("#agree")).not_.to_be_checked(checked=False)
    await expect(page.locator("#gone")).to_be_hidden()
    await expect(page.locator("#name")).to_be_attached()
    await expect(page.locator("#gone")).to_be_attached(attached=False)


@pytest.mark.asyncio
async def test_to_be_checked_on_non_checkbox_fails_at_once(driver: FakeDriver, page: Page) -> None:
    driver.add(FakeNode("div", id="box"))
    with pytest.raises(InvalidElementType):
        await expect(page.locator("#box"), timeout=0).to_be_checked()


@pytest.mark.asyncio
async def test_value_attribute_and_count(driver: FakeDriver, page: Page) -> None:
    driver.add(FakeNode("input", id="q", value="kittens", attrs={"aria-label": "Search"}))
    ul = driver.add(FakeNode("ul"))
    ul.add(FakeNode("li"))
    driver.later(0.03, lambda: ul.add(FakeNode("li")))

    await expect(page.locator("#q")).to_have_value("kittens")
    await expect(page.locator("#q")).to_have_attribute("aria-label", re.compile("^Sea"))
    await expect(page.locator("li")).to_have_count(2, timeout=2000)

    with pytest.raises(AssertionError, match="Locator expected to have count: 5\nReceived: 2"):
        await expect(page.locator("li")).to_have_count(5, timeout=50)


@pytest.mark.asyncio
async def test_assertions_release_handles(driver: FakeDriver, page: Page) -> None:
    driver.add(FakeNode("span", id="a", text="x"))
    driver.add(FakeNode("b"))
    driver.add(FakeNode("b"))

    await expect(page.locator("#a")).to_have_text("x")
    await expect(page.locator("#a")).to_be_visible()
    with pytest.raises(StrictModeViolation):
        await expect(page.locator("b")).to_be_visible()
    assert driver.disposed == driver.handed_out


@pytest.mark.asyncio
async def test_expect_timeout_comes_from_settings(
    driver: FakeDriver, page: Page, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(settings, "expect_timeout_ms", 40)
    with pytest.raises(AssertionError, match="Timeout: 40ms"):
        await expect(page.locator("#missing")).to_be_visible()
