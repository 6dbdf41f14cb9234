"""Script layer: registry validation, Runner retries/artifacts, and the Typer CLI."""

import json
import logging
from pathlib import Path

import pytest
from pydantic import ValidationError
from typer.testing import CliRunner

import actionable.actions.impl  # noqa: F401  (registers actions)
from actionable.api.page import Page
from actionable.cli.main import app
from actionable.core import registry
from actionable.core.action import ActionSpec
from actionable.core.controller.runner import Runner
from actionable.core.errors import ProtocolError, TimeoutError
from actionable.core.result import ActionResult
from actionable.io.driver import Box
from fakes import FakeDriver, FakeNode

cli = CliRunner()


def test_builtin_actions_registered() -> None:
    names = set(registry.list_actions())
    assert {"open_url", "click", "fill", "type", "check", "select_option", "snapshot"} <= names


def test_registry_describe_and_unregister(
    caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
) -> None:
    # configure_logging() from the CLI tests stops propagation to the capture handler
    monkeypatch.setattr(logging.getLogger("actionable"), "propagate", True)
    rows = {name: (model, fields) for name, model, fields in registry.describe()}
    model, fields = rows["click"]
    assert model == "ClickParams"
    assert fields.startswith("selector, ")
    assert "button?" in fields
    assert registry.get_meta("click").summary.startswith("click")

    async def temp(_page: Page, _params: object) -> ActionResult:
        """Temporary action."""
        return ActionResult.success(step="temp")

    async def other(_page: Page, _params: object) -> ActionResult:
        return ActionResult.success(step="temp")

    registry.register("temp", temp)
    assert registry.get_meta("temp").summary == "Temporary action."
    assert registry.get_meta("temp").fields == []
    with caplog.at_level("WARNING", logger="actionable.core.registry"):
        registry.register("temp", other)
    assert "re-registered" in caplog.text

    registry.unregister("temp")
    assert "temp" not in registry.list_actions()
    with pytest.raises(KeyError):
        registry.get_action("temp")


def test_validate_spec_parses_params() -> None:
    _meta, params = registry.validate_spec(
        ActionSpec(name="wait_for", args={"selector": " #x ", "state": "hidden"})
    )
    assert params.selector == "#x"
    assert params.state.value == "hidden"

    with pytest.raises(ValidationError):
        registry.validate_spec(ActionSpec(name="click", args={"selector": ""}))
    with pytest.raises(ValidationError):
        registry.validate_spec(ActionSpec(name="click", args={"selector": "#a", "bogus": 1}))
    with pytest.raises(KeyError):
        registry.validate_spec(ActionSpec(name="teleport"))


def _form(driver: FakeDriver) -> FakeNode:
    driver.add(FakeNode("input", id="q", box=Box(10, 10, 200, 20)))
    result = driver.add(FakeNode("div", id="result", box=Box(10, 100, 200, 20)))
    go = driver.add(FakeNode("button", id="go", box=Box(10, 50, 60, 20)))

    def submit(_node: FakeNode) -> None:
        result.text = driver.body.children[0].value

    go.on_click = submit
    return result


@pytest.mark.asyncio
async def test_runner_executes_script(driver: FakeDriver, page: Page) -> None:
    _form(driver)
    specs = [
        ActionSpec(name="fill", args={"selector": "#q", "text": "hello"}),
        ActionSpec(name="click", args={"selector": "#go"}),
        ActionSpec(name="wait_for", args={"selector": "#result", "timeout_ms": 1000}),
        ActionSpec(name="extract_text", args={"selector": "#result"}),
    ]

    rows = await Runner().run(page, specs)

    assert [r.ok for r in rows] == [True, True, True, True]
    assert rows[-1].extracted == "hello"
    assert rows[-1].detail == "hello"
    assert rows[1].detail == 'selector="#go"'


@pytest.mark.asyncio
async def test_runner_reports_invalid_step_and_continues(page: Page) -> None:
    rows = await Runner().run(
        page,
        [
            ActionSpec(name="nope"),
            ActionSpec(name="snapshot", args={"path": "x.png", "extra": True}),
        ],
    )
    assert [r.ok for r in rows] == [False, False]
    assert rows[0].detail.startswith("invalid spec")


@pytest.mark.asyncio
async def test_runner_retries_then_succeeds(page: Page) -> None:
    calls = []

    async def flaky(_page: Page, _params: object) -> ActionResult:
        calls.append(1)
        if len(calls) == 1:
            raise TimeoutError("flaky", "timeout 10ms exceeded")
        return ActionResult.success(step="flaky")

    registry.register("flaky", flaky)
    try:
        rows = await Runner(retries=1).run(page, [ActionSpec(name="flaky")])
    finally:
        registry.unregister("flaky")

    assert rows[0].ok
    assert rows[0].attempts == 2


@pytest.mark.asyncio
async def test_runner_does_not_retry_strict_violation(
    driver: FakeDriver, page: Page, tmp_path: Path
) -> None:
    driver.add(FakeNode("button", classes=("b",)))
    driver.add(FakeNode("button", classes=("b",)))

    rows = await Runner(retries=3, artifacts_dir=tmp_path).run(
        page, [ActionSpec(name="click", args={"selector": ".b"})]
    )

    assert not rows[0].ok
    assert rows[0].attempts == 1
    assert "strict mode violation" in rows[0].detail
    assert rows[0].artifact_path is not None
    assert Path(rows[0].artifact_path).exists()


def _script(tmp_path: Path, steps: list) -> Path:
    path = tmp_path / "script.json"
    path.write_text(json.dumps(steps), encoding="utf-8")
    return path


def test_cli_validate_ok(tmp_path: Path) -> None:
    script = _script(
        tmp_path,
        [
            {"name": "open_url", "args": {"url": "http://127.0.0.1:8765/"}},
            {"name": "select_option", "args": {"selector": "#c", "values": ["red", {"index": 1}]}},
            {"name": "set_input_files", "args": {"selector": "#f", "files": []}},
        ],
    )
    result = cli.invoke(app, ["validate", str(script)])
    assert result.exit_code == 0, result.output
    assert "all specs passed" in result.output


def test_cli_validate_failures(tmp_path: Path) -> None:
    script = _script(
        tmp_path,
        [
            {"name": "click", "args": {}},
            {"name": "teleport", "args": {}},
        ],
    )
    result = cli.invoke(app, ["validate", str(script)])
    assert result.exit_code == 1
    assert "Invalid" in result.output
    assert "Registered" in result.output


def test_cli_validate_missing_file(tmp_path: Path) -> None:
    result = cli.invoke(app, ["validate", str(tmp_path / "none.json")])
    assert result.exit_code == 2


def test_cli_doctor() -> None:
    result = cli.invoke(app, ["doctor"])
    assert result.exit_code == 0
    assert "default timeout" in result.output
    assert "navigation grace" in result.output
    assert "Registered Actions" in result.output
    assert "select_option" in result.output


class _CliDriver(FakeDriver):
    """Stands in for PlaywrightDriver in `run`; remembers the instances it made."""

    made: list["_CliDriver"] = []
    fail_open = False

    def __init__(self, *, headless: bool | None = None, slow_mo_ms: int = 0) -> None:
        super().__init__()
        _CliDriver.made.append(self)

    async def new_context(self) -> str:
        if self.fail_open:
            raise ProtocolError("new_context", "browser crashed")
        return await super().new_context()


@pytest.fixture
def cli_driver(monkeypatch: pytest.MonkeyPatch) -> type[_CliDriver]:
    import actionable.io.playwright_driver as pw

    _CliDriver.made = []
    monkeypatch.setattr(pw, "PlaywrightDriver", _CliDriver)
    monkeypatch.setattr(_CliDriver, "fail_open", False)
    return _CliDriver


def test_cli_run_stops_driver_when_page_open_fails(
    tmp_path: Path, cli_driver: type[_CliDriver], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(cli_driver, "fail_open", True)

    result = cli.invoke(app, ["run", str(_script(tmp_path, []))])

    assert isinstance(result.exception, ProtocolError)
    [driver] = cli_driver.made
    assert driver.events == [("start",), ("stop",)]


def test_cli_run_closes_page_then_stops(tmp_path: Path, cli_driver: type[_CliDriver]) -> None:
    result = cli.invoke(app, ["run", str(_script(tmp_path, []))])

    assert result.exit_code == 0, result.output
    [driver] = cli_driver.made
    assert driver.events == [("start",), ("close_context",), ("stop",)]
