"""
CLI entrypoint.

doctor: print the effective settings.
validate: offline script check against the registered params models.
run: execute a script in a browser through the actionability engine, using
Runner for retries, random delay, and failure artifacts.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional, Tuple

import typer
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.table import Table

from ..core import registry
from ..core.action import ActionSpec
from ..core.controller.runner import Runner, StepOutcome
from ..core.log import configure_logging
from ..core.settings import settings

app = typer.Typer(help="actionable CLI")
console = Console()


def _load_specs(script: Path, command: str) -> list[ActionSpec]:
    if not script.exists():
        typer.secho(f"[{command}] file not found: {script}", fg=typer.colors.RED)
        raise typer.Exit(code=2)
    try:
        data = json.loads(script.read_text(encoding="utf-8"))
        specs = TypeAdapter(list[ActionSpec]).validate_python(data)
    except json.JSONDecodeError as je:
        typer.secho(f"[{command}] not valid JSON: {je}", fg=typer.colors.RED)
        raise typer.Exit(code=2)
    except ValidationError as ve:
        typer.secho(f"[{command}] invalid file format for ActionSpec[]", fg=typer.colors.RED)
        console.print(ve)
        raise typer.Exit(code=2)

    # import action implementations to trigger registration
    import actionable.actions.impl  # noqa: F401

    return specs


@app.callback()
def _main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override ACT_LOG_LEVEL"),
) -> None:
    configure_logging(log_level)


@app.command("doctor")
def doctor() -> None:
    """Environment check: print key settings to confirm CLI is usable."""
    console.print("[bold green]actionable[/] environment")
    console.print(f"- headless:           {settings.headless}")
    console.print(f"- default timeout:    {settings.default_timeout_ms:.0f}ms")
    nav = settings.navigation_timeout_ms
    console.print(f"- navigation timeout: {'default' if nav is None else f'{nav:.0f}ms'}")
    console.print(f"- poll intervals:     {settings.poll_intervals_ms}")
    console.print(f"- navigation actions: {', '.join(settings.navigation_actions)}")
    console.print(f"- navigation grace:   {settings.navigation_grace_ms:.0f}ms")
    console.print(f"- expect timeout:     {settings.expect_timeout_ms:.0f}ms")
    console.print(f"- log level:          {settings.log_level}")

    import actionable.actions.impl  # noqa: F401

    table = Table(title="Registered Actions", show_header=True, header_style="bold")
    table.add_column("action")
    table.add_column("params")
    table.add_column("fields")
    table.add_column("summary")
    for name, model, fields in registry.describe():
        table.add_row(name, model, fields, registry.get_meta(name).summary)
    console.print(table)


@app.command("validate")
def validate(script: Path = typer.Argument(..., help="Path to JSON file of ActionSpec[]")) -> None:
    """
    Offline spec validation: read JSON array [{name, args}] and validate each item
    against the params model bound in the registry. Print a table result and exit
    non-zero if any failures.
    """
    specs = _load_specs(script, "validate")

    table = Table(title="Validation Results", show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("name")
    table.add_column("result")
    table.add_column("detail")

    failures = 0
    for i, spec in enumerate(specs, start=1):
        try:
            _meta, _params = registry.validate_spec(spec)
            table.add_row(str(i), spec.name, "[green]OK[/]", "-")
        except KeyError as ke:
            failures += 1
            table.add_row(str(i), spec.name, "[red]Not Registered[/]", str(ke))
        except ValidationError as ve:
            failures += 1
            err = ve.errors()[0]
            loc = ".".join(str(p) for p in err.get("loc", ()))
            msg = err.get("msg", "invalid args")
            table.add_row(str(i), spec.name, "[red]Invalid Args[/]", f"{loc}: {msg}" if loc else msg)

    console.print(table)
    if failures:
        raise typer.Exit(code=1)
    typer.secho("[validate] all specs passed", fg=typer.colors.GREEN)


@app.command("run")
def run(
    script: Path = typer.Argument(..., help="Path to JSON file of ActionSpec[]"),
    headless: bool = typer.Option(
        settings.headless, "--headless/--no-headless", help="Run browser headless"
    ),
    slowmo: int = typer.Option(0, "--slowmo", help="Slow motion in ms (debug)"),
    timeout_ms: Optional[float] = typer.Option(
        None, "--timeout-ms", help="Default action timeout for this run (0 = wait forever)"
    ),
    retries: int = typer.Option(0, "--retries", help="Retry times on ActionExecutionError"),
    artifacts_dir: Path = typer.Option(
        Path("artifacts"), "--artifacts-dir", help="Where to save failure screenshots"
    ),
    # NOTE: Typer parses tuple as two space-separated ints, e.g. "--random-delay-ms 500 1500"
    random_delay_ms: Tuple[int, int] = typer.Option(
        (0, 0),
        "--random-delay-ms",
        help="Random delay range in ms, e.g. --random-delay-ms 500 1500",
    ),
) -> None:
    """
    Execute a list of actions: read JSON -> structure check -> param check -> run in browser.
    Prints a table of results; returns non-zero on any failure.
    """
    specs = _load_specs(script, "run")

    from ..api.page import Page
    from ..io.playwright_driver import PlaywrightDriver

    async def _run() -> int:
        driver = PlaywrightDriver(headless=headless, slow_mo_ms=slowmo)
        page: Optional[Page] = None
        try:
            await driver.start()
            page = await Page.open(driver)
            if timeout_ms is not None:
                page.set_default_timeout(timeout_ms)
            rnd = None if (random_delay_ms[0] == 0 and random_delay_ms[1] == 0) else random_delay_ms
            runner = Runner(retries=retries, artifacts_dir=artifacts_dir, random_delay_ms=rnd)
            rows: list[StepOutcome] = await runner.run(page, specs)

            table = Table(title="Run Results", show_header=True, header_style="bold")
            table.add_column("#", justify="right", style="dim")
            table.add_column("name")
            table.add_column("result")
            table.add_column("attempts", justify="right")
            table.add_column("detail")

            failures = 0
            for r in rows:
                result = "[green]OK[/]" if r.ok else "[red]FAIL[/]"
                detail = r.detail
                if (not r.ok) and r.artifact_path:
                    detail = f"{detail} (artifact: {r.artifact_path})"
                if not r.ok:
                    failures += 1
                table.add_row(str(r.index), r.name, result, str(r.attempts), detail)

            console.print(table)
            return 1 if failures else 0

        finally:
            if page is not None:
                await page.close()
            await driver.stop()

    code = asyncio.run(_run())
    if code != 0:
        raise typer.Exit(code=code)
    typer.secho("[run] completed successfully", fg=typer.colors.GREEN)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
