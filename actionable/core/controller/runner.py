# actionable/core/controller/runner.py
"""
Minimal sequential runner for ActionSpec[].

Responsibilities:
- Validate each spec via registry
- Execute actions against a Page, retrying whole steps on recoverable errors
- Optional random per-step delay
- On failure: save screenshot artifact (if artifacts_dir is set)
- Return per-step outcomes for CLI rendering

Actionability waiting already happens inside every step; step retries are an
outer layer for flaky pages. Logical errors (strict mode, wrong element kind)
fail the step at once.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .. import registry
from ..action import ActionSpec
from ..errors import ActionExecutionError, InvalidElementType, StrictModeViolation

logger = logging.getLogger(__name__)

_NOT_RETRIED = (StrictModeViolation, InvalidElementType)


@dataclass
class StepOutcome:
    """UI-friendly outcome used by the CLI."""

    index: int
    name: str
    ok: bool
    detail: str = "-"
    artifact_path: str | None = None
    attempts: int = 1
    # Filled from ActionResult on success:
    extracted: str | None = None  # e.g., text extracted by extract_text
    meta: dict[str, Any] | None = None  # e.g., {"selector": "#company"} or {"url": "..."}


class Runner:
    def __init__(
        self,
        *,
        retries: int = 0,
        artifacts_dir: Path | None = None,
        random_delay_ms: tuple[int, int] | None = None,
    ) -> None:
        self.retries = max(0, retries)
        self.artifacts_dir = artifacts_dir
        self.random_delay_ms = random_delay_ms
        if self.artifacts_dir:
            self.artifacts_dir.mkdir(parents=True, exist_ok=True)

    async def run(self, page: Any, specs: list[ActionSpec]) -> list[StepOutcome]:
        outcomes: list[StepOutcome] = []

        for i, spec in enumerate(specs, start=1):
            name = spec.name

            # 1) validate params
            try:
                _meta, params = registry.validate_spec(spec)
            except (ValidationError, KeyError) as e:
                outcomes.append(
                    StepOutcome(index=i, name=name, ok=False, detail=f"invalid spec: {e}")
                )
                await self._maybe_delay()
                continue

            # 2) execute with retries
            attempt = 0
            while True:
                try:
                    fn = registry.get_action(name)
                    res = await fn(page, params)
                    outcomes.append(
                        StepOutcome(
                            index=i,
                            name=name,
                            ok=bool(res.ok),
                            detail=self._detail(res),
                            attempts=attempt + 1,
                            extracted=res.extracted_content,
                            meta=dict(res.meta),
                        )
                    )
                    break

                except ActionExecutionError as e:
                    attempt += 1
                    if attempt > self.retries or isinstance(e, _NOT_RETRIED):
                        logger.warning("step %d (%s) failed: %s", i, name, e)
                        artifact = await self._on_failure(page, i, name)
                        outcomes.append(
                            StepOutcome(
                                index=i,
                                name=name,
                                ok=False,
                                detail=str(e),
                                artifact_path=artifact,
                                attempts=attempt,
                            )
                        )
                        break
                    logger.info("step %d (%s) failed, retrying (%d/%d)", i, name, attempt, self.retries)
                    # simple backoff
                    await asyncio.sleep(0.5 * attempt)

                finally:
                    await self._maybe_delay()

        return outcomes

    @staticmethod
    def _detail(res: Any) -> str:
        """Human-friendly detail for the CLI."""
        if res.extracted_content:
            text = res.extracted_content
            return (text[:120] + "…") if len(text) > 120 else text
        m = res.meta
        if "url" in m:
            return str(m["url"])
        if "selected" in m:
            return f"selected={m['selected']}"
        if "selector" in m:
            return f'selector="{m["selector"]}"'
        return "-"

    async def _maybe_delay(self) -> None:
        if not self.random_delay_ms:
            return
        low, high = self.random_delay_ms
        if low < 0 or high < 0 or high < low:
            return
        ms = random.randint(low, high)
        await asyncio.sleep(ms / 1000)

    async def _on_failure(self, page: Any, index: int, name: str) -> str | None:
        """Best-effort failure artifact (screenshot)."""
        if not self.artifacts_dir:
            return None
        png = self.artifacts_dir / f"fail-{index:02d}-{name}.png"
        try:
            await page.screenshot(str(png), full_page=True)
            return str(png)
        except ActionExecutionError as e:
            logger.debug("failure screenshot not taken: %s", e)
            return None
