# @file purpose: Shared fixtures for engine/API tests.

from __future__ import annotations

import pytest

from actionable.api.page import Page
from fakes import FakeDriver


@pytest.fixture
def driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def page(driver: FakeDriver) -> Page:
    return Page(driver, "fake-ctx")
