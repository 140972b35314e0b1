"""pytest plugin: suite-scoped application session and per-test window fixture.

Registered through the ``pytest11`` entry point.  Fixtures:

- ``winqa_config``  -- resolved WinQAConfig (``--winqa-dir`` or upward search)
- ``winqa_session`` -- SuiteSession started once per test session
- ``app_window``    -- the main window, foregrounded before each test, with a
  screenshot captured when the test fails
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

from winqa.config import WinQAConfig, find_project_dir
from winqa.engine.protocols import DesktopWindow
from winqa.session import SuiteSession


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("winqa")
    group.addoption(
        "--winqa-dir",
        default=None,
        help="Path to the .winqa/ project directory.",
    )


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item: pytest.Item, call: pytest.CallInfo) -> Iterator[None]:
    outcome = yield
    report = outcome.get_result()
    setattr(item, f"winqa_rep_{report.when}", report)


def _test_failed(item: pytest.Item) -> bool:
    """True when the setup or call phase of *item* failed."""
    for phase in ("setup", "call"):
        report = getattr(item, f"winqa_rep_{phase}", None)
        if report is not None and report.failed:
            return True
    return False


@pytest.fixture(scope="session")
def winqa_config(request: pytest.FixtureRequest) -> WinQAConfig:
    option = request.config.getoption("--winqa-dir")
    project_dir = Path(option) if option else find_project_dir()
    return WinQAConfig.load(project_dir)


@pytest.fixture(scope="session")
def winqa_session(winqa_config: WinQAConfig) -> Iterator[SuiteSession]:
    session = SuiteSession(winqa_config)
    session.start()
    yield session
    session.stop()


@pytest.fixture
def app_window(request: pytest.FixtureRequest, winqa_session: SuiteSession) -> Iterator[DesktopWindow | None]:
    name = request.node.name
    winqa_session.before_test(name)
    yield winqa_session.main_window
    winqa_session.after_test(name, failed=_test_failed(request.node))
