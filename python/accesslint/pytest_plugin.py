# SPDX-License-Identifier: AGPL-3.0-only
"""pytest integration.

Registered through the ``pytest11`` entry point. Configure an engine with
``--accesslint-engine module:attr`` (or ``engine`` in the config file), then
use the ``accesslint`` fixture:

    @pytest.mark.accesslint(test="todo")
    def test_card(accesslint):
        accesslint.audit(render_card())

Each audit attaches its report record to the test's ``user_properties``.
"""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest

from .config import Config
from .constants import PARAM_KEY
from .engine import load_engine
from .matchers import assert_accessible
from .reporting import ReportingEmitter
from .runner import AuditRunner, StoryContext
from .types import ReportRecord

REPORT_PROPERTY = "accesslint"


def pytest_addoption(parser: Any) -> None:
    group = parser.getgroup("accesslint", "accessibility audits")
    group.addoption("--accesslint-engine", default=None, help="Rule engine entrypoint (module:attr)")
    group.addoption(
        "--accesslint-skip-tag",
        action="append",
        default=[],
        help="Additional tag that skips the audit (repeatable)",
    )
    group.addoption("--accesslint-config", default=None, help="Path to accesslint.toml or pyproject.toml")


def pytest_configure(config: Any) -> None:
    config.addinivalue_line(
        "markers",
        "accesslint(tags=None, test=None, disabled_rules=None): per-test accessibility audit settings",
    )


def _load_config(pytestconfig: Any) -> Config:
    path = pytestconfig.getoption("accesslint_config")
    base = Config.load(Path(path) if path else None)
    extra = pytestconfig.getoption("accesslint_skip_tag") or []
    if extra:
        base = base.with_overrides(skip_tags=[*base.configured_skip_tags, *extra])
    return base


class TestReporter:
    """Reporting sink that records onto the running test item."""

    __test__ = False

    def __init__(self, node: Any) -> None:
        self.node = node
        self.reports: list[dict[str, Any]] = []

    def add_report(self, report: dict[str, Any]) -> None:
        self.reports.append(report)
        self.node.user_properties.append((REPORT_PROPERTY, report))


class StoryAuditor:
    def __init__(self, runner: AuditRunner, node: Any) -> None:
        self.runner = runner
        self.node = node
        self.reporter = TestReporter(node)
        self._count = 0

    def _context(self, canvas: Any, document: Any = None) -> StoryContext:
        marker = self.node.get_closest_marker("accesslint")
        kwargs = marker.kwargs if marker is not None else {}
        params: dict[str, Any] = {}
        if kwargs.get("test"):
            params["test"] = kwargs["test"]
        if kwargs.get("disabled_rules"):
            params["disabledRules"] = list(kwargs["disabled_rules"])
        self._count += 1
        story_id = self.node.nodeid if self._count == 1 else f"{self.node.nodeid}#{self._count}"
        tags = [*kwargs.get("tags", ()), *(m.name.replace("_", "-") for m in self.node.iter_markers())]
        return StoryContext(
            story_id=story_id,
            tags=tags,
            parameters={PARAM_KEY: params},
            canvas=canvas,
            document=document,
            reporting=self.reporter,
        )

    def audit(self, canvas: Any, document: Any = None) -> ReportRecord | None:
        """Blocking audit. Inside a running loop this is a single-shot pass;
        coroutine tests that want the chunked path use `audit_async`."""
        context = self._context(canvas, document)
        if not self.runner.config.chunked:
            return self.runner.run_sync(context)
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.runner.run(context))
        return self.runner.run_sync(context)

    async def audit_async(self, canvas: Any, document: Any = None) -> ReportRecord | None:
        context = self._context(canvas, document)
        if self.runner.config.chunked:
            return await self.runner.run(context)
        return self.runner.run_sync(context)

    def assert_accessible(self, element: Any, disabled_rules: list[str] | None = None) -> None:
        disabled = [*self.runner.config.disabled_rules, *(disabled_rules or [])]
        assert_accessible(element, engine=self.runner.engine, disabled_rules=disabled)


@pytest.fixture(scope="session")
def accesslint_config(pytestconfig: Any) -> Config:
    return _load_config(pytestconfig)


@pytest.fixture(scope="session")
def accesslint_engine(pytestconfig: Any, accesslint_config: Config) -> Any:
    entrypoint = pytestconfig.getoption("accesslint_engine") or accesslint_config.engine
    if not entrypoint:
        pytest.skip("no accesslint engine configured (use --accesslint-engine module:attr)")
    engine = load_engine(entrypoint)
    engine.configure(disabled_rules=accesslint_config.disabled_rules)
    return engine


@pytest.fixture
def accesslint(request: Any, accesslint_engine: Any, accesslint_config: Config) -> StoryAuditor:
    runner = AuditRunner(accesslint_engine, ReportingEmitter(), config=accesslint_config)
    return StoryAuditor(runner, request.node)
