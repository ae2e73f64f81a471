# SPDX-License-Identifier: AGPL-3.0-only
"""Rendering-side hooks.

`decorator` audits interactively once a render settles; `after_each` is the
test-run hook and uses the chunked scheduler. `enable_accesslint` bundles both
for hosts outside a story browser (plain pytest, component test harnesses).
"""
from __future__ import annotations

import asyncio
from typing import Any, Callable

from .channel import Channel
from .config import Config
from .highlight import HighlightSynchronizer
from .reporting import ReportingEmitter
from .runner import AuditRunner, StoryContext
from .types import ReportRecord


class AccessLintAnnotations:
    def __init__(self, runner: AuditRunner, highlighter: HighlightSynchronizer | None = None) -> None:
        self.runner = runner
        self.highlighter = highlighter

    def decorator(self, story_fn: Callable[[], Any], context: StoryContext) -> Any:
        story = story_fn()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.runner.run_sync(context)
        else:
            loop.call_soon(self.runner.run_sync, context)
        return story

    async def after_each(self, context: StoryContext) -> ReportRecord | None:
        if self.runner.config.chunked:
            return await self.runner.run(context)
        return self.runner.run_sync(context)

    def teardown(self, context: StoryContext) -> None:
        self.runner.guard.invalidate(context.story_id)
        if self.highlighter is not None:
            self.highlighter.deactivate()

    @property
    def decorators(self) -> list[Callable[..., Any]]:
        return [self.decorator]


def enable_accesslint(
    engine: Any,
    *,
    channel: Channel | None = None,
    reporter: Any = None,
    config: Config | None = None,
) -> AccessLintAnnotations:
    config = config or Config.load()
    engine.configure(disabled_rules=config.disabled_rules)
    runner = AuditRunner(engine, ReportingEmitter(channel=channel, reporter=reporter), config=config)
    highlighter = HighlightSynchronizer(channel) if channel is not None else None
    return AccessLintAnnotations(runner, highlighter)
