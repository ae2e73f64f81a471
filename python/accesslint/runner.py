# SPDX-License-Identifier: AGPL-3.0-only
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from .config import Config
from .constants import PARAM_KEY
from .enrich import enrich_violations
from .reporting import ReportingEmitter, audit_meta, build_report, build_skipped_report
from .scheduler import AuditGuard, AuditTicket, run_chunked_audit, run_single_audit
from .scoping import filter_disabled, scope_violations
from .types import AuditResult, ReportRecord

LOGGER = logging.getLogger(__name__)


@dataclass
class StoryContext:
    """What the rendering host hands over for one unit under test."""

    story_id: str
    tags: list[str] = field(default_factory=list)
    parameters: dict[str, Any] = field(default_factory=dict)
    canvas: Any = None
    document: Any = None
    reporting: Any = None

    @property
    def a11y_parameters(self) -> dict[str, Any]:
        value = self.parameters.get(PARAM_KEY)
        return value if isinstance(value, dict) else {}

    @property
    def audited_document(self) -> Any:
        if self.document is not None:
            return self.document
        return getattr(self.canvas, "owner_document", None)


class AuditRunner:
    def __init__(
        self,
        engine: Any,
        emitter: ReportingEmitter,
        *,
        config: Config | None = None,
        guard: AuditGuard | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.engine = engine
        self.emitter = emitter
        self.config = config or Config()
        self.guard = guard or AuditGuard()
        self._clock = clock
        self._skip_tags = self.config.skip_tags()

    @property
    def skip_tags(self) -> list[str]:
        return list(self._skip_tags)

    def skip_reason(self, tags: Iterable[str]) -> str | None:
        present = set(tags or ())
        return next((tag for tag in self._skip_tags if tag in present), None)

    def test_mode(self, context: StoryContext) -> str:
        mode = context.a11y_parameters.get("test")
        return str(mode) if mode else self.config.test_mode

    def disabled_rules(self, context: StoryContext) -> list[str]:
        extra = context.a11y_parameters.get("disabledRules") or []
        return [*self.config.disabled_rules, *(str(r) for r in extra)]

    def _skip(self, context: StoryContext) -> ReportRecord | None:
        reason = self.skip_reason(context.tags)
        if reason is None:
            return None
        record = build_skipped_report(reason)
        # The skip decision stands even when a sink fails; the engine stays untouched.
        try:
            self.emitter.emit(record, context.story_id, reporter=context.reporting)
        except Exception:
            LOGGER.exception("Reporting the skipped audit failed for %s.", context.story_id)
        return record

    def _begin(self, context: StoryContext) -> AuditTicket | None:
        ticket = self.guard.begin(context.story_id)
        if ticket is not None:
            LOGGER.debug("Auditing %s.", context.story_id)
        return ticket

    def _finish(
        self,
        context: StoryContext,
        ticket: AuditTicket,
        result: AuditResult,
        started: float,
    ) -> ReportRecord | None:
        if not self.guard.is_current(ticket):
            LOGGER.debug("Discarding stale audit for %s.", context.story_id)
            return None
        scoped = scope_violations(result.violations, context.canvas)
        scoped = filter_disabled(scoped, self.disabled_rules(context))
        final = AuditResult(
            violations=tuple(enrich_violations(scoped, self.engine)),
            rule_count=result.rule_count,
        )
        record = build_report(final, self.test_mode(context))
        self.emitter.emit(record, context.story_id, reporter=context.reporting)
        self.emitter.emit_meta(audit_meta(final, (self._clock() - started) * 1000.0))
        return record

    async def run(self, context: StoryContext) -> ReportRecord | None:
        """Chunked audit for test runs. Never raises into the host."""
        skipped = self._skip(context)
        if skipped is not None:
            return skipped
        ticket = self._begin(context)
        if ticket is None:
            return None
        started = self._clock()
        try:
            result = await run_chunked_audit(
                context.audited_document,
                self.engine,
                budget_ms=self.config.budget_ms,
            )
            return self._finish(context, ticket, result, started)
        except Exception:
            LOGGER.exception("Accessibility audit failed for %s.", context.story_id)
            return None
        finally:
            self.guard.finish(ticket)

    def run_sync(self, context: StoryContext) -> ReportRecord | None:
        """Single blocking pass, for interactive renders after they settle."""
        skipped = self._skip(context)
        if skipped is not None:
            return skipped
        ticket = self._begin(context)
        if ticket is None:
            return None
        started = self._clock()
        try:
            result = run_single_audit(context.audited_document, self.engine)
            return self._finish(context, ticket, result, started)
        except Exception:
            LOGGER.exception("Accessibility audit failed for %s.", context.story_id)
            return None
        finally:
            self.guard.finish(ticket)
