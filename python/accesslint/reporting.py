# SPDX-License-Identifier: AGPL-3.0-only
from __future__ import annotations

import logging
from typing import Any, Protocol

from .constants import META_EVENT, RESULT_EVENT
from .protocol import meta_event_payload, result_event_payload
from .types import AuditMeta, AuditResult, ReportRecord, SkippedResult

LOGGER = logging.getLogger(__name__)


class Reporter(Protocol):
    def add_report(self, report: dict[str, Any]) -> None:
        ...


def derive_status(violation_count: int, mode: str | None = "error") -> str:
    if violation_count == 0:
        return "passed"
    return "warning" if mode == "todo" else "failed"


def build_report(result: AuditResult, mode: str | None = "error") -> ReportRecord:
    return ReportRecord(result=result, status=derive_status(len(result.violations), mode))


def build_skipped_report(reason: str) -> ReportRecord:
    return ReportRecord(result=SkippedResult(reason=reason), status="passed")


def audit_meta(result: AuditResult, duration_ms: float) -> AuditMeta:
    failed = len({v.rule_id for v in result.violations})
    return AuditMeta(
        duration=round(float(duration_ms), 3),
        rule_count=result.rule_count,
        passed=max(0, result.rule_count - failed),
        failed=failed,
        violations=len(result.violations),
    )


class ReportingEmitter:
    """Publishes each finished audit to the reporting sink and the channel.

    Both sinks are optional. Every record replaces the previous one for its
    story; nothing is merged or buffered.
    """

    def __init__(self, channel: Any = None, reporter: Reporter | None = None) -> None:
        self.channel = channel
        self.reporter = reporter

    def emit(
        self,
        record: ReportRecord,
        story_id: str | None = None,
        *,
        reporter: Reporter | None = None,
    ) -> None:
        sink = reporter if reporter is not None else self.reporter
        if sink is not None:
            sink.add_report(record.to_dict())
        if self.channel is not None:
            self.channel.emit(RESULT_EVENT, result_event_payload(record, story_id))
        LOGGER.debug("Reported %s for %s.", record.status, story_id or "<anonymous>")

    def emit_meta(self, meta: AuditMeta) -> None:
        if self.channel is not None:
            self.channel.emit(META_EVENT, meta_event_payload(meta))
