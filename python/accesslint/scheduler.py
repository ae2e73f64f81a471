# SPDX-License-Identifier: AGPL-3.0-only
"""Time-sliced audit driver.

Audits share the event loop with rendering and test execution, so the chunked
path hands control back to the loop after every slice that reports remaining
work. There is no parallelism and no cancellation token: once started, an
audit runs to completion. `AuditGuard` keeps at most one audit in flight per
unit and lets results from a torn-down unit be recognised as stale.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from .constants import DEFAULT_BUDGET_MS
from .types import AuditResult, coerce_violation

LOGGER = logging.getLogger(__name__)


async def next_tick() -> None:
    await asyncio.sleep(0)


async def run_chunked_audit(
    document: Any,
    engine: Any,
    *,
    budget_ms: float = DEFAULT_BUDGET_MS,
    yield_control: Callable[[], Awaitable[None]] = next_tick,
) -> AuditResult:
    if budget_ms <= 0:
        raise ValueError(f"budget_ms must be positive, got {budget_ms!r}")
    audit = engine.create_chunked_audit(document)
    slices = 1
    while audit.process_chunk(budget_ms):
        await yield_control()
        slices += 1
    violations = audit.get_violations()
    LOGGER.debug("Chunked audit finished after %s slice(s).", slices)
    return AuditResult(
        violations=tuple(coerce_violation(v) for v in violations),
        rule_count=int(getattr(audit, "rule_count", 0) or 0),
    )


def run_single_audit(document: Any, engine: Any) -> AuditResult:
    return AuditResult.coerce(engine.run_audit(document))


@dataclass(frozen=True)
class AuditTicket:
    unit_id: str
    epoch: int


class AuditGuard:
    def __init__(self) -> None:
        self._epochs: dict[str, int] = {}
        self._in_flight: dict[str, int] = {}

    def in_flight(self, unit_id: str) -> bool:
        return unit_id in self._in_flight

    def begin(self, unit_id: str) -> AuditTicket | None:
        if unit_id in self._in_flight:
            LOGGER.debug("Audit already in flight for %s; not starting another.", unit_id)
            return None
        epoch = self._epochs.get(unit_id, 0) + 1
        self._epochs[unit_id] = epoch
        self._in_flight[unit_id] = epoch
        return AuditTicket(unit_id=unit_id, epoch=epoch)

    def finish(self, ticket: AuditTicket) -> bool:
        """Release the slot. Returns False when the ticket went stale meanwhile."""
        if self._in_flight.get(ticket.unit_id) == ticket.epoch:
            del self._in_flight[ticket.unit_id]
        return self.is_current(ticket)

    def is_current(self, ticket: AuditTicket) -> bool:
        return self._epochs.get(ticket.unit_id) == ticket.epoch

    def invalidate(self, unit_id: str) -> None:
        self._epochs[unit_id] = self._epochs.get(unit_id, 0) + 1
        self._in_flight.pop(unit_id, None)
