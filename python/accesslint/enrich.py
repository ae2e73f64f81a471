# SPDX-License-Identifier: AGPL-3.0-only
from __future__ import annotations

import logging
from typing import Any, Sequence

from .types import EnrichedViolation, Rule, Violation

LOGGER = logging.getLogger(__name__)


def _rule_field(rule: Any, name: str) -> Any:
    if rule is None:
        return None
    if isinstance(rule, dict):
        return rule.get(name)
    return getattr(rule, name, None)


def _lookup_rule(engine: Any, rule_id: str) -> Rule | dict[str, Any] | None:
    try:
        return engine.get_rule_by_id(rule_id)
    except Exception:
        LOGGER.debug("Rule lookup failed for %s.", rule_id, exc_info=True)
        return None


def enrich_violation(violation: Violation, engine: Any) -> EnrichedViolation:
    rule = _lookup_rule(engine, violation.rule_id) if engine is not None else None
    wcag = _rule_field(rule, "wcag")
    level = _rule_field(rule, "level")
    return EnrichedViolation(
        rule_id=violation.rule_id,
        selector=violation.selector,
        html=violation.html,
        impact=violation.impact,
        message=violation.message,
        context=violation.context,
        description=_rule_field(rule, "description") or None,
        wcag=tuple(str(ref) for ref in wcag) if wcag else None,
        level=str(level) if level else None,
        guidance=_rule_field(rule, "guidance") or None,
    )


def enrich_violations(violations: Sequence[Violation], engine: Any) -> list[EnrichedViolation]:
    return [enrich_violation(v, engine) for v in violations]


def format_violation(violation: EnrichedViolation) -> str:
    level = f" [{violation.level}]" if violation.level else ""
    wcag = f" ({', '.join(violation.wcag)})" if violation.wcag else ""
    return f"  {violation.rule_id}{level}{wcag}: {violation.message}\n    {violation.selector}"
