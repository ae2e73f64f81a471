# SPDX-License-Identifier: AGPL-3.0-only
"""Assertion helpers for component tests.

    from accesslint.matchers import assert_accessible

    def test_button(canvas, engine):
        assert_accessible(canvas, engine=engine)
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from .enrich import enrich_violations, format_violation
from .scheduler import run_single_audit
from .scoping import filter_disabled, scope_violations
from .types import EnrichedViolation


class AccessibilityAssertionError(AssertionError):
    def __init__(self, message: str, violations: list[EnrichedViolation]) -> None:
        super().__init__(message)
        self.violations = violations


@dataclass
class MatchResult:
    passed: bool
    message: str
    violations: list[EnrichedViolation] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.passed


def _is_element(value: Any) -> bool:
    return callable(getattr(value, "contains", None)) and getattr(value, "owner_document", None) is not None


def failure_message(violations: list[EnrichedViolation]) -> str:
    summary = "\n\n".join(format_violation(v) for v in violations)
    return (
        "Expected element to have no accessibility violations, "
        f"but found {len(violations)}:\n\n{summary}"
    )


def to_be_accessible(
    element: Any,
    *,
    engine: Any,
    disabled_rules: Iterable[str] | None = None,
) -> MatchResult:
    if not _is_element(element):
        return MatchResult(
            passed=False,
            message=(
                "to_be_accessible() expects an element (e.g. the story canvas), "
                f"but received {type(element).__name__}"
            ),
        )
    result = run_single_audit(element.owner_document, engine)
    scoped = scope_violations(result.violations, element)
    # Filter instead of reconfiguring the engine, which is shared.
    scoped = filter_disabled(scoped, disabled_rules)
    violations = enrich_violations(scoped, engine)
    if not violations:
        return MatchResult(
            passed=True,
            message="Expected element to have accessibility violations, but none were found",
        )
    return MatchResult(passed=False, message=failure_message(violations), violations=violations)


def assert_accessible(
    element: Any,
    *,
    engine: Any,
    disabled_rules: Iterable[str] | None = None,
) -> None:
    match = to_be_accessible(element, engine=engine, disabled_rules=disabled_rules)
    if not match.passed:
        raise AccessibilityAssertionError(match.message, match.violations)
