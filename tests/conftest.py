from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
PYTHON_SRC = ROOT / "python"

if str(PYTHON_SRC) not in sys.path:
    sys.path.insert(0, str(PYTHON_SRC))

from accesslint.dom import document, el  # noqa: E402
from accesslint.types import AuditResult, Rule, Violation  # noqa: E402


class FakeChunkedAudit:
    def __init__(self, engine: "FakeEngine") -> None:
        self.engine = engine
        self.rule_count = engine.rule_count
        self.processed = 0
        self.budgets: list[float] = []

    def process_chunk(self, budget_ms: float) -> bool:
        self.engine.calls.append("chunk")
        self.budgets.append(budget_ms)
        self.processed += 1
        return self.processed < self.engine.slices

    def get_violations(self) -> list[Violation]:
        self.engine.calls.append("get_violations")
        return list(self.engine.violations)


class FakeEngine:
    """In-memory rule engine; a rule lookup for "explode" raises."""

    def __init__(
        self,
        violations: list[Violation] | None = None,
        *,
        rules: dict[str, object] | None = None,
        rule_count: int = 20,
        slices: int = 1,
        error: Exception | None = None,
    ) -> None:
        self.violations = list(violations or [])
        self.rules = dict(rules or {})
        self.rule_count = rule_count
        self.slices = slices
        self.error = error
        self.calls: list[str] = []
        self.documents: list[object] = []
        self.disabled_rules: list[str] = []
        self.audits: list[FakeChunkedAudit] = []

    def run_audit(self, document: object) -> AuditResult:
        self.calls.append("run_audit")
        self.documents.append(document)
        if self.error is not None:
            raise self.error
        return AuditResult(violations=tuple(self.violations), rule_count=self.rule_count)

    def create_chunked_audit(self, document: object) -> FakeChunkedAudit:
        self.calls.append("create_chunked_audit")
        self.documents.append(document)
        if self.error is not None:
            raise self.error
        audit = FakeChunkedAudit(self)
        self.audits.append(audit)
        return audit

    def get_rule_by_id(self, rule_id: str) -> object:
        if rule_id == "explode":
            raise RuntimeError("rule registry unavailable")
        return self.rules.get(rule_id)

    def configure(self, *, disabled_rules) -> None:
        self.disabled_rules = list(disabled_rules)


RULES = {
    "image-alt": Rule(
        id="image-alt",
        description="Images must have alternate text",
        guidance="Add an alt attribute describing the image.",
        level="A",
        wcag=("1.1.1",),
    ),
    "button-name": {
        "id": "button-name",
        "description": "Buttons must have discernible text",
        "level": "A",
        "wcag": ["4.1.2", "2.4.6"],
    },
}


def violation(rule_id: str, selector: str, impact: str = "serious", **extra) -> Violation:
    return Violation(
        rule_id=rule_id,
        selector=selector,
        html=extra.pop("html", f"<{rule_id}>"),
        impact=impact,
        message=extra.pop("message", f"{rule_id} failed"),
        **extra,
    )


@pytest.fixture
def story_dom():
    root = el(
        "div",
        el("img", src="logo.png", id="logo"),
        el("button", el("svg"), class_name="icon"),
        id="root",
    )
    outside = el("nav", el("a", href="#", id="skip"), id="outside")
    doc = document(el("html", el("body", root, outside)))
    return doc, root


@pytest.fixture
def story_violations():
    return [
        violation("image-alt", "#logo", impact="critical"),
        violation("button-name", "#storybook-preview-iframe >>> iframe> #root > button.icon"),
        violation("link-name", "#skip", impact="minor"),
        violation("color-contrast", "div[", impact="moderate"),
    ]


@pytest.fixture
def make_engine():
    def factory(violations=None, **kwargs) -> FakeEngine:
        kwargs.setdefault("rules", RULES)
        return FakeEngine(violations, **kwargs)

    return factory


@pytest.fixture
def make_violation():
    return violation
