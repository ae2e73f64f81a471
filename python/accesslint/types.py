# SPDX-License-Identifier: AGPL-3.0-only
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from .constants import REPORT_TYPE, REPORT_VERSION

IMPACT_VALUES = ("critical", "serious", "moderate", "minor")
LEVEL_VALUES = ("A", "AA", "AAA")
REPORT_STATUS_VALUES = ("passed", "warning", "failed")
STATUS_VALUES = ("unknown", "success", "warning", "error")


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class Violation:
    rule_id: str
    selector: str
    html: str
    impact: str
    message: str
    context: str | None = None
    # Engine-attached element handle; never serialized.
    element: Any = field(default=None, compare=False, repr=False)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "ruleId": self.rule_id,
            "selector": self.selector,
            "html": self.html,
            "impact": self.impact,
            "message": self.message,
        }
        if self.context is not None:
            out["context"] = self.context
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Violation":
        return cls(
            rule_id=str(data.get("ruleId") or data.get("rule_id") or ""),
            selector=str(data.get("selector") or ""),
            html=str(data.get("html") or ""),
            impact=str(data.get("impact") or "minor"),
            message=str(data.get("message") or ""),
            context=_opt_str(data.get("context")),
            element=data.get("element"),
        )


@dataclass(frozen=True)
class Rule:
    id: str
    description: str | None = None
    guidance: str | None = None
    level: str | None = None
    wcag: tuple[str, ...] = ()


@dataclass(frozen=True)
class EnrichedViolation:
    rule_id: str
    selector: str
    html: str
    impact: str
    message: str
    context: str | None = None
    description: str | None = None
    wcag: tuple[str, ...] | None = None
    level: str | None = None
    guidance: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "ruleId": self.rule_id,
            "selector": self.selector,
            "html": self.html,
            "impact": self.impact,
            "message": self.message,
        }
        optional = {
            "context": self.context,
            "description": self.description,
            "wcag": list(self.wcag) if self.wcag is not None else None,
            "level": self.level,
            "guidance": self.guidance,
        }
        out.update({k: v for k, v in optional.items() if v is not None})
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EnrichedViolation":
        wcag = data.get("wcag")
        return cls(
            rule_id=str(data.get("ruleId") or ""),
            selector=str(data.get("selector") or ""),
            html=str(data.get("html") or ""),
            impact=str(data.get("impact") or "minor"),
            message=str(data.get("message") or ""),
            context=_opt_str(data.get("context")),
            description=_opt_str(data.get("description")),
            wcag=tuple(str(ref) for ref in wcag) if isinstance(wcag, (list, tuple)) else None,
            level=_opt_str(data.get("level")),
            guidance=_opt_str(data.get("guidance")),
        )


def coerce_violation(value: Any) -> Violation:
    if isinstance(value, Violation):
        return value
    if isinstance(value, Mapping):
        return Violation.from_dict(value)
    raise TypeError(f"Expected a Violation or mapping, got {type(value).__name__}")


@dataclass(frozen=True)
class AuditResult:
    violations: tuple[Violation | EnrichedViolation, ...] = ()
    rule_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "violations": [v.to_dict() for v in self.violations],
            "ruleCount": self.rule_count,
        }

    @classmethod
    def coerce(cls, value: Any) -> "AuditResult":
        if isinstance(value, AuditResult):
            return value
        if isinstance(value, Mapping):
            raw = value.get("violations") or []
            count = value.get("ruleCount", value.get("rule_count", 0))
            return cls(
                violations=tuple(coerce_violation(v) for v in raw),
                rule_count=int(count or 0),
            )
        raise TypeError(f"Expected an AuditResult or mapping, got {type(value).__name__}")


@dataclass(frozen=True)
class SkippedResult:
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"skipped": True, "reason": self.reason}


@dataclass(frozen=True)
class AuditMeta:
    duration: float
    rule_count: int
    passed: int
    failed: int
    violations: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "duration": self.duration,
            "ruleCount": self.rule_count,
            "passed": self.passed,
            "failed": self.failed,
            "violations": self.violations,
        }


@dataclass(frozen=True)
class ReportRecord:
    result: AuditResult | SkippedResult
    status: str
    type: str = REPORT_TYPE
    version: int = REPORT_VERSION

    @property
    def skipped(self) -> bool:
        return isinstance(self.result, SkippedResult)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "version": self.version,
            "result": self.result.to_dict(),
            "status": self.status,
        }


@dataclass(frozen=True)
class StatusRecord:
    story_id: str
    type_id: str
    value: str
    title: str
    description: str
    sidebar_context_menu: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "storyId": self.story_id,
            "typeId": self.type_id,
            "value": self.value,
            "title": self.title,
            "description": self.description,
            "sidebarContextMenu": self.sidebar_context_menu,
        }


@dataclass(frozen=True)
class HighlightRequest:
    id: str
    selectors: tuple[str, ...]
    style: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "selectors": list(self.selectors), "styles": dict(self.style)}

