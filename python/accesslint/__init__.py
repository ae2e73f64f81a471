# SPDX-License-Identifier: AGPL-3.0-only
"""AccessLint: accessibility audits for component stories and tests.

Audits run through an external rule engine, get scoped to the rendered
component and enriched with rule metadata, then travel as versioned report
records to a test reporting sink and over a message channel to the status,
highlight and panel models.
"""
from __future__ import annotations

from .channel import Channel
from .config import Config, ConfigError
from .constants import REPORT_VERSION
from .matchers import AccessibilityAssertionError, MatchResult, assert_accessible, to_be_accessible
from .preview import AccessLintAnnotations, enable_accesslint
from .reporting import ReportingEmitter, derive_status
from .runner import AuditRunner, StoryContext
from .types import (
    AuditMeta,
    AuditResult,
    EnrichedViolation,
    ReportRecord,
    Rule,
    SkippedResult,
    Violation,
)

__version__ = "0.1.0"

__all__ = [
    "AccessLintAnnotations",
    "AccessibilityAssertionError",
    "AuditMeta",
    "AuditResult",
    "AuditRunner",
    "Channel",
    "Config",
    "ConfigError",
    "EnrichedViolation",
    "MatchResult",
    "REPORT_VERSION",
    "ReportRecord",
    "ReportingEmitter",
    "Rule",
    "SkippedResult",
    "StoryContext",
    "Violation",
    "assert_accessible",
    "derive_status",
    "enable_accesslint",
    "to_be_accessible",
]
